"""Structured logging configuration for ratecache.

This module configures Python's standard logging module for the package,
with optional JSON formatting for environments that ship logs to an
aggregation system. The primitives themselves only log at DEBUG level.
"""

import json
import logging
import logging.config
import sys
import traceback
from datetime import datetime
from typing import Any, Dict, Optional

from ratecache.core.config import Settings, get_settings

# Attributes every LogRecord carries; anything else was passed via extra=
_RECORD_ATTRS = frozenset((
    "name", "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "exc_info", "exc_text", "stack_info",
    "lineno", "funcName", "created", "msecs", "relativeCreated",
    "thread", "threadName", "processName", "process", "message",
    "asctime", "taskName",
))


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Outputs log records as JSON objects, one per line.

    Attributes:
        fields: List of context fields to include in JSON output
    """

    # Contextual fields emitted at the top level when set
    CONTEXT_FIELDS = [
        "cache_name",    # Name given to an LRUCache instance
        "limiter_key",   # Key of a KeyedRateLimiter bucket
        "cost",          # Token cost of an admission check
        "evicted_key",   # Key removed by LRU eviction
    ]

    def __init__(
        self,
        fields: Optional[list] = None,
        datefmt: Optional[str] = None,
    ):
        """Initialize JSON formatter.

        Args:
            fields: Context fields to promote to the top level
                (defaults to CONTEXT_FIELDS)
            datefmt: Date format string (ISO8601 by default)
        """
        super().__init__(datefmt=datefmt)
        self.fields = fields if fields is not None else list(self.CONTEXT_FIELDS)

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON string representation of the log record
        """
        record.message = record.getMessage()

        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).astimezone().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.message,
            "source": {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            },
        }

        for field in self.fields:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value

        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS or key in self.CONTEXT_FIELDS or key in self.fields:
                continue
            log_data.setdefault("extra", {})[key] = value

        if record.exc_info and record.exc_info != (None, None, None):
            log_data["exception"] = traceback.format_exception(*record.exc_info)

        return json.dumps(log_data, default=str, ensure_ascii=False)


class ContextFilter(logging.Filter):
    """Logging filter that adds contextual fields to log records.

    Fills in None for any context field the caller did not pass, so the
    structured text format can reference them unconditionally.
    """

    CONTEXT_DEFAULTS = {field: None for field in JSONFormatter.CONTEXT_FIELDS}

    def filter(self, record: logging.LogRecord) -> bool:
        for field, default in self.CONTEXT_DEFAULTS.items():
            if not hasattr(record, field):
                setattr(record, field, default)
        return True


def get_logging_config(settings: Optional[Settings] = None) -> Dict[str, Any]:
    """Get logging configuration dictionary.

    Args:
        settings: Settings to read level and format from
            (defaults to the shared settings instance)

    Returns:
        Logging configuration dict compatible with logging.config.dictConfig
    """
    settings = settings or get_settings()
    log_format = settings.log_format.lower()
    log_level = settings.log_level.upper()

    formatters: Dict[str, Any] = {
        "standard": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        },
        "structured": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s - cache_name=%(cache_name)s - limiter_key=%(limiter_key)s - cost=%(cost)s"
        },
    }

    if log_format == "json":
        formatters["json"] = {
            "()": "ratecache.core.logging.JSONFormatter",
        }
        default_formatter = "json"
    else:
        default_formatter = "structured" if log_format == "structured" else "standard"

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "filters": {
            "context": {
                "()": "ratecache.core.logging.ContextFilter",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": default_formatter,
                "stream": sys.stderr,
                "filters": ["context"],
            },
        },
        "loggers": {
            "ratecache": {
                "level": log_level,
                "handlers": ["console"],
                "propagate": False,
            },
        },
    }


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Configure the ratecache logger.

    Libraries embedding ratecache usually configure logging themselves;
    this is for applications that want the package defaults.
    """
    logging.config.dictConfig(get_logging_config(settings))


def get_logger(name: str = "ratecache") -> logging.Logger:
    """Get a logger instance with the specified name.

    Args:
        name: Logger name, defaults to "ratecache"

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


def get_log_context(
    cache_name: Optional[str] = None,
    limiter_key: Optional[str] = None,
    cost: Optional[float] = None,
    **extra
) -> Dict[str, Any]:
    """Create a log context dictionary for use with the extra parameter.

    Example:
        >>> logger.debug(
        ...     "Request throttled",
        ...     extra=get_log_context(limiter_key="client-1", cost=2),
        ... )
    """
    context = {
        "cache_name": cache_name,
        "limiter_key": limiter_key,
        "cost": cost,
    }
    context.update(extra)
    return {k: v for k, v in context.items() if v is not None}
