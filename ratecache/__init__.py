"""Bounded in-memory building blocks: an LRU cache and a token bucket rate limiter."""

from ratecache.cache import LRUCache
from ratecache.core import (
    Clock,
    Settings,
    get_logger,
    get_settings,
    monotonic_clock,
    setup_logging,
)
from ratecache.exceptions import ConfigurationError, InvalidCostError, RateCacheError
from ratecache.rate_limit import KeyedRateLimiter, RateLimitResult, TokenBucket

__version__ = "0.1.0"

__all__ = [
    "LRUCache",
    "TokenBucket",
    "KeyedRateLimiter",
    "RateLimitResult",
    "Settings",
    "get_settings",
    "setup_logging",
    "get_logger",
    "Clock",
    "monotonic_clock",
    "RateCacheError",
    "ConfigurationError",
    "InvalidCostError",
]
