"""Core utilities for ratecache."""

from ratecache.core.clock import Clock, monotonic_clock
from ratecache.core.config import Settings, get_settings, reset_settings
from ratecache.core.logging import get_logger, setup_logging

__all__ = [
    "Clock",
    "monotonic_clock",
    "Settings",
    "get_settings",
    "reset_settings",
    "get_logger",
    "setup_logging",
]
