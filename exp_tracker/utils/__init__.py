"""Utility functions and helpers."""

from .logging import setup_logging, get_logger
from .helpers import format_rate, format_duration, now_ms

__all__ = [
    "setup_logging",
    "get_logger",
    "format_rate",
    "format_duration",
    "now_ms",
]
