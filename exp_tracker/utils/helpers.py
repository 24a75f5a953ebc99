"""Common helper functions for EXP Tracker."""

import time
from datetime import datetime, timezone

from ..constants import TIME


def now_ms() -> int:
    """Get the current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)


def ms_to_datetime(ts_ms: int) -> datetime:
    """Convert epoch milliseconds to a timezone-aware UTC datetime.

    Args:
        ts_ms: Timestamp in epoch milliseconds

    Returns:
        UTC datetime
    """
    return datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc)


def window_start_ms(window_minutes: int | float, now: int | None = None) -> int:
    """Get the start of a trailing window in epoch milliseconds.

    Args:
        window_minutes: Window length in minutes
        now: Reference time in epoch ms (defaults to current time)

    Returns:
        Earliest timestamp (inclusive) inside the window
    """
    if now is None:
        now = now_ms()
    return int(now - window_minutes * TIME.MS_PER_MINUTE)


def format_rate(exp_per_hour: float, decimals: int = 2) -> str:
    """Format an experience rate.

    Args:
        exp_per_hour: Experience percent gained per hour
        decimals: Number of decimal places

    Returns:
        Formatted string (e.g., "12.34%/h")
    """
    return f"{exp_per_hour:.{decimals}f}%/h"


def format_duration(seconds: int | float) -> str:
    """Format time duration in human readable format.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted string (e.g., "1h 23m", "4m 5s")
    """
    seconds = int(seconds)

    if seconds < 60:
        return f"{seconds}s"
    elif seconds < 3600:
        minutes = seconds // 60
        secs = seconds % 60
        return f"{minutes}m {secs}s" if secs else f"{minutes}m"
    else:
        hours = seconds // 3600
        minutes = (seconds % 3600) // 60
        return f"{hours}h {minutes}m" if minutes else f"{hours}h"


def clamp_min(value: int, min_val: int) -> int:
    """Clamp an integer to a lower bound.

    Args:
        value: Value to clamp
        min_val: Minimum value

    Returns:
        value, or min_val if value is smaller
    """
    return max(min_val, int(value))
