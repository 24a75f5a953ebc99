"""Centralized constants for EXP Tracker.

This module consolidates magic numbers shared by the sampler, the rate
engine and the persistence layer.
"""

from dataclasses import dataclass


# =============================================================================
# Time Constants
# =============================================================================

@dataclass(frozen=True)
class TimeConstants:
    """Time unit conversions (samples are timestamped in epoch ms)."""

    MS_PER_SECOND: int = 1000
    MS_PER_MINUTE: int = 60_000
    MS_PER_HOUR: int = 3_600_000


# =============================================================================
# Sampling Constants
# =============================================================================

@dataclass(frozen=True)
class SamplingConstants:
    """Sampling scheduler constants."""

    DEFAULT_INTERVAL_SEC: int = 10
    MIN_INTERVAL_SEC: int = 1

    # Thread join is unbounded; this only paces the "still waiting" log line
    STOP_WAIT_LOG_SEC: float = 5.0


# =============================================================================
# Rate Constants
# =============================================================================

@dataclass(frozen=True)
class RateConstants:
    """Rate engine constants."""

    MIN_SAMPLES: int = 2
    DEFAULT_WINDOW_MINUTES: int = 30
    MAX_EXP_PERCENT: float = 100.0


# =============================================================================
# Persisted Setting Keys
# =============================================================================

@dataclass(frozen=True)
class SettingKeys:
    """Keys of the exp_settings key-value table."""

    SAMPLING_INTERVAL_SEC: str = "sampling_interval_sec"
    ACTIVE_SPOT_ID: str = "active_spot_id"


# Singleton instances for easy access
TIME = TimeConstants()
SAMPLING = SamplingConstants()
RATES = RateConstants()
SETTING_KEYS = SettingKeys()
