"""Default configuration values for EXP Tracker."""

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "general": {
        "data_dir": "",  # Empty = config directory
        "database_file": "exp_tracker.db",
    },
    "sampling": {
        "default_interval_sec": 10,  # Used until a value is saved in the database
        "autostart": False,  # Start the sampler on launch when a spot is active
    },
    "rates": {
        "window_minutes": 30,  # Trailing window for EXP%/hour
        "refresh_interval_sec": 8,  # Console rate table refresh
    },
    "advanced": {
        "debug_mode": False,
    },
}
