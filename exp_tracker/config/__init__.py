"""Configuration module."""

from .defaults import DEFAULT_CONFIG
from .settings import Settings, SettingsValidationError, get_settings

__all__ = ["DEFAULT_CONFIG", "Settings", "SettingsValidationError", "get_settings"]
