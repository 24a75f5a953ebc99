"""YAML-backed application settings."""

import copy
import os
from pathlib import Path
from typing import Any, NamedTuple, Optional

import yaml

from .defaults import DEFAULT_CONFIG
from ..utils.logging import get_logger


logger = get_logger("config")

APP_DIR_NAME = "ExpTracker"
CONFIG_FILE_NAME = "config.yaml"


class SettingsValidationError(ValueError):
    """Raised when a settings value fails validation."""
    pass


class _Rule(NamedTuple):
    kind: type
    minimum: Optional[float] = None
    maximum: Optional[float] = None


# Keys without a rule are stored as given
_RULES: dict[str, _Rule] = {
    "general.data_dir": _Rule(str),
    "general.database_file": _Rule(str),
    "sampling.default_interval_sec": _Rule(int, 1, 3600),
    "sampling.autostart": _Rule(bool),
    "rates.window_minutes": _Rule(int, 1, 1440),
    "rates.refresh_interval_sec": _Rule(int, 1, 3600),
    "advanced.debug_mode": _Rule(bool),
}


def default_config_path() -> Path:
    """Per-user config location (LOCALAPPDATA on Windows, ~/.config elsewhere)."""
    if os.name == "nt":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
    else:
        base = Path.home() / ".config"
    return base / APP_DIR_NAME / CONFIG_FILE_NAME


def merge_config(base: dict, override: dict) -> dict:
    """Return base updated with override, recursing into nested sections."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = merge_config(current, value)
        else:
            merged[key] = value
    return merged


def check_value(key: str, value: Any) -> Any:
    """Validate value for key, raising SettingsValidationError."""
    rule = _RULES.get(key)
    if rule is None:
        return value

    # bool is an int subclass, only accept it where bool is expected
    if not isinstance(value, rule.kind) or (isinstance(value, bool) and rule.kind is not bool):
        raise SettingsValidationError(
            f"Setting '{key}' must be of type {rule.kind.__name__}, got {type(value).__name__}"
        )

    if rule.minimum is not None and value < rule.minimum:
        raise SettingsValidationError(f"Setting '{key}' must be >= {rule.minimum}, got {value}")
    if rule.maximum is not None and value > rule.maximum:
        raise SettingsValidationError(f"Setting '{key}' must be <= {rule.maximum}, got {value}")

    return value


class Settings:
    """Application settings persisted to a YAML file.

    Values are addressed with dot notation ("rates.window_minutes"). A
    missing file is created from DEFAULT_CONFIG; a partial one is merged
    over it, and an unreadable one falls back to the defaults.
    """

    def __init__(self, config_path: Path | None = None):
        self._config_path = Path(config_path) if config_path is not None else default_config_path()
        self._config: dict[str, Any] = self._read()

    def _read(self) -> dict[str, Any]:
        defaults = copy.deepcopy(DEFAULT_CONFIG)
        if not self._config_path.exists():
            self._write(defaults)
            return defaults

        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load config {self._config_path}, using defaults: {e}")
            return defaults

        if not isinstance(loaded, dict):
            logger.warning(
                f"Config {self._config_path} is a {type(loaded).__name__}, not a mapping; using defaults"
            )
            return defaults

        return merge_config(defaults, loaded)

    def _write(self, config: dict[str, Any]) -> None:
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._config_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(config, f, default_flow_style=False, sort_keys=False)

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a dot-notation key, returning default when absent."""
        node: Any = self._config
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any, save: bool = True, validate: bool = True) -> None:
        """Store a dot-notation key.

        Args:
            key: e.g. "sampling.autostart"
            value: New value
            save: Write the file immediately
            validate: Check the value against the known rules first

        Raises:
            SettingsValidationError: If validation is enabled and fails
        """
        if validate:
            value = check_value(key, value)

        *sections, leaf = key.split(".")
        node = self._config
        for section in sections:
            node = node.setdefault(section, {})
        node[leaf] = value

        if save:
            self._write(self._config)

    def reset_to_defaults(self, save: bool = True) -> None:
        """Discard every change and go back to DEFAULT_CONFIG."""
        self._config = copy.deepcopy(DEFAULT_CONFIG)
        if save:
            self._write(self._config)

    @property
    def config_path(self) -> Path:
        return self._config_path

    @property
    def data_dir(self) -> Path:
        """general.data_dir if set, otherwise the config file's directory."""
        configured = self.get("general.data_dir", "")
        if configured:
            return Path(configured).expanduser()
        return self._config_path.parent

    @property
    def database_path(self) -> Path:
        return self.data_dir / self.get("general.database_file", "exp_tracker.db")

    def __repr__(self) -> str:
        return f"Settings(config_path={self._config_path})"


_settings: Settings | None = None


def get_settings() -> Settings:
    """Process-wide settings, loaded on first use."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
