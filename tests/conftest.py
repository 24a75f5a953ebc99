"""Pytest configuration and fixtures for EXP Tracker tests."""

import pytest
import sys
from pathlib import Path

# Add project root to path for imports
project_path = Path(__file__).parent.parent
sys.path.insert(0, str(project_path))

from exp_tracker.config.settings import Settings
from exp_tracker.database.repository import Repository


@pytest.fixture
def settings(tmp_path):
    """Create a settings instance with a temp config file and data dir."""
    settings = Settings(tmp_path / "config.yaml")
    settings.set("general.data_dir", str(tmp_path / "data"))
    return settings


@pytest.fixture
def repository(tmp_path):
    """Create a repository with a temporary database."""
    repo = Repository(str(tmp_path / "test.db"))
    repo.initialize()
    yield repo
    repo.close()


@pytest.fixture
def forest_samples():
    """Level 5 -> 6 crossing used by several rate tests.

    (ts_ms, level, exp_percent)
    """
    return [
        (0, 5, 10.0),
        (1_800_000, 5, 40.0),
        (3_600_000, 6, 5.0),
    ]
