"""Database and persistence module."""

from .models import Spot, ExpSample, ExpSetting
from .repository import Repository, DatabaseError, MalformedSettingError, SpotNotFoundError

__all__ = [
    "Spot",
    "ExpSample",
    "ExpSetting",
    "Repository",
    "DatabaseError",
    "MalformedSettingError",
    "SpotNotFoundError",
]
