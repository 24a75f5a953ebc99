"""Process-wide runtime configuration shared with the sampler thread."""

import threading
from typing import Optional

from ..constants import SAMPLING
from ..utils.helpers import clamp_min


class RuntimeState:
    """Active spot and polling interval, read by the sampler on every tick.

    Owned by the service and passed by reference; there is no module-level
    instance. The active spot id sits behind a lock. The interval is a single
    int attribute, which CPython reads and replaces atomically, so it takes
    no lock; every write is clamped to the minimum interval.
    """

    def __init__(
        self,
        sampling_interval_sec: int = SAMPLING.DEFAULT_INTERVAL_SEC,
        active_spot_id: Optional[str] = None,
    ):
        self._active_lock = threading.Lock()
        self._active_spot_id = active_spot_id
        self._sampling_interval_sec = clamp_min(sampling_interval_sec, SAMPLING.MIN_INTERVAL_SEC)

    @property
    def active_spot_id(self) -> Optional[str]:
        """Get the active spot id, or None."""
        with self._active_lock:
            return self._active_spot_id

    def set_active_spot_id(self, spot_id: Optional[str]) -> None:
        """Publish a new active spot id (None clears it)."""
        with self._active_lock:
            self._active_spot_id = spot_id

    @property
    def sampling_interval_sec(self) -> int:
        """Get the polling interval in seconds."""
        return self._sampling_interval_sec

    def set_sampling_interval_sec(self, value: int) -> int:
        """Set the polling interval.

        Args:
            value: Requested interval in seconds

        Returns:
            The clamped value now in effect
        """
        clamped = clamp_min(value, SAMPLING.MIN_INTERVAL_SEC)
        self._sampling_interval_sec = clamped
        return clamped

    def __repr__(self) -> str:
        return (
            f"RuntimeState(active_spot_id={self.active_spot_id!r}, "
            f"sampling_interval_sec={self.sampling_interval_sec})"
        )
