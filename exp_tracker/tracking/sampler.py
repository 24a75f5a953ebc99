"""Background EXP sampling loop."""

import threading
from typing import Callable, List, Optional

from .runtime_state import RuntimeState
from ..constants import SAMPLING
from ..database.models import ExpSample
from ..database.repository import Repository, DatabaseError
from ..sources.value_source import ValueSource
from ..utils.helpers import now_ms
from ..utils.logging import get_logger


logger = get_logger("tracking.sampler")


class SamplingScheduler:
    """Polls a value source and appends samples for the active spot.

    The scheduler is either stopped or running one daemon thread. Each tick
    reads the active spot and the interval from the shared RuntimeState, so
    changes apply from the next tick without a restart. Cancellation is
    cooperative: stop() sets the loop's event and joins the thread outside
    the handle lock, so is_running() never waits on a tick; start() waits only
    for a loop that was already told to stop. The wait
    between ticks wakes immediately on the event, but a tick already in
    progress (value source fetch plus database write) runs to completion, so
    stop() can block for up to one tick.
    """

    def __init__(
        self,
        state: RuntimeState,
        source: ValueSource,
        repository: Repository,
        clock: Callable[[], int] = now_ms,
    ):
        """Initialize the scheduler.

        Args:
            state: Shared runtime configuration
            source: Provider of the current EXP reading
            repository: Sample store
            clock: Returns the current time in epoch milliseconds
        """
        self._state = state
        self._source = source
        self._repository = repository
        self._clock = clock

        # Guards the loop handles; never held while joining a thread
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None
        # Loop told to stop that may still be finishing its last tick
        self._stopping: Optional[threading.Thread] = None

        self._tick_count = 0
        self._samples_written = 0
        self._listeners: List[Callable[[ExpSample], None]] = []

    @property
    def source(self) -> ValueSource:
        """Get the value source being polled."""
        return self._source

    def start(self) -> bool:
        """Start the sampling loop if it is not already running.

        If a previous loop is still finishing its last tick, waits for it
        to exit first so two loops never sample at once.

        Returns:
            True (also when already running)
        """
        current = threading.current_thread()
        while True:
            with self._lock:
                if self._thread is not None and self._thread.is_alive():
                    logger.debug("Sampler already running")
                    return True

                previous = self._stopping
                if previous is None or not previous.is_alive() or previous is current:
                    self._stopping = None
                    stop_event = threading.Event()
                    thread = threading.Thread(
                        target=self._run,
                        # Restarted from the old loop's own listener: the new loop
                        # waits for the old one before its first tick
                        args=(stop_event, previous if previous is current else None),
                        name="SamplerThread",
                        daemon=True,
                    )
                    self._stop_event = stop_event
                    self._thread = thread
                    thread.start()
                    break

            self._join(previous)

        logger.info(f"Sampler started (interval {self._state.sampling_interval_sec}s)")
        return True

    def stop(self) -> None:
        """Stop the sampling loop and wait for it to exit.

        No-op when already stopped. When called from a listener on the loop
        thread itself, returns without waiting; the loop exits after the
        current tick.
        """
        with self._lock:
            thread = self._thread
            if thread is not None:
                self._stop_event.set()
                self._thread = None
                self._stop_event = None
                self._stopping = thread
            else:
                # Another stop() is already in progress; wait for the same loop
                thread = self._stopping

        if thread is None or thread is threading.current_thread():
            return

        self._join(thread)

        with self._lock:
            if self._stopping is thread:
                self._stopping = None

        logger.info("Sampler stopped")

    def _join(self, thread: threading.Thread) -> None:
        while thread.is_alive():
            thread.join(timeout=SAMPLING.STOP_WAIT_LOG_SEC)
            if thread.is_alive():
                logger.warning("Still waiting for sampler tick to finish...")

    def is_running(self) -> bool:
        """Check whether the sampling loop is running.

        False as soon as stop() has been requested, even while the last
        tick is still finishing.
        """
        with self._lock:
            return self._thread is not None and self._thread.is_alive()

    @property
    def tick_count(self) -> int:
        """Number of completed ticks since creation."""
        return self._tick_count

    @property
    def samples_written(self) -> int:
        """Number of samples persisted since creation."""
        return self._samples_written

    def add_listener(self, callback: Callable[[ExpSample], None]) -> None:
        """Add a listener called with every written sample.

        Listeners run on the sampler thread.
        """
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[ExpSample], None]) -> None:
        """Remove a sample listener."""
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _run(self, stop_event: threading.Event, previous: Optional[threading.Thread] = None) -> None:
        """Sampling loop (runs in thread)."""
        if previous is not None:
            self._join(previous)
        logger.debug("Sampler loop started")

        while not stop_event.is_set():
            try:
                self._tick()
            except Exception as e:
                # A failed tick must never end sampling
                logger.error(f"Sampler tick error: {e}")

            self._tick_count += 1
            interval = self._state.sampling_interval_sec
            stop_event.wait(interval)

        logger.debug("Sampler loop ended")

    def _tick(self) -> Optional[ExpSample]:
        """Take one sample if there is an active spot and a reading."""
        spot_id = self._state.active_spot_id
        if spot_id is None:
            return None

        reading = self._source.current_reading()
        if reading is None:
            return None

        try:
            sample = self._repository.add_sample(
                spot_id,
                reading.level,
                reading.exp_percent,
                ts=self._clock(),
            )
        except DatabaseError as e:
            logger.error(f"Failed to store sample for spot {spot_id}: {e}")
            return None

        self._samples_written += 1

        for callback in list(self._listeners):
            try:
                callback(sample)
            except Exception as e:
                logger.error(f"Sample listener error: {e}")

        return sample
