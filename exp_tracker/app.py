"""Main application service for EXP Tracker."""

from pathlib import Path
from typing import Optional, List

from .config.settings import Settings, get_settings
from .constants import SAMPLING
from .database.models import Spot, ExpSample
from .database.repository import Repository, MalformedSettingError
from .sources.value_source import ValueSource, ManualValueSource
from .tracking.exp_rate import RateEngine, SpotRate
from .tracking.runtime_state import RuntimeState
from .tracking.sampler import SamplingScheduler
from .utils.exporter import SampleExporter, ExportResult
from .utils.logging import get_logger


logger = get_logger("app")


class ExpTrackerService:
    """Owns the store, the shared runtime state and the sampler.

    Every public method is a synchronous request/response call that may run
    concurrently with the sampler thread. Storage failures raise
    DatabaseError and unknown spots raise SpotNotFoundError; missing data
    (no active spot, no rate) is returned as None or an empty list.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        repository: Optional[Repository] = None,
        source: Optional[ValueSource] = None,
    ):
        """Initialize the service.

        Args:
            settings: Settings instance. If None, uses global settings.
            repository: Sample store. If None, opens the configured database.
            source: Value source polled by the sampler. If None, the manual
                source is polled.
        """
        self._settings = settings or get_settings()

        if repository is None:
            data_dir = self._settings.data_dir
            data_dir.mkdir(parents=True, exist_ok=True)
            repository = Repository(str(self._settings.database_path))
        self._repository = repository

        self._manual_source = ManualValueSource()
        self._source = source or self._manual_source

        default_interval = self._settings.get("sampling.default_interval_sec", SAMPLING.DEFAULT_INTERVAL_SEC)
        try:
            default_interval = int(default_interval)
        except (TypeError, ValueError):
            logger.warning(f"Invalid default_interval_sec {default_interval!r}, using {SAMPLING.DEFAULT_INTERVAL_SEC}")
            default_interval = SAMPLING.DEFAULT_INTERVAL_SEC
        self._state = RuntimeState(sampling_interval_sec=default_interval)

        self._rates = RateEngine(self._repository)
        self._sampler = SamplingScheduler(self._state, self._source, self._repository)
        self._exporter = SampleExporter(self._repository)
        self._initialized = False

    def initialize(self) -> None:
        """Open the database and hydrate runtime state from saved settings."""
        self._repository.initialize()
        self._hydrate_state()
        self._initialized = True
        logger.info(f"EXP tracker initialized: {self._state}")

        if self._settings.get("sampling.autostart", False) and self._state.active_spot_id is not None:
            self._sampler.start()

    def _hydrate_state(self) -> None:
        try:
            stored_interval = self._repository.get_sampling_interval_sec()
        except MalformedSettingError as e:
            logger.warning(f"{e}; using {self._state.sampling_interval_sec}s")
            stored_interval = None

        if stored_interval is not None:
            self._state.set_sampling_interval_sec(stored_interval)

        active_id = self._repository.get_active_spot_id()
        if active_id is not None:
            if self._repository.get_spot(active_id) is not None:
                self._state.set_active_spot_id(active_id)
            else:
                logger.warning(f"Saved active spot {active_id} no longer exists, clearing")
                self._repository.clear_active_spot_id()

    def shutdown(self) -> None:
        """Stop sampling and release the database."""
        self._sampler.stop()
        self._repository.close()
        self._initialized = False
        logger.info("EXP tracker shut down")

    # Spots

    def upsert_spot(self, name: str) -> Spot:
        """Get or create a spot by its unique name.

        Raises:
            ValueError: If the name is empty
        """
        name = (name or "").strip()
        if not name:
            raise ValueError("Spot name must not be empty")
        return self._repository.upsert_spot(name)

    def list_spots(self) -> List[Spot]:
        """Get all spots, newest first."""
        return self._repository.list_spots()

    def set_active_spot(self, spot_id: str) -> None:
        """Make a spot the one receiving samples.

        The spot is validated and persisted before the sampler sees it; on
        failure the previous active spot stays in effect.

        Raises:
            SpotNotFoundError: If no spot has this id
        """
        spot = self._repository.set_active_spot_id(spot_id)
        self._state.set_active_spot_id(spot.id)
        logger.info(f"Active spot: {spot.name}")

    def get_active_spot(self) -> Optional[Spot]:
        """Get the active spot, or None."""
        spot_id = self._state.active_spot_id
        if spot_id is None:
            return None
        return self._repository.get_spot(spot_id)

    def clear_active_spot(self) -> None:
        """Stop directing samples to any spot."""
        self._repository.clear_active_spot_id()
        self._state.set_active_spot_id(None)
        logger.info("Active spot cleared")

    # Sampling interval

    def set_sampling_interval_sec(self, value: int) -> None:
        """Set the polling interval, clamped to at least one second.

        Takes effect from the sampler's next tick.
        """
        stored = self._repository.set_sampling_interval_sec(value)
        self._state.set_sampling_interval_sec(stored)
        logger.info(f"Sampling interval: {stored}s")

    def get_sampling_interval_sec(self) -> int:
        """Get the polling interval in seconds."""
        return self._state.sampling_interval_sec

    # Samples

    def record_exp_sample(
        self,
        spot_id: str,
        level: int,
        exp_percent: float,
        ts: Optional[int] = None,
    ) -> ExpSample:
        """Append a sample; ts defaults to now (epoch ms)."""
        return self._repository.add_sample(spot_id, level, exp_percent, ts=ts)

    def list_exp_samples(self, spot_id: str, limit: int = 100) -> List[ExpSample]:
        """Get the newest samples of a spot, newest first."""
        return self._repository.list_samples(spot_id, limit)

    # Rates

    def compute_spot_rate(self, spot_id: str, window_minutes: int | float) -> Optional[SpotRate]:
        """Get the EXP%/hour of one spot over a trailing window."""
        return self._rates.spot_rate(spot_id, window_minutes)

    def list_spot_rates(self, window_minutes: int | float) -> List[SpotRate]:
        """Get rates of all spots with enough data, highest first."""
        return self._rates.list_rates(window_minutes)

    # Sampler

    def start_sampler(self) -> None:
        """Start the background sampler (no-op if running)."""
        self._sampler.start()

    def stop_sampler(self) -> None:
        """Stop the background sampler and wait for it to exit."""
        self._sampler.stop()

    def is_sampler_running(self) -> bool:
        """Check whether the background sampler is running."""
        return self._sampler.is_running()

    # Manual values

    def set_manual_values(self, level: int, exp_percent: float) -> None:
        """Set the reading returned by the manual value source."""
        self._manual_source.set_values(level, exp_percent)
        if self._source is not self._manual_source:
            logger.debug(f"Manual values stored but sampler polls '{self._source.name}' source")

    # Export

    def export_samples(self, spot_id: str, output_path: Path, fmt: str = "csv") -> ExportResult:
        """Export all samples of a spot to a CSV or JSON file."""
        return self._exporter.export_spot_samples(spot_id, output_path, fmt)

    def export_rates(self, window_minutes: int | float, output_path: Path, fmt: str = "csv") -> ExportResult:
        """Export the current rate table to a CSV or JSON file."""
        return self._exporter.export_rates(self.list_spot_rates(window_minutes), output_path, fmt)

    # Accessors

    @property
    def settings(self) -> Settings:
        """Get the settings in use."""
        return self._settings

    @property
    def state(self) -> RuntimeState:
        """Get the shared runtime state."""
        return self._state

    @property
    def sampler(self) -> SamplingScheduler:
        """Get the sampling scheduler."""
        return self._sampler

    @property
    def repository(self) -> Repository:
        """Get the sample store."""
        return self._repository

    @property
    def is_initialized(self) -> bool:
        """Check whether initialize() has completed."""
        return self._initialized
