"""EXP-per-hour rate computation over trailing sample windows."""

from dataclasses import dataclass, asdict
from datetime import timedelta
from typing import Iterable, List, Optional, Protocol

from ..constants import RATES, TIME
from ..database.models import Spot
from ..database.repository import Repository
from ..utils.helpers import window_start_ms
from ..utils.logging import get_logger, PerformanceLogger

logger = get_logger("tracking.exp_rate")


class SamplePoint(Protocol):
    """Anything carrying a timestamped level / EXP percent pair."""

    ts: int
    level: int
    exp_percent: float


@dataclass(frozen=True)
class SpotRate:
    """Derived EXP rate for one spot. Never persisted."""

    spot_id: str
    spot_name: str
    exp_per_hour: float
    sample_count: int

    def to_dict(self) -> dict:
        """Convert to a plain dictionary."""
        return asdict(self)


def compute_rate(spot: Spot, samples: Iterable[SamplePoint]) -> Optional[SpotRate]:
    """Compute the EXP%/hour rate of a spot from samples in a window.

    Only samples at the level of the earliest sample are used, since the
    percent resets when leveling up; everything after a level-up in the
    window is dropped rather than stitched across levels. Only positive
    deltas between consecutive samples count, so jitter, repeats and
    undetected resets never subtract from the total.

    Args:
        spot: Spot the samples belong to
        samples: Samples inside the window, in any order

    Returns:
        SpotRate, or None when there is not enough data for a rate
    """
    ordered = sorted(samples, key=lambda s: s.ts)
    if len(ordered) < RATES.MIN_SAMPLES:
        return None

    base_level = ordered[0].level
    same_level = [s for s in ordered if s.level == base_level]
    if len(same_level) < RATES.MIN_SAMPLES:
        return None

    total_gain = 0.0
    for prev, cur in zip(same_level, same_level[1:]):
        delta = cur.exp_percent - prev.exp_percent
        if delta > 0:
            total_gain += delta

    elapsed_hours = (same_level[-1].ts - same_level[0].ts) / TIME.MS_PER_HOUR
    if elapsed_hours <= 0:
        return None

    return SpotRate(
        spot_id=spot.id,
        spot_name=spot.name,
        exp_per_hour=total_gain / elapsed_hours,
        sample_count=len(same_level),
    )


def time_to_next_level(
    exp_per_hour: float,
    current_percent: float,
    max_percent: float = RATES.MAX_EXP_PERCENT,
) -> Optional[timedelta]:
    """Estimate the time left to finish the current level.

    Args:
        exp_per_hour: Current EXP%/hour rate
        current_percent: EXP percent already gained in the level
        max_percent: Percent at which the level completes

    Returns:
        Estimated time, or None if the rate is not positive
    """
    remaining = max_percent - current_percent
    if remaining <= 0:
        return timedelta(0)

    if exp_per_hour <= 0:
        return None

    return timedelta(hours=remaining / exp_per_hour)


class RateEngine:
    """Loads windows of samples from the repository and rates them.

    Read-only over the store. Insufficient data yields None or an omitted
    entry; DatabaseError from the repository propagates.
    """

    def __init__(self, repository: Repository):
        self._repository = repository

    def spot_rate(
        self,
        spot_id: str,
        window_minutes: int | float = RATES.DEFAULT_WINDOW_MINUTES,
        now: Optional[int] = None,
    ) -> Optional[SpotRate]:
        """Compute the rate of one spot over a trailing window.

        Args:
            spot_id: Spot to rate
            window_minutes: Window length in minutes
            now: Reference time in epoch ms (defaults to current time)

        Returns:
            SpotRate, or None if the spot is unknown or has no rate
        """
        spot = self._repository.get_spot(spot_id)
        if spot is None:
            return None
        return self._rate_for(spot, window_start_ms(window_minutes, now))

    def list_rates(
        self,
        window_minutes: int | float = RATES.DEFAULT_WINDOW_MINUTES,
        now: Optional[int] = None,
    ) -> List[SpotRate]:
        """Compute rates for every spot over a trailing window.

        Args:
            window_minutes: Window length in minutes
            now: Reference time in epoch ms (defaults to current time)

        Returns:
            Spots that produced a rate, highest EXP%/hour first
        """
        since = window_start_ms(window_minutes, now)

        with PerformanceLogger(logger, "list_rates", slow_ms=500):
            rates = []
            for spot in self._repository.list_spots():
                rate = self._rate_for(spot, since)
                if rate is not None:
                    rates.append(rate)

        rates.sort(key=lambda r: r.exp_per_hour, reverse=True)
        return rates

    def _rate_for(self, spot: Spot, since: int) -> Optional[SpotRate]:
        samples = self._repository.get_samples_since(spot.id, since)
        return compute_rate(spot, samples)
