"""EXP sampling and rate tracking module."""

from .runtime_state import RuntimeState
from .sampler import SamplingScheduler
from .exp_rate import SpotRate, RateEngine, compute_rate, time_to_next_level

__all__ = [
    "RuntimeState",
    "SamplingScheduler",
    "SpotRate",
    "RateEngine",
    "compute_rate",
    "time_to_next_level",
]
