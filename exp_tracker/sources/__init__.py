"""EXP value sources feeding the sampler."""

from .exp_parser import ExpTextParser, ExpParseResult
from .value_source import ValueSource, ExpReading, ManualValueSource, TextValueSource

__all__ = [
    "ExpTextParser",
    "ExpParseResult",
    "ValueSource",
    "ExpReading",
    "ManualValueSource",
    "TextValueSource",
]
