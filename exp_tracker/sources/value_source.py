"""Providers of the current (level, EXP percent) reading."""

import threading
from typing import Callable, Optional, Protocol, runtime_checkable

from .exp_parser import ExpReading, ExpTextParser
from ..utils.logging import get_logger


logger = get_logger("sources.value_source")


@runtime_checkable
class ValueSource(Protocol):
    """Something the sampler can ask for the current EXP reading.

    Implementations must not depend on the sampler or the rate engine, and
    may return arbitrary jumps, resets or repeats; consumers tolerate them.
    """

    name: str = "source"

    def current_reading(self) -> Optional[ExpReading]:
        """Get the current reading, or None if unavailable."""
        ...


class ManualValueSource(ValueSource):
    """Returns whatever the user last entered, verbatim."""

    name = "manual"

    def __init__(self):
        self._lock = threading.Lock()
        self._reading: Optional[ExpReading] = None

    def set_values(self, level: int, exp_percent: float) -> None:
        """Replace the stored reading (last writer wins).

        Args:
            level: Character level
            exp_percent: EXP percent into the level
        """
        reading = ExpReading(level=int(level), exp_percent=float(exp_percent))
        with self._lock:
            self._reading = reading
        logger.debug(f"Manual values set: lv={reading.level} exp={reading.exp_percent}%")

    def clear(self) -> None:
        """Forget the stored reading."""
        with self._lock:
            self._reading = None

    def current_reading(self) -> Optional[ExpReading]:
        with self._lock:
            return self._reading


class TextValueSource(ValueSource):
    """Reads EXP bar text from an external provider and parses it.

    The provider is typically an OCR step living outside this package. Any
    provider failure or unparseable text is reported as unavailable.
    """

    name = "text"

    def __init__(
        self,
        text_provider: Callable[[], Optional[str]],
        parser: Optional[ExpTextParser] = None,
    ):
        """Initialize text source.

        Args:
            text_provider: Callable returning the current EXP bar text
            parser: Parser to use (a default ExpTextParser if None)
        """
        self._text_provider = text_provider
        self._parser = parser or ExpTextParser()

    def current_reading(self) -> Optional[ExpReading]:
        try:
            text = self._text_provider()
        except Exception as e:
            logger.warning(f"Text provider failed: {e}")
            return None

        return self._parser.parse(text).to_reading()
