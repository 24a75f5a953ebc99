"""Parser for extracting level and EXP percent from OCR text."""

import re
from dataclasses import dataclass
from typing import Optional

from ..constants import RATES
from ..utils.logging import get_logger


logger = get_logger("sources.exp_parser")


@dataclass(frozen=True)
class ExpReading:
    """A single level / EXP percent observation."""

    level: int
    exp_percent: float


@dataclass
class ExpParseResult:
    """Parsed EXP bar reading."""

    level: Optional[int] = None
    exp_percent: Optional[float] = None
    raw_text: str = ""

    @property
    def has_value(self) -> bool:
        """Check if both level and percent were parsed."""
        return self.level is not None and self.exp_percent is not None

    def to_reading(self) -> Optional[ExpReading]:
        """Get the parsed pair as an ExpReading, or None if incomplete."""
        if not self.has_value:
            return None
        return ExpReading(level=self.level, exp_percent=self.exp_percent)


class ExpTextParser:
    """Parser for EXP bar text such as "Lv. 57 12.34%"."""

    # Characters OCR commonly confuses with digits (conservative set)
    OCR_DIGIT_CHARS = r"\dOolS"

    # "Lv. 57", "LV57", "Lvl 57", "Level: 57"; only the prefix is case-insensitive
    LEVEL_PATTERN = re.compile(
        rf"(?i:LEVEL|LVL|LV)\s*\.?\s*[:#]?\s*([{OCR_DIGIT_CHARS}]+)"
    )

    # "12.34%", "12,34 %", "[12.34%]"
    PERCENT_PATTERN = re.compile(
        rf"([{OCR_DIGIT_CHARS}]+(?:[.,][{OCR_DIGIT_CHARS}]+)?)\s*%"
    )

    OCR_CORRECTIONS = {
        "O": "0",
        "o": "0",
        "l": "1",
        "S": "5",
    }

    def __init__(self, max_percent: float = RATES.MAX_EXP_PERCENT):
        """Initialize EXP parser.

        Args:
            max_percent: Largest percent value accepted as valid
        """
        self._max_percent = max_percent
        self._last_valid: Optional[ExpParseResult] = None

    def parse(self, text: Optional[str]) -> ExpParseResult:
        """Parse level and EXP percent from OCR text.

        Args:
            text: Raw OCR text from the EXP bar region

        Returns:
            ExpParseResult; has_value is False when either part is missing
            or out of range
        """
        if not text or not text.strip():
            return ExpParseResult(raw_text=text or "")

        cleaned = text.replace("\u00a0", " ").replace("\u202f", " ").strip()

        level_match = self.LEVEL_PATTERN.search(cleaned)
        if not level_match:
            logger.debug(f"No level found in '{cleaned[:50]}'")
            return ExpParseResult(raw_text=text)

        level = self._to_int(level_match.group(1))

        # The percent always follows the level on the EXP bar
        percent_match = self.PERCENT_PATTERN.search(cleaned, level_match.end())
        percent = self._to_float(percent_match.group(1)) if percent_match else None

        if level is None or level < 1:
            logger.debug(f"Invalid level in '{cleaned[:50]}'")
            return ExpParseResult(exp_percent=percent, raw_text=text)

        if percent is None or not 0.0 <= percent <= self._max_percent:
            logger.debug(f"Invalid EXP percent in '{cleaned[:50]}': {percent}")
            return ExpParseResult(level=level, raw_text=text)

        result = ExpParseResult(level=level, exp_percent=percent, raw_text=text)
        self._last_valid = result
        return result

    def get_last_valid(self) -> Optional[ExpParseResult]:
        """Get the last successfully parsed result."""
        return self._last_valid

    def _apply_ocr_corrections(self, number_text: str) -> str:
        corrected = number_text
        for wrong, right in self.OCR_CORRECTIONS.items():
            corrected = corrected.replace(wrong, right)
        return corrected

    def _to_int(self, token: str) -> Optional[int]:
        digits = self._apply_ocr_corrections(token)
        try:
            return int(digits)
        except ValueError:
            return None

    def _to_float(self, token: str) -> Optional[float]:
        number = self._apply_ocr_corrections(token).replace(",", ".")
        try:
            return float(number)
        except ValueError:
            return None
