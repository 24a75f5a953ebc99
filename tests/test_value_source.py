"""Tests for EXP value sources and the EXP text parser."""

import pytest
import threading

from exp_tracker.sources.exp_parser import ExpTextParser, ExpParseResult
from exp_tracker.sources.value_source import (
    ExpReading,
    ManualValueSource,
    TextValueSource,
    ValueSource,
)


class TestManualValueSource:
    """Tests for ManualValueSource."""

    def test_unavailable_until_set(self):
        assert ManualValueSource().current_reading() is None

    def test_returns_last_value_verbatim(self):
        source = ManualValueSource()
        source.set_values(5, 10.0)
        source.set_values(4, 150.0)  # No range or monotonicity checks

        assert source.current_reading() == ExpReading(level=4, exp_percent=150.0)

    def test_clear(self):
        source = ManualValueSource()
        source.set_values(5, 10.0)
        source.clear()
        assert source.current_reading() is None

    def test_concurrent_writers(self):
        source = ManualValueSource()

        def writer(level):
            for i in range(100):
                source.set_values(level, float(i))

        threads = [threading.Thread(target=writer, args=(lv,)) for lv in range(1, 5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        reading = source.current_reading()
        assert reading.level in {1, 2, 3, 4}
        assert reading.exp_percent == 99.0

    def test_is_value_source(self):
        assert isinstance(ManualValueSource(), ValueSource)

    def test_interface_cannot_be_instantiated(self):
        with pytest.raises(TypeError):
            ValueSource()


class TestExpTextParser:
    """Tests for ExpTextParser."""

    @pytest.fixture
    def parser(self):
        return ExpTextParser()

    @pytest.mark.parametrize("text,level,percent", [
        ("Lv. 57 12.34%", 57, 12.34),
        ("LV57 [12.34%]", 57, 12.34),
        ("Level 57 - 12,34 %", 57, 12.34),
        ("Lvl: 120 99.9%", 120, 99.9),
        ("Lv. 5O 1O.5%", 50, 10.5),
        ("Lv. 3 0%", 3, 0.0),
    ])
    def test_parse_valid(self, parser, text, level, percent):
        result = parser.parse(text)

        assert result.has_value
        assert result.level == level
        assert result.exp_percent == pytest.approx(percent)
        assert parser.get_last_valid() is result

    @pytest.mark.parametrize("text", [
        "",
        "   ",
        None,
        "12.34%",  # no level
        "Lv. 57",  # no percent
        "Lv. 57 123.4%",  # out of range
        "Lv. 0 10%",  # invalid level
    ])
    def test_parse_invalid(self, parser, text):
        result = parser.parse(text)
        assert not result.has_value

    def test_partial_result_keeps_level(self, parser):
        result = parser.parse("Lv. 57 no bar")
        assert result.level == 57
        assert result.exp_percent is None
        assert result.raw_text == "Lv. 57 no bar"

    def test_result_defaults(self):
        assert not ExpParseResult().has_value

    def test_to_reading(self, parser):
        reading = parser.parse("Lv. 57 12,5%").to_reading()
        assert reading == ExpReading(level=57, exp_percent=12.5)

    def test_to_reading_missing_percent(self, parser):
        assert parser.parse("Lv. 57 no bar").to_reading() is None


class TestTextValueSource:
    """Tests for TextValueSource."""

    def test_reads_parsed_text(self):
        source = TextValueSource(lambda: "Lv. 12 45.5%")
        assert source.current_reading() == ExpReading(level=12, exp_percent=45.5)

    def test_unparseable_text(self):
        source = TextValueSource(lambda: "loading...")
        assert source.current_reading() is None

    def test_provider_returns_none(self):
        source = TextValueSource(lambda: None)
        assert source.current_reading() is None

    def test_provider_error_is_unavailable(self):
        def failing():
            raise OSError("capture failed")

        source = TextValueSource(failing)
        assert source.current_reading() is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
