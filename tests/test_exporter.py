"""Tests for data export utilities."""

import pytest
import csv
import json
from pathlib import Path

from exp_tracker.tracking.exp_rate import SpotRate
from exp_tracker.utils.exporter import SampleExporter, ExportResult


class TestExportResult:
    """Tests for ExportResult dataclass."""

    def test_success_result(self):
        result = ExportResult(
            success=True,
            file_path=Path("/tmp/export.csv"),
            rows_exported=100,
        )

        assert result.success
        assert result.rows_exported == 100

    def test_failure_result(self):
        result = ExportResult(
            success=False,
            error_message="Spot not found",
        )

        assert not result.success
        assert "not found" in result.error_message


class TestSampleExporter:
    """Tests for SampleExporter class."""

    @pytest.fixture
    def spot(self, repository):
        spot = repository.upsert_spot("Forest")
        repository.add_sample(spot.id, 5, 10.0, ts=120_000)
        repository.add_sample(spot.id, 5, 12.5, ts=0)
        repository.add_sample(spot.id, 6, 0.5, ts=240_000)
        return spot

    @pytest.fixture
    def exporter(self, repository):
        return SampleExporter(repository)

    def test_export_csv(self, exporter, spot, tmp_path):
        path = tmp_path / "forest.csv"
        result = exporter.export_spot_samples(spot.id, path)

        assert result.success
        assert result.rows_exported == 3

        with open(path, newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))

        assert [int(r["ts_ms"]) for r in rows] == [0, 120_000, 240_000]
        assert rows[0]["spot"] == "Forest"
        assert rows[0]["timestamp"].startswith("1970-01-01T00:00:00")
        assert rows[2]["level"] == "6"

    def test_export_json(self, exporter, spot, tmp_path):
        path = tmp_path / "nested" / "forest.json"
        result = exporter.export_spot_samples(spot.id, path, fmt="json")

        assert result.success
        data = json.loads(path.read_text(encoding="utf-8"))
        assert len(data) == 3
        assert data[1]["exp_percent"] == 10.0

    def test_export_unknown_spot(self, exporter, tmp_path):
        result = exporter.export_spot_samples("missing", tmp_path / "x.csv")

        assert not result.success
        assert "not found" in result.error_message

    def test_export_unsupported_format(self, exporter, spot, tmp_path):
        result = exporter.export_spot_samples(spot.id, tmp_path / "x.xml", fmt="xml")

        assert not result.success
        assert "Unsupported" in result.error_message

    def test_export_rates(self, exporter, tmp_path):
        rates = [
            SpotRate(spot_id="a", spot_name="Fast", exp_per_hour=20.0, sample_count=5),
            SpotRate(spot_id="b", spot_name="Slow", exp_per_hour=2.0, sample_count=4),
        ]
        path = tmp_path / "rates.csv"
        result = exporter.export_rates(rates, path)

        assert result.success
        assert result.rows_exported == 2
        with open(path, newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert [r["spot_name"] for r in rows] == ["Fast", "Slow"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
