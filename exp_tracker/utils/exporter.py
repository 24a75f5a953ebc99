"""Data export utilities for EXP Tracker."""

import csv
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from .helpers import ms_to_datetime
from .logging import get_logger
from ..database.repository import Repository, DatabaseError

logger = get_logger("utils.exporter")

SUPPORTED_FORMATS = ("csv", "json")


@dataclass
class ExportResult:
    """Result of an export operation."""

    success: bool
    file_path: Optional[Path] = None
    rows_exported: int = 0
    error_message: str = ""


class SampleExporter:
    """Exports EXP samples and rate tables to CSV or JSON files."""

    def __init__(self, repository: Repository):
        """Initialize exporter.

        Args:
            repository: Repository to read samples from
        """
        self._repo = repository

    def export_spot_samples(
        self,
        spot_id: str,
        output_path: Path,
        fmt: str = "csv",
    ) -> ExportResult:
        """Export every sample of a spot, oldest first.

        Args:
            spot_id: Spot to export
            output_path: File to write
            fmt: "csv" or "json"

        Returns:
            ExportResult with success status
        """
        if fmt not in SUPPORTED_FORMATS:
            return ExportResult(success=False, error_message=f"Unsupported format: {fmt}")

        output_path = Path(output_path)
        try:
            spot = self._repo.get_spot(spot_id)
            if spot is None:
                return ExportResult(
                    success=False,
                    error_message=f"Spot {spot_id} not found"
                )

            samples = self._repo.get_samples_since(spot_id, 0)
            rows = [
                {
                    "spot": spot.name,
                    "timestamp": ms_to_datetime(s.ts).isoformat(),
                    "ts_ms": s.ts,
                    "level": s.level,
                    "exp_percent": s.exp_percent,
                }
                for s in samples
            ]

            self._write_rows(output_path, rows, fmt, ["spot", "timestamp", "ts_ms", "level", "exp_percent"])

            logger.info(f"Exported {len(rows)} samples of '{spot.name}' to {output_path}")
            return ExportResult(
                success=True,
                file_path=output_path,
                rows_exported=len(rows),
            )

        except (DatabaseError, OSError) as e:
            logger.error(f"Failed to export samples of spot {spot_id}: {e}")
            return ExportResult(success=False, error_message=str(e))

    def export_rates(self, rates: Iterable, output_path: Path, fmt: str = "csv") -> ExportResult:
        """Export a rate table.

        Args:
            rates: SpotRate entries, already ordered
            output_path: File to write
            fmt: "csv" or "json"

        Returns:
            ExportResult with success status
        """
        if fmt not in SUPPORTED_FORMATS:
            return ExportResult(success=False, error_message=f"Unsupported format: {fmt}")

        output_path = Path(output_path)
        rows = [rate.to_dict() for rate in rates]
        try:
            self._write_rows(output_path, rows, fmt, ["spot_id", "spot_name", "exp_per_hour", "sample_count"])
        except OSError as e:
            logger.error(f"Failed to export rates: {e}")
            return ExportResult(success=False, error_message=str(e))

        logger.info(f"Exported {len(rows)} spot rates to {output_path}")
        return ExportResult(success=True, file_path=output_path, rows_exported=len(rows))

    def _write_rows(self, output_path: Path, rows: list[dict], fmt: str, fields: list[str]) -> None:
        output_path.parent.mkdir(parents=True, exist_ok=True)

        if fmt == "json":
            with open(output_path, "w", encoding="utf-8") as f:
                json.dump(rows, f, indent=2)
            return

        with open(output_path, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=fields)
            writer.writeheader()
            writer.writerows(rows)
