"""Entry point for EXP Tracker."""

import argparse
import atexit
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import Optional

from .app import ExpTrackerService
from .config.settings import Settings, get_settings
from .database.repository import DatabaseError
from .tracking.exp_rate import time_to_next_level
from .utils.helpers import format_rate, format_duration
from .utils.logging import setup_logging, get_logger


# Global app reference for cleanup handlers
_app_instance: Optional[ExpTrackerService] = None
_cleanup_done = threading.Event()
_shutdown_requested = threading.Event()


def _cleanup() -> None:
    """Cleanup handler called on exit.

    Ensures the sampler is stopped even on unexpected exits.
    """
    if _cleanup_done.is_set():
        return

    _cleanup_done.set()

    if _app_instance is not None:
        logger = get_logger("main")
        try:
            if _app_instance.is_initialized:
                logger.info("Performing cleanup shutdown...")
                _app_instance.shutdown()
                logger.info("Cleanup complete")
        except Exception as e:
            logger.error(f"Error during cleanup: {e}")


def _exception_handler(exc_type, exc_value, exc_tb):
    """Handle uncaught exceptions."""
    logger = get_logger("main")
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_tb)
        return

    logger.critical(
        "Uncaught exception",
        exc_info=(exc_type, exc_value, exc_tb)
    )
    _cleanup()


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="exp-tracker",
        description="Sample EXP progress per grinding spot and rank spots by EXP%/hour.",
    )
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    parser.add_argument("--config", type=Path, help="Path to config.yaml")
    parser.add_argument("--spot", help="Create or select the active spot by name")
    parser.add_argument("--interval", type=int, help="Sampling interval in seconds (min 1)")
    parser.add_argument("--level", type=int, help="Manual level value")
    parser.add_argument("--exp", type=float, help="Manual EXP percent value")
    parser.add_argument("--window", type=int, help="Rate window in minutes")
    parser.add_argument("--once", action="store_true", help="Print current rates and exit")
    parser.add_argument("--export", type=Path, help="Export the rate table to this file and exit")
    return parser


def main(args: Optional[list[str]] = None) -> int:
    """Main entry point."""
    global _app_instance

    options = build_parser().parse_args(args)

    if options.config is not None:
        settings = Settings(options.config)
    else:
        settings = get_settings()

    debug_mode = options.debug or bool(settings.get("advanced.debug_mode", False))
    setup_logging(log_dir=settings.data_dir / "logs", level=logging.DEBUG if debug_mode else logging.INFO)

    logger = get_logger("main")
    logger.info("EXP Tracker starting...")
    logger.info(f"Config path: {settings.config_path}")

    atexit.register(_cleanup)
    sys.excepthook = _exception_handler

    app = ExpTrackerService(settings)
    _app_instance = app

    try:
        app.initialize()
        _apply_options(app, options)

        window = options.window or settings.get("rates.window_minutes", 30)

        if options.export is not None:
            fmt = "json" if options.export.suffix.lower() == ".json" else "csv"
            result = app.export_rates(window, options.export, fmt)
            if not result.success:
                logger.error(f"Export failed: {result.error_message}")
                return 1
            print(f"Exported {result.rows_exported} rates to {result.file_path}")
            return 0

        if options.once:
            _print_rates(app, window)
            return 0

        return _run_console_mode(app, window)
    except (DatabaseError, ValueError) as e:
        logger.error(f"EXP Tracker failed: {e}")
        return 1
    finally:
        app.shutdown()


def _apply_options(app: ExpTrackerService, options: argparse.Namespace) -> None:
    """Apply one-shot command line changes before running."""
    if options.spot:
        spot = app.upsert_spot(options.spot)
        app.set_active_spot(spot.id)

    if options.interval is not None:
        app.set_sampling_interval_sec(options.interval)

    if options.level is not None or options.exp is not None:
        if options.level is None or options.exp is None:
            raise ValueError("--level and --exp must be given together")
        app.set_manual_values(options.level, options.exp)


def _print_rates(app: ExpTrackerService, window: int) -> None:
    """Print the rate table for the trailing window."""
    rates = app.list_spot_rates(window)
    active = app.get_active_spot()

    print(f"Top spots (EXP%/h, last {window} min) | active: {active.name if active else 'none'}")
    if not rates:
        print("  No data yet. Start sampling and provide values.")
        return

    for rank, rate in enumerate(rates, start=1):
        print(f"  {rank:>2}. {rate.spot_name:<30} {format_rate(rate.exp_per_hour):>12}  ({rate.sample_count} samples)")

    if active is None:
        return

    active_rate = next((r for r in rates if r.spot_id == active.id), None)
    reading = app.sampler.source.current_reading()
    if active_rate is not None and reading is not None:
        remaining = time_to_next_level(active_rate.exp_per_hour, reading.exp_percent)
        if remaining is not None:
            print(f"  Next level (Lv. {reading.level + 1}) in ~{format_duration(remaining.total_seconds())}")


def _run_console_mode(app: ExpTrackerService, window: int) -> int:
    """Run the sampler and print rates until interrupted."""
    logger = get_logger("main")

    def signal_handler(signum, frame):
        logger.info("Shutdown signal received")
        _shutdown_requested.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    if app.get_active_spot() is None:
        logger.warning("No active spot - samples will not be recorded until one is selected (--spot NAME)")

    app.start_sampler()
    logger.info("Press Ctrl+C to stop")

    refresh = app.settings.get("rates.refresh_interval_sec", 8)
    try:
        while not _shutdown_requested.is_set():
            _print_rates(app, window)
            _shutdown_requested.wait(refresh)
    except DatabaseError as e:
        logger.error(f"Rate refresh failed: {e}")
        return 1
    finally:
        app.stop_sampler()

    logger.info("Application stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
