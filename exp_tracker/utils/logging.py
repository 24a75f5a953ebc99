"""Logging setup shared by the sampler, rate engine and CLI."""

import logging
import sys
import time
from datetime import date
from pathlib import Path
from typing import Optional


ROOT_LOGGER_NAME = "exp_tracker"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _log_file_for(log_dir: Path) -> Path:
    """One log file per day, e.g. exp_tracker_20240131.log."""
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir / f"{ROOT_LOGGER_NAME}_{date.today():%Y%m%d}.log"


def setup_logging(
    log_dir: Path | None = None,
    level: int = logging.INFO,
    console: bool = True,
    file: bool = True,
) -> logging.Logger:
    """Configure the ``exp_tracker`` logger tree.

    Calling this again swaps the handlers rather than stacking new ones,
    so the CLI and tests can reconfigure freely.

    Args:
        log_dir: Where the daily log file goes. Defaults to <data dir>/logs.
        level: Level applied to the logger and every handler.
        console: Attach a stdout handler.
        file: Attach a daily file handler.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level)

    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()

    handlers: list[logging.Handler] = []
    if console:
        handlers.append(logging.StreamHandler(sys.stdout))
    if file:
        if log_dir is None:
            # Deferred: config imports this module's get_logger
            from ..config.settings import get_settings

            log_dir = get_settings().data_dir / "logs"
        handlers.append(logging.FileHandler(_log_file_for(Path(log_dir)), encoding="utf-8"))

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root.addHandler(handler)

    return root


def get_logger(name: str) -> logging.Logger:
    """Child logger under ``exp_tracker``, e.g. get_logger("tracking.sampler")."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


class PerformanceLogger:
    """Times a block and logs how long it took.

    Blocks slower than ``slow_ms`` are logged at WARNING instead of ``level``.
    The measured duration stays available as ``elapsed_ms`` after exit.
    """

    def __init__(
        self,
        logger: logging.Logger,
        operation: str,
        level: int = logging.DEBUG,
        slow_ms: Optional[float] = None,
    ):
        self.logger = logger
        self.operation = operation
        self.level = level
        self.slow_ms = slow_ms
        self.elapsed_ms: Optional[float] = None
        self._started: Optional[float] = None

    def __enter__(self) -> "PerformanceLogger":
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._started is None:
            return
        self.elapsed_ms = (time.perf_counter() - self._started) * 1000
        level = self.level
        if self.slow_ms is not None and self.elapsed_ms > self.slow_ms:
            level = logging.WARNING
        outcome = "failed after" if exc_type is not None else "completed in"
        self.logger.log(level, f"{self.operation} {outcome} {self.elapsed_ms:.2f}ms")
