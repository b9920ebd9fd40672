"""Logging setup for a transfer run."""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path

LOG_FORMAT = "[%(asctime)s][%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_TEMPLATE = "cli-tool_{timestamp}.log"


class LoggingSetupError(RuntimeError):
    """Raised when the log directory or file cannot be prepared."""


def log_file_name(now: datetime | None = None) -> str:
    stamp = (now or datetime.now()).strftime("%Y-%m-%d_%H-%M-%S")
    return LOG_FILE_TEMPLATE.format(timestamp=stamp)


def configure_logging(
    log_dir: str | Path | None = "logs",
    *,
    level: int = logging.INFO,
    logger_name: str = "osmo_transfer",
    stream=None,
) -> logging.Logger:
    """Send ``logger_name`` records to the console and, when ``log_dir`` is set, a per-run file.

    Calling this again replaces the handlers installed by the previous call.
    """

    logger = logging.getLogger(logger_name)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(level)
    logger.propagate = False

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    console = logging.StreamHandler(stream or sys.stderr)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_dir:
        directory = Path(log_dir)
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise LoggingSetupError(f"Unable to create the logs directory {directory}: {exc}") from exc
        path = directory / log_file_name()
        try:
            file_handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        except OSError as exc:
            raise LoggingSetupError(f"Failed to open log file {path}: {exc}") from exc
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
        logger.debug("Writing log file %s", path)

    return logger
