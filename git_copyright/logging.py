"""Logging setup for git-copyright runs.

Everything logs under the ``git_copyright`` hierarchy: per-file findings at
INFO, history walk and cache details at DEBUG, failed files at ERROR. Patch
tasks run on worker threads, so verbose console output and the log file name
the thread each record came from.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .models import BatchReport

_LOGGER_NAME = "git_copyright"
_CONSOLE_FORMAT = "[git-copyright] %(levelname)s %(message)s"
_VERBOSE_CONSOLE_FORMAT = "[git-copyright] %(levelname)s [%(threadName)s] %(message)s"
_FILE_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s [%(threadName)s] %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the git_copyright hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Attach console and optional file handlers to the package logger."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # A second call (tests, embedding) replaces the previous handlers.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.addHandler(_console_handler(level, verbose))
    if log_file is not None:
        logger.addHandler(_file_handler(log_file, level))
    return logger


def log_report(report: "BatchReport", logger: logging.Logger | None = None) -> None:
    """Log every failed file of ``report`` followed by a one-line summary."""
    logger = logger or get_logger("report")
    for result in report.failed:
        logger.error("Error: %s", result.error)
    logger.info(
        "Checked %d files in %.3fs: %d changed, %d failed",
        report.checked,
        report.elapsed,
        len(report.changed),
        len(report.failed),
    )


def _console_handler(level: int, verbose: bool) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(_VERBOSE_CONSOLE_FORMAT if verbose else _CONSOLE_FORMAT)
    )
    return handler


def _file_handler(log_file: Path, level: int) -> logging.Handler:
    log_file = Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


__all__ = ["configure_logging", "get_logger", "log_report"]
