"""Logging configuration for sphinxgen processes."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from sphinxgen.config import LoggingSettings

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(settings: LoggingSettings, log_dir: Path) -> Path:
    """Attach a rotating file handler to the ``sphinxgen`` logger.

    Any handler installed by a previous call is replaced.

    Args:
        settings: Logging level and rotation limits.
        log_dir: Directory the log file is written to.

    Returns:
        Path: Location of the log file.
    """

    log_dir.mkdir(parents=True, exist_ok=True)
    path = log_dir / settings.file
    logger = logging.getLogger("sphinxgen")
    for handler in list(logger.handlers):
        if getattr(handler, "_sphinxgen", False):
            logger.removeHandler(handler)
            handler.close()

    handler = RotatingFileHandler(
        path,
        maxBytes=settings.max_size_mb * 1024 * 1024,
        backupCount=settings.backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler._sphinxgen = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(settings.level.upper())
    return path


__all__ = ["configure_logging"]
