"""Logging setup shared by the CLI and the pipeline runner."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from catalog_ingest.config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_ROOT_LOGGER = "catalog_ingest"


def configure_logging(
    level: Optional[str] = None,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """Attach a stderr handler and a file handler to the package logger.

    Idempotent: calling it again only adjusts the level, it never stacks
    duplicate handlers.

    Args:
        level: Log level name.  Defaults to ``settings.log_level``.
        log_file: Override the log file path.  Defaults to
            ``<workspace>/logs/catalog_ingest.log``.
    """
    logger = logging.getLogger(_ROOT_LOGGER)
    logger.setLevel(level or settings.log_level)
    if logger.handlers:
        return logger

    fmt = logging.Formatter(LOG_FORMAT)

    sh = logging.StreamHandler()
    sh.setFormatter(fmt)
    logger.addHandler(sh)

    path = log_file or settings.log_dir / f"{_ROOT_LOGGER}.log"
    path.parent.mkdir(parents=True, exist_ok=True)
    fh = logging.FileHandler(path, encoding="utf-8")
    fh.setFormatter(fmt)
    logger.addHandler(fh)

    logger.propagate = False
    return logger
