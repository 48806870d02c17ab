"""
Logging setup for the runner.

Library modules only create module loggers. Handlers are attached here, once,
by whatever process hosts the runner.
"""

from __future__ import annotations

import logging
from pathlib import Path

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def init_logging(
    *,
    verbose: bool = False,
    log_file: Path | None = None,
    name: str = "storage_orchestrator",
) -> logging.Logger:
    """
    Configure the package logger.

    Console gets INFO, or DEBUG with verbose. An optional file gets the full
    DEBUG trace.
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()
    logger.propagate = False

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    ch = logging.StreamHandler()
    ch.setLevel(logging.DEBUG if verbose else logging.INFO)
    ch.setFormatter(formatter)
    logger.addHandler(ch)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_file)
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(formatter)
        logger.addHandler(fh)
        logger.debug("log_file=%s", log_file)

    return logger
