"""Operation log for gitbundle.

Every message goes to stdout and, once the log directory exists, is also
appended to ``<LOG_DIR>/bundle_operations.log``:

    [2024-01-01 12:00:00] Baseline bundle created: /srv/bundles/baseline_1.0.0.bundle
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path


LOGGER_NAME = "gitbundle"
LOG_FILE_NAME = "bundle_operations.log"
LOG_FORMAT = "[%(asctime)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the package logger or one of its children."""
    if not name or name == LOGGER_NAME:
        return logging.getLogger(LOGGER_NAME)
    if name.startswith(LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def _formatter() -> logging.Formatter:
    return logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)


def configure_logging(log_dir: Path | str | None = None, *, debug: bool = False) -> logging.Logger:
    """(Re)configure the package logger for one invocation.

    Existing handlers are removed so repeated calls (tests, embedding) never
    duplicate output. The log directory is not created here.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    logger.propagate = False

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(_formatter())
    logger.addHandler(console)

    if log_dir:
        attach_log_file(log_dir)

    return logger


def attach_log_file(log_dir: Path | str) -> Path | None:
    """Start appending to the log file inside log_dir.

    Returns:
        Path of the log file, or None if log_dir does not exist yet
    """
    directory = Path(log_dir)
    if not directory.is_dir():
        return None

    log_path = (directory / LOG_FILE_NAME).resolve()
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == log_path:
            return log_path

    file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    file_handler.setFormatter(_formatter())
    logger.addHandler(file_handler)
    return log_path
