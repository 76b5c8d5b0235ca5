"""Centralized logging configuration for the Course Studio application."""

from __future__ import annotations

import logging
from logging import Logger
from pathlib import Path
from typing import Iterable, List


DEFAULT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_FILE_NAME = "course_studio.log"

# Loggers that are chatty at INFO and only useful when debugging the server.
_NOISY_LOGGERS = ("uvicorn.access", "httpx")


def configure_logging(
    level: int = logging.INFO,
    *,
    handlers: Iterable[logging.Handler] | None = None,
    quiet_noisy: bool = True,
) -> Logger:
    """Configure the root logger, defaulting to a single stderr handler."""

    logger = logging.getLogger()
    logger.setLevel(level)

    if handlers is None:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
        logger.addHandler(stream_handler)
    else:
        for handler in handlers:
            logger.addHandler(handler)

    if quiet_noisy and level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    return logger


def get_log_file_path(storage_root: Path) -> Path:
    """Return the default path for the application log file."""

    return storage_root / LOG_FILE_NAME


def build_default_handlers(storage_root: Path) -> List[logging.Handler]:
    """Return a file handler under *storage_root* plus a stderr handler."""

    formatter = logging.Formatter(DEFAULT_LOG_FORMAT)
    file_handler = logging.FileHandler(get_log_file_path(storage_root), encoding="utf-8")
    file_handler.setFormatter(formatter)
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    return [file_handler, stream_handler]


__all__ = [
    "DEFAULT_LOG_FORMAT",
    "LOG_FILE_NAME",
    "build_default_handlers",
    "configure_logging",
    "get_log_file_path",
]
