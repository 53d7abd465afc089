"""Logging configuration for sketchpipe.

The package logger is silent by default (NullHandler). The command line
enables it from the environment or from ``--log-level``; library users call
the functions below. Log records never go to standard output, which is
reserved for query results.

Example usage:
    import sketchpipe

    sketchpipe.enable_console_logging(level="DEBUG")
    sketchpipe.enable_file_logging("sketchpipe.log", max_bytes=10_000_000)
    sketchpipe.enable_json_logging(path="sketchpipe.jsonl")

Environment variables (read by configure_from_env):
    SKETCHPIPE_LOGGING: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    SKETCHPIPE_LOG_FILE: Path to a rotating log file
    SKETCHPIPE_LOG_JSON: "1" to emit one JSON object per record
"""

from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Literal

__all__ = [
    "configure_from_env",
    "disable_logging",
    "enable_console_logging",
    "enable_file_logging",
    "enable_json_logging",
    "set_level",
]

LOGGER_NAME = "sketchpipe"

DEFAULT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_BACKUP_COUNT = 5

ENV_LEVEL = "SKETCHPIPE_LOGGING"
ENV_FILE = "SKETCHPIPE_LOG_FILE"
ENV_JSON = "SKETCHPIPE_LOG_JSON"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class JsonFormatter(logging.Formatter):
    """One JSON object per record, for log aggregation.

    Example output:
        {"timestamp": "2024-01-15T10:30:00.123456+00:00", "level": "INFO",
         "logger": "sketchpipe.pipeline.driver", "message": "Merged 2 sketches with k=128"}
    """

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def _get_level(level: str | int) -> int:
    """Level name or number to a logging constant; unknown names mean INFO."""
    if isinstance(level, int):
        return level
    return getattr(logging, level.upper(), logging.INFO)


def _get_logger() -> logging.Logger:
    return logging.getLogger(LOGGER_NAME)


def _clear_handlers() -> None:
    """Detach and close every handler except NullHandler."""
    logger = _get_logger()
    for handler in list(logger.handlers):
        if isinstance(handler, logging.NullHandler):
            continue
        logger.removeHandler(handler)
        handler.close()


def _attach(handler: logging.Handler, level: str | int, formatter: logging.Formatter):
    numeric = _get_level(level)
    handler.setLevel(numeric)
    handler.setFormatter(formatter)
    logger = _get_logger()
    logger.setLevel(numeric)
    logger.addHandler(handler)
    return handler


def _rotating_handler(path: str | Path, max_bytes: int, backup_count: int) -> RotatingFileHandler:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count)


def enable_console_logging(
    level: LogLevel | int = "INFO",
    format: str = DEFAULT_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> logging.StreamHandler:
    """Log to standard error.

    Returns:
        The attached StreamHandler.
    """
    return _attach(logging.StreamHandler(), level, logging.Formatter(format, date_format))


def enable_file_logging(
    path: str | Path,
    level: LogLevel | int = "INFO",
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    format: str = DEFAULT_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> RotatingFileHandler:
    """Log to a size-rotated file.

    Args:
        path: Log file. Missing parent directories are created.
        level: Level name or number.
        max_bytes: Size at which the file is rotated.
        backup_count: Number of rotated files kept.
        format: Record format string.
        date_format: Format of %(asctime)s.

    Returns:
        The attached RotatingFileHandler.
    """
    handler = _rotating_handler(path, max_bytes, backup_count)
    return _attach(handler, level, logging.Formatter(format, date_format))


def enable_json_logging(
    level: LogLevel | int = "INFO",
    path: str | Path | None = None,
) -> logging.Handler:
    """Log JSON records to standard error, or to a rotating file when path is given."""
    if path is None:
        handler = logging.StreamHandler()
    else:
        handler = _rotating_handler(path, DEFAULT_MAX_BYTES, DEFAULT_BACKUP_COUNT)
    return _attach(handler, level, JsonFormatter())


def configure_from_env() -> None:
    """Enable logging as described by the SKETCHPIPE_* environment variables.

    Does nothing unless a level or a log file is set. A log file without a
    level logs at INFO.
    """
    level = os.environ.get(ENV_LEVEL, "").strip().upper()
    log_file = os.environ.get(ENV_FILE, "").strip()
    if not level and not log_file:
        return

    level = level or "INFO"
    if os.environ.get(ENV_JSON, "") == "1":
        enable_json_logging(level=level, path=log_file or None)
    elif log_file:
        enable_file_logging(log_file, level=level)
    else:
        enable_console_logging(level=level)


def set_level(level: LogLevel | int) -> None:
    _get_logger().setLevel(_get_level(level))


def disable_logging() -> None:
    """Drop every handler and silence sketchpipe, CRITICAL included."""
    _clear_handlers()
    logger = _get_logger()
    logger.addHandler(logging.NullHandler())
    logger.setLevel(logging.CRITICAL + 1)
