"""Reading data, query files and serialized sketches.

A data source is a file path or ``-`` for standard input.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from pathlib import Path

from sketchpipe.exceptions import ConfigurationError, InputFormatError

logger = logging.getLogger(__name__)

STDIN = "-"


def source_name(path: str | Path) -> str:
    """Name used for a source in diagnostics."""
    return "<stdin>" if str(path) == STDIN else str(path)


def iter_lines(path: str | Path) -> Iterator[tuple[int, str]]:
    """Yield ``(line_number, line)`` pairs from a data source.

    Line numbers start at 1; trailing newlines are stripped.

    Raises:
        ConfigurationError: If the file cannot be opened.
        InputFormatError: If the content is not valid UTF-8.
    """
    name = source_name(path)
    if str(path) == STDIN:
        yield from _numbered(sys.stdin, name)
        return

    try:
        handle = open(path, encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read data source {name}: {e.strerror}") from e

    logger.debug("Reading data source %s", name)
    with handle:
        yield from _numbered(handle, name)


def _numbered(handle, name: str) -> Iterator[tuple[int, str]]:
    line_number = 0
    try:
        for line_number, line in enumerate(handle, start=1):
            yield line_number, line.rstrip("\r\n")
    except UnicodeDecodeError as e:
        raise InputFormatError("Input is not valid UTF-8", name, line_number + 1) from e


def read_tokens(path: str | Path) -> list[str]:
    """Read a query file as a list of trimmed, non-empty tokens."""
    return [line.strip() for _, line in iter_lines(path) if line.strip()]


def read_blob(path: str | Path) -> bytes:
    """Read a serialized sketch.

    Raises:
        ConfigurationError: If the file cannot be read.
    """
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise ConfigurationError(f"Cannot read serialized sketch {path}: {e.strerror}") from e


def write_blob(path: str | Path, data: bytes) -> None:
    """Write a serialized sketch, replacing any existing file."""
    try:
        Path(path).write_bytes(data)
    except OSError as e:
        raise ConfigurationError(f"Cannot write serialized sketch {path}: {e.strerror}") from e
    logger.info("Wrote %d bytes to %s", len(data), path)
