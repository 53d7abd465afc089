"""
Shared pytest fixtures for sketchpipe tests.
"""

import logging
from pathlib import Path

import pytest


@pytest.fixture
def write_lines(tmp_path):
    """
    Returns a factory writing lines to a file under tmp_path.

    Example usage:
        def test_reads(write_lines):
            path = write_lines("data.txt", ["1", "2", "3"])
    """

    def _write(name: str, lines) -> Path:
        path = tmp_path / name
        path.write_text("".join(f"{line}\n" for line in lines), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def uniques_file(write_lines) -> Path:
    """Integers 0..19999, one per line."""
    return write_lines("data1.txt", range(20000))


@pytest.fixture
def freq_data_file(write_lines) -> Path:
    """Weighted ``weight<TAB>item`` lines for the frequency scenario."""
    lines = [f"1\t{i}" for i in range(1, 19976)]
    lines += [f"{i}\t{i}" for i in range(19976, 20001)]
    return write_lines("freqData.txt", lines)


@pytest.fixture(autouse=True)
def reset_sketchpipe_logging():
    """Reset logging state before and after each test.

    Removes all handlers except NullHandler and resets the level so that
    logging configuration from one test does not leak into another.
    """
    logger = logging.getLogger("sketchpipe")

    def _reset():
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
            if not isinstance(handler, logging.NullHandler):
                handler.close()
        logger.addHandler(logging.NullHandler())
        logger.setLevel(logging.NOTSET)

    _reset()
    yield
    _reset()
