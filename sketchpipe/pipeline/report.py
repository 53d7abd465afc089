"""Tab-separated query output.

Results are buffered and written only once the whole invocation succeeded,
so a failing query leaves no partial report behind.
"""

from __future__ import annotations

import sys
from collections.abc import Iterable
from typing import TextIO

TAB = "\t"


def format_count(value: float) -> str:
    """Grouped integer, rounded toward the floor: ``19,976``."""
    return f"{int(value):,d}"


def format_boundary(value: float) -> str:
    """Grouped float with six decimals: ``1,234.500000``."""
    return f"{value:,f}"


def format_fixed(value: float, places: int) -> str:
    return f"{value:.{places}f}"


class Reporter:
    """Collects query results as blank-line separated two-column tables.

    Example:
        reporter = Reporter()
        reporter.table(("Items", "Frequency"), [("a", "3"), ("b", "1")])
        reporter.flush()
    """

    def __init__(self):
        self._lines: list[str] = []
        self._last_was_scalar = False

    @property
    def lines(self) -> list[str]:
        """Buffered output lines."""
        return list(self._lines)

    def _separate(self) -> None:
        if self._lines:
            self._lines.append("")

    def table(self, header: tuple[str, ...], rows: Iterable[tuple[str, ...]]) -> None:
        """Append a header line followed by one tab-joined line per row."""
        self._separate()
        self._lines.append(TAB.join(header))
        self._lines.extend(TAB.join(row) for row in rows)
        self._last_was_scalar = False

    def scalar(self, label: str, value: str) -> None:
        """Append a single ``label<TAB>value`` result.

        Consecutive scalars share one block.
        """
        if not self._last_was_scalar:
            self._separate()
        self._lines.append(f"{label}{TAB}{value}")
        self._last_was_scalar = True

    def render(self) -> str:
        return "".join(f"{line}\n" for line in self._lines)

    def flush(self, stream: TextIO | None = None) -> None:
        """Write the buffered report to stream (stdout by default) and clear it."""
        stream = stream if stream is not None else sys.stdout
        stream.write(self.render())
        stream.flush()
        self._lines.clear()
        self._last_was_scalar = False
