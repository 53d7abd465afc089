"""Frequent items detection using the Space-Saving algorithm.

The Space-Saving algorithm finds the most frequent items in a weighted stream
using at most k counters. Each counter holds an overestimate of its item's
true count and a bound on that overestimation. The sketch also keeps an
offset: an upper bound on the true count of any item it does not track.

Guarantees:
- estimate(item) >= true count for every tracked item
- estimate(item) - true count <= max_error() for every item
- Any item with true count > max_error() is tracked

Reference:
    Metwally, Agrawal, El Abbadi. "Efficient Computation of Frequent and Top-k
    Elements in Data Streams" (2005)
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from sketchpipe.sketching.base import ErrorType, FrequencyEstimate, FrequencySketch

SERIAL_MAGIC = b"SPF1"
_HEADER = struct.Struct(">IQQI")
_COUNTER = struct.Struct(">QQI")


@dataclass(slots=True)
class _Counter:
    """Internal counter: an item, its count and its overestimation bound."""

    item: str
    count: int
    error: int


class FrequentItemsSketch(FrequencySketch):
    """Frequent items over a weighted stream of strings.

    When an untracked item arrives and all k counters are in use, the
    counter with the minimum count is reassigned to the new item, which
    inherits that count as its error.

    Args:
        k: Maximum number of counters. Larger k = more accurate but more memory.

    Example:
        sketch = FrequentItemsSketch(k=256)

        for line in lines:
            sketch.add(line)

        for row in sketch.frequent_items(ErrorType.NO_FALSE_POSITIVES):
            print(f"{row.item}: ~{row.count} (error <= {row.error})")
    """

    def __init__(self, k: int):
        """Initialize the sketch.

        Args:
            k: Number of counters. Must be positive.

        Raises:
            ValueError: If k <= 0.
        """
        if k <= 0:
            raise ValueError(f"k must be positive, got {k}")

        self._k = k
        self._counters: dict[str, _Counter] = {}
        self._total_count = 0
        self._offset = 0

    @property
    def k(self) -> int:
        """Maximum number of tracked items."""
        return self._k

    def add(self, item: str, count: int = 1) -> None:
        """Add a weighted item occurrence.

        Args:
            item: The item to add.
            count: Weight of the occurrence (default 1).

        Raises:
            ValueError: If count is negative.
        """
        if count < 0:
            raise ValueError(f"count must be non-negative, got {count}")
        if count == 0:
            return

        self._total_count += count

        if item in self._counters:
            self._counters[item].count += count
        elif len(self._counters) < self._k:
            self._counters[item] = _Counter(
                item=item,
                count=self._offset + count,
                error=self._offset,
            )
        else:
            min_counter = min(self._counters.values(), key=lambda c: c.count)
            del self._counters[min_counter.item]

            # The evicted item and every untracked item are now bounded by base
            base = max(self._offset, min_counter.count)
            self._offset = base
            self._counters[item] = _Counter(item=item, count=base + count, error=base)

    def estimate(self, item: str) -> int:
        """Estimate the frequency of an item.

        Returns:
            The counter value for a tracked item, otherwise 0.
        """
        if item in self._counters:
            return self._counters[item].count
        return 0

    def lower_bound(self, item: str) -> int:
        """Guaranteed lower bound on the true count of item."""
        if item in self._counters:
            counter = self._counters[item]
            return counter.count - counter.error
        return 0

    def upper_bound(self, item: str) -> int:
        """Guaranteed upper bound on the true count of item."""
        if item in self._counters:
            return self._counters[item].count
        return self._offset

    def max_error(self) -> int:
        """Maximum error of any estimate.

        Zero while fewer than k distinct items have been seen, since every
        count is then exact.
        """
        return self._offset

    def frequent_items(
        self,
        error_type: ErrorType = ErrorType.NO_FALSE_POSITIVES,
        threshold: int | None = None,
    ) -> list[FrequencyEstimate]:
        """Return the tracked items passing the threshold.

        Args:
            error_type: NO_FALSE_POSITIVES keeps items whose lower bound
                exceeds the threshold; NO_FALSE_NEGATIVES keeps items whose
                upper bound exceeds it.
            threshold: Defaults to max_error().

        Returns:
            FrequencyEstimate objects sorted by count (descending).
        """
        if threshold is None:
            threshold = self.max_error()

        if error_type is ErrorType.NO_FALSE_POSITIVES:
            selected = [c for c in self._counters.values() if c.count - c.error > threshold]
        else:
            selected = [c for c in self._counters.values() if c.count > threshold]

        selected.sort(key=lambda c: (-c.count, c.item))
        return [FrequencyEstimate(item=c.item, count=c.count, error=c.error) for c in selected]

    def __contains__(self, item: str) -> bool:
        """Check if an item is currently being tracked."""
        return item in self._counters

    def merge(self, other: FrequentItemsSketch) -> None:
        """Merge another sketch into this one.

        Counts of shared items add up. An item tracked by only one side is
        charged the other side's offset, both in its count and in its error.
        If more than k items result, the largest k are kept and the offset
        grows to cover the dropped ones. Sketches of different k may be
        merged; the result keeps this sketch's k.

        Raises:
            TypeError: If other is not a FrequentItemsSketch.
        """
        if not isinstance(other, FrequentItemsSketch):
            raise TypeError(
                f"Can only merge with FrequentItemsSketch, got {type(other).__name__}"
            )

        combined: dict[str, _Counter] = {}
        for item in self._counters.keys() | other._counters.keys():
            mine = self._counters.get(item)
            theirs = other._counters.get(item)
            combined[item] = _Counter(
                item=item,
                count=(mine.count if mine else self._offset)
                + (theirs.count if theirs else other._offset),
                error=(mine.error if mine else self._offset)
                + (theirs.error if theirs else other._offset),
            )

        offset = self._offset + other._offset
        if len(combined) > self._k:
            ranked = sorted(combined.values(), key=lambda c: (-c.count, c.item))
            offset = max(offset, ranked[self._k].count)
            combined = {c.item: c for c in ranked[: self._k]}

        self._counters = combined
        self._offset = offset
        self._total_count += other._total_count

    @property
    def item_count(self) -> int:
        """Total weight added (the stream length)."""
        return self._total_count

    @property
    def tracked_count(self) -> int:
        """Number of distinct items currently tracked."""
        return len(self._counters)

    def clear(self) -> None:
        """Reset the sketch to empty state."""
        self._counters.clear()
        self._total_count = 0
        self._offset = 0

    def serialize(self) -> bytes:
        """Serialize into the ``SPF1`` envelope.

        Layout: magic (4B), k (uint32), total (uint64), offset (uint64),
        counter count (uint32), then per counter count (uint64),
        error (uint64), item length (uint32) and the UTF-8 item bytes.
        """
        out = bytearray(SERIAL_MAGIC)
        out += _HEADER.pack(self._k, self._total_count, self._offset, len(self._counters))
        for counter in self._counters.values():
            encoded = counter.item.encode("utf-8")
            out += _COUNTER.pack(counter.count, counter.error, len(encoded))
            out += encoded
        return bytes(out)

    @classmethod
    def deserialize(cls, data: bytes) -> FrequentItemsSketch:
        """Rebuild a sketch from serialize() output.

        Raises:
            ValueError: If the buffer is not an ``SPF1`` envelope or is truncated.
        """
        view = memoryview(data)
        if view[:4].tobytes() != SERIAL_MAGIC:
            raise ValueError(f"Not a frequent items sketch (expected magic {SERIAL_MAGIC!r})")
        try:
            k, total, offset, size = _HEADER.unpack_from(view, 4)
            pos = 4 + _HEADER.size
            sketch = cls(k)
            for _ in range(size):
                count, error, length = _COUNTER.unpack_from(view, pos)
                pos += _COUNTER.size
                if pos + length > len(view):
                    raise ValueError("Truncated frequent items sketch")
                item = view[pos : pos + length].tobytes().decode("utf-8")
                pos += length
                sketch._counters[item] = _Counter(item=item, count=count, error=error)
        except struct.error as e:
            raise ValueError(f"Truncated frequent items sketch: {e}") from e

        sketch._total_count = total
        sketch._offset = offset
        return sketch

    def __repr__(self) -> str:
        return (
            f"FrequentItemsSketch(k={self._k}, tracked={len(self._counters)}, "
            f"total={self._total_count}, max_error={self._offset})"
        )
