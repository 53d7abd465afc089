"""T-Digest for rank and quantile estimation.

T-Digest clusters streaming values into weighted centroids and estimates
ranks and quantiles with bounded memory, with the best accuracy at the tails.

Key properties:
- Space: O(compression) centroids
- Update: amortized through a sorted buffer
- Query: O(centroids)

Ranks and quantiles are read off one piecewise-linear curve through the
knots (min, 0), (mean_i, cumulative_i + count_i / 2) and (max, n), so cdf()
and quantile() are both monotone and inverse to each other.

Reference:
    Dunning, Ertl. "Computing Extremely Accurate Quantiles Using t-Digests" (2019)
"""

from __future__ import annotations

import bisect
import math
import struct
from dataclasses import dataclass

from sketchpipe.sketching.base import QuantileSketch

SERIAL_MAGIC = b"SPT1"
_HEADER = struct.Struct(">dQddI")
_CENTROID = struct.Struct(">dQ")


@dataclass(slots=True)
class _Centroid:
    """A centroid (cluster): the mean and count of a group of values."""

    mean: float
    count: int

    def merge(self, other: "_Centroid") -> "_Centroid":
        """Merge two centroids into one."""
        total = self.count + other.count
        new_mean = (self.mean * self.count + other.mean * other.count) / total
        return _Centroid(mean=new_mean, count=total)


class TDigest(QuantileSketch):
    """T-Digest for streaming rank/quantile estimation.

    Args:
        compression: Controls accuracy vs memory tradeoff (default 128).
            Higher values = more centroids = more accuracy = more memory.

    Example:
        td = TDigest(compression=128)

        for value in values:
            td.add(value)

        median = td.quantile(0.5)
        masses = td.pmf([10.0, 20.0, 30.0])
    """

    def __init__(self, compression: float = 128.0):
        """Initialize T-Digest.

        Args:
            compression: Controls number of centroids. Must be > 0.

        Raises:
            ValueError: If compression <= 0.
        """
        if compression <= 0:
            raise ValueError(f"compression must be positive, got {compression}")

        self._compression = compression
        self._centroids: list[_Centroid] = []
        self._total_count = 0
        self._min_value: float | None = None
        self._max_value: float | None = None

        # Buffer for batch processing
        self._buffer: list[float] = []
        self._buffer_size = int(compression * 2)

    @property
    def compression(self) -> float:
        """Compression factor (higher = more accuracy)."""
        return self._compression

    def _max_size(self, q: float) -> float:
        """Maximum centroid size at quantile q.

        Centroids near q=0 or q=1 are kept smaller for better tail accuracy.
        """
        # Derivative of the k_1 scale function: 1/(π*sqrt(q*(1-q)))
        q = max(0.0001, min(0.9999, q))
        return self._total_count * 4 / (self._compression * math.pi * math.sqrt(q * (1 - q)))

    def add(self, value: float, count: int = 1) -> None:
        """Add a value to the digest.

        NaN values are ignored.

        Raises:
            ValueError: If count is negative.
        """
        if count < 0:
            raise ValueError(f"count must be non-negative, got {count}")
        if count == 0 or math.isnan(value):
            return

        if self._min_value is None or value < self._min_value:
            self._min_value = value
        if self._max_value is None or value > self._max_value:
            self._max_value = value

        self._total_count += count
        self._buffer.extend([value] * count)

        if len(self._buffer) >= self._buffer_size:
            self._flush()

    def _flush(self) -> None:
        """Flush buffered values into centroids."""
        if not self._buffer:
            return

        self._buffer.sort()
        self._centroids.extend(_Centroid(mean=value, count=1) for value in self._buffer)
        self._buffer.clear()

        self._compress()

    def _compress(self) -> None:
        """Merge adjacent centroids that are small enough for their quantile."""
        if len(self._centroids) <= 1:
            return

        self._centroids.sort(key=lambda c: c.mean)

        compressed: list[_Centroid] = []
        running_count = 0

        for centroid in self._centroids:
            if not compressed:
                compressed.append(centroid)
                running_count = centroid.count
                continue

            q = (running_count + centroid.count / 2) / self._total_count
            last = compressed[-1]
            if last.count + centroid.count <= self._max_size(q):
                compressed[-1] = last.merge(centroid)
            else:
                compressed.append(centroid)

            running_count += centroid.count

        self._centroids = compressed

    def _knots(self) -> tuple[list[float], list[float]]:
        """Values and cumulative ranks of the interpolation curve."""
        values = [self._min_value]
        ranks = [0.0]
        cumulative = 0
        for centroid in self._centroids:
            values.append(centroid.mean)
            ranks.append(cumulative + centroid.count / 2)
            cumulative += centroid.count
        values.append(self._max_value)
        ranks.append(float(self._total_count))
        return values, ranks

    def quantile(self, q: float) -> float:
        """Estimate the value at rank q.

        Raises:
            ValueError: If q is not in [0, 1] or digest is empty.
        """
        if not 0 <= q <= 1:
            raise ValueError(f"Quantile must be in [0, 1], got {q}")

        self._flush()

        if not self._centroids:
            raise ValueError("Cannot compute quantile of empty digest")

        if q == 0:
            return self._min_value
        if q == 1:
            return self._max_value

        values, ranks = self._knots()
        target = q * self._total_count
        i = bisect.bisect_left(ranks, target)
        r0, r1 = ranks[i - 1], ranks[i]
        t = (target - r0) / (r1 - r0)
        return values[i - 1] + t * (values[i] - values[i - 1])

    def quantiles(self, qs: list[float]) -> list[float]:
        """Estimate the value at each rank in qs."""
        return [self.quantile(q) for q in qs]

    def cdf(self, value: float) -> float:
        """Estimate the fraction of the stream at or below value."""
        self._flush()

        if not self._centroids:
            return 0.0
        if value < self._min_value:
            return 0.0
        if value >= self._max_value:
            return 1.0

        values, ranks = self._knots()
        i = bisect.bisect_right(values, value)
        x0, x1 = values[i - 1], values[i]
        t = (value - x0) / (x1 - x0)
        return (ranks[i - 1] + t * (ranks[i] - ranks[i - 1])) / self._total_count

    def merge(self, other: TDigest) -> None:
        """Merge another T-Digest into this one.

        The result keeps this digest's compression.

        Raises:
            TypeError: If other is not a TDigest.
        """
        if not isinstance(other, TDigest):
            raise TypeError(f"Can only merge with TDigest, got {type(other).__name__}")

        self._flush()
        other._flush()

        self._centroids.extend(_Centroid(c.mean, c.count) for c in other._centroids)

        self._total_count += other._total_count
        if other._min_value is not None:
            if self._min_value is None or other._min_value < self._min_value:
                self._min_value = other._min_value
        if other._max_value is not None:
            if self._max_value is None or other._max_value > self._max_value:
                self._max_value = other._max_value

        self._compress()

    @property
    def item_count(self) -> int:
        """Total count of values added."""
        return self._total_count

    @property
    def centroid_count(self) -> int:
        """Number of centroids currently stored."""
        self._flush()
        return len(self._centroids)

    @property
    def min(self) -> float | None:
        """Minimum value seen."""
        return self._min_value

    @property
    def max(self) -> float | None:
        """Maximum value seen."""
        return self._max_value

    def clear(self) -> None:
        """Reset the digest to empty state."""
        self._centroids.clear()
        self._buffer.clear()
        self._total_count = 0
        self._min_value = None
        self._max_value = None

    def serialize(self) -> bytes:
        """Serialize into the ``SPT1`` envelope.

        Layout: magic (4B), compression (double), total (uint64), min and
        max (doubles, NaN when empty), centroid count (uint32), then per
        centroid mean (double) and count (uint64).
        """
        self._flush()
        out = bytearray(SERIAL_MAGIC)
        out += _HEADER.pack(
            self._compression,
            self._total_count,
            math.nan if self._min_value is None else self._min_value,
            math.nan if self._max_value is None else self._max_value,
            len(self._centroids),
        )
        for centroid in self._centroids:
            out += _CENTROID.pack(centroid.mean, centroid.count)
        return bytes(out)

    @classmethod
    def deserialize(cls, data: bytes) -> TDigest:
        """Rebuild a digest from serialize() output.

        Raises:
            ValueError: If the buffer is not an ``SPT1`` envelope or is truncated.
        """
        view = memoryview(data)
        if view[:4].tobytes() != SERIAL_MAGIC:
            raise ValueError(f"Not a t-digest (expected magic {SERIAL_MAGIC!r})")
        try:
            compression, total, min_value, max_value, size = _HEADER.unpack_from(view, 4)
            digest = cls(compression)
            pos = 4 + _HEADER.size
            for _ in range(size):
                mean, count = _CENTROID.unpack_from(view, pos)
                pos += _CENTROID.size
                digest._centroids.append(_Centroid(mean=mean, count=count))
        except struct.error as e:
            raise ValueError(f"Truncated t-digest: {e}") from e

        digest._total_count = total
        digest._min_value = None if math.isnan(min_value) else min_value
        digest._max_value = None if math.isnan(max_value) else max_value
        return digest

    def __repr__(self) -> str:
        self._flush()
        return (
            f"TDigest(compression={self._compression}, "
            f"centroids={len(self._centroids)}, total={self._total_count})"
        )
