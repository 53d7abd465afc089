"""Tests for T-Digest rank and quantile estimation."""

import math
import random

import pytest

from sketchpipe.sketching import TDigest


def _uniform_digest(start: int = 0, stop: int = 20000, compression: float = 128) -> TDigest:
    td = TDigest(compression=compression)
    for value in range(start, stop):
        td.add(float(value))
    return td


class TestTDigestCreation:
    """Tests for TDigest creation and configuration."""

    def test_creates_with_defaults(self):
        """TDigest is created with default compression."""
        td = TDigest()

        assert td.compression == 128.0
        assert td.item_count == 0
        assert td.is_empty

    def test_rejects_zero_compression(self):
        """Rejects compression=0."""
        with pytest.raises(ValueError, match="must be positive"):
            TDigest(compression=0)

    def test_rejects_negative_compression(self):
        """Rejects negative compression."""
        with pytest.raises(ValueError, match="must be positive"):
            TDigest(compression=-50)


class TestTDigestAdd:
    """Tests for adding values."""

    def test_tracks_min_max_and_count(self):
        """Adding values tracks min, max and count."""
        td = TDigest()
        for value in [5.0, -2.0, 9.5, 3.0]:
            td.add(value)

        assert td.min == -2.0
        assert td.max == 9.5
        assert td.item_count == 4

    def test_add_with_count(self):
        """Adding with count > 1 counts every occurrence."""
        td = TDigest()
        td.add(1.0, count=3)

        assert td.item_count == 3

    def test_ignores_nan(self):
        """NaN values are ignored."""
        td = TDigest()
        td.add(math.nan)

        assert td.is_empty
        assert td.min is None

    def test_rejects_negative_count(self):
        """Rejects negative count."""
        with pytest.raises(ValueError, match="non-negative"):
            TDigest().add(1.0, count=-1)


class TestTDigestQuantile:
    """Tests for quantile estimation."""

    def test_empty_digest_raises(self):
        """Quantile of an empty digest raises."""
        with pytest.raises(ValueError, match="empty"):
            TDigest().quantile(0.5)

    def test_rejects_out_of_range(self):
        """Ranks outside [0, 1] are rejected."""
        td = _uniform_digest(0, 10)

        with pytest.raises(ValueError, match=r"must be in \[0, 1\]"):
            td.quantile(1.5)

    def test_endpoints_are_min_and_max(self):
        """Rank 0 is the minimum and rank 1 the maximum."""
        td = _uniform_digest(0, 20000)

        assert td.quantile(0.0) == 0.0
        assert td.quantile(1.0) == 19999.0

    def test_small_exact_median(self):
        """The median of a few distinct values is exact."""
        td = TDigest()
        for value in [1.0, 2.0, 3.0, 4.0, 5.0]:
            td.add(value)

        assert td.quantile(0.5) == pytest.approx(3.0)

    def test_uniform_deciles_are_accurate(self):
        """Deciles of 0..19999 are within a few percent of the truth."""
        td = _uniform_digest(0, 20000)

        for i in range(11):
            rank = i / 10
            assert td.quantile(rank) == pytest.approx(rank * 19999, abs=600)

    def test_quantiles_are_monotone(self):
        """quantile() never decreases with rank."""
        rng = random.Random(7)
        td = TDigest(compression=50)
        for _ in range(5000):
            td.add(rng.expovariate(1.0))

        values = td.quantiles([i / 200 for i in range(201)])

        assert all(a <= b for a, b in zip(values, values[1:]))


class TestTDigestCdf:
    """Tests for CDF and PMF estimation."""

    def test_empty_digest_cdf_is_zero(self):
        """CDF of an empty digest is 0."""
        assert TDigest().cdf(1.0) == 0.0

    def test_cdf_bounds(self):
        """CDF is 0 below the minimum and 1 at or above the maximum."""
        td = _uniform_digest(10, 110)

        assert td.cdf(5.0) == 0.0
        assert td.cdf(109.0) == 1.0
        assert td.cdf(500.0) == 1.0

    def test_cdf_is_monotone(self):
        """cdf() never decreases with value."""
        td = _uniform_digest(0, 20000)

        ranks = [td.cdf(float(v)) for v in range(-100, 20100, 37)]

        assert all(a <= b for a, b in zip(ranks, ranks[1:]))

    def test_cdf_inverts_quantile(self):
        """cdf(quantile(q)) recovers q."""
        td = _uniform_digest(0, 20000)

        for q in [0.1, 0.3, 0.5, 0.77, 0.9]:
            assert td.cdf(td.quantile(q)) == pytest.approx(q, abs=1e-6)

    def test_pmf_sums_to_one(self):
        """PMF has one mass per bin and sums to 1."""
        td = _uniform_digest(0, 20000)

        masses = td.pmf([5000.0, 10000.0, 15000.0])

        assert len(masses) == 4
        assert all(m >= 0 for m in masses)
        assert sum(masses) == pytest.approx(1.0)
        for mass in masses:
            assert mass == pytest.approx(0.25, abs=0.03)

    def test_pmf_with_repeated_split_points(self):
        """Repeated split points yield empty bins instead of errors."""
        td = TDigest()
        for _ in range(10):
            td.add(5.0)

        masses = td.pmf([5.0, 5.0, 5.0])

        assert masses == [1.0, 0.0, 0.0, 0.0]


class TestTDigestMerge:
    """Tests for merging digests."""

    def test_merge_matches_single_digest(self):
        """Merging halves approximates one digest over the whole stream."""
        first = _uniform_digest(0, 10000)
        second = _uniform_digest(10000, 20000)
        whole = _uniform_digest(0, 20000)

        first.merge(second)

        assert first.item_count == 20000
        assert first.min == 0.0
        assert first.max == 19999.0
        for q in [0.1, 0.25, 0.5, 0.75, 0.9]:
            assert first.quantile(q) == pytest.approx(whole.quantile(q), abs=600)

    def test_merge_order_independent(self):
        """Merging in different orders gives equivalent answers."""
        parts = [_uniform_digest(i * 5000, (i + 1) * 5000) for i in range(3)]

        forward = TDigest()
        for part in parts:
            forward.merge(part)
        backward = TDigest()
        for part in reversed(parts):
            backward.merge(part)

        assert forward.item_count == backward.item_count == 15000
        for q in [0.1, 0.5, 0.9]:
            assert forward.quantile(q) == pytest.approx(backward.quantile(q), abs=450)

    def test_merge_empty(self):
        """Merging an empty digest changes nothing."""
        td = _uniform_digest(0, 100)

        td.merge(TDigest())

        assert td.item_count == 100
        assert td.min == 0.0

    def test_merge_wrong_type_raises(self):
        """Merging with a different type raises TypeError."""
        with pytest.raises(TypeError, match="Can only merge"):
            TDigest().merge([1, 2, 3])


class TestTDigestSerialization:
    """Tests for serialize/deserialize."""

    def test_round_trip_answers_identically(self):
        """A deserialized digest answers every query like the one it was written from."""
        td = _uniform_digest(0, 20000)

        restored = TDigest.deserialize(td.serialize())

        assert restored.compression == td.compression
        assert restored.item_count == td.item_count
        assert (restored.min, restored.max) == (td.min, td.max)
        ranks = [i / 10 for i in range(11)]
        assert restored.quantiles(ranks) == td.quantiles(ranks)
        assert restored.pmf([100.0, 7000.0]) == td.pmf([100.0, 7000.0])

    def test_round_trip_empty(self):
        """An empty digest round-trips."""
        restored = TDigest.deserialize(TDigest(compression=64).serialize())

        assert restored.is_empty
        assert restored.min is None
        assert restored.compression == 64.0

    def test_rejects_wrong_magic(self):
        """Buffers of another format are rejected."""
        with pytest.raises(ValueError, match="Not a t-digest"):
            TDigest.deserialize(b"SPF1" + bytes(64))

    def test_rejects_truncated_buffer(self):
        """Truncated buffers are rejected."""
        data = _uniform_digest(0, 100).serialize()

        with pytest.raises(ValueError, match="Truncated"):
            TDigest.deserialize(data[:-4])
