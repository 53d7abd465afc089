"""Split points for linear and logarithmic histograms.

Both functions place ``n`` interior boundaries evenly between ``min_value``
and ``max_value``, excluding the endpoints themselves. ``n + 1`` buckets
result.
"""

from __future__ import annotations

import math


def linear_splits(min_value: float, max_value: float, n: int) -> list[float]:
    """Return ``min + delta * (i + 1)`` for i in [0, n), delta = (max - min) / (n + 1).

    Args:
        min_value: Lower end of the range.
        max_value: Upper end of the range.
        n: Number of split points. Zero yields an empty list.

    Returns:
        n split points, all equal when min_value == max_value.

    Raises:
        ValueError: If n is negative.
    """
    if n < 0:
        raise ValueError(f"Number of split points must be non-negative, got {n}")

    delta = (max_value - min_value) / (n + 1)
    return [min_value + delta * (i + 1) for i in range(n)]


def log_splits(
    min_value: float,
    max_value: float,
    n: int,
    zero_substitute: float,
) -> list[float]:
    """Split points evenly spaced in log10 space.

    A minimum of exactly zero is replaced by zero_substitute before taking
    logarithms.

    Raises:
        ValueError: If the minimum is negative, if the (substituted)
            minimum or the maximum is not positive, or if split points are
            requested while the (substituted) minimum is not below the maximum.
    """
    if min_value == 0:
        min_value = zero_substitute
    if min_value < 0:
        raise ValueError("Log histogram cannot be produced with negative values in the stream")
    if min_value == 0 or max_value <= 0:
        raise ValueError(
            f"Log histogram needs a positive range, got [{min_value}, {max_value}]"
        )

    log_min = math.log10(min_value)
    log_max = math.log10(max_value)
    if n >= 1 and log_min >= log_max:
        raise ValueError(
            f"Log histogram needs a minimum below the maximum, got [{min_value}, {max_value}]"
        )

    return [10.0**point for point in linear_splits(log_min, log_max, n)]
