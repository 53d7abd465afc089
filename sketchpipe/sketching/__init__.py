"""Mergeable, serializable sketches driven by the sketchpipe pipeline.

Quick Reference:
    FrequentItemsSketch: Heavy hitters with error bounds (Space-Saving)
    TDigest: Rank/quantile estimation, CDF and PMF over split points

Example:
    from sketchpipe.sketching import ErrorType, FrequentItemsSketch, TDigest

    items = FrequentItemsSketch(k=1024)
    for word in words:
        items.add(word)
    print(items.frequent_items(ErrorType.NO_FALSE_POSITIVES))

    td = TDigest(compression=128)
    for latency in latencies:
        td.add(latency)
    print(f"p99: {td.quantile(0.99)}")
"""

from sketchpipe.sketching.base import (
    ErrorType,
    FrequencyEstimate,
    FrequencySketch,
    QuantileSketch,
    Sketch,
)
from sketchpipe.sketching.frequent_items import FrequentItemsSketch
from sketchpipe.sketching.tdigest import TDigest

__all__ = [
    "ErrorType",
    "FrequencyEstimate",
    "FrequencySketch",
    "FrequentItemsSketch",
    "QuantileSketch",
    "Sketch",
    "TDigest",
]
