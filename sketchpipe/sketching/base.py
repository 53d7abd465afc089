"""Base protocols for the sketches driven by the pipeline.

Sketches summarize a data stream in bounded memory and answer approximate
queries about it. Every sketch used by sketchpipe supports:
- Adding items (with optional weights)
- Merging another sketch of the same family
- Serializing to an opaque byte buffer and back

This module defines:
- Sketch: Base protocol with the shared lifecycle
- FrequencySketch: For frequency estimation (FrequentItemsSketch)
- QuantileSketch: For rank/quantile estimation (TDigest)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class Sketch(ABC):
    """Base protocol for all sketches.

    The resolution parameter is fixed at construction and never changes
    afterwards. Writes happen through add() and merge(); every query method
    leaves the answers unchanged.
    """

    @abstractmethod
    def add(self, item, count: int = 1) -> None:
        """Add an item to the sketch.

        Args:
            item: The item to add.
            count: Weight of the occurrence (default 1).
        """

    @abstractmethod
    def merge(self, other: "Sketch") -> None:
        """Merge another sketch of the same family into this one.

        Args:
            other: Another sketch of the same family.

        Raises:
            TypeError: If other is not the same sketch family.
        """

    @property
    @abstractmethod
    def item_count(self) -> int:
        """Total weight added to the sketch."""

    @abstractmethod
    def clear(self) -> None:
        """Reset the sketch to its initial empty state."""

    @abstractmethod
    def serialize(self) -> bytes:
        """Serialize the sketch into its binary envelope."""

    @property
    def is_empty(self) -> bool:
        return self.item_count == 0


class ErrorType(Enum):
    """Reporting policy for frequent items.

    NO_FALSE_POSITIVES returns only items whose lower bound exceeds the
    threshold. NO_FALSE_NEGATIVES returns every item whose upper bound
    exceeds it.
    """

    NO_FALSE_POSITIVES = "no_false_positives"
    NO_FALSE_NEGATIVES = "no_false_negatives"


@dataclass(frozen=True, slots=True)
class FrequencyEstimate:
    """A frequency estimate for an item.

    Attributes:
        item: The item being estimated.
        count: Estimated frequency count (an upper bound on the true count).
        error: Upper bound on the overestimation.
    """

    item: str
    count: int
    error: int

    @property
    def lower_bound(self) -> int:
        return self.count - self.error

    @property
    def upper_bound(self) -> int:
        return self.count


class FrequencySketch(Sketch):
    """Protocol for sketches that estimate item frequencies."""

    @abstractmethod
    def estimate(self, item: str) -> int:
        """Estimate the frequency of an item."""

    @abstractmethod
    def max_error(self) -> int:
        """Upper bound on the estimation error of any item."""

    @abstractmethod
    def frequent_items(
        self,
        error_type: ErrorType = ErrorType.NO_FALSE_POSITIVES,
        threshold: int | None = None,
    ) -> list[FrequencyEstimate]:
        """Return the items that pass the threshold under error_type.

        Args:
            error_type: Reporting policy.
            threshold: Frequency threshold. Defaults to max_error().

        Returns:
            FrequencyEstimate objects sorted by count (descending).
        """


class QuantileSketch(Sketch):
    """Protocol for sketches that estimate quantiles and ranks."""

    @abstractmethod
    def quantile(self, q: float) -> float:
        """Estimate the value at rank q (0.0 to 1.0).

        Raises:
            ValueError: If q is not in [0, 1] or the sketch is empty.
        """

    @abstractmethod
    def cdf(self, value: float) -> float:
        """Estimate the fraction of the stream at or below value."""

    def cdfs(self, split_points: list[float]) -> list[float]:
        """CDF at every split point, followed by 1.0 for the upper tail."""
        return [self.cdf(point) for point in split_points] + [1.0]

    def pmf(self, split_points: list[float]) -> list[float]:
        """Probability mass in each bin delimited by split_points.

        Returns:
            len(split_points) + 1 masses summing to 1.0.
        """
        masses = []
        previous = 0.0
        for cumulative in self.cdfs(split_points):
            masses.append(max(0.0, cumulative - previous))
            previous = max(previous, cumulative)
        return masses

    @property
    @abstractmethod
    def min(self) -> float | None:
        """Minimum value seen."""

    @property
    @abstractmethod
    def max(self) -> float | None:
        """Maximum value seen."""
