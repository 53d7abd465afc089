"""Quantiles pipeline: rank/value conversion and histograms."""

from __future__ import annotations

import argparse
import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass

from sketchpipe.exceptions import ConfigurationError, InputFormatError
from sketchpipe.pipeline.backend import SketchBackend
from sketchpipe.pipeline.report import Reporter, format_boundary, format_count, format_fixed
from sketchpipe.pipeline.source import read_tokens
from sketchpipe.pipeline.splits import linear_splits, log_splits
from sketchpipe.sketching import TDigest

logger = logging.getLogger(__name__)

DEFAULT_K = 128
DEFAULT_NUM_BINS = 10
DECILES = tuple(i / 10 for i in range(11))

# Decimal notation plus NaN and Infinity; no underscores, no non-ASCII digits
_DOUBLE = re.compile(r"[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|NaN|Infinity)", re.ASCII)


@dataclass(frozen=True, slots=True)
class Histogram:
    """Bucket edges and counts of one histogram query.

    Attributes:
        edges: len(counts) + 1 bucket edges, lowest first.
        counts: Estimated number of observations per bucket.
        log_scale: Whether the split points were spaced in log10 space.
    """

    edges: tuple[float, ...]
    counts: tuple[int, ...]
    log_scale: bool


@dataclass(frozen=True, slots=True)
class QuantilesQuery:
    """Query options of the quantiles pipeline.

    Ranks and values are kept as the tokens given on the command line and
    parsed when the query runs. With no option selected the deciles are
    reported.
    """

    histogram: bool = False
    log_histogram_zero_sub: float | None = None
    buckets: int = DEFAULT_NUM_BINS
    ranks: tuple[str, ...] | None = None
    ranks_file: str | None = None
    values: tuple[str, ...] | None = None
    values_file: str | None = None
    plot_path: str | None = None

    def __post_init__(self):
        if self.buckets < 1:
            raise ConfigurationError(f"Number of histogram bars must be positive, got {self.buckets}")

    @property
    def any_selected(self) -> bool:
        return (
            self.histogram
            or self.log_histogram_zero_sub is not None
            or self.ranks is not None
            or self.ranks_file is not None
            or self.values is not None
            or self.values_file is not None
        )


def parse_double(token: str) -> float:
    """Parse a decimal number, ``NaN`` or ``Infinity``, ignoring surrounding whitespace.

    Raises:
        ValueError: For blank tokens and for forms such as ``1_000``, ``inf``
            or non-ASCII digits.
    """
    stripped = token.strip()
    if not _DOUBLE.fullmatch(stripped):
        raise ValueError(f"Malformed numeric value {token!r}")
    return float(stripped)


def _parse_double(token: str, source: str) -> float:
    try:
        return parse_double(token)
    except ValueError as e:
        raise InputFormatError(str(e), source, line=token) from None


class QuantilesBackend(SketchBackend):
    """Drives a TDigest; the resolution parameter is its compression."""

    name = "quant"
    aliases = ("quantiles",)
    summary = "quantiles sketch (t-digest)"
    default_k = DEFAULT_K
    sketch_type = TDigest

    def __init__(self, query: QuantilesQuery | None = None):
        self.query_options = query if query is not None else QuantilesQuery()

    @classmethod
    def add_arguments(cls, parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "-r", "--rank2value",
            nargs="+",
            metavar="DOUBLES",
            help="query values with ranks from list DOUBLES",
        )
        parser.add_argument(
            "-R", "--rank2value-file",
            metavar="FILE",
            help="query values with ranks from FILE",
        )
        parser.add_argument(
            "-v", "--value2rank",
            nargs="+",
            metavar="DOUBLES",
            help="query ranks with values from list DOUBLES",
        )
        parser.add_argument(
            "-V", "--value2rank-file",
            metavar="FILE",
            help="query ranks with values from FILE",
        )
        parser.add_argument(
            "-b", "--number-histogram-bars",
            type=int,
            default=DEFAULT_NUM_BINS,
            metavar="INT",
            help=f"number of bars in the histogram (default {DEFAULT_NUM_BINS})",
        )
        parser.add_argument(
            "-h", "--query-histogram",
            action="store_true",
            help="query histogram",
        )
        parser.add_argument(
            "-lh", "--query-loghistogram",
            type=float,
            metavar="ZERO_SUB",
            help="query log scale histogram, substituting ZERO_SUB for a zero minimum",
        )
        parser.add_argument(
            "--plot",
            metavar="PNG",
            help="also render the requested histograms as a bar chart",
        )

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> QuantilesBackend:
        query = QuantilesQuery(
            histogram=args.query_histogram,
            log_histogram_zero_sub=args.query_loghistogram,
            buckets=args.number_histogram_bars,
            ranks=tuple(args.rank2value) if args.rank2value is not None else None,
            ranks_file=args.rank2value_file,
            values=tuple(args.value2rank) if args.value2rank is not None else None,
            values_file=args.value2rank_file,
            plot_path=args.plot,
        )
        return cls(query=query)

    def build(self, k: int) -> TDigest:
        return TDigest(compression=k)

    def update(self, sketch: TDigest, lines: Iterable[tuple[int, str]], source: str) -> None:
        # Every line is a value; a blank line is malformed
        for line_number, line in lines:
            try:
                value = parse_double(line)
            except ValueError:
                raise InputFormatError(
                    "Malformed numeric value", source, line_number, line
                ) from None
            sketch.add(value)

    def describe(self, sketch: TDigest) -> list[tuple[str, str]]:
        rows = [
            ("Sketch", self.summary),
            ("k", format_count(sketch.compression)),
            ("N", format_count(sketch.item_count)),
            ("Centroids", format_count(sketch.centroid_count)),
        ]
        if not sketch.is_empty:
            rows.append(("Min", format_boundary(sketch.min)))
            rows.append(("Max", format_boundary(sketch.max)))
        return rows

    def query(self, sketch: TDigest, reporter: Reporter) -> None:
        if sketch.is_empty:
            logger.warning("Sketch is empty; nothing to report")
            return

        options = self.query_options
        histograms: list[Histogram] = []

        if options.histogram:
            histograms.append(self._histogram(sketch, reporter))

        if options.log_histogram_zero_sub is not None:
            histograms.append(
                self._histogram(sketch, reporter, zero_sub=options.log_histogram_zero_sub)
            )

        if options.ranks is not None:
            self._values_at_ranks(sketch, reporter, options.ranks, "-r")

        if options.ranks_file is not None:
            tokens = read_tokens(options.ranks_file)
            self._values_at_ranks(sketch, reporter, tokens, options.ranks_file)

        if options.values is not None:
            # List-supplied values are reported in ascending order
            values = sorted(_parse_double(token, "-v") for token in options.values)
            self._ranks_at_values(sketch, reporter, values)

        if options.values_file is not None:
            # File-supplied values keep file order
            values = [
                _parse_double(token, options.values_file)
                for token in read_tokens(options.values_file)
            ]
            self._ranks_at_values(sketch, reporter, values)

        if not options.any_selected:
            logger.info("No query option selected; reporting deciles")
            values = sketch.quantiles(list(DECILES))
            reporter.table(
                ("Rank", "Value"),
                [(format_fixed(rank, 1), f"{value}") for rank, value in zip(DECILES, values)],
            )

        if options.plot_path and histograms:
            from sketchpipe.plotting import plot_histograms

            plot_histograms(histograms, options.plot_path)
        elif options.plot_path:
            logger.warning("--plot given without -h or -lh; no chart written")

    def _histogram(
        self,
        sketch: TDigest,
        reporter: Reporter,
        zero_sub: float | None = None,
    ) -> Histogram:
        n_splits = self.query_options.buckets - 1
        low = sketch.min
        if zero_sub is None:
            splits = linear_splits(sketch.min, sketch.max, n_splits)
        else:
            try:
                splits = log_splits(sketch.min, sketch.max, n_splits, zero_sub)
            except ValueError as e:
                raise ConfigurationError(str(e)) from e
            if low == 0:
                low = zero_sub

        n = sketch.item_count
        counts = [int(mass * n) for mass in sketch.pmf(splits)]
        boundaries = [sketch.min, *splits]
        reporter.table(
            ("Value", "Freq"),
            [(format_boundary(b), format_count(c)) for b, c in zip(boundaries, counts)],
        )
        return Histogram(
            edges=(low, *splits, sketch.max),
            counts=tuple(counts),
            log_scale=zero_sub is not None,
        )

    def _values_at_ranks(
        self,
        sketch: TDigest,
        reporter: Reporter,
        tokens: Iterable[str],
        source: str,
    ) -> None:
        rows = []
        for token in tokens:
            rank = _parse_double(token, source)
            if not 0 <= rank <= 1:
                raise ConfigurationError(f"Rank must be in [0, 1], got {token} ({source})")
            rows.append((token, format_fixed(sketch.quantile(rank), 2)))
        reporter.table(("Rank", "Value"), rows)

    def _ranks_at_values(self, sketch: TDigest, reporter: Reporter, values: list[float]) -> None:
        reporter.table(
            ("Value", "Rank"),
            [(format_fixed(v, 2), format_fixed(sketch.cdf(v), 6)) for v in values],
        )
