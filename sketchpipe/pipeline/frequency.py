"""Frequency pipeline: heavy hitters and their estimated counts."""

from __future__ import annotations

import argparse
import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass

from sketchpipe.exceptions import InputFormatError
from sketchpipe.pipeline.backend import SketchBackend
from sketchpipe.pipeline.report import Reporter, format_count
from sketchpipe.pipeline.source import read_tokens
from sketchpipe.sketching import ErrorType, FrequencyEstimate, FrequentItemsSketch

logger = logging.getLogger(__name__)

DEFAULT_K = 1024

_WEIGHT_SEPARATOR = re.compile(r"[\t, ]+")
_WEIGHT = re.compile(r"[+-]?[0-9]+")

_ITEMS_HEADER = ("Items", "Frequency")


def parse_weighted_line(line: str) -> tuple[str, int]:
    """Split ``weight<sep>item`` into ``(item, weight)``.

    The separator is the first run of tabs, commas or spaces. A line with a
    single token is the item with weight 1.

    Raises:
        ValueError: If the weight is not a positive integer.
    """
    tokens = _WEIGHT_SEPARATOR.split(line.strip(), maxsplit=1)
    if len(tokens) < 2:
        return tokens[0], 1

    weight_token, item = tokens
    if not _WEIGHT.fullmatch(weight_token):
        raise ValueError(f"Malformed weight {weight_token!r}")
    weight = int(weight_token)
    if weight <= 0:
        raise ValueError(f"Weight must be a positive integer, got {weight}")
    return item, weight


@dataclass(frozen=True, slots=True)
class FrequencyQuery:
    """Query options of the frequency pipeline.

    Every selected option runs; with none selected the frequent items and
    their estimates are reported.
    """

    max_error: bool = False
    stream_length: bool = False
    top_ids: bool = False
    top_ids_with_freq: bool = False
    ids: tuple[str, ...] | None = None
    ids_file: str | None = None

    @property
    def any_selected(self) -> bool:
        return (
            self.max_error
            or self.stream_length
            or self.top_ids
            or self.top_ids_with_freq
            or self.ids is not None
            or self.ids_file is not None
        )


class FrequencyBackend(SketchBackend):
    """Drives a FrequentItemsSketch.

    Args:
        weighted: Lines are ``weight<sep>item`` instead of bare items.
        query: The query options to answer.
    """

    name = "freq"
    aliases = ("frequency", "frequencies")
    summary = "frequent items sketch"
    default_k = DEFAULT_K
    sketch_type = FrequentItemsSketch

    def __init__(self, weighted: bool = False, query: FrequencyQuery | None = None):
        self.weighted = weighted
        self.query_options = query if query is not None else FrequencyQuery()

    @classmethod
    def add_arguments(cls, parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "-t", "--topk-ids",
            action="store_true",
            help="query just identities for most frequent items",
        )
        parser.add_argument(
            "-T", "--topk-ids-with-freq",
            action="store_true",
            help="query identities for most frequent items & frequencies",
        )
        parser.add_argument(
            "-e", "--error-offset",
            action="store_true",
            help="query maximum error offset",
        )
        parser.add_argument(
            "-n", "--stream-length",
            action="store_true",
            help="query stream length",
        )
        parser.add_argument(
            "-F", "--id2freq",
            nargs="+",
            metavar="ID",
            help="query frequencies for items with given ID",
        )
        parser.add_argument(
            "-f", "--id2freq-file",
            metavar="FILE",
            help="query frequencies for items with ids from FILE",
        )
        parser.add_argument(
            "-w", "--weights",
            action="store_true",
            help=(
                "each line is two tokens separated by a tab, comma, or spaces: "
                "an integer weight, then the item; a single token is the item "
                "with weight 1"
            ),
        )

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> FrequencyBackend:
        query = FrequencyQuery(
            max_error=args.error_offset,
            stream_length=args.stream_length,
            top_ids=args.topk_ids,
            top_ids_with_freq=args.topk_ids_with_freq,
            ids=tuple(args.id2freq) if args.id2freq is not None else None,
            ids_file=args.id2freq_file,
        )
        return cls(weighted=args.weights, query=query)

    def build(self, k: int) -> FrequentItemsSketch:
        return FrequentItemsSketch(k)

    def update(
        self,
        sketch: FrequentItemsSketch,
        lines: Iterable[tuple[int, str]],
        source: str,
    ) -> None:
        for line_number, line in lines:
            if not line:
                continue
            if not self.weighted:
                sketch.add(line)
                continue
            if not line.strip():
                continue
            try:
                item, weight = parse_weighted_line(line)
            except ValueError as e:
                raise InputFormatError(str(e), source, line_number, line) from e
            sketch.add(item, weight)

    def describe(self, sketch: FrequentItemsSketch) -> list[tuple[str, str]]:
        return [
            ("Sketch", self.summary),
            ("k", format_count(sketch.k)),
            ("Stream length", format_count(sketch.item_count)),
            ("Max error", format_count(sketch.max_error())),
            ("Tracked items", format_count(sketch.tracked_count)),
        ]

    def query(self, sketch: FrequentItemsSketch, reporter: Reporter) -> None:
        options = self.query_options
        frequent = sketch.frequent_items(ErrorType.NO_FALSE_POSITIVES)

        if options.max_error:
            reporter.scalar("Max Error Offset", format_count(sketch.max_error()))

        if options.stream_length:
            reporter.scalar("Stream Length", format_count(sketch.item_count))

        if options.top_ids:
            reporter.table(("Items",), [(row.item,) for row in frequent])

        if options.top_ids_with_freq:
            reporter.table(_ITEMS_HEADER, _frequency_rows(frequent))

        if options.ids is not None:
            reporter.table(_ITEMS_HEADER, _lookup_rows(frequent, options.ids))

        if options.ids_file is not None:
            ids = read_tokens(options.ids_file)
            reporter.table(_ITEMS_HEADER, _lookup_rows(frequent, ids))

        if not options.any_selected:
            reporter.table(_ITEMS_HEADER, _frequency_rows(frequent))


def _frequency_rows(frequent: list[FrequencyEstimate]) -> list[tuple[str, str]]:
    return [(row.item, format_count(row.count)) for row in frequent]


def _lookup_rows(
    frequent: list[FrequencyEstimate],
    ids: Iterable[str],
) -> list[tuple[str, str]]:
    # Items below the no-false-positives threshold report as zero
    estimates = {row.item: row.count for row in frequent}
    return [(item, format_count(estimates.get(item, 0))) for item in ids]
