"""Pipeline driver: one invocation from sources to report.

Stages, in order:
1. Build one sketch per data source and stream every line into it
2. Load one sketch per serialized source
3. Merge into a fresh sketch when more than one sketch was acquired
4. Serialize the last sketch in memory, if an output path is given
5. Report a summary of the last sketch, if requested
6. Answer the query options against the last sketch

The serialized sketch and the report are written only after every stage
succeeded.
"""

from __future__ import annotations

import argparse
import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import TextIO

from sketchpipe.exceptions import ConfigurationError, InputFormatError
from sketchpipe.pipeline.backend import SketchBackend
from sketchpipe.pipeline.report import Reporter
from sketchpipe.pipeline.source import STDIN, iter_lines, read_blob, source_name, write_blob
from sketchpipe.sketching import Sketch

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    """Invocation-wide settings.

    Attributes:
        k: Resolution used for every sketch built or merged.
        data_paths: Text sources, ``-`` meaning standard input.
        sketch_paths: Serialized sketch sources.
        output_path: Where to write the final sketch.
        summary: Report a summary of the final sketch.
    """

    k: int
    data_paths: tuple[str, ...] = ()
    sketch_paths: tuple[str, ...] = ()
    output_path: str | None = None
    summary: bool = False

    def __post_init__(self):
        if self.k <= 0:
            raise ConfigurationError(f"Resolution parameter k must be positive, got {self.k}")

    @classmethod
    def from_args(cls, args: argparse.Namespace, default_k: int) -> PipelineConfig:
        """Resolve configuration; standard input is read when no source is given."""
        data_paths = tuple(args.data or ())
        sketch_paths = tuple(args.sketches or ())
        if not data_paths and not sketch_paths:
            data_paths = (STDIN,)
        return cls(
            k=args.k if args.k is not None else default_k,
            data_paths=data_paths,
            sketch_paths=sketch_paths,
            output_path=args.output,
            summary=args.print_summary,
        )


class SketchList:
    """Append-only sketches of one invocation; the last one is queried."""

    def __init__(self):
        self._sketches: list[Sketch] = []

    def append(self, sketch: Sketch) -> None:
        self._sketches.append(sketch)

    @property
    def last(self) -> Sketch | None:
        return self._sketches[-1] if self._sketches else None

    def __len__(self) -> int:
        return len(self._sketches)

    def __iter__(self) -> Iterator[Sketch]:
        return iter(list(self._sketches))


class Pipeline:
    """Runs one invocation of a sketch backend.

    Args:
        backend: The backend selected by subcommand.
        config: Resolved invocation settings.
        reporter: Output buffer; a fresh one by default.

    Example:
        pipeline = Pipeline(FrequencyBackend(), PipelineConfig(k=256, data_paths=("items.txt",)))
        pipeline.run()
    """

    def __init__(
        self,
        backend: SketchBackend,
        config: PipelineConfig,
        reporter: Reporter | None = None,
    ):
        self.backend = backend
        self.config = config
        self.reporter = reporter if reporter is not None else Reporter()
        self.sketches = SketchList()

    def run(self, stream: TextIO | None = None) -> Sketch | None:
        """Run every stage and write the report.

        Returns:
            The queried sketch, or None when no sketch was acquired.

        Raises:
            SketchPipeError: On any input or configuration error; neither the
                output path nor stream is written in that case.
        """
        self.acquire()
        self.merge()
        blob = self.serialize_output()
        self.summarize()
        self.query()
        if blob is not None:
            write_blob(self.config.output_path, blob)
        self.reporter.flush(stream)
        return self.sketches.last

    def acquire(self) -> None:
        for path in self.config.data_paths:
            self.sketches.append(self.build_from_source(path))
        for path in self.config.sketch_paths:
            self.sketches.append(self.load_serialized(path))

    def build_from_source(self, path: str) -> Sketch:
        """Build a fresh sketch and stream every line of path into it."""
        name = source_name(path)
        sketch = self.backend.build(self.config.k)
        try:
            self.backend.update(sketch, iter_lines(path), name)
        except InputFormatError as e:
            logger.error("Read error: item %r, source %s line %s", e.line, e.source, e.line_number)
            raise
        logger.debug("Built %r from %s", sketch, name)
        return sketch

    def load_serialized(self, path: str) -> Sketch:
        sketch = self.backend.deserialize(read_blob(path), path)
        logger.debug("Loaded %r from %s", sketch, path)
        return sketch

    def merge(self) -> None:
        """Append the union of all acquired sketches when there is more than one."""
        if len(self.sketches) <= 1:
            return
        merged = self.backend.merge(self.sketches, self.config.k)
        logger.info("Merged %d sketches with k=%d", len(self.sketches), self.config.k)
        self.sketches.append(merged)

    def serialize_output(self) -> bytes | None:
        """Serialized last sketch when an output path is configured, else None."""
        if self.config.output_path is None or self.sketches.last is None:
            return None
        return self.backend.serialize(self.sketches.last)

    def summarize(self) -> None:
        if not self.config.summary or self.sketches.last is None:
            return
        self.reporter.table(("Property", "Value"), self.backend.describe(self.sketches.last))

    def query(self) -> None:
        if self.sketches.last is None:
            return
        self.backend.query(self.sketches.last, self.reporter)
