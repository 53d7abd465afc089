"""The lifecycle contract shared by every sketch kind.

A backend owns all sketch-specific logic of one invocation: building,
updating from text lines, merging, serialization and queries. The driver
only ever talks to this interface.
"""

from __future__ import annotations

import argparse
from abc import ABC, abstractmethod
from collections.abc import Iterable

from sketchpipe.exceptions import InputFormatError
from sketchpipe.pipeline.report import Reporter
from sketchpipe.sketching import Sketch


class SketchBackend(ABC):
    """Build/update/merge/serialize/deserialize/query for one sketch kind.

    Subclasses declare their subcommand name, their default resolution and
    the sketch class they drive, and are instantiated once per invocation
    from the parsed command line.
    """

    name: str
    aliases: tuple[str, ...] = ()
    summary: str = ""
    default_k: int
    sketch_type: type[Sketch]

    @classmethod
    @abstractmethod
    def add_arguments(cls, parser: argparse.ArgumentParser) -> None:
        """Declare the backend-specific command line options."""

    @classmethod
    @abstractmethod
    def from_args(cls, args: argparse.Namespace) -> SketchBackend:
        """Create the backend for one invocation from parsed options."""

    @abstractmethod
    def build(self, k: int) -> Sketch:
        """Create a fresh, empty sketch with resolution k."""

    @abstractmethod
    def update(self, sketch: Sketch, lines: Iterable[tuple[int, str]], source: str) -> None:
        """Fold every line of one data source into sketch.

        Raises:
            InputFormatError: On the first line that cannot be parsed.
        """

    @abstractmethod
    def query(self, sketch: Sketch, reporter: Reporter) -> None:
        """Answer the selected query options against sketch."""

    @abstractmethod
    def describe(self, sketch: Sketch) -> list[tuple[str, str]]:
        """Property/value rows summarizing sketch."""

    def merge(self, sketches: Iterable[Sketch], k: int) -> Sketch:
        """Fold every sketch, in order, into a fresh sketch of resolution k."""
        union = self.build(k)
        for sketch in sketches:
            union.merge(sketch)
        return union

    def serialize(self, sketch: Sketch) -> bytes:
        return sketch.serialize()

    def deserialize(self, data: bytes, source: str) -> Sketch:
        """Rebuild a sketch from a serialized buffer read from source.

        Raises:
            InputFormatError: If the buffer is not a sketch of this kind.
        """
        try:
            return self.sketch_type.deserialize(data)
        except ValueError as e:
            raise InputFormatError(f"Invalid serialized sketch: {e}", source) from e
