"""The generic sketch-processing pipeline and its backends."""

from sketchpipe.pipeline.backend import SketchBackend
from sketchpipe.pipeline.driver import Pipeline, PipelineConfig, SketchList
from sketchpipe.pipeline.frequency import FrequencyBackend, FrequencyQuery
from sketchpipe.pipeline.quantiles import Histogram, QuantilesBackend, QuantilesQuery
from sketchpipe.pipeline.report import Reporter
from sketchpipe.pipeline.splits import linear_splits, log_splits

BACKENDS: tuple[type[SketchBackend], ...] = (FrequencyBackend, QuantilesBackend)


def get_backend(name: str) -> type[SketchBackend]:
    """Look up a backend class by subcommand name or alias.

    Raises:
        KeyError: If no backend answers to name.
    """
    for backend in BACKENDS:
        if name == backend.name or name in backend.aliases:
            return backend
    raise KeyError(f"Unknown sketch type {name!r}")


__all__ = [
    "BACKENDS",
    "FrequencyBackend",
    "FrequencyQuery",
    "Histogram",
    "Pipeline",
    "PipelineConfig",
    "QuantilesBackend",
    "QuantilesQuery",
    "Reporter",
    "SketchBackend",
    "SketchList",
    "get_backend",
    "linear_splits",
    "log_splits",
]
