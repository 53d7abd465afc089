"""sketchpipe: build, merge and query streaming sketches from text streams.

Two pipelines share one driver:
- freq: frequent items and their estimated counts
- quant: rank/value conversion and linear or log histograms

Example:
    from sketchpipe import FrequencyBackend, Pipeline, PipelineConfig

    config = PipelineConfig(k=256, data_paths=("items.txt",))
    Pipeline(FrequencyBackend(), config).run()
"""

import logging

from sketchpipe.exceptions import ConfigurationError, InputFormatError, SketchPipeError
from sketchpipe.logging_config import (
    configure_from_env,
    disable_logging,
    enable_console_logging,
    enable_file_logging,
    enable_json_logging,
    set_level,
)
from sketchpipe.pipeline import (
    FrequencyBackend,
    Pipeline,
    PipelineConfig,
    QuantilesBackend,
    linear_splits,
    log_splits,
)

logging.getLogger("sketchpipe").addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "FrequencyBackend",
    "InputFormatError",
    "Pipeline",
    "PipelineConfig",
    "QuantilesBackend",
    "SketchPipeError",
    "configure_from_env",
    "disable_logging",
    "enable_console_logging",
    "enable_file_logging",
    "enable_json_logging",
    "linear_splits",
    "log_splits",
    "set_level",
]
