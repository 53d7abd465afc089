"""Custom exceptions for sketchpipe.

Exception hierarchy:

ValueError
 └── SketchPipeError
     ├── ConfigurationError
     └── InputFormatError
"""


class SketchPipeError(ValueError):
    """Base class for every fatal error of a pipeline invocation."""


class ConfigurationError(SketchPipeError):
    """
    Raised when the invocation is configured in a way that cannot run.

    Covers invalid resolution parameters and bucket counts, ranks outside
    [0, 1], unreadable paths, and log histograms over negative values.
    """


class InputFormatError(SketchPipeError):
    """
    Raised when an input line or serialized sketch cannot be parsed.

    Args:
        message: Detailed error message
        source: Name of the file (or ``<stdin>``) the input came from
        line_number: Optional 1-based line number of the offending line
        line: Optional content of the offending line
    """

    def __init__(
        self,
        message: str,
        source: str,
        line_number: int | None = None,
        line: str | None = None,
    ):
        self.message = message
        self.source = source
        self.line_number = line_number
        self.line = line
        super().__init__(message)

    def __str__(self):
        location = self.source
        if self.line_number is not None:
            location = f"{location}:{self.line_number}"
        parts = [f"{location}: {self.message}"]
        if self.line is not None:
            parts.append(f"(line: {self.line!r})")
        return " ".join(parts)
