"""
Error kinds raised by format strategies and the registry.

Parse and depth errors propagate to the caller. Reconstruction faults signal
metadata that did not come from the same strategy's parse.
"""

from __future__ import annotations


class TransleafError(Exception):
    """Base class for all transleaf errors."""


class FormatParseError(TransleafError):
    """Content is not valid for the format."""

    def __init__(
        self,
        format: str,
        message: str,
        line: int | None = None,
        column: int | None = None,
    ):
        self.format = format
        self.message = message
        self.line = line
        self.column = column
        super().__init__(str(self))

    def __str__(self) -> str:
        where = ""
        if self.line is not None:
            where = f" at line {self.line}"
            if self.column is not None:
                where += f", column {self.column}"
        return f"{self.format} parse error{where}: {self.message}"


class DepthLimitExceeded(TransleafError):
    """Nesting went past the configured ceiling."""

    def __init__(self, format: str, limit: int, path: str = ""):
        self.format = format
        self.limit = limit
        self.path = path
        location = f" under {path!r}" if path else ""
        super().__init__(f"{format} nesting exceeds depth limit of {limit}{location}")


class UnsupportedFormat(TransleafError):
    """No registered strategy handles the file."""

    def __init__(self, file_path: str):
        self.file_path = file_path
        super().__init__(f"No format strategy for {file_path}")


class ReconstructionFault(TransleafError):
    """Metadata handed to reconstruct has the wrong shape."""

    def __init__(self, format: str, message: str):
        self.format = format
        super().__init__(f"{format}: {message}")
