"""
transleaf - translate structured documents leaf by leaf.

Each format strategy finds the string values that carry human-readable text,
names them with a stable path, and writes translated values back without
touching the rest of the document.
"""

from .errors import (
    DepthLimitExceeded,
    FormatParseError,
    ReconstructionFault,
    TransleafError,
    UnsupportedFormat,
)
from .model import LeafKind, ParseResult, TranslatableLeaf, ValidationIssue, ValidationResult

__version__ = "0.1.0"

__all__ = [
    "DepthLimitExceeded",
    "FormatParseError",
    "LeafKind",
    "ParseResult",
    "ReconstructionFault",
    "TranslatableLeaf",
    "TransleafError",
    "UnsupportedFormat",
    "ValidationIssue",
    "ValidationResult",
]
