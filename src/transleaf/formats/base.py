"""
Base format interface and registry.

Each format strategy implements this interface to handle a specific content type:
parse content into leaves plus metadata, rebuild content from a translation
map, and run a cheap syntax check. The registry maps file extensions to
strategies, first registered wins.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

from ..config import FormatOptions
from ..errors import DepthLimitExceeded, FormatParseError, ReconstructionFault, UnsupportedFormat
from ..model import ParseResult, TranslationMap, ValidationIssue, ValidationResult

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 100

M = TypeVar("M")


class FormatStrategy(ABC):
    """Base class for content format handlers."""

    def __init__(self, options: FormatOptions | None = None, max_depth: int = DEFAULT_MAX_DEPTH):
        self.options = options or FormatOptions()
        self.max_depth = max_depth
        self.path_filter = PathFilter.from_options(self.options)

    @property
    @abstractmethod
    def name(self) -> str:
        """Format name, also the key of its [formats.<name>] config table."""
        ...

    @property
    @abstractmethod
    def extensions(self) -> list[str]:
        """File extensions this format handles (e.g., ['.yaml', '.yml'])."""
        ...

    def can_handle(self, file_path: str | Path) -> bool:
        """Extension match, case-insensitive."""
        return Path(file_path).suffix.lower() in self.extensions

    @abstractmethod
    def parse(self, content: str) -> ParseResult:
        """
        Extract translatable leaves.

        Raises FormatParseError on invalid syntax and DepthLimitExceeded on
        pathological nesting. Never returns a partial result.
        """
        ...

    @abstractmethod
    def reconstruct(self, translations: TranslationMap, metadata: Any) -> str:
        """
        Rebuild the document with translated values written back.

        Paths missing from `translations` keep their source value; paths that
        name no leaf are ignored.
        """
        ...

    @abstractmethod
    def check_syntax(self, content: str) -> None:
        """Raise FormatParseError if content is not syntactically valid."""
        ...

    def validate(self, content: str) -> ValidationResult:
        """Pre-flight syntax check, without extracting anything."""
        try:
            self.check_syntax(content)
        except FormatParseError as e:
            return ValidationResult.failed(ValidationIssue(e.message, e.line, e.column))
        return ValidationResult.ok()

    def ensure_depth(self, depth: int, path: str = "") -> None:
        if depth > self.max_depth:
            raise DepthLimitExceeded(self.name, self.max_depth, path)

    def expect_metadata(self, metadata: Any, kind: type[M]) -> M:
        if not isinstance(metadata, kind):
            raise ReconstructionFault(
                self.name,
                f"expected {kind.__name__} metadata, got {type(metadata).__name__}",
            )
        return metadata


@dataclass(frozen=True)
class PathFilter:
    """Include/exclude prefix filters evaluated before classification."""
    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()

    @classmethod
    def from_options(cls, options: FormatOptions) -> PathFilter:
        return cls(
            include=tuple(options.include_paths or ()),
            exclude=tuple(options.exclude_paths or ()),
        )

    def allows(self, path: str) -> bool:
        if any(_under(path, prefix) for prefix in self.exclude):
            return False
        if self.include:
            return any(_under(path, prefix) for prefix in self.include)
        return True


def _under(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + ".") or path.startswith(prefix + "[")


def split_padding(value: str) -> tuple[str, str, str]:
    """Split into (leading whitespace, core, trailing whitespace)."""
    core = value.strip()
    if not core:
        return value, "", ""
    start = value.index(core)
    return value[:start], core, value[start + len(core):]


def reapply_padding(original: str, translated: str) -> str:
    """Give the translation the source value's surrounding whitespace."""
    lead, core, trail = split_padding(original)
    if not core:
        return translated
    return lead + translated.strip() + trail


def option_list(value: list[str] | None, default: tuple[str, ...]) -> tuple[str, ...]:
    """Strategy default unless the option was set (an empty list counts as set)."""
    return tuple(value) if value is not None else default


class FormatRegistry:
    """Ordered registry of format strategies, first match wins."""

    def __init__(self):
        self._strategies: list[FormatStrategy] = []
        self._by_extension: dict[str, FormatStrategy] = {}
        self._by_name: dict[str, FormatStrategy] = {}

    def register(self, strategy: FormatStrategy) -> None:
        """Register a format strategy."""
        self._strategies.append(strategy)
        self._by_name.setdefault(strategy.name, strategy)
        for ext in strategy.extensions:
            # First registered wins for extension conflicts
            if ext not in self._by_extension:
                self._by_extension[ext] = strategy

    def get_by_name(self, name: str) -> FormatStrategy | None:
        """Get strategy by name (for --type override)."""
        return self._by_name.get(name)

    def get_by_extension(self, ext: str) -> FormatStrategy | None:
        """Get strategy by file extension."""
        # Normalize extension
        if not ext.startswith('.'):
            ext = '.' + ext
        return self._by_extension.get(ext.lower())

    def find(self, file_path: str | Path) -> FormatStrategy | None:
        """First registered strategy that can handle the file."""
        for strategy in self._strategies:
            if strategy.can_handle(file_path):
                return strategy
        return None

    def require(self, file_path: str | Path, force_type: str | None = None) -> FormatStrategy:
        """Like find(), but raise UnsupportedFormat when nothing matches."""
        if force_type:
            strategy = self.get_by_name(force_type) or self.get_by_extension(force_type)
        else:
            strategy = self.find(file_path)
        if strategy is None:
            raise UnsupportedFormat(str(file_path))
        logger.debug("Using %s strategy for %s", strategy.name, file_path)
        return strategy

    @property
    def strategies(self) -> list[FormatStrategy]:
        """List all registered strategies."""
        return list(self._strategies)
