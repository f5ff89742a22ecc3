"""
Data model shared by every format strategy.

A parse produces an ordered map of TranslatableLeaf values keyed by path,
plus strategy-private metadata. Translations come back as a plain
path -> text mapping and are applied by the strategy that produced the leaves.

Key invariant: a path names exactly one leaf within one parse.
"""

from __future__ import annotations

from collections.abc import Container, Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

# path -> translated text; missing paths stay untouched, unknown paths are ignored
TranslationMap = Mapping[str, str]


class LeafKind(str, Enum):
    """Where a leaf lives in its document."""
    TEXT = "text"
    ATTRIBUTE = "attribute"
    META = "meta"
    FRONTMATTER = "frontmatter"


@dataclass(frozen=True)
class TranslatableLeaf:
    """A string value selected for translation."""
    path: str
    value: str
    kind: LeafKind = LeafKind.TEXT
    context_key: str | None = None  # enclosing key, header, tag or attribute name
    depth: int = 0
    sibling_keys: tuple[str, ...] = ()
    array_index: int | None = None


@dataclass
class ParseResult:
    """Leaves in document order plus whatever the strategy needs to rebuild."""
    leaves: dict[str, TranslatableLeaf]
    metadata: Any

    @property
    def paths(self) -> list[str]:
        return list(self.leaves)

    def values(self) -> dict[str, str]:
        """Path -> source text, the shape a translator batch starts from."""
        return {path: leaf.value for path, leaf in self.leaves.items()}

    def __iter__(self) -> Iterator[TranslatableLeaf]:
        return iter(self.leaves.values())

    def __len__(self) -> int:
        return len(self.leaves)

    def __contains__(self, path: object) -> bool:
        return path in self.leaves


@dataclass(frozen=True)
class ValidationIssue:
    message: str
    line: int | None = None
    column: int | None = None

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        if self.column is None:
            return f"line {self.line}: {self.message}"
        return f"line {self.line}, column {self.column}: {self.message}"


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    errors: tuple[ValidationIssue, ...] = ()

    @classmethod
    def ok(cls) -> ValidationResult:
        return cls(valid=True)

    @classmethod
    def failed(cls, *issues: ValidationIssue) -> ValidationResult:
        return cls(valid=False, errors=tuple(issues))


def add_leaf(leaves: dict[str, TranslatableLeaf], leaf: TranslatableLeaf) -> TranslatableLeaf:
    """Insert a leaf, refusing to reuse a path."""
    if leaf.path in leaves:
        raise ValueError(f"Duplicate leaf path: {leaf.path!r}")
    leaves[leaf.path] = leaf
    return leaf


def apply_translations(
    translations: TranslationMap, known_paths: Container[str]
) -> dict[str, str]:
    """Keep only translations that target a known path."""
    return {path: text for path, text in translations.items() if path in known_paths}
