"""
Shared walk for tag-attribute markup (HTML, XML).

A markup strategy only has to enumerate slots: text nodes and allow-listed
attributes, in document order, skipping whole subtrees under skip tags.
Parse and reconstruct both run the same slot generator over a freshly parsed
tree, so the counter-based paths line up exactly in both directions.

Paths are the ancestor tag chain plus `text_{n}` or `@{attr}_{n}`, where n
advances for every slot whether or not it ends up translated.
"""

from __future__ import annotations

import re
from abc import abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

from ..classifier import PROSE_CLASSIFIER, LeafClassifier, rule
from ..config import FormatOptions
from ..model import LeafKind, TranslatableLeaf, TranslationMap, add_leaf
from .base import DEFAULT_MAX_DEPTH, FormatStrategy, option_list, reapply_padding, split_padding

HEADINGS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6"})
HEADING_VERSION = re.compile(r"^v?\d+(?:\.\d+)+\b")

MARKUP_REJECT_RULES = (
    rule("code_like", r"^[{}\[\]()<>]", fullmatch=False),
    rule("short_symbol", r"[$@#]\S{0,8}"),
)


@dataclass(frozen=True)
class Slot:
    """One candidate position in a markup tree."""
    path: str
    kind: LeafKind
    node: Any
    attribute: str | None = None  # None for text content
    tail: bool = False  # XML text that follows `node` rather than sitting inside it
    context: str | None = None
    depth: int = 0


def slot_path(chain: str, name: str) -> str:
    return f"{chain}.{name}" if chain else name


class MarkupStrategy(FormatStrategy):
    """Slot-based extraction and write-back."""

    classifier: LeafClassifier = PROSE_CLASSIFIER.extend(MARKUP_REJECT_RULES)
    default_attributes: tuple[str, ...] = ()
    default_skip_tags: tuple[str, ...] = ()

    def __init__(self, options: FormatOptions | None = None, max_depth: int = DEFAULT_MAX_DEPTH):
        super().__init__(options, max_depth)
        self.attributes = option_list(self.options.translatable_attributes, self.default_attributes)
        self.skip_tags = frozenset(
            t.lower() for t in option_list(self.options.skip_tags, self.default_skip_tags)
        )

    @abstractmethod
    def iter_slots(self, root: Any) -> Iterator[Slot]:
        """Every candidate slot in document order."""
        ...

    @abstractmethod
    def read_slot(self, slot: Slot) -> str:
        ...

    @abstractmethod
    def write_slot(self, slot: Slot, value: str) -> None:
        ...

    def collect(self, root: Any) -> dict[str, TranslatableLeaf]:
        leaves: dict[str, TranslatableLeaf] = {}
        for slot in self.iter_slots(root):
            lead, core, trail = split_padding(self.read_slot(slot))
            if not self.path_filter.allows(slot.path) or not self.accepts(core, slot):
                continue
            add_leaf(leaves, TranslatableLeaf(
                path=slot.path,
                value=core,
                kind=slot.kind,
                context_key=slot.context,
                depth=slot.depth,
            ))
        return leaves

    def accepts(self, text: str, slot: Slot) -> bool:
        if slot.context in HEADINGS and HEADING_VERSION.match(text):
            return False
        return self.classifier.is_translatable(text, slot.context)

    def write_back(self, root: Any, translations: TranslationMap, known: dict[str, Any]) -> bool:
        """Re-walk `root`, writing translations in place. True if anything changed."""
        changed = False
        for slot in self.iter_slots(root):
            if slot.path in translations and slot.path in known:
                original = self.read_slot(slot)
                self.write_slot(slot, reapply_padding(original, translations[slot.path]))
                changed = True
        return changed
