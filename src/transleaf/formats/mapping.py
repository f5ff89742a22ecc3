"""
Shared key/value tree walk for object-notation and nested-mapping formats.

Parse walks the loaded documents depth-first and records, for every leaf
path, its location: (document index, key or index, ...). Reconstruct
deep-copies the loaded documents, writes translations at those locations and
hands the copies back to the format serializer.

Paths join keys with '.', array elements use `name[index]`, and keys that
would make a path ambiguous ('.', '[', ']', '"' or empty) are written as
`["key"]`. With several documents each path starts with `doc{N}.`.
"""

from __future__ import annotations

import copy
import re
from abc import abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from typing import Any

from ..classifier import DEFAULT_CLASSIFIER, LeafClassifier, Rule, normalize_key, rule
from ..config import FormatOptions
from ..model import LeafKind, TranslatableLeaf, TranslationMap, add_leaf, apply_translations
from .base import DEFAULT_MAX_DEPTH, FormatStrategy, option_list

Location = tuple[Any, ...]

_AMBIGUOUS_KEY = re.compile(r'[.\[\]"]')


def join_key(parent: str, key: str) -> str:
    """Append a mapping key to a path."""
    if key == "" or _AMBIGUOUS_KEY.search(key):
        escaped = key.replace("\\", "\\\\").replace('"', '\\"')
        return f'{parent}["{escaped}"]'
    return f"{parent}.{key}" if parent else key


def join_index(parent: str, index: int) -> str:
    return f"{parent}[{index}]"


@dataclass
class TreeMetadata:
    """Loaded documents plus where each leaf sits in them."""
    source: str
    documents: list[Any]
    locations: dict[str, Location] = field(default_factory=dict)


class ObjectTreeStrategy(FormatStrategy):
    """Walks dict/list trees produced by a format's loader."""

    classifier: LeafClassifier = DEFAULT_CLASSIFIER
    default_skip_keys: tuple[str, ...] = ()

    def __init__(self, options: FormatOptions | None = None, max_depth: int = DEFAULT_MAX_DEPTH):
        super().__init__(options, max_depth)
        keys = option_list(self.options.skip_keys, self.default_skip_keys)
        self.skip_keys = frozenset(normalize_key(k) for k in keys)

    def collect(
        self, documents: list[Any]
    ) -> tuple[dict[str, TranslatableLeaf], dict[str, Location]]:
        """Walk every document; return leaves and their locations."""
        leaves: dict[str, TranslatableLeaf] = {}
        locations: dict[str, Location] = {}
        prefixed = len(documents) > 1
        for n, document in enumerate(documents):
            prefix = f"doc{n}" if prefixed else ""
            if isinstance(document, (dict, list)):
                self._walk(document, prefix, (n,), 1, None, leaves, locations)
        return leaves, locations

    def _walk(
        self,
        node: dict | list,
        path: str,
        location: Location,
        depth: int,
        context_key: str | None,
        leaves: dict[str, TranslatableLeaf],
        locations: dict[str, Location],
    ) -> None:
        self.ensure_depth(depth, path)
        if isinstance(node, dict):
            siblings = tuple(str(k) for k in node)
            for key, value in node.items():
                child = join_key(path, str(key))
                self._visit(value, child, location + (key,), depth, str(key), siblings, None,
                            leaves, locations)
        else:
            for index, value in enumerate(node):
                child = join_index(path, index)
                self._visit(value, child, location + (index,), depth, context_key, (), index,
                            leaves, locations)

    def _visit(
        self,
        value: Any,
        path: str,
        location: Location,
        depth: int,
        context_key: str | None,
        siblings: tuple[str, ...],
        index: int | None,
        leaves: dict[str, TranslatableLeaf],
        locations: dict[str, Location],
    ) -> None:
        if isinstance(value, (dict, list)):
            # excluded subtrees are still walked so the depth guard sees them
            self._walk(value, path, location, depth + 1, context_key, leaves, locations)
            return
        if not isinstance(value, str) or not self.accepts(path, value, context_key):
            return
        add_leaf(leaves, TranslatableLeaf(
            path=path,
            value=value,
            kind=LeafKind.TEXT,
            context_key=context_key,
            depth=depth,
            sibling_keys=siblings,
            array_index=index,
        ))
        locations[path] = location

    def accepts(self, path: str, value: str, context_key: str | None) -> bool:
        if context_key is not None and normalize_key(context_key) in self.skip_keys:
            return False
        if not self.path_filter.allows(path):
            return False
        if not value.strip():
            # blank values are only offered when asked for, e.g. to fill gaps
            return not self.options.skip_empty_strings
        return self.classifier.is_translatable(value, context_key)

    def patched_documents(self, translations: TranslationMap, metadata: TreeMetadata) -> list[Any] | None:
        """Copies of the documents with translations written in, None if nothing applies."""
        updates = apply_translations(translations, metadata.locations)
        if not updates:
            return None
        documents = copy.deepcopy(metadata.documents)
        for path, text in updates.items():
            location = metadata.locations[path]
            container = documents[location[0]]
            for step in location[1:-1]:
                container = container[step]
            container[location[-1]] = text
        return documents


# Nested-mapping notations: comments and CI/CD awareness

SHELL_LINE = r"(?:npm|npx|yarn|pnpm|bun|docker|kubectl|git|python3?|pip|node|bash|sh|make|cd|echo|export)\b"

MAPPING_REJECT_RULES: tuple[Rule, ...] = (
    rule("template_expression", r"\$\{\{.*?\}\}|\{\{.*?\}\}", fullmatch=False),
    rule("shell_line", r"(?m)^\s*" + SHELL_LINE + r"\s+\S", fullmatch=False),
    rule("image_reference", r"[\w.-]+(?:/[\w.-]+)*:[\w.-]+(?:@sha256:[0-9a-f]+)?"),
    rule("kebab_identifier", r"[a-z0-9]+(?:-[a-z0-9]+)+"),
)

CI_KEYS = (
    "on", "uses", "with", "run", "if", "needs", "strategy", "matrix", "runs-on",
    "steps", "env", "services", "image", "script", "stage", "stages", "shell",
    "working-directory", "container", "cache", "artifacts", "only", "except",
)

MAPPING_CLASSIFIER = DEFAULT_CLASSIFIER.extend(rules=MAPPING_REJECT_RULES, technical_keys=CI_KEYS)


@dataclass(frozen=True)
class Comment:
    """A comment and the key it belongs to."""
    line: int  # 1-based line in the source
    text: str
    anchor: str | None  # key of the owning line, or its code when it has no key
    inline: bool


@dataclass
class MappingMetadata(TreeMetadata):
    comments: list[Comment] = field(default_factory=list)
    indent: int = 2


class NestedMappingStrategy(ObjectTreeStrategy):
    """Object-tree walk plus comment capture and re-attachment."""

    classifier = MAPPING_CLASSIFIER
    comment_marker = "#"

    @abstractmethod
    def key_of_line(self, line: str) -> str | None:
        """Key a serialized line defines, if any."""
        ...

    def multiline_rows(self, lines: list[str]) -> set[int]:
        """0-based rows inside multi-line scalars, where '#' is content."""
        return set()

    def scan_comments(self, content: str) -> list[Comment]:
        lines = content.splitlines()
        skip = self.multiline_rows(lines)
        comments: list[Comment] = []
        pending: list[Comment] = []
        for row, line in enumerate(lines):
            if row in skip:
                continue
            stripped = line.strip()
            if stripped.startswith(self.comment_marker):
                pending.append(Comment(row + 1, stripped, None, False))
                continue
            key = self.key_of_line(line)
            start = find_inline_comment(line, self.comment_marker)
            if start is not None:
                anchor = key if key is not None else line[:start].strip()
                comments.append(Comment(row + 1, line[start:].rstrip(), anchor, True))
            if key is not None and pending:
                comments.extend(replace(c, anchor=key) for c in pending)
                pending = []
        comments.extend(pending)
        comments.sort(key=lambda c: c.line)
        return comments

    def restore_comments(self, text: str, comments: Iterable[Comment]) -> str:
        """
        Re-attach comments to a serialized document, best effort.

        Inline comments go back on the first line defining their key at or
        after the current position; full-line comments are inserted above the
        key they preceded. Anything that cannot be placed goes to the end.
        """
        out = text.split("\n")
        orphans: list[str] = []
        cursor = 0
        for comment in comments:
            row = self._find_anchor(out, comment, cursor)
            if row is None:
                orphans.append(comment.text)
                continue
            if comment.inline:
                out[row] = f"{out[row].rstrip()}  {comment.text}"
                cursor = row
            else:
                indent = out[row][: len(out[row]) - len(out[row].lstrip())]
                out.insert(row, indent + comment.text)
                cursor = row + 1
        if orphans:
            at = len(out) - 1 if out and out[-1] == "" else len(out)
            out[at:at] = orphans
        return "\n".join(out)

    def _find_anchor(self, out: list[str], comment: Comment, cursor: int) -> int | None:
        if comment.anchor is None:
            return None
        for row in (*range(cursor, len(out)), *range(0, cursor)):
            line = out[row]
            if comment.inline and find_inline_comment(line, self.comment_marker) is not None:
                continue
            if self.key_of_line(line) == comment.anchor or line.strip() == comment.anchor:
                return row
        return None


def find_inline_comment(line: str, marker: str = "#") -> int | None:
    """Index of a trailing comment outside quotes, None for none or full-line."""
    quote: str | None = None
    escaped = False
    for i, ch in enumerate(line):
        if quote:
            if escaped:
                escaped = False
            elif ch == "\\" and quote == '"':
                escaped = True
            elif ch == quote:
                quote = None
        elif ch in "\"'":
            # an apostrophe inside a plain word does not open a quote
            if i == 0 or not line[i - 1].isalnum():
                quote = ch
        elif line.startswith(marker, i) and i > 0 and line[i - 1] in " \t":
            return i if line[:i].strip() else None
    return None


def sniff_indent(content: str, default: int = 2) -> int:
    """Smallest positive indentation used by a content line."""
    widths = [
        len(line) - len(line.lstrip(" "))
        for line in content.splitlines()
        if line.strip() and not line.lstrip().startswith("#") and line.startswith(" ")
    ]
    return min(widths) if widths else default
