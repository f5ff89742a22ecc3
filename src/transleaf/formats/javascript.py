"""
JavaScript / TypeScript format strategies.

Source is parsed with tree-sitter and three kinds of leaves are pulled out:

- string values of translation-resource object literals (objects where at
  least 70% of the properties hold strings or nested objects), addressed as
  `{owner}.{key}` with the owner taken from the declaration;
- the first string argument of translation calls, `call.{fn}.{n}`;
- JSX text and allow-listed JSX attributes, `jsx.text.{n}` / `jsx.@{attr}.{n}`.

Reconstruction splices the new text into the source at the recorded byte
ranges, so comments, formatting and everything else stay as written.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

import tree_sitter_javascript
import tree_sitter_typescript
from tree_sitter import Language, Node, Parser

from ..classifier import DEFAULT_CLASSIFIER, PROSE_CLASSIFIER
from ..errors import FormatParseError
from ..model import LeafKind, ParseResult, TranslatableLeaf, TranslationMap, add_leaf, apply_translations
from .base import FormatStrategy, option_list, split_padding
from .mapping import join_index, join_key

logger = logging.getLogger(__name__)

JAVASCRIPT = Language(tree_sitter_javascript.language())
TYPESCRIPT = Language(tree_sitter_typescript.language_typescript())
TSX = Language(tree_sitter_typescript.language_tsx())

TRANSLATION_FUNCTIONS = ("t", "i18n.t", "translate", "__", "_t", "$t")
JSX_ATTRIBUTES = ("title", "alt", "placeholder", "label", "aria-label", "description")

RESOURCE_RATIO = 0.7

# wrappers between an object literal and the declaration that names it
TRANSPARENT_PARENTS = frozenset({
    "as_expression", "satisfies_expression", "parenthesized_expression", "type_assertion",
})

JS_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "v": "\v", "0": "\0"}
_ESCAPE = re.compile(r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|\r\n|[\s\S])")


@dataclass(frozen=True)
class Span:
    """Byte range of a leaf's text and how to escape replacements for it."""
    start: int
    end: int
    style: str  # string | template | jsx_text | jsx_attribute
    quote: str = ""


@dataclass
class ScriptMetadata:
    source: str
    spans: dict[str, Span] = field(default_factory=dict)


@dataclass
class _Walk:
    """Per-parse bookkeeping."""
    source: bytes
    leaves: dict[str, TranslatableLeaf] = field(default_factory=dict)
    spans: dict[str, Span] = field(default_factory=dict)
    consumed: set[tuple[int, int]] = field(default_factory=set)
    owners: Counter = field(default_factory=Counter)
    calls: Counter = field(default_factory=Counter)
    attributes: Counter = field(default_factory=Counter)
    anonymous: int = 0
    jsx_texts: int = 0

    def text(self, node: Node) -> str:
        return self.source[node.start_byte:node.end_byte].decode("utf-8")


class JavaScriptStrategy(FormatStrategy):
    """JavaScript and JSX leaf extraction and write-back."""

    language = JAVASCRIPT

    @property
    def name(self) -> str:
        return "javascript"

    @property
    def extensions(self) -> list[str]:
        return [".js", ".jsx", ".mjs", ".cjs"]

    @property
    def functions(self) -> frozenset[str]:
        return frozenset(option_list(self.options.translation_functions, TRANSLATION_FUNCTIONS))

    @property
    def jsx_attributes(self) -> frozenset[str]:
        return frozenset(option_list(self.options.translatable_attributes, JSX_ATTRIBUTES))

    def parse(self, content: str) -> ParseResult:
        source = content.encode("utf-8")
        root = self._tree(source)
        walk = _Walk(source)
        mode = self.options.extract_mode
        functions, jsx_attributes = self.functions, self.jsx_attributes

        stack: list[tuple[Node, int]] = [(root, 0)]
        while stack:
            node, depth = stack.pop()
            kind = node.type
            if kind in ("object", "jsx_element", "jsx_self_closing_element"):
                depth += 1
                self.ensure_depth(depth, kind)
            if kind == "object" and mode in ("objects", "both"):
                key = (node.start_byte, node.end_byte)
                if key not in walk.consumed and is_resource_object(node):
                    self._resource(node, self._owner(node, walk), depth, walk)
            elif kind == "call_expression" and mode in ("functions", "both"):
                self._call(node, functions, depth, walk)
            elif kind == "jsx_text":
                self._jsx_text(node, depth, walk)
            elif kind == "jsx_attribute":
                self._jsx_attribute(node, jsx_attributes, depth, walk)
            stack.extend((child, depth) for child in reversed(node.children))

        logger.debug("%s: %d leaves", self.name, len(walk.leaves))
        return ParseResult(walk.leaves, ScriptMetadata(source=content, spans=walk.spans))

    def reconstruct(self, translations: TranslationMap, metadata: Any) -> str:
        meta = self.expect_metadata(metadata, ScriptMetadata)
        updates = apply_translations(translations, meta.spans)
        if not updates:
            return meta.source
        data = bytearray(meta.source.encode("utf-8"))
        for path in sorted(updates, key=lambda p: meta.spans[p].start, reverse=True):
            span = meta.spans[path]
            data[span.start:span.end] = escape_for(span, updates[path]).encode("utf-8")
        return data.decode("utf-8")

    def check_syntax(self, content: str) -> None:
        self._tree(content.encode("utf-8"))

    def _tree(self, source: bytes) -> Node:
        tree = Parser(self.language).parse(source)
        root = tree.root_node
        if root.has_error:
            bad = first_error(root)
            if bad is None:
                raise FormatParseError(self.name, "Syntax error")
            line, column = bad.start_point
            if bad.is_missing:
                message = f"Missing {bad.type!r}"
            else:
                snippet = source[bad.start_byte:bad.end_byte].decode("utf-8", "replace")
                message = f"Unexpected syntax near {snippet[:40]!r}"
            raise FormatParseError(self.name, message, line + 1, column + 1)
        return root

    # (a) translation-resource objects

    def _owner(self, node: Node, walk: _Walk) -> str:
        parent = node.parent
        while parent is not None and parent.type in TRANSPARENT_PARENTS:
            parent = parent.parent
        owner = None
        if parent is not None:
            if parent.type == "variable_declarator":
                owner = walk.text(parent.child_by_field_name("name"))
            elif parent.type == "export_statement":
                owner = "default"
            elif parent.type == "assignment_expression":
                owner = walk.text(parent.child_by_field_name("left"))
        if owner is None:
            owner = f"object_{walk.anonymous}"
            walk.anonymous += 1
        seen = walk.owners[owner]
        walk.owners[owner] += 1
        return owner if seen == 0 else f"{owner}_{seen}"

    def _resource(self, node: Node, path: str, depth: int, walk: _Walk) -> None:
        walk.consumed.add((node.start_byte, node.end_byte))
        for pair in node.named_children:
            if pair.type != "pair":
                continue
            key = property_key(pair.child_by_field_name("key"), walk)
            value = pair.child_by_field_name("value")
            if key is None or value is None:
                continue
            self._resource_value(value, join_key(path, key), key, depth, walk)

    def _resource_value(self, value: Node, path: str, key: str, depth: int, walk: _Walk) -> None:
        if value.type == "object":
            self.ensure_depth(depth + 1, path)
            self._resource(value, path, depth + 1, walk)
        elif value.type == "array":
            strings = [c for c in value.named_children if literal_text(c, walk) is not None]
            for index, item in enumerate(strings):
                self._literal_leaf(item, join_index(path, index), key, depth, walk, DEFAULT_CLASSIFIER)
        else:
            self._literal_leaf(value, path, key, depth, walk, DEFAULT_CLASSIFIER)

    # (b) translation function calls

    def _call(self, node: Node, functions: frozenset[str], depth: int, walk: _Walk) -> None:
        function = node.child_by_field_name("function")
        arguments = node.child_by_field_name("arguments")
        if function is None or arguments is None:
            return
        name = walk.text(function)
        if name not in functions:
            return
        n = walk.calls[name]
        walk.calls[name] += 1
        args = [a for a in arguments.named_children if a.type != "comment"]
        if args:
            self._literal_leaf(args[0], f"call.{name}.{n}", name, depth, walk, PROSE_CLASSIFIER)

    # (c) JSX

    def _jsx_text(self, node: Node, depth: int, walk: _Walk) -> None:
        raw = walk.text(node)
        lead, core, trail = split_padding(raw)
        if not core:
            return
        path = f"jsx.text.{walk.jsx_texts}"
        walk.jsx_texts += 1
        if not self.path_filter.allows(path) or not PROSE_CLASSIFIER.is_translatable(core):
            return
        start = node.start_byte + len(lead.encode("utf-8"))
        end = node.end_byte - len(trail.encode("utf-8"))
        self._add(walk, path, core, Span(start, end, "jsx_text"), None, LeafKind.TEXT, depth)

    def _jsx_attribute(self, node: Node, allowed: frozenset[str], depth: int, walk: _Walk) -> None:
        children = node.named_children
        if len(children) < 2:
            return
        name = walk.text(children[0])
        if name not in allowed:
            return
        value = children[-1]
        n = walk.attributes[name]
        walk.attributes[name] += 1
        path = f"jsx.@{name}.{n}"
        if value.type == "jsx_expression":
            inner = [c for c in value.named_children if c.type != "comment"]
            if len(inner) == 1:
                self._literal_leaf(inner[0], path, name, depth, walk, PROSE_CLASSIFIER,
                                   kind=LeafKind.ATTRIBUTE)
            return
        if value.type not in ("string", "jsx_string"):
            return
        raw = walk.text(value)
        text = raw[1:-1]
        if not self.path_filter.allows(path) or not PROSE_CLASSIFIER.is_translatable(text, name):
            return
        span = Span(value.start_byte + 1, value.end_byte - 1, "jsx_attribute", raw[0])
        self._add(walk, path, text, span, name, LeafKind.ATTRIBUTE, depth)

    def _literal_leaf(
        self,
        node: Node,
        path: str,
        context: str | None,
        depth: int,
        walk: _Walk,
        classifier,
        kind: LeafKind = LeafKind.TEXT,
    ) -> None:
        text = literal_text(node, walk)
        if text is None or not self.path_filter.allows(path):
            return
        if not classifier.is_translatable(text, context):
            return
        style = "template" if node.type == "template_string" else "string"
        span = Span(node.start_byte + 1, node.end_byte - 1, style, walk.text(node)[0])
        self._add(walk, path, text, span, context, kind, depth)

    def _add(
        self, walk: _Walk, path: str, value: str, span: Span, context: str | None,
        kind: LeafKind, depth: int,
    ) -> None:
        add_leaf(walk.leaves, TranslatableLeaf(path=path, value=value, kind=kind,
                                               context_key=context, depth=depth))
        walk.spans[path] = span


class TypeScriptStrategy(JavaScriptStrategy):
    """TypeScript without JSX."""

    language = TYPESCRIPT

    @property
    def name(self) -> str:
        return "typescript"

    @property
    def extensions(self) -> list[str]:
        return [".ts", ".mts", ".cts"]


class TSXStrategy(JavaScriptStrategy):
    """TypeScript with JSX."""

    language = TSX

    @property
    def name(self) -> str:
        return "tsx"

    @property
    def extensions(self) -> list[str]:
        return [".tsx"]


def is_resource_object(node: Node) -> bool:
    """At least 70% of the members hold strings or nested objects."""
    members = [m for m in node.named_children if m.type != "comment"]
    if not members:
        return False
    textual = 0
    for member in members:
        if member.type != "pair":
            continue
        value = member.child_by_field_name("value")
        if value is None:
            continue
        if value.type in ("string", "object") or (
            value.type == "template_string" and not has_substitution(value)
        ):
            textual += 1
    return textual / len(members) >= RESOURCE_RATIO


def property_key(node: Node | None, walk: _Walk) -> str | None:
    if node is None:
        return None
    if node.type in ("property_identifier", "number", "private_property_identifier"):
        return walk.text(node)
    if node.type == "string":
        return unescape_js(walk.text(node)[1:-1])
    return None  # computed keys have no stable name


def has_substitution(node: Node) -> bool:
    return any(c.type == "template_substitution" for c in node.children)


def literal_text(node: Node, walk: _Walk) -> str | None:
    """Decoded value of a plain string or substitution-free template literal."""
    if node.type == "string":
        return unescape_js(walk.text(node)[1:-1])
    if node.type == "template_string" and not has_substitution(node):
        return unescape_js(walk.text(node)[1:-1])
    return None


def unescape_js(raw: str) -> str:
    def replace(match: re.Match) -> str:
        seq = match.group(1)
        if seq.startswith("u{"):
            return chr(int(seq[2:-1], 16))
        if seq[0] in "ux" and len(seq) > 1:
            return chr(int(seq[1:], 16))
        if seq in ("\n", "\r\n", "\r", "\u2028", "\u2029"):
            return ""  # line continuation
        return JS_ESCAPES.get(seq, seq)

    return _ESCAPE.sub(replace, raw)


def escape_for(span: Span, text: str) -> str:
    """Escape a replacement for the syntax it is spliced into."""
    if span.style == "jsx_text":
        return (text.replace("{", "&#123;").replace("}", "&#125;")
                .replace("<", "&lt;").replace(">", "&gt;"))
    if span.style == "jsx_attribute":
        entity = "&quot;" if span.quote == '"' else "&apos;"
        return text.replace(span.quote, entity)
    escaped = text.replace("\\", "\\\\")
    if span.style == "template":
        return escaped.replace("`", "\\`").replace("${", "\\${")
    escaped = escaped.replace(span.quote, "\\" + span.quote)
    return escaped.replace("\n", "\\n").replace("\r", "\\r")


def first_error(root: Node) -> Node | None:
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return node
        if node.has_error:
            stack.extend(reversed(node.children))
    return None
