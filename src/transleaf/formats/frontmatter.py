"""
Frontmatter header for Markdown/MDX documents.

The block between the leading `---` fences is read line by line rather than
loaded as YAML, so everything except the translated values stays exactly as
written. Only allow-listed top-level fields are offered for translation.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from ..classifier import LeafClassifier
from .mapping import find_inline_comment

FRONTMATTER_FIELDS = (
    "title", "description", "sidebar_label", "sidebar_title", "sidebarTitle",
    "summary", "excerpt", "subtitle",
)

FRONTMATTER = re.compile(r"\A\ufeff?---[ \t]*\r?\n(.*?)^---[ \t]*(?:\r?\n|\Z)", re.DOTALL | re.MULTILINE)
OPENING_FENCE = re.compile(r"\A\ufeff?---[ \t]*\r?\n")
FIELD_LINE = re.compile(r"^([\w-]+):[ \t]*(\S.*?)[ \t]*$")

# values that are structure, not text: flow collections, block scalars, anchors, tags
STRUCTURAL_PREFIXES = ("[", "{", "|", ">", "&", "*", "!")
LITERALS = frozenset({"true", "false", "yes", "no", "on", "off", "null", "~"})
NUMBER = re.compile(r"[-+]?(?:\d[\d_]*)?\.?\d+(?:[eE][-+]?\d+)?")

NEEDS_QUOTES = re.compile(r""":|"|'|\s#""")
PLAIN_UNSAFE_START = tuple("-?:,[]{}#&*!|>%@`")


@dataclass(frozen=True)
class FrontmatterField:
    key: str
    value: str  # unquoted text
    start: int  # span of the raw value, quotes included
    end: int
    quote: str  # '"', "'" or "" for plain


def frontmatter_end(content: str) -> int:
    """Offset where the body starts, 0 when there is no frontmatter."""
    match = FRONTMATTER.match(content)
    return match.end() if match else 0


def has_unclosed_frontmatter(content: str) -> bool:
    return bool(OPENING_FENCE.match(content)) and not FRONTMATTER.match(content)


def read_fields(content: str, allowed: tuple[str, ...], classifier: LeafClassifier) -> list[FrontmatterField]:
    """Allow-listed fields whose values are translatable text."""
    match = FRONTMATTER.match(content)
    if not match:
        return []
    allowed_keys = frozenset(allowed)
    fields: list[FrontmatterField] = []
    offset = match.start(1)
    for line in match.group(1).splitlines(keepends=True):
        line_start = offset
        offset += len(line)
        m = FIELD_LINE.match(line.rstrip("\r\n"))
        if not m or m.group(1) not in allowed_keys:
            continue
        key, raw = m.group(1), m.group(2)
        start = line_start + m.start(2)
        parsed = _unquote(raw)
        if parsed is None:
            continue
        value, quote, raw_len = parsed
        if not classifier.is_translatable(value, None):
            continue
        fields.append(FrontmatterField(key, value, start, start + raw_len, quote))
    return fields


def _unquote(raw: str) -> tuple[str, str, int] | None:
    """(text, quote style, length of the raw value) or None for non-text values."""
    if len(raw) >= 2 and raw[0] == '"':
        end = _closing_double_quote(raw)
        if end is None:
            return None
        inner = raw[1:end]
        return re.sub(r'\\(["\\/])', r'\1', inner), '"', end + 1
    if len(raw) >= 2 and raw[0] == "'":
        end = raw.rfind("'")
        if end == 0:
            return None
        return raw[1:end].replace("''", "'"), "'", end + 1
    if raw.startswith(STRUCTURAL_PREFIXES):
        return None
    comment = find_inline_comment(raw)
    text = raw[:comment].rstrip() if comment is not None else raw
    if text.lower() in LITERALS or NUMBER.fullmatch(text):
        return None
    return text, "", len(text)


def _closing_double_quote(raw: str) -> int | None:
    escaped = False
    for i in range(1, len(raw)):
        ch = raw[i]
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == '"':
            return i
    return None


def render_value(text: str, quote: str) -> str:
    """Write a translated value back in the field's quote style, quoting if needed."""
    if quote == "'":
        return "'" + text.replace("'", "''") + "'"
    if quote == '"' or NEEDS_QUOTES.search(text) or text.startswith(PLAIN_UNSAFE_START):
        return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'
    return text
