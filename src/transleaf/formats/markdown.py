"""
Markdown / MDX format strategy.

Body text is tokenized with markdown-it-py; every text token, image alt text
and allow-listed attribute of inline or block HTML/JSX is located in the
source and later patched in place, so untouched Markdown keeps its exact
spelling. Code spans, fenced and indented code, MDX import/export lines and
`{expressions}` are never touched.

`:::name` directives are recognized; a `key: value` first paragraph inside a
directive is directive metadata, not text. The leading frontmatter block is
handled by the frontmatter module.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from markdown_it import MarkdownIt
from markdown_it.token import Token
from mdit_py_plugins.container import container_plugin

from ..classifier import PROSE_CLASSIFIER, rule
from ..errors import FormatParseError
from ..model import LeafKind, ParseResult, TranslatableLeaf, TranslationMap, add_leaf, apply_translations
from .base import FormatStrategy, option_list, split_padding
from .frontmatter import FRONTMATTER_FIELDS, frontmatter_end, has_unclosed_frontmatter, read_fields, render_value

logger = logging.getLogger(__name__)

JSX_ATTRIBUTES = ("title", "alt", "label", "placeholder", "aria-label", "description")

MARKDOWN_REJECT_RULES = (
    rule("mdx_expression", r"[{}]", fullmatch=False),
)

MODULE_LINE = re.compile(r"^(?:import|export)\s")
DIRECTIVE_PSEUDO_ATTRIBUTE = re.compile(r"^[\w-]+:\s*[\w-]+(?:\n|$)")
DIRECTIVE_OPEN = re.compile(r"^\s*(:{3,})\s*[\w-]")
DIRECTIVE_CLOSE = re.compile(r"^\s*(:{3,})\s*$")
HTML_ATTRIBUTE = re.compile(r"""(?<![\w-])([\w:-]+)=(?:"([^"]*)"|'([^']*)')""")
HTML_TEXT = re.compile(r">([^<>{}]+)<")
RAW_HTML_BLOCK = re.compile(r"^\s*<(?:script|style|pre|code|textarea|!--)", re.IGNORECASE)


@dataclass(frozen=True)
class Patch:
    """Character span in the source and how its replacement is written."""
    start: int
    end: int
    style: str  # text | alt | attribute | frontmatter
    quote: str = ""


@dataclass
class MarkdownMetadata:
    source: str
    body_offset: int = 0
    patches: dict[str, Patch] = field(default_factory=dict)


@dataclass
class _Walk:
    body: str
    offset: int
    leaves: dict[str, TranslatableLeaf] = field(default_factory=dict)
    patches: dict[str, Patch] = field(default_factory=dict)
    counters: dict[str, int] = field(default_factory=dict)

    def next(self, family: str) -> int:
        n = self.counters.get(family, 0)
        self.counters[family] = n + 1
        return n


def build_parser() -> MarkdownIt:
    md = MarkdownIt("commonmark").enable("table")
    # one container rule accepts any `:::name`, so every directive parses as a block
    md.use(container_plugin, name="directive", validate=lambda params, *args: bool(params.strip()))
    return md


class MarkdownStrategy(FormatStrategy):
    """Markdown and MDX leaf extraction and write-back."""

    classifier = PROSE_CLASSIFIER.extend(MARKDOWN_REJECT_RULES)

    @property
    def name(self) -> str:
        return "markdown"

    @property
    def extensions(self) -> list[str]:
        return [".md", ".mdx", ".markdown"]

    def parse(self, content: str) -> ParseResult:
        self.check_syntax(content)
        body_offset = frontmatter_end(content)
        walk = _Walk(body=content[body_offset:], offset=body_offset)
        self._frontmatter(content, walk)
        self._body(walk)
        metadata = MarkdownMetadata(source=content, body_offset=body_offset, patches=walk.patches)
        logger.debug("markdown: %d leaves", len(walk.leaves))
        return ParseResult(walk.leaves, metadata)

    def reconstruct(self, translations: TranslationMap, metadata: Any) -> str:
        meta = self.expect_metadata(metadata, MarkdownMetadata)
        updates = apply_translations(translations, meta.patches)
        text = meta.source
        for path in sorted(updates, key=lambda p: meta.patches[p].start, reverse=True):
            patch = meta.patches[path]
            text = text[:patch.start] + render(patch, updates[path]) + text[patch.end:]
        return text

    def check_syntax(self, content: str) -> None:
        if has_unclosed_frontmatter(content):
            raise FormatParseError(self.name, "Frontmatter block is not closed with ---", 1, 1)
        open_directives: list[tuple[int, int]] = []
        in_fence = False
        for number, line in enumerate(content.splitlines(), 1):
            if line.lstrip().startswith(("```", "~~~")):
                in_fence = not in_fence
            if in_fence:
                continue
            opened = DIRECTIVE_OPEN.match(line)
            if opened:
                open_directives.append((number, len(opened.group(1))))
                continue
            closed = DIRECTIVE_CLOSE.match(line)
            if closed and open_directives:
                open_directives.pop()
        if open_directives:
            line, _ = open_directives[-1]
            raise FormatParseError(self.name, "Directive is not closed with :::", line, 1)

    # frontmatter

    def _frontmatter(self, content: str, walk: _Walk) -> None:
        allowed = option_list(self.options.frontmatter_fields, FRONTMATTER_FIELDS)
        seen: dict[str, int] = {}
        for fm in read_fields(content, allowed, self.classifier):
            n = seen.get(fm.key, 0)
            seen[fm.key] = n + 1
            path = f"frontmatter.{fm.key}" if n == 0 else f"frontmatter.{fm.key}[{n}]"
            if not self.path_filter.allows(path):
                continue
            add_leaf(walk.leaves, TranslatableLeaf(
                path=path, value=fm.value, kind=LeafKind.FRONTMATTER, context_key=fm.key, depth=1,
            ))
            walk.patches[path] = Patch(fm.start, fm.end, "frontmatter", fm.quote)

    # body

    def _body(self, walk: _Walk) -> None:
        tokens = build_parser().parse(walk.body)
        line_starts = [0] + [m.end() for m in re.finditer("\n", walk.body)]

        def offset(line: int) -> int:
            return line_starts[line] if line < len(line_starts) else len(walk.body)

        block_map: list[int] | None = None
        for i, token in enumerate(tokens):
            self.ensure_depth(token.level + 1, token.type)
            if token.map is not None:
                block_map = token.map
            if token.type == "inline" and block_map is not None:
                if MODULE_LINE.match(token.content) or self._is_directive_metadata(tokens, i):
                    continue
                self._inline(token, offset(block_map[0]), offset(block_map[1]), walk)
            elif token.type == "html_block" and token.map is not None:
                start = offset(token.map[0])
                if walk.body.startswith(token.content, start) and not RAW_HTML_BLOCK.match(token.content):
                    self._html(token.content, start, walk, with_text=True)

    def _is_directive_metadata(self, tokens: list[Token], i: int) -> bool:
        if i < 2 or tokens[i - 1].type != "paragraph_open":
            return False
        opener = tokens[i - 2].type
        if not (opener.startswith("container_") and opener.endswith("_open")):
            return False
        return bool(DIRECTIVE_PSEUDO_ATTRIBUTE.match(tokens[i].content))

    def _inline(self, token: Token, start: int, end: int, walk: _Walk) -> None:
        body = walk.body
        cursor = start
        links: list[Token] = []
        for child in token.children or []:
            kind = child.type
            if kind == "text":
                if any(link.markup == "autolink" for link in links):
                    continue  # the visible URL of <https://...>
                found = body.find(child.content, cursor, end) if child.content else -1
                if found < 0:
                    continue
                cursor = found + len(child.content)
                self._text_leaf(child.content, found, f"text_{walk.next('text')}", walk)
            elif kind in ("code_inline", "html_inline"):
                found = body.find(child.content, cursor, end) if child.content else -1
                if found < 0:
                    continue
                cursor = found + len(child.content)
                if kind == "html_inline":
                    self._html(child.content, found, walk, with_text=False)
            elif kind == "image":
                cursor = self._image(child, cursor, end, walk)
            elif kind == "link_open":
                links.append(child)
                cursor = self._link_start(child, body, cursor, end)
            elif kind == "link_close" and links:
                cursor = self._link_end(links.pop(), body, cursor, end)

    def _link_start(self, link: Token, body: str, cursor: int, end: int) -> int:
        """Move past `<` of an autolink or `[` of a bracketed link."""
        if link.markup == "autolink":
            at = body.find("<", cursor, end)
            closing = body.find(">", at, end) if at >= 0 else -1
            return closing + 1 if closing >= 0 else cursor
        at = body.find("[", cursor, end)
        return at + 1 if at >= 0 else cursor

    def _link_end(self, link: Token, body: str, cursor: int, end: int) -> int:
        """
        Move past the destination of a link once its label has been walked.

        `[label](href "title")` skips through the closing parenthesis,
        `[label][ref]` and `[label][]` through the reference, and a shortcut
        `[label]` through its bracket alone.
        """
        if link.markup == "autolink":
            return cursor
        label_end = body.find("]", cursor, end)
        if label_end < 0:
            return cursor
        cursor = label_end + 1
        if body.startswith("(", cursor):
            href = link.attrGet("href") or ""
            at = body.find(href, cursor, end) if href else -1
            if at >= 0:
                cursor = at + len(href)
            closing = body.find(")", cursor, end)
            return closing + 1 if closing >= 0 else cursor
        if body.startswith("[", cursor):
            closing = body.find("]", cursor, end)
            return closing + 1 if closing >= 0 else cursor
        return cursor

    def _image(self, token: Token, cursor: int, end: int, walk: _Walk) -> int:
        body = walk.body
        opening = body.find("![", cursor, end)
        if opening < 0:
            return cursor
        cursor = opening + 2
        alt = token.content
        n = walk.next("image")
        if alt:
            found = body.find(alt, cursor, end)
            if found >= 0 and body.find("]", cursor, end) >= found + len(alt):
                self._text_leaf(alt, found, f"image.@alt_{n}", walk, kind=LeafKind.ATTRIBUTE, style="alt")
                cursor = found + len(alt)
        closing = body.find("](", cursor, end)
        if closing < 0:
            return cursor
        cursor = closing + 2
        src = token.attrGet("src") or ""
        at = body.find(src, cursor, end) if src else -1
        return at + len(src) if at >= 0 else cursor

    def _html(self, html: str, start: int, walk: _Walk, with_text: bool) -> None:
        allowed = option_list(self.options.translatable_attributes, JSX_ATTRIBUTES)
        for m in HTML_ATTRIBUTE.finditer(html):
            name = m.group(1)
            if name not in allowed:
                continue
            group = 2 if m.group(2) is not None else 3
            quote = '"' if group == 2 else "'"
            path = f"jsx.@{name}.{walk.next('attribute')}"
            self._text_leaf(m.group(group), start + m.start(group), path, walk,
                            kind=LeafKind.ATTRIBUTE, style="attribute", quote=quote, context=name)
        if with_text:
            for m in HTML_TEXT.finditer(html):
                if not m.group(1).strip():
                    continue
                path = f"jsx.text.{walk.next('jsx_text')}"
                self._text_leaf(m.group(1), start + m.start(1), path, walk)

    def _text_leaf(
        self,
        raw: str,
        start: int,
        path: str,
        walk: _Walk,
        kind: LeafKind = LeafKind.TEXT,
        style: str = "text",
        quote: str = "",
        context: str | None = None,
    ) -> None:
        lead, core, _ = split_padding(raw)
        if not core or not self.path_filter.allows(path):
            return
        if not self.classifier.is_translatable(core, context):
            return
        begin = walk.offset + start + len(lead)
        add_leaf(walk.leaves, TranslatableLeaf(path=path, value=core, kind=kind, context_key=context, depth=1))
        walk.patches[path] = Patch(begin, begin + len(core), style, quote)


def render(patch: Patch, text: str) -> str:
    if patch.style == "frontmatter":
        return render_value(text, patch.quote)
    if patch.style == "attribute":
        entity = "&quot;" if patch.quote == '"' else "&apos;"
        return text.replace(patch.quote, entity)
    if patch.style == "alt":
        return text.replace("[", "\\[").replace("]", "\\]")
    return text
