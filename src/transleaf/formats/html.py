"""
HTML format strategy.

Text nodes and allow-listed attributes become leaves; script, style, code and
similar subtrees are never inspected. Description, keyword, author and social
preview <meta> tags are keyed by their declared name (`meta.description`)
instead of their position in the tree.
"""

from __future__ import annotations

import itertools
import logging
import re
from collections import Counter
from collections.abc import Iterator
from dataclasses import dataclass, field
from html.parser import HTMLParser
from typing import Any

from bs4 import BeautifulSoup, Doctype, NavigableString, Tag
from bs4.dammit import EntitySubstitution
from bs4.element import PreformattedString
from bs4.formatter import HTMLFormatter

from ..errors import FormatParseError
from ..model import LeafKind, ParseResult, TranslationMap
from .markup import MarkupStrategy, Slot, slot_path

logger = logging.getLogger(__name__)

TRANSLATABLE_ATTRIBUTES = (
    "alt", "title", "placeholder", "aria-label", "aria-description",
    "data-tooltip", "data-title", "data-description",
)

SKIP_TAGS = ("script", "style", "code", "pre", "svg", "math", "noscript", "template")

META_NAMES = frozenset({
    "description", "keywords", "author", "og:title", "og:description",
    "og:site_name", "twitter:title", "twitter:description",
})

VOID_ELEMENTS = frozenset({
    "area", "base", "br", "col", "embed", "hr", "img", "input", "link", "meta",
    "param", "source", "track", "wbr",
})

# closing tags the HTML grammar lets authors leave out
OPTIONAL_END_TAGS = frozenset({
    "html", "head", "body", "p", "li", "dt", "dd", "tr", "td", "th", "thead",
    "tbody", "tfoot", "option", "optgroup", "colgroup", "caption", "rp", "rt",
})

CHARSET = re.compile(r"""<meta[^>]+charset\s*=\s*["']?([\w-]+)""", re.IGNORECASE)


class SourceOrderFormatter(HTMLFormatter):
    """Writes attributes in the order the author wrote them."""

    def attributes(self, tag):
        if tag.attrs is None:
            return []
        return [
            (key, None if self.empty_attributes_are_booleans and value == "" else value)
            for key, value in tag.attrs.items()
        ]


class BareDoctype(Doctype):
    """Doctype without the newline bs4 appends; the source keeps its own."""
    SUFFIX = ">"


# minimal escaping keeps translated non-ASCII text readable; void tags stay <br>
FORMATTER = SourceOrderFormatter(
    entity_substitution=EntitySubstitution.substitute_xml,
    void_element_close_prefix=None,
    empty_attributes_are_booleans=True,
)


@dataclass
class HTMLMetadata:
    source: str
    paths: frozenset[str] = field(default_factory=frozenset)
    has_doctype: bool = False
    charset: str | None = None


class HTMLStrategy(MarkupStrategy):
    """HTML leaf extraction and write-back."""

    default_attributes = TRANSLATABLE_ATTRIBUTES
    default_skip_tags = SKIP_TAGS

    @property
    def name(self) -> str:
        return "html"

    @property
    def extensions(self) -> list[str]:
        return [".html", ".htm"]

    def parse(self, content: str) -> ParseResult:
        soup = BeautifulSoup(content, "html.parser")
        leaves = self.collect(soup)
        charset = CHARSET.search(content)
        metadata = HTMLMetadata(
            source=content,
            paths=frozenset(leaves),
            has_doctype=content.lstrip()[:9].lower() == "<!doctype",
            charset=charset.group(1) if charset else None,
        )
        logger.debug("html: %d leaves", len(leaves))
        return ParseResult(leaves, metadata)

    def reconstruct(self, translations: TranslationMap, metadata: Any) -> str:
        meta = self.expect_metadata(metadata, HTMLMetadata)
        soup = BeautifulSoup(meta.source, "html.parser")
        if not self.write_back(soup, translations, meta.paths):
            return meta.source
        for node in list(soup.contents):
            if isinstance(node, Doctype):
                node.replace_with(BareDoctype(str(node)))
        return soup.decode(formatter=FORMATTER)

    def check_syntax(self, content: str) -> None:
        checker = TagBalanceChecker()
        checker.feed(content)
        checker.close()
        if checker.issue:
            message, line, column = checker.issue
            raise FormatParseError(self.name, message, line, column)

    def iter_slots(self, root: BeautifulSoup) -> Iterator[Slot]:
        yield from self._slots(root, "", 0, itertools.count(), Counter())

    def _slots(
        self, element: Tag, chain: str, depth: int, counter: Iterator[int], seen_meta: Counter
    ) -> Iterator[Slot]:
        for child in list(element.contents):
            if isinstance(child, Tag):
                tag = child.name.lower()
                if tag in self.skip_tags:
                    continue
                child_chain = slot_path(chain, tag)
                self.ensure_depth(depth + 1, child_chain)
                if tag == "meta":
                    meta_slot = self._meta_slot(child, depth + 1, seen_meta)
                    if meta_slot:
                        yield meta_slot
                    continue
                for attr in self.attributes:
                    if isinstance(child.get(attr), str):
                        yield Slot(
                            path=slot_path(child_chain, f"@{attr}_{next(counter)}"),
                            kind=LeafKind.ATTRIBUTE,
                            node=child,
                            attribute=attr,
                            context=attr,
                            depth=depth + 1,
                        )
                yield from self._slots(child, child_chain, depth + 1, counter, seen_meta)
            elif isinstance(child, NavigableString) and not isinstance(child, PreformattedString):
                yield Slot(
                    path=slot_path(chain, f"text_{next(counter)}"),
                    kind=LeafKind.TEXT,
                    node=child,
                    context=element.name if chain else None,
                    depth=depth,
                )

    def _meta_slot(self, tag: Tag, depth: int, seen: Counter) -> Slot | None:
        declared = tag.get("name") or tag.get("property")
        if not isinstance(declared, str) or not isinstance(tag.get("content"), str):
            return None
        declared = declared.lower()
        if declared not in META_NAMES:
            return None
        n = seen[declared]
        seen[declared] += 1
        path = f"meta.{declared}" if n == 0 else f"meta.{declared}[{n}]"
        return Slot(path, LeafKind.META, tag, attribute="content", context=declared, depth=depth)

    def read_slot(self, slot: Slot) -> str:
        if slot.attribute is None:
            return str(slot.node)
        return slot.node[slot.attribute]

    def write_slot(self, slot: Slot, value: str) -> None:
        if slot.attribute is None:
            slot.node.replace_with(NavigableString(value))
        else:
            slot.node[slot.attribute] = value


class TagBalanceChecker(HTMLParser):
    """Finds the first unexpected or unclosed tag."""

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.stack: list[tuple[str, tuple[int, int]]] = []
        self.issue: tuple[str, int, int] | None = None

    def handle_starttag(self, tag, attrs):
        if tag not in VOID_ELEMENTS:
            self.stack.append((tag, self.getpos()))

    def handle_endtag(self, tag):
        if tag in VOID_ELEMENTS or self.issue:
            return
        if not any(open_tag == tag for open_tag, _ in self.stack):
            self._report(f"Unexpected closing tag </{tag}>", self.getpos())
            return
        while self.stack:
            open_tag, pos = self.stack.pop()
            if open_tag == tag:
                break
            if open_tag not in OPTIONAL_END_TAGS:
                self._report(f"Tag <{open_tag}> is not closed before </{tag}>", pos)
                return

    def close(self):
        super().close()
        for open_tag, pos in self.stack:
            if open_tag not in OPTIONAL_END_TAGS:
                self._report(f"Unclosed tag <{open_tag}>", pos)
                break

    def _report(self, message: str, pos: tuple[int, int]) -> None:
        if self.issue is None:
            line, offset = pos
            self.issue = (message, line, offset + 1)
