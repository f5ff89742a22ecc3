"""
XML format strategy.

Element text, tails and allow-listed attributes are slots. Everything before
and after the root element (declaration, doctype, comments, processing
instructions and the whitespace between them) is carried over verbatim, and
CDATA sections stay CDATA after translation.
Namespaced names are addressed by their local name.
"""

from __future__ import annotations

import itertools
import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from lxml import etree

from ..classifier import DEFAULT_CLASSIFIER, rule
from ..errors import FormatParseError
from ..model import LeafKind, ParseResult, TranslationMap
from .markup import MARKUP_REJECT_RULES, MarkupStrategy, Slot, slot_path

logger = logging.getLogger(__name__)

TRANSLATABLE_ATTRIBUTES = ("label", "title", "description", "tooltip", "help", "message", "text")

SKIP_TAGS = ("script", "style", "code")

XML_REJECT_RULES = (
    rule("literal", r"true|false|null|nil|none", flags=re.IGNORECASE),
    rule("entity_name", r"#[A-Z]+"),
    rule("placeholder", r"\{.*\}", flags=re.DOTALL),
)

DECLARATION = re.compile(r"""^\ufeff?\s*<\?xml[^>]*?\?>[ \t]*(?:\r?\n)?""")
DECLARED_ENCODING = re.compile(r"""encoding\s*=\s*["']([\w.:-]+)["']""")
# comments, PIs, a doctype and whitespace between the declaration and the root
PROLOG = re.compile(r"""(?:\s+|<!--.*?-->|<\?.*?\?>|<!DOCTYPE[^\[>]*(?:\[.*?\])?\s*>)*""", re.DOTALL)


@dataclass
class XMLMetadata:
    source: str
    paths: frozenset[str] = field(default_factory=frozenset)
    declaration: str = ""
    encoding: str = "utf-8"
    prolog: str = ""
    epilog: str = ""


def local_name(node: Any) -> str:
    return etree.QName(node).localname


class XMLStrategy(MarkupStrategy):
    """XML leaf extraction and write-back."""

    classifier = DEFAULT_CLASSIFIER.extend(MARKUP_REJECT_RULES + XML_REJECT_RULES)
    default_attributes = TRANSLATABLE_ATTRIBUTES
    default_skip_tags = SKIP_TAGS

    @property
    def name(self) -> str:
        return "xml"

    @property
    def extensions(self) -> list[str]:
        return [".xml"]

    def parse(self, content: str) -> ParseResult:
        root = self._load(content)
        leaves = self.collect(root)
        declaration = DECLARATION.match(content)
        metadata = XMLMetadata(
            source=content,
            paths=frozenset(leaves),
            declaration=declaration.group(0) if declaration else "",
            encoding=_declared_encoding(content),
            prolog=content[:prolog_end(content)],
            epilog=content[epilog_start(content):],
        )
        logger.debug("xml: %d leaves, encoding=%s", len(leaves), metadata.encoding)
        return ParseResult(leaves, metadata)

    def reconstruct(self, translations: TranslationMap, metadata: Any) -> str:
        meta = self.expect_metadata(metadata, XMLMetadata)
        root = self._load(meta.source)
        if not self.write_back(root, translations, meta.paths):
            return meta.source
        body = etree.tostring(root, encoding="unicode", with_tail=False)
        return meta.prolog + body + meta.epilog

    def check_syntax(self, content: str) -> None:
        self._load(content)

    def _load(self, content: str) -> etree._Element:
        parser = etree.XMLParser(strip_cdata=False, resolve_entities=False, no_network=True)
        encoding = _declared_encoding(content)
        try:
            data = content.lstrip("\ufeff").encode(encoding)
        except (LookupError, UnicodeEncodeError) as e:
            raise FormatParseError(self.name, f"cannot encode content as {encoding}: {e}") from e
        try:
            return etree.fromstring(data, parser)
        except etree.XMLSyntaxError as e:
            line, column = e.position if e.position else (None, None)
            raise FormatParseError(self.name, e.msg, line, column) from e

    def iter_slots(self, root: etree._Element) -> Iterator[Slot]:
        if local_name(root).lower() in self.skip_tags:
            return iter(())
        return self._slots(root, "", 1, itertools.count())

    def _slots(
        self, element: etree._Element, chain: str, depth: int, counter: Iterator[int]
    ) -> Iterator[Slot]:
        tag = local_name(element)
        chain = slot_path(chain, tag)
        self.ensure_depth(depth, chain)
        for attr in self.attributes:
            for key in element.attrib:
                if etree.QName(key).localname == attr:
                    yield Slot(
                        path=slot_path(chain, f"@{attr}_{next(counter)}"),
                        kind=LeafKind.ATTRIBUTE,
                        node=element,
                        attribute=key,
                        context=attr,
                        depth=depth,
                    )
        if element.text is not None:
            yield Slot(slot_path(chain, f"text_{next(counter)}"), LeafKind.TEXT, element,
                       context=tag, depth=depth)
        for child in element:
            # comments, PIs and entity references have non-string tags
            if isinstance(child.tag, str) and local_name(child).lower() not in self.skip_tags:
                yield from self._slots(child, chain, depth + 1, counter)
            if child.tail is not None:
                yield Slot(slot_path(chain, f"text_{next(counter)}"), LeafKind.TEXT, child,
                           tail=True, context=tag, depth=depth)

    def read_slot(self, slot: Slot) -> str:
        if slot.attribute is not None:
            return slot.node.get(slot.attribute)
        return slot.node.tail if slot.tail else slot.node.text

    def write_slot(self, slot: Slot, value: str) -> None:
        if slot.attribute is not None:
            slot.node.set(slot.attribute, value)
        elif slot.tail:
            slot.node.tail = value
        elif _text_is_cdata(slot.node):
            slot.node.text = etree.CDATA(value)
        else:
            slot.node.text = value


def _declared_encoding(content: str) -> str:
    declaration = DECLARATION.match(content)
    if declaration:
        encoding = DECLARED_ENCODING.search(declaration.group(0))
        if encoding:
            return encoding.group(1)
    return "utf-8"


def prolog_end(content: str) -> int:
    """Offset where the root element's start tag begins."""
    declaration = DECLARATION.match(content)
    if declaration:
        start = declaration.end()
    else:
        start = 1 if content.startswith("\ufeff") else 0
    return PROLOG.match(content, start).end()


def epilog_start(content: str) -> int:
    """Offset just past the root element's end tag."""
    end = len(content)
    while True:
        end = len(content[:end].rstrip())
        if content.endswith("-->", 0, end):
            opening = content.rfind("<!--", 0, end)
        elif content.endswith("?>", 0, end):
            opening = content.rfind("<?", 0, end)
        else:
            return end
        if opening < 0:
            return end
        end = opening


def _text_is_cdata(element: etree._Element) -> bool:
    serialized = etree.tostring(element, encoding="unicode", with_tail=False)
    start_tag_end = serialized.find(">")
    return serialized[start_tag_end + 1:].startswith("<![CDATA[")
