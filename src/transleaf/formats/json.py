"""
JSON format strategy.

Walks objects and arrays depth-first. Technical keys (ids, urls, sizes, ...)
are skipped without asking the classifier. Re-serialization keeps the
source's pretty/compact choice, indent width and trailing newline.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

from ..errors import DepthLimitExceeded, FormatParseError
from ..model import ParseResult, TranslationMap
from .mapping import ObjectTreeStrategy, TreeMetadata

logger = logging.getLogger(__name__)

SKIP_KEYS = (
    "id", "key", "uuid", "guid", "slug", "ref", "href", "url", "uri", "path",
    "route", "endpoint", "type", "kind", "category", "status", "state", "version",
    "timestamp", "date", "time", "datetime", "count", "total", "index", "offset",
    "limit", "width", "height", "size", "length", "duration", "lat", "lng",
    "latitude", "longitude", "coordinates", "email", "phone", "username",
    "password", "token", "api_key", "secret", "hash", "checksum", "mime_type",
    "content_type", "encoding", "charset",
)

INDENT_PATTERN = re.compile(r'^([ \t]+)["\[{\]}\-\dtfn]', re.MULTILINE)


@dataclass
class JSONMetadata(TreeMetadata):
    pretty: bool = True
    indent: int | str = 2
    spaced: bool = False  # compact output with ", " and ": "
    trailing_newline: bool = False


class JSONStrategy(ObjectTreeStrategy):
    """JSON leaf extraction and write-back."""

    default_skip_keys = SKIP_KEYS

    @property
    def name(self) -> str:
        return "json"

    @property
    def extensions(self) -> list[str]:
        return [".json"]

    def parse(self, content: str) -> ParseResult:
        data = self._load(content)
        leaves, locations = self.collect([data])
        metadata = JSONMetadata(
            source=content,
            documents=[data],
            locations=locations,
            pretty="\n" in content.strip(),
            indent=sniff_json_indent(content),
            spaced=bool(re.search(r'"\s*:\s', content)),
            trailing_newline=content.endswith("\n"),
        )
        logger.debug("json: %d leaves, indent=%r", len(leaves), metadata.indent)
        return ParseResult(leaves, metadata)

    def reconstruct(self, translations: TranslationMap, metadata: Any) -> str:
        meta = self.expect_metadata(metadata, JSONMetadata)
        documents = self.patched_documents(translations, meta)
        if documents is None:
            return meta.source
        return dump_json(documents[0], meta)

    def check_syntax(self, content: str) -> None:
        self._load(content)

    def _load(self, content: str) -> Any:
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise FormatParseError(self.name, e.msg, e.lineno, e.colno) from e
        except RecursionError as e:
            raise DepthLimitExceeded(self.name, self.max_depth) from e


def sniff_json_indent(content: str) -> int | str:
    match = INDENT_PATTERN.search(content)
    if not match:
        return 2
    whitespace = match.group(1)
    if "\t" in whitespace:
        return "\t"
    return len(whitespace)


def dump_json(data: Any, meta: JSONMetadata) -> str:
    if meta.pretty:
        text = json.dumps(data, indent=meta.indent, ensure_ascii=False)
    else:
        separators = (", ", ": ") if meta.spaced else (",", ":")
        text = json.dumps(data, separators=separators, ensure_ascii=False)
    return text + "\n" if meta.trailing_newline else text
