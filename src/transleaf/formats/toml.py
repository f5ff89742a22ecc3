"""
TOML format strategy.

Single-document key/value notation: read with tomllib, written back with
tomli-w, its writing counterpart. Comments are captured from the source and
re-attached to the key or table header they belonged to.
"""

from __future__ import annotations

import logging
import re
import tomllib
from typing import Any

import tomli_w

from ..errors import FormatParseError
from ..model import ParseResult, TranslationMap
from .mapping import MappingMetadata, NestedMappingStrategy

logger = logging.getLogger(__name__)

TABLE_LINE = re.compile(r"^\s*\[\[?\s*([^\]]+?)\s*\]\]?\s*(?:#.*)?$")
KEY_LINE = re.compile(r"""^\s*((?:[A-Za-z0-9_-]+|"[^"]*"|'[^']*')(?:\s*\.\s*(?:[A-Za-z0-9_-]+|"[^"]*"|'[^']*'))*)\s*=""")
ERROR_POSITION = re.compile(r"\(at line (\d+), column (\d+)\)")


class TOMLStrategy(NestedMappingStrategy):
    """TOML leaf extraction and write-back."""

    @property
    def name(self) -> str:
        return "toml"

    @property
    def extensions(self) -> list[str]:
        return [".toml"]

    def parse(self, content: str) -> ParseResult:
        data = self._load(content)
        leaves, locations = self.collect([data])
        metadata = MappingMetadata(source=content, documents=[data], locations=locations)
        if self.options.preserve_comments:
            metadata.comments = self.scan_comments(content)
        logger.debug("toml: %d leaves, %d comments", len(leaves), len(metadata.comments))
        return ParseResult(leaves, metadata)

    def reconstruct(self, translations: TranslationMap, metadata: Any) -> str:
        meta = self.expect_metadata(metadata, MappingMetadata)
        documents = self.patched_documents(translations, meta)
        if documents is None:
            return meta.source
        text = tomli_w.dumps(documents[0])
        if self.options.preserve_comments:
            text = self.restore_comments(text, meta.comments)
        return text

    def check_syntax(self, content: str) -> None:
        self._load(content)

    def key_of_line(self, line: str) -> str | None:
        table = TABLE_LINE.match(line)
        if table:
            return f"[{_normalize_dotted(table.group(1))}]"
        match = KEY_LINE.match(line)
        if match:
            return _normalize_dotted(match.group(1))
        return None

    def multiline_rows(self, lines: list[str]) -> set[int]:
        rows: set[int] = set()
        delimiter: str | None = None
        for row, line in enumerate(lines):
            if delimiter is not None:
                rows.add(row)
                if line.count(delimiter) % 2 == 1:
                    delimiter = None
                continue
            for quotes in ('"""', "'''"):
                if line.count(quotes) % 2 == 1:
                    delimiter = quotes
                    break
        return rows

    def _load(self, content: str) -> dict:
        try:
            return tomllib.loads(content)
        except tomllib.TOMLDecodeError as e:
            message = str(e)
            position = ERROR_POSITION.search(message)
            line = column = None
            if position:
                line, column = int(position.group(1)), int(position.group(2))
                message = message[: position.start()].rstrip()
            raise FormatParseError(self.name, message, line, column) from e


def _normalize_dotted(key: str) -> str:
    """`a . "b"` and `a.b` name the same key."""
    parts = re.findall(r'"([^"]*)"|\'([^\']*)\'|([^.\s]+)', key)
    return ".".join(next(p for p in groups if p) if any(groups) else "" for groups in parts)
