"""
CSV format strategy.

Sniffs the delimiter from the header line, picks translatable columns from
their header names and a sample of values, and names cells `row{r}_col{c}`
with r counted over data rows. The header row and every row without a
translated cell are written back byte for byte.
"""

from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from ..classifier import DEFAULT_CLASSIFIER
from ..errors import FormatParseError
from ..model import LeafKind, ParseResult, TranslatableLeaf, TranslationMap, add_leaf, apply_translations
from .base import FormatStrategy, reapply_padding, split_padding

logger = logging.getLogger(__name__)

DELIMITERS = (",", ";", "\t", "|")

# header tokens that mark a column as data, never prose
COLUMN_BLACKLIST = frozenset({
    "id", "code", "key", "url", "email", "phone", "date", "price", "amount",
    "quantity", "qty", "sku", "isbn", "uuid", "slug", "zip", "postcode",
})

# header tokens that mark a column as prose regardless of sampling
COLUMN_WHITELIST = frozenset({
    "title", "name", "description", "content", "text", "message", "label",
    "category", "tags", "summary", "body", "caption", "comment", "note", "notes",
})

SAMPLE_ROWS = 10

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_NON_ALNUM = re.compile(r"[^A-Za-z0-9]+")


@dataclass
class Record:
    """One CSV record and the exact source text it came from."""
    raw: str
    cells: list[str]
    data_row: int | None  # None for the header and blank lines


@dataclass
class CSVMetadata:
    delimiter: str
    records: list[Record] = field(default_factory=list)
    paths: frozenset[str] = field(default_factory=frozenset)


def detect_delimiter(content: str) -> str:
    """Most frequent candidate in the first line; comma on a tie or no hit."""
    first_line = content.lstrip("\ufeff").splitlines()[0] if content.strip() else ""
    counts = {d: first_line.count(d) for d in DELIMITERS}
    best = max(DELIMITERS, key=lambda d: counts[d])
    return best if counts[best] else ","


def header_tokens(header: str) -> set[str]:
    """`videoTitle`, `video_title` and `Video Title` all give {video, title}."""
    spaced = _CAMEL_BOUNDARY.sub(" ", header.strip())
    return {t.lower() for t in _NON_ALNUM.split(spaced) if t}


class CSVStrategy(FormatStrategy):
    """CSV leaf extraction and write-back."""

    classifier = DEFAULT_CLASSIFIER

    @property
    def name(self) -> str:
        return "csv"

    @property
    def extensions(self) -> list[str]:
        return [".csv", ".tsv"]

    def parse(self, content: str) -> ParseResult:
        delimiter = detect_delimiter(content)
        records = self._read(content, delimiter)
        metadata = CSVMetadata(delimiter=delimiter, records=records)
        data = [r for r in records if r.data_row is not None]
        if not records:
            return ParseResult({}, metadata)

        headers = records[0].cells
        columns = [c for c, header in enumerate(headers) if self.column_is_translatable(header, c, data)]
        leaves: dict[str, TranslatableLeaf] = {}
        for record in data:
            for c in columns:
                if c >= len(record.cells):
                    continue
                path = f"row{record.data_row}_col{c}"
                _, value, _ = split_padding(record.cells[c])
                if not self.path_filter.allows(path):
                    continue
                if not self.classifier.is_translatable(value, headers[c]):
                    continue
                add_leaf(leaves, TranslatableLeaf(
                    path=path,
                    value=value,
                    kind=LeafKind.TEXT,
                    context_key=headers[c],
                    depth=1,
                    sibling_keys=tuple(headers),
                    array_index=record.data_row,
                ))
        metadata.paths = frozenset(leaves)
        logger.debug("csv: delimiter=%r, columns=%s, %d leaves", delimiter, columns, len(leaves))
        return ParseResult(leaves, metadata)

    def column_is_translatable(self, header: str, column: int, data: list[Record]) -> bool:
        tokens = header_tokens(header)
        if tokens & COLUMN_BLACKLIST:
            return False
        if tokens & COLUMN_WHITELIST:
            return True
        sample = data[:SAMPLE_ROWS]
        return any(
            column < len(r.cells) and self.classifier.is_translatable(r.cells[column], header)
            for r in sample
        )

    def reconstruct(self, translations: TranslationMap, metadata: Any) -> str:
        meta = self.expect_metadata(metadata, CSVMetadata)
        updates = apply_translations(translations, meta.paths)
        parts: list[str] = []
        for record in meta.records:
            if record.data_row is None:
                parts.append(record.raw)
                continue
            cells = list(record.cells)
            changed = False
            for c, cell in enumerate(cells):
                path = f"row{record.data_row}_col{c}"
                if path in updates:
                    cells[c] = reapply_padding(cell, updates[path])
                    changed = True
            parts.append(self._write_row(cells, record.raw, meta.delimiter) if changed else record.raw)
        return "".join(parts)

    def check_syntax(self, content: str) -> None:
        if not content.strip():
            raise FormatParseError(self.name, "Empty CSV file", 1, 1)
        self._read(content, detect_delimiter(content))

    def _read(self, content: str, delimiter: str) -> list[Record]:
        lines = io.StringIO(content, newline="").readlines()
        reader = csv.reader(io.StringIO(content, newline=""), delimiter=delimiter, strict=True)
        records: list[Record] = []
        consumed = 0
        data_row = 0
        try:
            for cells in reader:
                raw = "".join(lines[consumed:reader.line_num])
                consumed = reader.line_num
                if not records or not cells:
                    records.append(Record(raw, cells, None))
                    continue
                records.append(Record(raw, cells, data_row))
                data_row += 1
        except csv.Error as e:
            raise FormatParseError(self.name, str(e), reader.line_num or 1) from e
        if consumed < len(lines):
            records.append(Record("".join(lines[consumed:]), [], None))
        return records

    def _write_row(self, cells: list[str], raw: str, delimiter: str) -> str:
        """Quote-minimal row ending with the source record's line terminator."""
        buffer = io.StringIO()
        # "\r\n" as terminator makes the writer quote fields holding either character
        writer = csv.writer(buffer, delimiter=delimiter, lineterminator="\r\n", quoting=csv.QUOTE_MINIMAL)
        writer.writerow(cells)
        row = buffer.getvalue()[:-2]
        terminator = raw[len(raw.rstrip("\r\n")):]
        return row + terminator
