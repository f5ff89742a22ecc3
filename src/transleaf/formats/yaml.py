"""
YAML format strategy.

Supports multi-document streams (paths prefixed `doc{N}.`), keeps anchors and
aliases as references when the source used them, re-emits multi-line values
in the source's block style and re-attaches comments, which PyYAML drops on
load.

Only true/false spellings load as booleans, so workflow keys like `on:` and
values like `yes` survive a round trip unchanged.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

import yaml

from ..errors import DepthLimitExceeded, FormatParseError
from ..model import ParseResult, TranslationMap
from .mapping import MappingMetadata, NestedMappingStrategy, sniff_indent

logger = logging.getLogger(__name__)

BOOL_TAG = "tag:yaml.org,2002:bool"
STR_TAG = "tag:yaml.org,2002:str"

KEY_LINE = re.compile(
    r"""^\s*(?:-\s+)*(?:"((?:[^"\\]|\\.)*)"|'((?:[^']|'')*)'|([^\s#'"{\[][^#]*?))\s*:(?:\s|$)"""
)
BLOCK_SCALAR = re.compile(r"(?:^|[:\-]\s+|:)\s*[|>][-+0-9]*\s*(?:#.*)?$")
NESTED_SEQUENCE = re.compile(r"^( *)[^\s#-][^\n]*:[ \t]*\n(?: *#[^\n]*\n)*( *)- ", re.MULTILINE)


def _strict_bools(cls: type) -> type:
    """Resolve only true/false as booleans (YAML 1.2 style)."""
    cls.yaml_implicit_resolvers = {
        first: [(tag, regexp) for tag, regexp in resolvers if tag != BOOL_TAG]
        for first, resolvers in cls.yaml_implicit_resolvers.items()
    }
    cls.add_implicit_resolver(
        BOOL_TAG, re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"), list("tTfF")
    )
    return cls


@_strict_bools
class TransleafLoader(yaml.SafeLoader):
    pass


@dataclass
class YAMLMetadata(MappingMetadata):
    has_anchors: bool = False
    has_aliases: bool = False
    has_merge_keys: bool = False
    block_style: str | None = None  # '|' or '>' when the source used block scalars
    indent_sequences: bool = False
    explicit_start: bool = False
    trailing_newline: bool = True

    @property
    def is_multi_document(self) -> bool:
        return len(self.documents) > 1


class YAMLStrategy(NestedMappingStrategy):
    """YAML leaf extraction and write-back."""

    @property
    def name(self) -> str:
        return "yaml"

    @property
    def extensions(self) -> list[str]:
        return [".yaml", ".yml"]

    def parse(self, content: str) -> ParseResult:
        documents = self._load(content)
        leaves, locations = self.collect(documents)
        metadata = YAMLMetadata(
            source=content,
            documents=documents,
            locations=locations,
            indent=max(2, min(9, sniff_indent(content))),
            explicit_start=content.lstrip().startswith("---"),
            trailing_newline=content.endswith("\n"),
        )
        self._scan_events(content, metadata)
        nested = NESTED_SEQUENCE.search(content)
        metadata.indent_sequences = bool(nested) and len(nested.group(2)) > len(nested.group(1))
        if self.options.preserve_comments:
            metadata.comments = self.scan_comments(content)
        logger.debug(
            "yaml: %d leaves in %d document(s), anchors=%s",
            len(leaves), len(documents), metadata.has_anchors,
        )
        return ParseResult(leaves, metadata)

    def reconstruct(self, translations: TranslationMap, metadata: Any) -> str:
        meta = self.expect_metadata(metadata, YAMLMetadata)
        documents = self.patched_documents(translations, meta)
        if documents is None:
            return meta.source
        text = yaml.dump_all(
            documents,
            Dumper=make_dumper(meta),
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False,
            indent=meta.indent,
            width=4096,
            explicit_start=meta.explicit_start or meta.is_multi_document,
        )
        if self.options.preserve_comments:
            text = self.restore_comments(text, meta.comments)
        if not meta.trailing_newline:
            text = text.rstrip("\n")
        return text

    def check_syntax(self, content: str) -> None:
        self._load(content)

    def key_of_line(self, line: str) -> str | None:
        match = KEY_LINE.match(line)
        if not match:
            return None
        double, single, plain = match.groups()
        if double is not None:
            return double
        if single is not None:
            return single.replace("''", "'")
        return plain.strip()

    def multiline_rows(self, lines: list[str]) -> set[int]:
        rows: set[int] = set()
        block_indent: int | None = None
        for row, line in enumerate(lines):
            indent = len(line) - len(line.lstrip())
            if block_indent is not None:
                if not line.strip() or indent > block_indent:
                    rows.add(row)
                    continue
                block_indent = None
            if BLOCK_SCALAR.search(line) and not line.lstrip().startswith("#"):
                block_indent = indent
        return rows

    def _load(self, content: str) -> list[Any]:
        try:
            return list(yaml.load_all(content, Loader=TransleafLoader))
        except yaml.MarkedYAMLError as e:
            mark = e.problem_mark or e.context_mark
            line = mark.line + 1 if mark else None
            column = mark.column + 1 if mark else None
            raise FormatParseError(self.name, e.problem or str(e), line, column) from e
        except yaml.YAMLError as e:
            raise FormatParseError(self.name, str(e)) from e
        except RecursionError as e:
            raise DepthLimitExceeded(self.name, self.max_depth) from e

    def _scan_events(self, content: str, meta: YAMLMetadata) -> None:
        for event in yaml.parse(content, Loader=TransleafLoader):
            if isinstance(event, yaml.AliasEvent):
                meta.has_aliases = True
                continue
            if getattr(event, "anchor", None):
                meta.has_anchors = True
            if isinstance(event, yaml.ScalarEvent):
                if event.value == "<<" and not event.style:
                    meta.has_merge_keys = True
                elif event.style in ("|", ">") and meta.block_style is None:
                    meta.block_style = event.style


def make_dumper(meta: YAMLMetadata) -> type[yaml.SafeDumper]:
    """Dumper configured for one document's conventions."""

    @_strict_bools
    class TransleafDumper(yaml.SafeDumper):
        def ignore_aliases(self, data):
            # shared nodes stay anchored only when the source had anchors
            if not meta.has_anchors:
                return True
            return super().ignore_aliases(data)

        def increase_indent(self, flow=False, indentless=False):
            return super().increase_indent(flow, indentless and not meta.indent_sequences)

    def represent_str(dumper, data):
        if meta.block_style and "\n" in data:
            return dumper.represent_scalar(STR_TAG, data, style=meta.block_style)
        return dumper.represent_scalar(STR_TAG, data)

    TransleafDumper.add_representer(str, represent_str)
    return TransleafDumper
