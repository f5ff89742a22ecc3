"""
Translation pipeline.

Drives one or more documents through parse, translate and reconstruct. The
translation backend sits behind the Translator protocol; strategies never see
it. Failures are reported per file so one broken document does not stop the
rest of a batch.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from .errors import DepthLimitExceeded, FormatParseError, TransleafError
from .formats.base import FormatRegistry, reapply_padding

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenUsage:
    """Token accounting reported by a translation backend."""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def __add__(self, other: TokenUsage) -> TokenUsage:
        return TokenUsage(
            self.prompt_tokens + other.prompt_tokens,
            self.completion_tokens + other.completion_tokens,
            self.total_tokens + other.total_tokens,
        )


def aggregate_usage(usages: Iterable[TokenUsage]) -> TokenUsage:
    total = TokenUsage()
    for usage in usages:
        total = total + usage
    return total


@dataclass(frozen=True)
class Translation:
    text: str
    usage: TokenUsage = field(default_factory=TokenUsage)


class Translator(Protocol):
    def translate(self, text: str, source_locale: str, target_locale: str) -> Translation:
        ...


class MappingTranslator:
    """
    Dictionary-backed translator for offline runs and tests.

    Texts missing from the glossary come back unchanged. Usage counts one
    completion token per translated word so totals are observable.
    """

    def __init__(self, glossary: dict[str, str]):
        self.glossary = dict(glossary)

    def translate(self, text: str, source_locale: str, target_locale: str) -> Translation:
        translated = self.glossary.get(text.strip())
        if translated is None:
            return Translation(text)
        words = len(translated.split())
        return Translation(translated, TokenUsage(len(text.split()), words, len(text.split()) + words))


class IdentityTranslator:
    """Returns every text unchanged."""

    def translate(self, text: str, source_locale: str, target_locale: str) -> Translation:
        return Translation(text)


def translate_batch(
    texts: Sequence[str],
    source: str,
    target: str,
    translator: Translator,
    *,
    delay: float = 0.0,
    max_workers: int = 1,
) -> list[Translation]:
    """
    Translate texts in input order.

    With max_workers > 1 the calls run on a bounded thread pool; otherwise they
    run one after another with `delay` seconds between calls.
    """
    if not texts:
        return []
    if max_workers > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            return list(executor.map(lambda t: translator.translate(t, source, target), texts))

    results: list[Translation] = []
    for i, text in enumerate(texts):
        if i and delay > 0:
            time.sleep(delay)
        results.append(translator.translate(text, source, target))
    return results


# Corrective rules

SEPARATOR_LINE = re.compile(r"^---[ \t]*$", re.MULTILINE)
SEPARATOR_VARIANT = re.compile(r"^(?:\*{3,}|_{3,}|-{4,})[ \t]*$", re.MULTILINE)


def restore_structural_delimiters(source: str, translated: str) -> str:
    """Put back `---` lines a translation turned into `***`, `___` or a longer dash run."""
    if len(SEPARATOR_LINE.findall(source)) <= len(SEPARATOR_LINE.findall(translated)):
        return translated
    return SEPARATOR_VARIANT.sub("---", translated)


def apply_corrections(source: str, translated: str) -> str:
    return reapply_padding(source, restore_structural_delimiters(source, translated))


# Orchestration

@dataclass
class DocumentTranslation:
    content: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    translated: int = 0  # number of leaves sent for translation


def translate_document(
    content: str,
    file_path: str | Path,
    registry: FormatRegistry,
    translator: Translator,
    source: str,
    target: str,
    *,
    force_type: str | None = None,
    delay: float = 0.0,
    max_workers: int = 1,
) -> DocumentTranslation:
    """Parse, translate every leaf and reconstruct one document."""
    strategy = registry.require(file_path, force_type)
    result = strategy.parse(content)
    if not result.leaves:
        logger.debug("%s: nothing to translate", file_path)
        return DocumentTranslation(content)

    paths = result.paths
    values = [result.leaves[p].value for p in paths]
    translations = translate_batch(values, source, target, translator, delay=delay, max_workers=max_workers)
    mapping = {
        path: apply_corrections(value, t.text)
        for path, value, t in zip(paths, values, translations)
    }
    output = strategy.reconstruct(mapping, result.metadata)
    usage = aggregate_usage(t.usage for t in translations)
    logger.debug("%s: %d leaves translated, %d tokens", file_path, len(paths), usage.total_tokens)
    return DocumentTranslation(output, usage, len(paths))


@dataclass
class FileOutcome:
    path: Path
    content: str | None = None
    usage: TokenUsage = field(default_factory=TokenUsage)
    translated: int = 0
    error: str | None = None
    written_to: Path | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def translate_files(
    paths: Iterable[str | Path],
    registry: FormatRegistry,
    translator: Translator,
    source: str,
    target: str,
    *,
    output_path: Callable[[Path], Path] | None = None,
    force_type: str | None = None,
    delay: float = 0.0,
    max_workers: int = 1,
) -> list[FileOutcome]:
    """
    Translate each file independently.

    A file that cannot be read, parsed or rebuilt yields a FileOutcome with
    `error` set; the remaining files are still processed. When `output_path`
    is given, each translated document is written to output_path(source path).
    """
    outcomes: list[FileOutcome] = []
    for raw_path in paths:
        path = Path(raw_path)
        try:
            content = path.read_text(encoding="utf-8")
            document = translate_document(
                content, path, registry, translator, source, target,
                force_type=force_type, delay=delay, max_workers=max_workers,
            )
        except FormatParseError as e:
            message = format_parse_failure(e, path)
            logger.warning("%s", message)
            outcomes.append(FileOutcome(path, error=message))
            continue
        except (TransleafError, OSError, UnicodeDecodeError) as e:
            logger.warning("Failed: %s: %s", path, e)
            outcomes.append(FileOutcome(path, error=str(e)))
            continue

        outcome = FileOutcome(path, document.content, document.usage, document.translated)
        if output_path is not None:
            destination = output_path(path)
            try:
                destination.parent.mkdir(parents=True, exist_ok=True)
                destination.write_text(document.content, encoding="utf-8")
            except OSError as e:
                logger.warning("Failed to write %s: %s", destination, e)
                outcome.error = f"cannot write {destination}: {e}"
            else:
                outcome.written_to = destination
        outcomes.append(outcome)
    return outcomes


def format_parse_failure(error: FormatParseError | DepthLimitExceeded, file_path: str | Path) -> str:
    """One failure report with a location line and remediation hints."""
    path = Path(file_path)
    lines = [f"Failed: {path.name}", f"  Syntax error: {error}"]
    if isinstance(error, DepthLimitExceeded):
        lines.append(f"  Hint: nesting deeper than {error.limit} levels is refused; flatten the document.")
        return "\n".join(lines)

    message = error.message.lower()
    ext = path.suffix.lower()
    markup = error.format in ("html", "xml") or ext in (".html", ".htm", ".xml")
    if markup and ("entity" in message or "&" in message):
        lines += [
            f"  Hint: escape special characters in your {ext or error.format} file:",
            "    replace & with &amp;",
            "    replace < with &lt;",
            "    replace > with &gt;",
            '    "Home & Garden" becomes "Home &amp; Garden"',
        ]
    elif "unclosed" in message or "not closed" in message:
        lines.append("  Hint: every opening tag or block needs a matching close.")
    elif "unexpected end" in message or "premature end" in message:
        lines.append("  Hint: the file appears to be incomplete.")
    elif "mismatch" in message or "unexpected" in message:
        lines.append("  Hint: opening and closing tags do not match; close <tag> with </tag>.")
    elif error.format in ("json", "yaml", "toml"):
        lines.append(f"  Hint: check quoting and separators near the reported position in this {error.format} file.")
    return "\n".join(lines)
