"""
CLI interface for transleaf.

Inspect what a format strategy would translate, check files before a run,
apply a ready translation map, or translate files offline with a glossary.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .config import get_config
from .errors import FormatParseError, TransleafError
from .formats import build_registry
from .pipeline import MappingTranslator, format_parse_failure, translate_files


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="transleaf",
        description="Translate structured documents leaf by leaf",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log debug output to stderr",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("formats", help="List format strategies and their extensions")

    extract = sub.add_parser("extract", help="Print translatable leaves as JSON")
    extract.add_argument("file", nargs="?", help="Input file (reads from stdin if not provided)")
    extract.add_argument(
        "--type",
        type=str,
        dest="format_type",
        help="Force format type (e.g., json, yaml, html); required for stdin",
    )

    validate = sub.add_parser("validate", help="Check files for syntax errors")
    validate.add_argument("files", nargs="+", help="Files to check")
    validate.add_argument("--type", type=str, dest="format_type", help="Force format type")

    apply = sub.add_parser("apply", help="Write a translation map back into a document")
    apply.add_argument("file", help="Source document")
    apply.add_argument(
        "--translations",
        "-t",
        required=True,
        help="JSON object mapping leaf paths to translated text",
    )
    apply.add_argument("--output", "-o", help="Output file (stdout if not provided)")
    apply.add_argument("--type", type=str, dest="format_type", help="Force format type")

    translate = sub.add_parser("translate", help="Translate files with a glossary")
    translate.add_argument("files", nargs="+", help="Files to translate")
    translate.add_argument("--map", "-m", required=True, dest="glossary", help="JSON glossary: source text to translation")
    translate.add_argument("--source", "-s", default="en", help="Source locale (default: en)")
    translate.add_argument("--target", required=True, help="Target locale")
    translate.add_argument(
        "--output-dir",
        "-o",
        help="Write results under DIR/<target>/ (stdout if not provided)",
    )
    translate.add_argument("--type", type=str, dest="format_type", help="Force format type")

    return parser.parse_args(args)


def read_input(filepath: str | None) -> tuple[str, str | None]:
    """Read from file or stdin, return (content, filename)."""
    if filepath:
        with open(filepath, encoding="utf-8") as f:
            return f.read(), filepath
    return sys.stdin.read(), None


def read_json_object(filepath: str) -> dict[str, str]:
    with open(filepath, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{filepath} must hold a JSON object")
    return {str(k): str(v) for k, v in data.items()}


def cmd_formats(registry) -> int:
    for strategy in registry.strategies:
        print(f"{strategy.name:<12} {' '.join(strategy.extensions)}")
    return 0


def cmd_extract(parsed: argparse.Namespace, registry) -> int:
    content, filename = read_input(parsed.file)
    if filename is None and not parsed.format_type:
        print("Error: --type is required when reading from stdin", file=sys.stderr)
        return 1
    strategy = registry.require(filename or "<stdin>", parsed.format_type)
    result = strategy.parse(content)
    leaves = [
        {"path": leaf.path, "value": leaf.value, "kind": leaf.kind.value, "context": leaf.context_key}
        for leaf in result
    ]
    print(json.dumps(leaves, ensure_ascii=False, indent=2))
    return 0


def cmd_validate(parsed: argparse.Namespace, registry) -> int:
    failures = 0
    for filepath in parsed.files:
        try:
            strategy = registry.require(filepath, parsed.format_type)
            content, _ = read_input(filepath)
        except (TransleafError, OSError, UnicodeDecodeError) as e:
            print(f"{filepath}: error: {e}")
            failures += 1
            continue
        result = strategy.validate(content)
        if result.valid:
            print(f"{filepath}: ok")
            continue
        failures += 1
        for issue in result.errors:
            print(f"{filepath}: {issue}")
    return 1 if failures else 0


def cmd_apply(parsed: argparse.Namespace, registry) -> int:
    content, filename = read_input(parsed.file)
    strategy = registry.require(filename, parsed.format_type)
    translations = read_json_object(parsed.translations)
    result = strategy.parse(content)
    unknown = [path for path in translations if path not in result]
    if unknown:
        logging.getLogger(__name__).warning("Ignoring %d unknown paths: %s", len(unknown), ", ".join(unknown[:5]))
    output = strategy.reconstruct(translations, result.metadata)
    if parsed.output:
        Path(parsed.output).write_text(output, encoding="utf-8")
    else:
        sys.stdout.write(output)
    return 0


def cmd_translate(parsed: argparse.Namespace, registry) -> int:
    cfg = get_config()
    translator = MappingTranslator(read_json_object(parsed.glossary))

    output_path = None
    if parsed.output_dir:
        root = Path(parsed.output_dir) / parsed.target

        def output_path(path: Path) -> Path:
            return root / path.name

    outcomes = translate_files(
        parsed.files,
        registry,
        translator,
        parsed.source,
        parsed.target,
        output_path=output_path,
        force_type=parsed.format_type,
        delay=cfg.pipeline.request_delay,
        max_workers=cfg.pipeline.max_workers,
    )

    for outcome in outcomes:
        if not outcome.ok:
            print(outcome.error, file=sys.stderr)
        elif outcome.written_to is not None:
            print(f"{outcome.path} -> {outcome.written_to} ({outcome.translated} leaves)")
        else:
            sys.stdout.write(outcome.content or "")
    return 0 if all(o.ok for o in outcomes) else 1


def main(args: list[str] | None = None) -> int:
    """Main entry point."""
    parsed = parse_args(args)
    logging.basicConfig(
        level=logging.DEBUG if parsed.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    registry = build_registry(get_config())
    try:
        if parsed.command == "formats":
            return cmd_formats(registry)
        if parsed.command == "extract":
            return cmd_extract(parsed, registry)
        if parsed.command == "validate":
            return cmd_validate(parsed, registry)
        if parsed.command == "apply":
            return cmd_apply(parsed, registry)
        return cmd_translate(parsed, registry)
    except FileNotFoundError as e:
        print(f"Error: File not found: {e.filename}", file=sys.stderr)
        return 1
    except FormatParseError as e:
        print(format_parse_failure(e, getattr(parsed, "file", None) or "<stdin>"), file=sys.stderr)
        return 1
    except (TransleafError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
