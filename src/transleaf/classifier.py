"""
Leaf classifier: decides whether a string is prose worth translating.

The policy is an ordered list of rules. Rejection rules run first; the first
match rejects. Positive signals run second; the first match accepts. A value
that hits neither falls back to the classifier's default verdict, which is
"reject" for data formats and "accept" for running prose.

Rules are data so each one can be tested on its own and the policy can be
extended per format without touching control flow.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class Rule:
    """A named pattern. `fullmatch` rules must cover the whole value."""
    name: str
    pattern: re.Pattern[str]
    fullmatch: bool = True

    def matches(self, value: str) -> bool:
        if self.fullmatch:
            return self.pattern.fullmatch(value) is not None
        return self.pattern.search(value) is not None


def rule(name: str, regex: str, fullmatch: bool = True, flags: int = 0) -> Rule:
    return Rule(name, re.compile(regex, flags), fullmatch)


SHELL_PREFIXES = (
    "npm", "npx", "yarn", "pnpm", "bun", "docker", "kubectl", "git",
    "python", "python3", "pip", "node", "bash", "sh", "curl", "helm",
)

FILE_EXTENSIONS = (
    "json", "ya?ml", "toml", "xml", "html?", "css", "scss", "js", "jsx", "mjs",
    "cjs", "ts", "tsx", "mdx?", "txt", "csv", "py", "sh", "png", "jpe?g",
    "gif", "svg", "webp", "ico", "pdf", "lock", "env", "ini", "conf", "log",
)

REJECT_RULES: tuple[Rule, ...] = (
    rule("constant", r"[A-Z][A-Z0-9_]*"),
    rule("number", r"[-+]?(?:\d+(?:[.,]\d+)*|\.\d+)(?:[eE][-+]?\d+)?%?"),
    rule("uuid", r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"),
    rule("url", r"(?:[a-zA-Z][a-zA-Z0-9+.-]*://|//|www\.|mailto:)\S*"),
    rule("email", r"[^\s@]+@[^\s@]+\.[^\s@]+"),
    rule("hex_color", r"#(?:[0-9a-fA-F]{3}){1,2}(?:[0-9a-fA-F]{2})?"),
    rule("camel_case", r"[a-z]+[A-Z][a-zA-Z0-9]*"),
    rule("pascal_compound", r"[A-Z][a-z0-9]+(?:[A-Z][a-z0-9]+)+"),
    rule("snake_case", r"[a-z0-9]+(?:_[a-z0-9]+)+"),
    rule("version", r"v?\d+(?:\.\d+)+(?:[-+][\w.]+)?"),
    rule("ticket_id", r"[A-Z][A-Z0-9]*-\d+"),
    rule("regex_literal", r"/.+/[dgimsuy]*"),
    rule("env_var", r"\$\{[^}]*\}|\$[A-Za-z_][A-Za-z0-9_]*|process\.env\.\w+"),
    rule("pseudo_attribute", r"[\w-]+:[ \t]*[\w-]+"),
    rule("shell_command", r"(?:%s)\s+\S.*" % "|".join(SHELL_PREFIXES), flags=re.DOTALL),
    rule(
        "file_path",
        r"(?:~|\.{1,2})?/[^\s]*"
        r"|[A-Za-z]:\\[^\s]*"
        r"|[\w.-]+/[\w.-]+(?:/[\w.-]+)+/?"
        r"|[\w.-]+/[\w-]*\.\w+"
        r"|[\w-]+(?:\.[\w-]+)*\.(?:%s)" % "|".join(FILE_EXTENSIONS),
    ),
)

ACCEPT_RULES: tuple[Rule, ...] = (
    rule("multi_word", r"\S\s+\S", fullmatch=False),
    rule("terminal_punctuation", r"[.!?…。！？]\s*$", fullmatch=False),
    rule("sentence_case", r"^[A-ZÀ-Þ][a-zß-ÿ]", fullmatch=False),
)

TECHNICAL_KEYS = frozenset({
    "id", "uid", "uuid", "guid", "key", "token", "hash", "version", "timestamp",
    "created_at", "updated_at", "deleted_at", "slug", "sku", "api_key", "password",
    "secret", "client_id", "access_token", "csrf", "nonce", "salt", "checksum",
    "signature", "fingerprint", "host", "hostname", "port", "url", "uri",
    "endpoint", "domain", "ip", "path", "route", "href", "src", "email",
})


def normalize_key(key: str) -> str:
    """Fold case and separators so `apiKey`, `api_key` and `API-KEY` compare equal."""
    return re.sub(r"[_\-\s]", "", key).lower()


class LeafClassifier:
    """Ordered rule policy with a configurable default verdict."""

    def __init__(
        self,
        extra_rules: Iterable[Rule] = (),
        technical_keys: Iterable[str] = TECHNICAL_KEYS,
        accept_by_default: bool = False,
    ):
        self.reject_rules: tuple[Rule, ...] = REJECT_RULES + tuple(extra_rules)
        self.accept_rules: tuple[Rule, ...] = ACCEPT_RULES
        self.technical_keys = frozenset(normalize_key(k) for k in technical_keys)
        self.accept_by_default = accept_by_default

    def extend(
        self,
        rules: Iterable[Rule] = (),
        technical_keys: Iterable[str] = (),
        accept_by_default: bool | None = None,
    ) -> LeafClassifier:
        """Return a new classifier with more rejection rules or technical keys."""
        extended = LeafClassifier.__new__(LeafClassifier)
        extended.reject_rules = self.reject_rules + tuple(rules)
        extended.accept_rules = self.accept_rules
        extended.technical_keys = self.technical_keys | {normalize_key(k) for k in technical_keys}
        extended.accept_by_default = (
            self.accept_by_default if accept_by_default is None else accept_by_default
        )
        return extended

    def explain(self, value: str, context_key: str | None = None) -> tuple[bool, str]:
        """Return (verdict, name of the deciding rule)."""
        text = value.strip()
        if not text:
            return False, "empty"
        if len(text) < 2:
            return False, "too_short"
        if not any(ch.isalpha() for ch in text):
            return False, "no_letters"
        if context_key and normalize_key(context_key) in self.technical_keys:
            return False, "technical_key"
        for r in self.reject_rules:
            if r.matches(text):
                return False, r.name
        for r in self.accept_rules:
            if r.matches(text):
                return True, r.name
        return self.accept_by_default, "default"

    def is_translatable(self, value: str, context_key: str | None = None) -> bool:
        return self.explain(value, context_key)[0]


DEFAULT_CLASSIFIER = LeafClassifier()

# Running text (markup bodies, call arguments) is prose unless a rule says otherwise
PROSE_CLASSIFIER = LeafClassifier(accept_by_default=True)


def is_translatable(value: str, context_key: str | None = None) -> bool:
    """Decide with the default policy."""
    return DEFAULT_CLASSIFIER.is_translatable(value, context_key)
