"""
Unit tests for the leaf classifier.
"""

import pytest

from transleaf.classifier import (
    DEFAULT_CLASSIFIER,
    PROSE_CLASSIFIER,
    REJECT_RULES,
    LeafClassifier,
    is_translatable,
    normalize_key,
    rule,
)


class TestTechnicalValues:
    @pytest.mark.parametrize("value", [
        "API_KEY",
        "42",
        "550e8400-e29b-41d4-a716-446655440000",
        "https://example.com",
        "test@example.com",
        "#FF5733",
        "myVariableName",
    ])
    def test_rejected(self, value):
        assert not is_translatable(value)

    def test_prose_accepted(self):
        assert is_translatable("This is translatable")

    @pytest.mark.parametrize("value, rule_name", [
        ("API_KEY", "constant"),
        ("UserProfile", "pascal_compound"),
        ("user_profile", "snake_case"),
        ("v1.2.3", "version"),
        ("PROJ-123", "ticket_id"),
        ("${HOME}", "env_var"),
        ("npm install transleaf", "shell_command"),
        ("./src/index.ts", "file_path"),
        ("config.json", "file_path"),
        ("docs/guide/intro", "file_path"),
        ("www.example.com", "url"),
    ])
    def test_deciding_rule(self, value, rule_name):
        assert DEFAULT_CLASSIFIER.explain(value) == (False, rule_name)

    def test_guards_run_before_rules(self):
        assert DEFAULT_CLASSIFIER.explain("") == (False, "empty")
        assert DEFAULT_CLASSIFIER.explain("   ") == (False, "empty")
        assert DEFAULT_CLASSIFIER.explain("x") == (False, "too_short")
        assert DEFAULT_CLASSIFIER.explain("12:30") == (False, "no_letters")

    def test_rule_names_unique(self):
        names = [r.name for r in REJECT_RULES]
        assert len(names) == len(set(names))


class TestPositiveSignals:
    def test_multi_word(self):
        assert DEFAULT_CLASSIFIER.explain("Save changes") == (True, "multi_word")

    def test_terminal_punctuation(self):
        assert DEFAULT_CLASSIFIER.explain("done.") == (True, "terminal_punctuation")

    def test_sentence_case_word(self):
        assert DEFAULT_CLASSIFIER.explain("Cancel") == (True, "sentence_case")

    def test_lowercase_word_needs_prose_policy(self):
        """A bare lowercase word is data by default, text in running prose."""
        assert not DEFAULT_CLASSIFIER.is_translatable("dark")
        assert PROSE_CLASSIFIER.is_translatable("dark")

    def test_prose_policy_still_rejects(self):
        assert not PROSE_CLASSIFIER.is_translatable("myVariableName")

    def test_surrounding_whitespace_ignored(self):
        assert is_translatable("  Hello world  ")


class TestContextKeys:
    def test_technical_key_rejects_prose(self):
        assert DEFAULT_CLASSIFIER.explain("Hello world", "id") == (False, "technical_key")

    @pytest.mark.parametrize("key", ["api_key", "apiKey", "API-KEY"])
    def test_key_normalization(self, key):
        assert normalize_key(key) == "apikey"
        assert not is_translatable("Some secret words", key)

    def test_content_key_allows(self):
        assert is_translatable("Hello world", "title")


class TestExtension:
    def test_extend_adds_rules(self):
        strict = DEFAULT_CLASSIFIER.extend([rule("greeting", r"Hello.*")])
        assert strict.explain("Hello world") == (False, "greeting")
        # the base policy is unchanged
        assert DEFAULT_CLASSIFIER.is_translatable("Hello world")

    def test_extend_adds_technical_keys(self):
        ci = DEFAULT_CLASSIFIER.extend(technical_keys=["runs-on"])
        assert not ci.is_translatable("Ubuntu latest", "runs_on")

    def test_extend_switches_default(self):
        assert DEFAULT_CLASSIFIER.extend(accept_by_default=True).is_translatable("dark")

    def test_non_fullmatch_rule(self):
        classifier = LeafClassifier(extra_rules=[rule("braces", r"[{}]", fullmatch=False)])
        assert not classifier.is_translatable("Hello {name}, welcome")
