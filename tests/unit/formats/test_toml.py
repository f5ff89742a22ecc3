"""
Unit tests for TOML format strategy.
"""

import tomllib
from pathlib import Path

import pytest

from transleaf.errors import DepthLimitExceeded, FormatParseError
from transleaf.formats.toml import TOMLStrategy


FIXTURES = Path(__file__).parent.parent.parent / "fixtures"


@pytest.fixture
def strategy():
    return TOMLStrategy()


class TestTOMLParsing:
    def test_fixture(self, strategy):
        result = strategy.parse((FIXTURES / "config.toml").read_text())
        assert result.values() == {
            "title": "Welcome to the dashboard",
            "footer.text": "All rights reserved.",
        }

    def test_array_of_tables(self, strategy):
        content = '[[faq]]\nquestion = "How do I start?"\n\n[[faq]]\nquestion = "Where are my files?"\n'
        assert strategy.parse(content).paths == ["faq[0].question", "faq[1].question"]

    def test_key_of_line(self, strategy):
        assert strategy.key_of_line('title = "x"') == "title"
        assert strategy.key_of_line('site . "name" = "x"') == "site.name"
        assert strategy.key_of_line("[footer]") == "[footer]"
        assert strategy.key_of_line("[[faq]]  # entries") == "[faq]"
        assert strategy.key_of_line("# just a comment") is None

    def test_comments_captured(self, strategy):
        meta = strategy.parse((FIXTURES / "config.toml").read_text()).metadata
        assert [(c.text, c.anchor, c.inline) for c in meta.comments] == [
            ("# Site settings", "title", False),
            ("# shown in the header", "title", True),
        ]

    def test_hash_in_multiline_string(self, strategy):
        content = 'body = """\nLine one\n# still text\n"""\n'
        assert strategy.parse(content).metadata.comments == []


class TestTOMLReconstruct:
    def test_comments_reattached(self, strategy):
        content = (FIXTURES / "config.toml").read_text()
        result = strategy.parse(content)
        output = strategy.reconstruct({"title": "Bienvenido al panel"}, result.metadata)
        assert output.startswith("# Site settings\n")
        assert 'title = "Bienvenido al panel"  # shown in the header' in output
        data = tomllib.loads(output)
        assert data["port"] == 8080
        assert data["footer"] == {"text": "All rights reserved.", "host": "localhost"}

    def test_empty_map_returns_source(self, strategy):
        content = (FIXTURES / "config.toml").read_text()
        result = strategy.parse(content)
        assert strategy.reconstruct({}, result.metadata) == content

    def test_quotes_escaped(self, strategy):
        result = strategy.parse('title = "Hello world"\n')
        output = strategy.reconstruct({"title": 'Say "hi" now'}, result.metadata)
        assert tomllib.loads(output)["title"] == 'Say "hi" now'

    def test_backslash_escapes_survive(self, strategy):
        content = 'title = "Hello there"\npath = "C:\\\\xfiles\\\\data"\n'
        result = strategy.parse(content)
        output = strategy.reconstruct({"title": "Hola amigos"}, result.metadata)
        data = tomllib.loads(output)
        assert data["title"] == "Hola amigos"
        assert data["path"] == "C:\\xfiles\\data"

    def test_unicode_escape_sequence_kept(self, strategy):
        content = 'title = "Hello there"\nnote = "Tab\\there \\u00e9t\u00e9"\n'
        result = strategy.parse(content)
        output = strategy.reconstruct({"title": "Hola amigos"}, result.metadata)
        assert tomllib.loads(output)["note"] == tomllib.loads(content)["note"]


class TestTOMLErrors:
    def test_parse_error_location(self, strategy):
        with pytest.raises(FormatParseError) as info:
            strategy.parse('title = "ok"\nbroken =\n')
        assert info.value.line == 2
        assert "at line" not in info.value.message

    def test_validate(self, strategy):
        assert strategy.validate('a = 1\n').valid
        assert not strategy.validate('a = \n').valid

    def test_depth_limit(self, strategy):
        with pytest.raises(DepthLimitExceeded):
            strategy.parse("a = " + "[" * 100 + '"Deep text"' + "]" * 100 + "\n")

    def test_depth_at_limit_allowed(self, strategy):
        result = strategy.parse("a = " + "[" * 99 + '"Deep text"' + "]" * 99 + "\n")
        assert len(result) == 1

    def test_custom_depth(self):
        content = '[site]\n[site.footer]\ntext = "Too deep here"\n'
        with pytest.raises(DepthLimitExceeded):
            TOMLStrategy(max_depth=2).parse(content)
