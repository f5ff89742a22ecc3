"""
Unit tests for JSON format strategy.
"""

import json
from pathlib import Path

import pytest

from transleaf.config import FormatOptions
from transleaf.errors import DepthLimitExceeded, FormatParseError, ReconstructionFault
from transleaf.formats.json import JSONStrategy


FIXTURES = Path(__file__).parent.parent.parent / "fixtures"


@pytest.fixture
def strategy():
    return JSONStrategy()


class TestJSONParsing:
    def test_name_and_extensions(self, strategy):
        assert strategy.name == "json"
        assert strategy.extensions == [".json"]
        assert strategy.can_handle("locales/EN.JSON")

    def test_technical_keys_skipped(self, strategy):
        result = strategy.parse('{"title":"Hello world","id":"abc"}')
        assert result.paths == ["title"]

    def test_nested_paths(self, strategy):
        content = '{"page": {"items": [{"label": "Save changes"}, {"label": "Discard draft"}]}}'
        result = strategy.parse(content)
        assert result.paths == ["page.items[0].label", "page.items[1].label"]
        leaf = result.leaves["page.items[1].label"]
        assert leaf.context_key == "label"
        assert leaf.depth == 4

    def test_array_of_strings(self, strategy):
        result = strategy.parse('{"tips": ["Drink water.", "Take a walk."]}')
        assert result.values() == {"tips[0]": "Drink water.", "tips[1]": "Take a walk."}
        assert result.leaves["tips[1]"].array_index == 1

    def test_ambiguous_key_is_quoted(self, strategy):
        result = strategy.parse('{"a.b": "Hello world", "": "Empty key text"}')
        assert result.paths == ['["a.b"]', '[""]']

    def test_sibling_keys_recorded(self, strategy):
        result = strategy.parse('{"title": "Hello world", "count": 3}')
        assert result.leaves["title"].sibling_keys == ("title", "count")

    def test_technical_values_skipped(self, strategy):
        content = '{"title": "Hello world", "color": "#FF5733", "flag": "DARK_MODE", "n": 4}'
        assert strategy.parse(content).paths == ["title"]

    def test_fixture(self, strategy):
        content = (FIXTURES / "messages.json").read_text()
        result = strategy.parse(content)
        assert result.paths == ["title", "buttons.save", "buttons.cancel", "config.label"]

    def test_paths_unique(self, strategy):
        content = (FIXTURES / "messages.json").read_text()
        paths = strategy.parse(content).paths
        assert len(paths) == len(set(paths))

    def test_top_level_scalar(self, strategy):
        assert len(strategy.parse('"Just a sentence."')) == 0


class TestJSONOptions:
    def test_exclude_paths(self):
        strategy = JSONStrategy(FormatOptions(exclude_paths=["config"]))
        content = '{"title": "Hello world", "config": {"label": "Save changes"}}'
        result = strategy.parse(content)
        assert result.paths == ["title"]
        assert not any(p == "config" or p.startswith("config.") for p in result.paths)

    def test_include_paths(self):
        strategy = JSONStrategy(FormatOptions(include_paths=["config"]))
        content = '{"title": "Hello world", "config": {"label": "Save changes"}}'
        assert strategy.parse(content).paths == ["config.label"]

    def test_empty_strings_skipped_by_default(self, strategy):
        assert strategy.parse('{"title": ""}').paths == []

    def test_empty_strings_offered_when_asked(self):
        strategy = JSONStrategy(FormatOptions(skip_empty_strings=False))
        assert strategy.parse('{"title": ""}').paths == ["title"]

    def test_custom_skip_keys(self):
        strategy = JSONStrategy(FormatOptions(skip_keys=["internalNote"]))
        content = '{"internal_note": "Do not ship this", "title": "Hello world", "type": "Visit us today"}'
        # custom keys replace the defaults
        assert strategy.parse(content).paths == ["title", "type"]


class TestJSONReconstruct:
    def test_round_trip(self, strategy):
        content = '{"title":"Hello","description":"World"}'
        result = strategy.parse(content)
        output = strategy.reconstruct({"title": "Hola", "description": "Mundo"}, result.metadata)
        assert output == '{"title":"Hola","description":"Mundo"}'

    def test_empty_map_returns_source(self, strategy):
        content = '{ "title" :   "Hello world" }'
        result = strategy.parse(content)
        assert strategy.reconstruct({}, result.metadata) == content

    def test_unknown_paths_ignored(self, strategy):
        content = '{"title": "Hello world"}'
        result = strategy.parse(content)
        assert strategy.reconstruct({"subtitle": "Nope"}, result.metadata) == content

    def test_pretty_indent_preserved(self, strategy):
        content = '{\n    "title": "Hello world",\n    "id": 7\n}\n'
        result = strategy.parse(content)
        output = strategy.reconstruct({"title": "Hola mundo"}, result.metadata)
        assert output == '{\n    "title": "Hola mundo",\n    "id": 7\n}\n'

    def test_tab_indent(self, strategy):
        content = '{\n\t"title": "Hello world"\n}'
        result = strategy.parse(content)
        output = strategy.reconstruct({"title": "Hola mundo"}, result.metadata)
        assert output == '{\n\t"title": "Hola mundo"\n}'

    def test_non_ascii_written_as_is(self, strategy):
        result = strategy.parse('{"title": "Hello world"}')
        output = strategy.reconstruct({"title": "こんにちは世界"}, result.metadata)
        assert "こんにちは世界" in output

    def test_source_documents_not_mutated(self, strategy):
        result = strategy.parse('{"title": "Hello world"}')
        strategy.reconstruct({"title": "Hola mundo"}, result.metadata)
        assert result.metadata.documents[0] == {"title": "Hello world"}

    def test_fixture_structure_kept(self, strategy):
        content = (FIXTURES / "messages.json").read_text()
        result = strategy.parse(content)
        translations = {path: f"ES {value}" for path, value in result.values().items()}
        output = json.loads(strategy.reconstruct(translations, result.metadata))
        original = json.loads(content)
        assert output["buttons"]["save"] == "ES Save changes"
        assert output["id"] == original["id"]
        assert output["config"]["theme"] == "dark"
        assert list(output) == list(original)

    def test_foreign_metadata_rejected(self, strategy):
        with pytest.raises(ReconstructionFault):
            strategy.reconstruct({}, object())


class TestJSONErrors:
    def test_parse_error_location(self, strategy):
        with pytest.raises(FormatParseError) as info:
            strategy.parse('{\n  "title": \n}')
        assert info.value.line == 3
        assert info.value.column is not None

    def test_validate(self, strategy):
        assert strategy.validate('{"a": 1}').valid
        result = strategy.validate('{"a": 1,}')
        assert not result.valid
        assert result.errors[0].line == 1

    def test_depth_limit(self, strategy):
        with pytest.raises(DepthLimitExceeded):
            strategy.parse("[" * 101 + "]" * 101)

    def test_depth_at_limit_allowed(self, strategy):
        assert len(strategy.parse("[" * 100 + "]" * 100)) == 0

    def test_custom_depth(self):
        with pytest.raises(DepthLimitExceeded):
            JSONStrategy(max_depth=2).parse('{"a": {"b": {"c": "Too deep here"}}}')
