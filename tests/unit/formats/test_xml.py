"""
Unit tests for XML format strategy.
"""

from pathlib import Path

import pytest

from transleaf.errors import DepthLimitExceeded, FormatParseError
from transleaf.model import LeafKind
from transleaf.formats.xml import XMLStrategy


FIXTURES = Path(__file__).parent.parent.parent / "fixtures"


@pytest.fixture
def strategy():
    return XMLStrategy()


@pytest.fixture
def fixture_content():
    return (FIXTURES / "strings.xml").read_text()


class TestXMLParsing:
    def test_fixture_values(self, strategy, fixture_content):
        result = strategy.parse(fixture_content)
        assert list(result.values().values()) == [
            "Sign in to continue",
            "Sign in now",
            "Sign in",
            "Read the <b>terms</b> first.",
        ]

    def test_paths_follow_tag_chain(self, strategy, fixture_content):
        result = strategy.parse(fixture_content)
        assert all(p.startswith("resources.string.") for p in result.paths)
        label = next(leaf for leaf in result if leaf.value == "Sign in now")
        assert label.kind == LeafKind.ATTRIBUTE
        assert label.path.startswith("resources.string.@label_")

    def test_constants_rejected(self, strategy):
        result = strategy.parse("<config><mode>DARK_MODE</mode><flag>true</flag><tpl>{count}</tpl></config>")
        assert len(result) == 0

    def test_namespaced_names(self, strategy):
        content = '<r xmlns:x="urn:x"><x:item x:title="Local name wins">Shown text here</x:item></r>'
        result = strategy.parse(content)
        assert list(result.values().values()) == ["Local name wins", "Shown text here"]
        assert all(p.startswith("r.item.") for p in result.paths)

    def test_tail_text(self, strategy):
        result = strategy.parse("<p>Press <b>Save</b> to keep your work.</p>")
        assert list(result.values().values()) == ["Press", "Save", "to keep your work."]

    def test_metadata(self, strategy, fixture_content):
        meta = strategy.parse(fixture_content).metadata
        assert meta.declaration.startswith('<?xml version="1.0" encoding="UTF-8"?>')
        assert meta.encoding == "UTF-8"


class TestXMLReconstruct:
    def test_only_translated_text_changes(self, strategy, fixture_content):
        result = strategy.parse(fixture_content)
        path = next(leaf.path for leaf in result if leaf.value == "Sign in to continue")
        output = strategy.reconstruct({path: "Inicia sesión para continuar"}, result.metadata)
        assert output == fixture_content.replace("Sign in to continue", "Inicia sesión para continuar")

    def test_cdata_survives(self, strategy, fixture_content):
        result = strategy.parse(fixture_content)
        path = next(leaf.path for leaf in result if leaf.value.startswith("Read the"))
        output = strategy.reconstruct({path: "Lee los <b>términos</b> primero."}, result.metadata)
        assert "<![CDATA[Lee los <b>términos</b> primero.]]>" in output
        assert "<!-- login screen -->" in output

    def test_empty_map_returns_source(self, strategy, fixture_content):
        result = strategy.parse(fixture_content)
        assert strategy.reconstruct({}, result.metadata) == fixture_content

    def test_prolog_and_epilog_kept(self, strategy):
        content = (
            '<?xml version="1.0"?>\n\n<!-- generated -->\n<?xml-stylesheet href="s.xsl"?>\n'
            "<!DOCTYPE note [\n  <!ELEMENT note (#PCDATA)>\n]>\n"
            "<note>Hello world</note>\n\n<!-- end -->\n"
        )
        result = strategy.parse(content)
        output = strategy.reconstruct({"note.text_0": "Hola mundo"}, result.metadata)
        assert output == content.replace("Hello world", "Hola mundo")

    def test_comment_before_root_without_declaration(self, strategy):
        content = "<!-- c -->\n<root>\n  <title>Hello world</title>\n</root>\n"
        result = strategy.parse(content)
        path = next(leaf.path for leaf in result if leaf.value == "Hello world")
        output = strategy.reconstruct({path: "Hola mundo"}, result.metadata)
        assert output == "<!-- c -->\n<root>\n  <title>Hola mundo</title>\n</root>\n"

    def test_escaping(self, strategy):
        result = strategy.parse("<msg>Hello world</msg>")
        output = strategy.reconstruct({"msg.text_0": "Fish & chips <now>"}, result.metadata)
        assert output == "<msg>Fish &amp; chips &lt;now&gt;</msg>"

    def test_attribute_write(self, strategy):
        result = strategy.parse('<button label="Sign in now"/>')
        output = strategy.reconstruct({"button.@label_0": "Entrar ahora"}, result.metadata)
        assert output == '<button label="Entrar ahora"/>'


class TestXMLErrors:
    def test_unescaped_ampersand(self, strategy):
        with pytest.raises(FormatParseError) as info:
            strategy.parse("<shop>\n  <name>Home & Garden</name>\n</shop>")
        assert info.value.line == 2

    def test_mismatched_tags(self, strategy):
        result = strategy.validate("<a><b>Text</a>")
        assert not result.valid
        assert result.errors[0].line == 1

    def test_depth_limit(self, strategy):
        with pytest.raises(DepthLimitExceeded):
            strategy.parse("<e>" * 101 + "Deep text" + "</e>" * 101)

    def test_depth_at_limit_allowed(self, strategy):
        assert len(strategy.parse("<e>" * 100 + "Deep text" + "</e>" * 100)) == 1
