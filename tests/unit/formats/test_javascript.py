"""
Unit tests for JavaScript / TypeScript format strategies.
"""

from pathlib import Path

import pytest

from transleaf.config import FormatOptions
from transleaf.errors import DepthLimitExceeded, FormatParseError
from transleaf.model import LeafKind
from transleaf.formats.javascript import (
    JavaScriptStrategy,
    TSXStrategy,
    TypeScriptStrategy,
    unescape_js,
)


FIXTURES = Path(__file__).parent.parent.parent / "fixtures"


@pytest.fixture
def strategy():
    return JavaScriptStrategy()


@pytest.fixture
def fixture_content():
    return (FIXTURES / "app.jsx").read_text()


class TestResourceObjects:
    def test_fixture_objects(self, strategy, fixture_content):
        result = strategy.parse(fixture_content)
        assert result.values()["messages.greeting"] == "Welcome back"
        assert result.values()["messages.farewell"] == "See you soon!"

    def test_mostly_numeric_object_skipped(self, strategy, fixture_content):
        result = strategy.parse(fixture_content)
        assert not any(path.startswith("settings.") for path in result.paths)
        assert "Retry policy" not in result.values().values()

    def test_nested_and_arrays(self, strategy):
        content = (
            'const ui = { title: "Main menu", nav: { home: "Home page" },'
            ' tips: ["Save often", "Ask for help"], footer: "All rights reserved" };'
        )
        assert strategy.parse(content).values() == {
            "ui.title": "Main menu",
            "ui.nav.home": "Home page",
            "ui.tips[0]": "Save often",
            "ui.tips[1]": "Ask for help",
            "ui.footer": "All rights reserved",
        }

    def test_arrays_do_not_count_toward_resource(self, strategy):
        """Only the nested object qualifies, and it has no declaration of its own."""
        content = 'const ui = { nav: { home: "Home page" }, tips: ["Save often", "Ask for help"] };'
        assert strategy.parse(content).values() == {"object_0.home": "Home page"}

    def test_export_default_owner(self, strategy):
        result = strategy.parse('export default { title: "Account settings" };\n')
        assert result.paths == ["default.title"]

    def test_anonymous_owner(self, strategy):
        result = strategy.parse('register({ title: "Account settings" });\n')
        assert result.paths == ["object_0.title"]

    def test_technical_values_rejected(self, strategy):
        content = 'const links = { home: "https://example.com", docs: "/docs/start", name: "Read the docs" };'
        assert strategy.parse(content).paths == ["links.name"]

    def test_template_without_substitution(self, strategy):
        result = strategy.parse("const m = { hi: `Hello there` };")
        assert result.values() == {"m.hi": "Hello there"}

    def test_unescape(self, strategy):
        result = strategy.parse("const m = { note: 'It\\'s done\\nfor today' };")
        assert result.values() == {"m.note": "It's done\nfor today"}
        assert unescape_js("caf\\u00e9 \\x41") == "café A"


class TestCallsAndJSX:
    def test_translation_call(self, strategy, fixture_content):
        result = strategy.parse(fixture_content)
        assert result.values()["call.t.0"] == "Sign in"

    def test_jsx_text_and_attributes(self, strategy, fixture_content):
        result = strategy.parse(fixture_content)
        values = result.values()
        assert values["jsx.text.0"] == "Forgot your password?"
        assert values["jsx.@placeholder.0"] == "Your email address"
        assert values["jsx.@title.0"] == "Sign in to your account"
        assert result.leaves["jsx.@title.0"].kind == LeafKind.ATTRIBUTE

    def test_unlisted_attribute_ignored(self, strategy):
        result = strategy.parse('const el = <div className="Main content area" title="Main area" />;')
        assert result.paths == ["jsx.@title.0"]

    def test_functions_mode(self, fixture_content):
        strategy = JavaScriptStrategy(FormatOptions(extract_mode="functions"))
        result = strategy.parse(fixture_content)
        assert "call.t.0" in result
        assert not any(path.startswith("messages.") for path in result.paths)

    def test_objects_mode_skips_calls(self, fixture_content):
        strategy = JavaScriptStrategy(FormatOptions(extract_mode="objects"))
        result = strategy.parse(fixture_content)
        assert "messages.greeting" in result
        assert "call.t.0" not in result

    def test_custom_functions(self):
        strategy = JavaScriptStrategy(FormatOptions(translation_functions=["gettext"]))
        result = strategy.parse('gettext("Welcome back"); t("Not this one");')
        assert result.values() == {"call.gettext.0": "Welcome back"}


class TestTypeScript:
    def test_typed_object(self):
        content = 'const labels: Record<string, string> = { save: "Save changes", cancel: "Cancel" };\n'
        result = TypeScriptStrategy().parse(content)
        assert result.values() == {"labels.save": "Save changes", "labels.cancel": "Cancel"}

    def test_as_const(self):
        result = TypeScriptStrategy().parse('export const copy = { intro: "Get started today" } as const;\n')
        assert result.paths == ["copy.intro"]

    def test_tsx(self):
        content = 'export const Hint = (): JSX.Element => <span title="More details">Tap to open</span>;\n'
        result = TSXStrategy().parse(content)
        assert result.values() == {"jsx.@title.0": "More details", "jsx.text.0": "Tap to open"}

    def test_extensions(self):
        assert TypeScriptStrategy().can_handle("strings.ts")
        assert TSXStrategy().can_handle("App.tsx")
        assert JavaScriptStrategy().can_handle("App.jsx")


class TestJavaScriptReconstruct:
    def test_comments_and_layout_survive(self, strategy, fixture_content):
        result = strategy.parse(fixture_content)
        output = strategy.reconstruct(
            {"messages.greeting": "Bienvenido de nuevo", "jsx.text.0": "¿Olvidaste tu contraseña?"},
            result.metadata,
        )
        expected = (fixture_content
                    .replace('"Welcome back"', '"Bienvenido de nuevo"')
                    .replace("Forgot your password?", "¿Olvidaste tu contraseña?"))
        assert output == expected

    def test_empty_map_returns_source(self, strategy, fixture_content):
        result = strategy.parse(fixture_content)
        assert strategy.reconstruct({}, result.metadata) == fixture_content

    def test_string_escaping(self, strategy, fixture_content):
        result = strategy.parse(fixture_content)
        output = strategy.reconstruct(
            {"messages.greeting": 'Say "hi"', "messages.farewell": "It's late"}, result.metadata
        )
        assert 'greeting: "Say \\"hi\\"",' in output
        assert "farewell: 'It\\'s late'," in output

    def test_template_escaping(self, strategy):
        result = strategy.parse("const m = { hi: `Hello there` };")
        output = strategy.reconstruct({"m.hi": "Cost: ${price} `now`"}, result.metadata)
        assert output == "const m = { hi: `Cost: \\${price} \\`now\\`` };"

    def test_jsx_escaping(self, strategy):
        result = strategy.parse('const el = <p title="Old title">Plain words here</p>;')
        output = strategy.reconstruct(
            {"jsx.@title.0": 'Say "hi"', "jsx.text.0": "Use {braces} <here>"}, result.metadata
        )
        assert output == (
            'const el = <p title="Say &quot;hi&quot;">Use &#123;braces&#125; &lt;here&gt;</p>;'
        )

    def test_non_ascii_offsets(self, strategy):
        result = strategy.parse('const m = { a: "Café ouvert", b: "Menu du jour" };')
        output = strategy.reconstruct({"b": "x", "m.b": "Daily menu"}, result.metadata)
        assert output == 'const m = { a: "Café ouvert", b: "Daily menu" };'


class TestJavaScriptErrors:
    def test_parse_error(self, strategy):
        with pytest.raises(FormatParseError) as info:
            strategy.parse("const x = {\n  a: 'unterminated\n")
        assert info.value.line is not None

    def test_validate(self, strategy, fixture_content):
        assert strategy.validate(fixture_content).valid
        assert not strategy.validate("function (").valid

    def test_depth_limit(self, strategy):
        content = "const x = " + "{ a: " * 101 + '"Deep text"' + " }" * 101 + ";"
        with pytest.raises(DepthLimitExceeded):
            strategy.parse(content)

    def test_depth_at_limit_allowed(self, strategy):
        content = "const x = " + "{ a: " * 100 + '"Deep text"' + " }" * 100 + ";"
        assert len(strategy.parse(content)) == 1
