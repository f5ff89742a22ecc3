"""
Format strategies and the default registry.

Registration order decides ties: an extension claimed by two strategies goes
to the one listed first.
"""

from __future__ import annotations

from ..config import Config, get_config
from .base import FormatRegistry, FormatStrategy
from .csv import CSVStrategy
from .html import HTMLStrategy
from .javascript import JavaScriptStrategy, TSXStrategy, TypeScriptStrategy
from .json import JSONStrategy
from .markdown import MarkdownStrategy
from .toml import TOMLStrategy
from .xml import XMLStrategy
from .yaml import YAMLStrategy

STRATEGIES: tuple[type[FormatStrategy], ...] = (
    MarkdownStrategy,
    JSONStrategy,
    YAMLStrategy,
    TOMLStrategy,
    HTMLStrategy,
    XMLStrategy,
    CSVStrategy,
    JavaScriptStrategy,
    TypeScriptStrategy,
    TSXStrategy,
)


def build_registry(config: Config | None = None) -> FormatRegistry:
    """Registry with every built-in strategy, configured from `config`."""
    config = config or get_config()
    registry = FormatRegistry()
    for cls in STRATEGIES:
        # the config table is keyed by format name, which lives on the instance
        name = cls().name
        registry.register(cls(config.format_options(name), max_depth=config.limits.max_depth))
    return registry
