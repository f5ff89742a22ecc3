"""
Configuration for transleaf.

All tunable parameters in one place. Loaded from:
1. Defaults (this file)
2. Config file (~/.config/transleaf/config.toml) if exists
3. Environment variables (TRANSLEAF_*) override file
4. CLI flags override everything

Per-format options live under [formats.<name>] tables, e.g.

    [formats.json]
    exclude_paths = ["config"]

    [formats.html]
    translatable_attributes = ["alt", "title"]
"""

from __future__ import annotations

import contextlib
import logging
import os
import tomllib  # stdlib in 3.11+
from dataclasses import dataclass, field, fields, replace
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class LimitsConfig:
    """Safety limits applied while parsing."""
    max_depth: int = 100


@dataclass
class PipelineConfig:
    """Pacing for calls to the translation backend."""
    request_delay: float = 0.1  # seconds between sequential calls
    max_workers: int = 1  # >1 switches to a bounded thread pool


@dataclass
class FormatOptions:
    """Options a strategy reads. None means "use the strategy default"."""
    include_paths: list[str] | None = None
    exclude_paths: list[str] | None = None
    skip_empty_strings: bool = True
    translatable_attributes: list[str] | None = None
    skip_tags: list[str] | None = None
    preserve_comments: bool = True
    skip_keys: list[str] | None = None
    translation_functions: list[str] | None = None
    frontmatter_fields: list[str] | None = None
    extract_mode: str = "both"  # objects | functions | both


@dataclass
class Config:
    """Root config with all settings."""
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    formats: dict[str, FormatOptions] = field(default_factory=dict)

    def format_options(self, name: str) -> FormatOptions:
        """Options for one format, defaults when the section is absent."""
        options = self.formats.get(name)
        return replace(options) if options is not None else FormatOptions()


def get_config_path() -> Path:
    """Get config file path, respecting XDG."""
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "transleaf" / "config.toml"
    return Path.home() / ".config" / "transleaf" / "config.toml"


def load_config(path: Path | None = None) -> Config:
    """Load config from file if exists, else return defaults."""
    config = Config()
    path = path or get_config_path()

    if path.exists():
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
            config = _apply_toml(config, data)
        except (OSError, tomllib.TOMLDecodeError, TypeError, ValueError) as e:
            logger.warning("Ignoring config file %s: %s", path, e)
            config = Config()

    # env var overrides
    config = _apply_env(config)

    return config


def _apply_toml(config: Config, data: dict) -> Config:
    """Apply toml data to config."""
    if "limits" in data:
        lim = data["limits"]
        if "max_depth" in lim:
            config.limits.max_depth = int(lim["max_depth"])

    if "pipeline" in data:
        p = data["pipeline"]
        if "request_delay" in p:
            config.pipeline.request_delay = float(p["request_delay"])
        if "max_workers" in p:
            config.pipeline.max_workers = int(p["max_workers"])

    for name, table in data.get("formats", {}).items():
        config.formats[name] = _format_options(table)

    return config


def _format_options(table: dict) -> FormatOptions:
    options = FormatOptions()
    for f in fields(FormatOptions):
        if f.name not in table:
            continue
        value = table[f.name]
        if isinstance(value, list):
            value = [str(v) for v in value]
        elif isinstance(getattr(options, f.name), bool):
            value = bool(value)
        elif f.name == "extract_mode":
            value = str(value)
        else:
            raise TypeError(f"formats option {f.name!r} expects a list")
        setattr(options, f.name, value)
    return options


def _apply_env(config: Config) -> Config:
    """Apply environment variable overrides."""
    env_map: dict[str, tuple[str, str, type]] = {
        "TRANSLEAF_MAX_DEPTH": ("limits", "max_depth", int),
        "TRANSLEAF_REQUEST_DELAY": ("pipeline", "request_delay", float),
        "TRANSLEAF_MAX_WORKERS": ("pipeline", "max_workers", int),
    }

    for env_key, (section, attr, conv) in env_map.items():
        val = os.environ.get(env_key)
        if val is not None:
            with contextlib.suppress(ValueError):
                setattr(getattr(config, section), attr, conv(val))

    # Comment handling only matters to the nested-mapping notations
    val = os.environ.get("TRANSLEAF_PRESERVE_COMMENTS")
    if val is not None:
        preserve = val.lower() in ("true", "1", "yes")
        for name in ("yaml", "toml"):
            options = config.formats.setdefault(name, FormatOptions())
            options.preserve_comments = preserve

    return config


# Module-level config instance, loaded on first use
_config: Config | None = None


def get_config() -> Config:
    """Get the global config instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config
