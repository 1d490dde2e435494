"""Unified configuration loader for embedlint.

Configuration is resolved in priority order: **project > user > defaults**.

1. **Project-level**: ``.embedlint.yml`` in (or above) the linted directory.
   Checked into version control, shared by the team.
2. **User-level**: ``~/.embedlint/config.yml``.
   Personal defaults across all projects.
3. **Built-in defaults**: ``engine: basic`` with the engine's default rules.

Both files share the same format::

    # .embedlint.yml  or  ~/.embedlint/config.yml
    lint:
      engine: basic
      source_type: script
      rules:
        no-undef: error
        no-unused-vars: warn
      globals:
        - jQuery
      exclude:
        - "vendor/**"
      max_warnings: -1

    embed:
      indent: "+2"
      report_bad_indent: warn
      javascript_mime_types:
        - text/javascript
        - "/^text\\/(babel|jsx)$/"

Project-level values override user-level values.  CLI flags override both.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from embedlint.models import Severity

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".embedlint.yml"
USER_CONFIG_DIR = Path.home() / ".embedlint"
USER_CONFIG_PATH = USER_CONFIG_DIR / "config.yml"

SECTIONS = ("lint", "embed")


class ConfigError(ValueError):
    """A configuration value cannot be interpreted."""


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class LintConfig:
    """Lint sub-configuration."""

    engine: str = "basic"
    source_type: str = "script"
    rules: dict[str, str] = field(default_factory=dict)
    globals: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)
    max_warnings: int = -1


@dataclass
class EmbedConfig:
    """Embedding sub-configuration (raw values, see :mod:`embedlint.settings`)."""

    html_extensions: list[str] = field(default_factory=list)
    xml_extensions: list[str] = field(default_factory=list)
    markdown_extensions: list[str] = field(default_factory=list)
    indent: str | None = None
    report_bad_indent: str | int = "off"
    javascript_mime_types: list[str] = field(default_factory=list)
    markdown_languages: list[str] = field(default_factory=list)
    prelude: str = ""


@dataclass
class EmbedlintConfig:
    """Top-level configuration container (lint + embed)."""

    lint: LintConfig = field(default_factory=LintConfig)
    embed: EmbedConfig = field(default_factory=EmbedConfig)

    # Where the effective config was loaded from (None = defaults only).
    project_config_path: str | None = None
    user_config_path: str | None = None

    def rule_severities(self, defaults: dict[str, Severity]) -> dict[str, Severity]:
        """Merge the configured rule levels over *defaults*."""
        rules = dict(defaults)
        for rule_id, level in self.lint.rules.items():
            try:
                rules[rule_id] = Severity.from_value(level)
            except (KeyError, ValueError) as exc:
                raise ConfigError(f"Invalid severity for rule '{rule_id}': {level!r}") from exc
        return rules


# ---------------------------------------------------------------------------
# Public loaders
# ---------------------------------------------------------------------------


def load_config(
    lint_path: str | None = None,
    config_path: str | Path | None = None,
) -> EmbedlintConfig:
    """Load merged configuration (project > user > defaults).

    Parameters
    ----------
    lint_path:
        Directory to search for ``.embedlint.yml``.  When *None*, only
        the user-level file (and defaults) are considered.
    config_path:
        Explicit config file path.  When given, *only* this file is
        loaded (no project/user search).
    """
    if config_path is not None:
        raw = _load_yaml(Path(config_path).expanduser())
        return _raw_to_config(raw, config_source=str(config_path))

    user_raw = _load_yaml(USER_CONFIG_PATH)
    user_source = str(USER_CONFIG_PATH) if user_raw else None

    project_raw: dict | None = None
    project_source: str | None = None
    if lint_path is not None:
        project_path = _find_project_config(lint_path)
        if project_path is not None:
            project_raw = _load_yaml(project_path)
            project_source = str(project_path)

    merged = _merge_raw(project_raw, user_raw)
    cfg = _raw_to_config(merged)
    cfg.project_config_path = project_source
    cfg.user_config_path = user_source
    return cfg


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _find_project_config(lint_path: str) -> Path | None:
    """Search for ``.embedlint.yml`` in *lint_path* and ancestors."""
    p = Path(lint_path)
    if p.is_file():
        p = p.parent
    candidates = [p / CONFIG_FILENAME]
    for parent in p.parents:
        candidates.append(parent / CONFIG_FILENAME)
        if (parent / ".git").exists():
            break
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def _load_yaml(path: Path) -> dict | None:
    """Load a YAML file, returning *None* on missing/invalid files."""
    path = path.expanduser()
    if not path.is_file():
        return None
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", path, exc)
        return None
    return raw if isinstance(raw, dict) else None


def _merge_raw(project: dict | None, user: dict | None) -> dict:
    """Overlay the project sections on the user ones, key by key."""
    merged = copy.deepcopy(user or {})
    for key in SECTIONS:
        section = (project or {}).get(key)
        if not isinstance(section, dict):
            continue
        if not isinstance(merged.get(key), dict):
            merged[key] = {}
        # List and mapping values are replaced, not appended.
        merged[key].update(section)
    return merged


def _section(raw: dict, key: str) -> dict:
    value = raw.get(key, {})
    return value if isinstance(value, dict) else {}


def _raw_to_config(
    raw: dict | None,
    config_source: str | None = None,
) -> EmbedlintConfig:
    """Convert a raw YAML dict to an ``EmbedlintConfig``."""
    if not raw:
        return EmbedlintConfig(project_config_path=config_source)

    lint_raw = _section(raw, "lint")
    embed_raw = _section(raw, "embed")

    source_type = str(lint_raw.get("source_type", "script")).lower()
    if source_type not in ("script", "module"):
        raise ConfigError(f"Invalid source_type: {source_type!r} (expected script or module)")

    rules_raw = lint_raw.get("rules", {})
    lint_cfg = LintConfig(
        engine=str(lint_raw.get("engine", "basic")),
        source_type=source_type,
        rules={str(k): v for k, v in rules_raw.items()} if isinstance(rules_raw, dict) else {},
        globals=_as_list(lint_raw.get("globals", [])),
        exclude=_as_list(lint_raw.get("exclude", [])),
        max_warnings=int(lint_raw.get("max_warnings", -1)),
    )

    indent = embed_raw.get("indent")
    embed_cfg = EmbedConfig(
        html_extensions=_as_list(embed_raw.get("html_extensions", [])),
        xml_extensions=_as_list(embed_raw.get("xml_extensions", [])),
        markdown_extensions=_as_list(embed_raw.get("markdown_extensions", [])),
        indent=None if indent is None else str(indent),
        report_bad_indent=embed_raw.get("report_bad_indent", "off"),
        javascript_mime_types=_as_list(embed_raw.get("javascript_mime_types", [])),
        markdown_languages=_as_list(embed_raw.get("markdown_languages", [])),
        prelude=str(embed_raw.get("prelude", "") or ""),
    )

    return EmbedlintConfig(
        lint=lint_cfg,
        embed=embed_cfg,
        project_config_path=config_source,
    )


def _as_list(val: object) -> list[str]:
    """Coerce a value to a list of strings."""
    if isinstance(val, list):
        return [str(v) for v in val]
    if isinstance(val, str):
        return [val]
    return []
