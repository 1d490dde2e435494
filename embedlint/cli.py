"""CLI: click-based command-line interface."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import NoReturn

import click

from embedlint.config import ConfigError, EmbedlintConfig, load_config
from embedlint.discovery import collect_files
from embedlint.engine.base import AnalysisConfig, Verifier
from embedlint.engine.registry import EngineUnavailableError, list_engines, load_engine
from embedlint.gate import EXIT_FATAL, decide
from embedlint.models import LintResult
from embedlint.processor import extract_document, lint_file
from embedlint.report import render_json, render_text
from embedlint.settings import EmbedSettings, get_mode, get_settings


@click.group()
@click.option("-v", "--verbose", is_flag=True, default=False,
              help="Log debug information to stderr.")
def main(verbose: bool) -> None:
    """embedlint: lint JavaScript embedded in HTML, XML and Markdown."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _fail(message: str) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    sys.exit(EXIT_FATAL)


def _load(lint_path: str, config_path: str | None) -> tuple[EmbedlintConfig, EmbedSettings]:
    try:
        cfg = load_config(lint_path=lint_path, config_path=config_path)
        return cfg, get_settings(cfg.embed)
    except ConfigError as exc:
        _fail(str(exc))


def _analysis_config(cfg: EmbedlintConfig, engine: Verifier) -> AnalysisConfig:
    return AnalysisConfig(
        rules=cfg.rule_severities(getattr(engine, "default_rules", {})),
        source_type=cfg.lint.source_type,
        globals=frozenset(cfg.lint.globals),
    )


# ───────────────────────────────────────────────────────────────────
# lint
# ───────────────────────────────────────────────────────────────────

@main.command()
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True))
@click.option("--engine", "engine_spec", default=None,
              help="basic | <name> | import:pkg.module:Class")
@click.option("--format", "fmt", default="text",
              type=click.Choice(["text", "json"], case_sensitive=False),
              help="Output format.")
@click.option("--json-out", "json_out", default=None,
              type=click.Path(), help="Write JSON report to file.")
@click.option("--max-warnings", "max_warnings", default=None, type=int,
              help="Fail when more warnings than this are reported (-1: no limit).")
@click.option("--exclude", "excludes", multiple=True,
              help="Extra glob patterns to exclude (repeatable).")
@click.option("--config", "config_path", default=None,
              type=click.Path(exists=True, dir_okay=False),
              help="Use this config file instead of .embedlint.yml lookup.")
def lint(
    paths: tuple[str, ...],
    engine_spec: str | None,
    fmt: str,
    json_out: str | None,
    max_warnings: int | None,
    excludes: tuple[str, ...],
    config_path: str | None,
) -> None:
    """Lint the scripts embedded in PATHS (files or directories)."""
    cfg, settings = _load(str(Path(paths[0]).resolve()), config_path)

    # CLI flags override config values
    effective_engine = engine_spec or cfg.lint.engine
    effective_max_warnings = max_warnings if max_warnings is not None else cfg.lint.max_warnings
    effective_excludes = list(excludes) + cfg.lint.exclude

    try:
        engine = load_engine(effective_engine)
        analysis = _analysis_config(cfg, engine)
    except (EngineUnavailableError, ConfigError) as exc:
        _fail(str(exc))

    files = collect_files(paths, settings.extensions, effective_excludes)
    result = LintResult(engine=engine.name, max_warnings=effective_max_warnings)
    for fpath in files:
        result.files.append(lint_file(fpath, analysis, engine, settings))

    exit_code = decide(result)

    if fmt == "json":
        output = render_json(result)
    else:
        output = render_text(result)

    click.echo(output)

    if json_out:
        Path(json_out).write_text(render_json(result), encoding="utf-8")
        click.echo(f"JSON report written to {json_out}", err=True)

    sys.exit(exit_code)


# ───────────────────────────────────────────────────────────────────
# extract
# ───────────────────────────────────────────────────────────────────

@main.command("extract")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--config", "config_path", default=None,
              type=click.Path(exists=True, dir_okay=False),
              help="Use this config file instead of .embedlint.yml lookup.")
def extract_cmd(path: str, config_path: str | None) -> None:
    """Print the code fragments embedded in PATH."""
    _, settings = _load(str(Path(path).resolve()), config_path)
    mode = get_mode(settings, path)
    if mode is None:
        _fail(f"{path} is not an HTML, XML or Markdown document")

    with open(path, encoding="utf-8", newline="") as fh:
        text = fh.read()
    result = extract_document(text, mode, settings)

    for fragment in result.fragments:
        kind = "module" if fragment.is_module else "script"
        click.echo(f"── fragment {fragment.index} ({kind}, line {fragment.start_line}) ──")
        click.echo(fragment.text)
    if not result.fragments:
        click.echo("No fragments found.")
    if result.bad_indentation_lines:
        lines = ", ".join(str(n) for n in result.bad_indentation_lines)
        click.echo(f"Bad indentation on line(s): {lines}", err=True)


# ───────────────────────────────────────────────────────────────────
# engines
# ───────────────────────────────────────────────────────────────────

@main.group()
def engines() -> None:
    """Manage and inspect analysis engines."""


@engines.command("list")
def engines_list() -> None:
    """List available engines."""
    click.echo(f"{'Name':<20} {'Version':<10} {'Class'}")
    click.echo("-" * 60)
    for e in list_engines():
        version = getattr(e, "version", "-")
        click.echo(f"{e.name:<20} {version:<10} {type(e).__module__}.{type(e).__qualname__}")
