"""Embedding settings: the compiled form of the ``embed:`` config section."""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import PurePath

from embedlint.config import ConfigError, EmbedConfig
from embedlint.extract.extractor import IndentDescriptor, default_is_javascript
from embedlint.extract.md_extractor import DEFAULT_LANGUAGES
from embedlint.models import Severity

DEFAULT_HTML_EXTENSIONS = (
    ".erb", ".handlebars", ".hbs", ".htm", ".html", ".mustache", ".nunjucks",
    ".php", ".tag", ".twig", ".vue", ".we",
)
DEFAULT_XML_EXTENSIONS = (".xhtml", ".xml")
DEFAULT_MARKDOWN_EXTENSIONS = (".md", ".markdown")
PLAIN_EXTENSIONS = (".js", ".mjs", ".cjs", ".jsx")

_INDENT_RE = re.compile(r"(\+)?(tab|\d+)", re.IGNORECASE)
_REGEX_ENTRY_RE = re.compile(r"/(.*)/([a-z]*)", re.DOTALL)
_REGEX_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}


@dataclass(frozen=True)
class EmbedSettings:
    html_extensions: tuple[str, ...] = DEFAULT_HTML_EXTENSIONS
    xml_extensions: tuple[str, ...] = DEFAULT_XML_EXTENSIONS
    markdown_extensions: tuple[str, ...] = DEFAULT_MARKDOWN_EXTENSIONS
    indent: IndentDescriptor | None = None
    report_bad_indent: Severity = Severity.OFF
    is_javascript: Callable[[str], bool] = field(default=default_is_javascript)
    is_javascript_lang: Callable[[str], bool] | None = None
    prelude: str = ""

    @property
    def extensions(self) -> tuple[str, ...]:
        """Every extension that embeds code, plus plain script files."""
        return (
            self.html_extensions
            + self.xml_extensions
            + self.markdown_extensions
            + PLAIN_EXTENSIONS
        )


def parse_indent(value: object) -> IndentDescriptor | None:
    """Parse ``"4"``, ``"+2"``, ``"tab"`` or ``"+tab"``; empty means auto-detect."""
    if value is None or str(value).strip() == "":
        return None
    match = _INDENT_RE.fullmatch(str(value).strip())
    if not match:
        raise ConfigError(f"Invalid indent: {value!r} (expected e.g. 4, +2, tab, +tab)")
    relative, width = match.groups()
    spaces = "\t" if width.lower() == "tab" else " " * int(width)
    return IndentDescriptor(spaces, relative=bool(relative))


def _compile_regex_entry(entry: str) -> re.Pattern[str]:
    match = _REGEX_ENTRY_RE.fullmatch(entry)
    if not match:
        raise ConfigError(f"Invalid MIME type pattern: {entry!r}")
    body, flags = match.groups()
    compiled_flags = 0
    for flag in flags:
        if flag not in _REGEX_FLAGS:
            raise ConfigError(f"Unsupported regex flag '{flag}' in {entry!r}")
        compiled_flags |= _REGEX_FLAGS[flag]
    # Configured patterns may escape "/" the way JavaScript literals do.
    try:
        return re.compile(body.replace("\\/", "/"), compiled_flags)
    except re.error as exc:
        raise ConfigError(f"Invalid MIME type pattern {entry!r}: {exc}") from exc


def mime_predicate(entries: list[str]) -> Callable[[str], bool]:
    """Build the script ``type`` predicate.

    Entries starting with ``/`` are ``/pattern/flags`` regular expressions,
    anything else must match exactly.  No entries means the default set.
    """
    if not entries:
        return default_is_javascript

    exact = {e for e in entries if not e.startswith("/")}
    patterns = [_compile_regex_entry(e) for e in entries if e.startswith("/")]

    def is_javascript(script_type: str) -> bool:
        return script_type in exact or any(p.search(script_type) for p in patterns)

    return is_javascript


def language_predicate(languages: list[str]) -> Callable[[str], bool]:
    accepted = {lang.lower() for lang in (languages or DEFAULT_LANGUAGES)}

    def is_javascript_lang(lang: str) -> bool:
        return lang.lower() in accepted

    return is_javascript_lang


def _extensions(values: list[str], default: tuple[str, ...]) -> tuple[str, ...]:
    if not values:
        return default
    return tuple(v.lower() if v.startswith(".") else f".{v.lower()}" for v in values)


def get_settings(embed: EmbedConfig | None = None) -> EmbedSettings:
    """Compile the raw ``embed:`` section, raising ``ConfigError`` on bad values."""
    embed = embed or EmbedConfig()
    try:
        report_bad_indent = Severity.from_value(embed.report_bad_indent)
    except (KeyError, ValueError) as exc:
        raise ConfigError(
            f"Invalid report_bad_indent: {embed.report_bad_indent!r} "
            "(expected off, warn, error or 0-2)"
        ) from exc

    return EmbedSettings(
        html_extensions=_extensions(embed.html_extensions, DEFAULT_HTML_EXTENSIONS),
        xml_extensions=_extensions(embed.xml_extensions, DEFAULT_XML_EXTENSIONS),
        markdown_extensions=_extensions(embed.markdown_extensions, DEFAULT_MARKDOWN_EXTENSIONS),
        indent=parse_indent(embed.indent),
        report_bad_indent=report_bad_indent,
        is_javascript=mime_predicate(embed.javascript_mime_types),
        is_javascript_lang=language_predicate(embed.markdown_languages),
        prelude=embed.prelude,
    )


def get_mode(settings: EmbedSettings, filename: str | None) -> str | None:
    """Return ``"html"``, ``"xml"``, ``"markdown"`` or ``None`` for *filename*."""
    if not filename:
        return None
    suffix = PurePath(filename).suffix.lower()
    if suffix in settings.xml_extensions:
        return "xml"
    if suffix in settings.html_extensions:
        return "html"
    if suffix in settings.markdown_extensions:
        return "markdown"
    return None
