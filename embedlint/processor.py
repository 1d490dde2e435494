"""Document processor: extraction, shared-scope verification and remapping."""

from __future__ import annotations

import logging
from pathlib import Path

from embedlint.engine.base import AnalysisConfig, ScopeHook, Verifier
from embedlint.extract import CodeFragment, ExtractResult
from embedlint.extract.extractor import extract
from embedlint.extract.md_extractor import extract_markdown
from embedlint.models import Diagnostic, FileResult, Severity
from embedlint.remap import merge_diagnostics, remap_diagnostics
from embedlint.scope import FragmentRunner, verify_with_shared_scope
from embedlint.settings import EmbedSettings, get_mode

logger = logging.getLogger(__name__)

BAD_INDENT_RULE = "embedlint/indent"
BAD_INDENT_MESSAGE = "Bad line indentation."


def extract_document(text: str, mode: str, settings: EmbedSettings) -> ExtractResult:
    """Extract the code fragments of *text* according to *mode*."""
    if mode == "markdown":
        return extract_markdown(text, settings.is_javascript_lang, prelude=settings.prelude)
    return extract(
        text,
        indent=settings.indent,
        xml=mode == "xml",
        is_javascript=settings.is_javascript,
        prelude=settings.prelude,
    )


def _runner(verifier: Verifier, filename: str | None) -> FragmentRunner:
    def run(
        fragment: CodeFragment,
        config: AnalysisConfig,
        hook: ScopeHook | None,
    ) -> list[Diagnostic]:
        return verifier.verify(fragment.text, config, filename=filename, hook=hook)

    return run


def _bad_indent_diagnostics(lines: list[int], severity: Severity) -> list[Diagnostic]:
    if severity == Severity.OFF:
        return []
    return [
        Diagnostic(line=line, column=1, message=BAD_INDENT_MESSAGE, rule_id=BAD_INDENT_RULE, severity=severity)
        for line in lines
    ]


def _analyze(
    text: str,
    config: AnalysisConfig,
    verifier: Verifier,
    mode: str | None,
    settings: EmbedSettings,
    filename: str | None,
) -> tuple[list[Diagnostic], int]:
    if mode is None:
        return verifier.verify(text, config, filename=filename), 1

    result = extract_document(text, mode, settings)
    logger.debug(
        "%s: %d fragment(s) in %s mode", filename or "<text>", len(result.fragments), mode
    )

    batches = [_bad_indent_diagnostics(result.bad_indentation_lines, settings.report_bad_indent)]
    for fragment, diagnostics in verify_with_shared_scope(
        result.fragments, config, _runner(verifier, filename)
    ):
        batches.append(remap_diagnostics(diagnostics, fragment.mapper, result.has_bom))
    return merge_diagnostics(batches), len(result.fragments)


def analyze_document(
    text: str,
    config: AnalysisConfig,
    verifier: Verifier,
    *,
    mode: str | None = "html",
    settings: EmbedSettings | None = None,
    filename: str | None = None,
) -> list[Diagnostic]:
    """Lint the code embedded in *text* and return document-level diagnostics.

    *mode* is ``"html"``, ``"xml"`` or ``"markdown"``; ``None`` verifies
    *text* as a plain code file.  Diagnostics are sorted by line, then
    column.
    """
    diagnostics, _ = _analyze(text, config, verifier, mode, settings or EmbedSettings(), filename)
    return diagnostics


def lint_file(
    path: str | Path,
    config: AnalysisConfig,
    verifier: Verifier,
    settings: EmbedSettings | None = None,
) -> FileResult:
    """Read and lint one file; unreadable files yield a fatal diagnostic."""
    settings = settings or EmbedSettings()
    path = Path(path)
    mode = get_mode(settings, path.name)
    try:
        # newline="" keeps "\r\n" intact so columns match the file on disk.
        with open(path, encoding="utf-8", newline="") as fh:
            text = fh.read()
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Cannot read %s: %s", path, exc)
        return FileResult(
            path=str(path),
            diagnostics=[Diagnostic(line=1, column=1, message=f"Cannot read file: {exc}", fatal=True)],
            mode=mode,
        )

    diagnostics, fragment_count = _analyze(text, config, verifier, mode, settings, str(path))
    return FileResult(
        path=str(path),
        diagnostics=diagnostics,
        fragment_count=fragment_count,
        mode=mode,
    )
