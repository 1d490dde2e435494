"""Report rendering: text and JSON outputs."""

from __future__ import annotations

import json
from typing import Any

import embedlint
from embedlint.models import Diagnostic, FileResult, LintResult, Severity

# ---------------------------------------------------------------------------
# Text output
# ---------------------------------------------------------------------------

_SEV_COLORS = {
    Severity.ERROR: "\033[91m",  # red
    Severity.WARN: "\033[93m",   # yellow
}
_RESET = "\033[0m"


def _sev_label(sev: Severity, color: bool = True) -> str:
    label = f"{str(sev):<7}"
    if color:
        return f"{_SEV_COLORS.get(sev, '')}{label}{_RESET}"
    return label


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def _diagnostic_line(d: Diagnostic, width: int, color: bool) -> str:
    loc = f"{d.line}:{d.column}"
    message = d.message
    if d.fatal and d.rule_id is None:
        return f"  {loc:<{width}}  {_sev_label(d.severity, color)}  {message}"
    return f"  {loc:<{width}}  {_sev_label(d.severity, color)}  {message}  {d.rule_id or ''}".rstrip()


def render_file(file_result: FileResult, color: bool = True) -> list[str]:
    if not file_result.diagnostics:
        return []
    width = max(len(f"{d.line}:{d.column}") for d in file_result.diagnostics)
    lines = [file_result.path]
    lines.extend(_diagnostic_line(d, width, color) for d in file_result.diagnostics)
    lines.append("")
    return lines


def render_text(result: LintResult, color: bool = True) -> str:
    """Produce human-friendly text output, grouped by file."""
    lines: list[str] = []
    for file_result in result.files:
        lines.extend(render_file(file_result, color))

    problems = result.error_count + result.warning_count
    if problems == 0:
        lines.append(f"No problems found in {_plural(len(result.files), 'file')}.")
        return "\n".join(lines)

    lines.append(
        f"{_plural(problems, 'problem')} "
        f"({_plural(result.error_count, 'error')}, {_plural(result.warning_count, 'warning')})"
    )
    if result.fixable_count:
        lines.append(f"  {result.fixable_count} potentially fixable")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# JSON output
# ---------------------------------------------------------------------------


def _file_to_dict(f: FileResult) -> dict[str, Any]:
    return {
        "filePath": f.path,
        "mode": f.mode,
        "fragmentCount": f.fragment_count,
        "messages": [d.to_dict() for d in f.diagnostics],
        "errorCount": f.error_count,
        "warningCount": f.warning_count,
        "fixableCount": f.fixable_count,
    }


def render_json(result: LintResult) -> str:
    """Produce stable JSON output (files in lint order, messages by position)."""
    doc: dict[str, Any] = {
        "tool": "embedlint",
        "version": embedlint.__version__,
        "engine": result.engine,
        "summary": {
            "files": len(result.files),
            "errors": result.error_count,
            "warnings": result.warning_count,
            "fixable": result.fixable_count,
            "max_warnings": result.max_warnings,
        },
        "results": [_file_to_dict(f) for f in result.files],
    }
    return json.dumps(doc, indent=2, ensure_ascii=False)
