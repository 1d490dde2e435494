"""Gate: exit codes for a lint run."""

from __future__ import annotations

from embedlint.models import LintResult

EXIT_OK = 0
EXIT_LINT_FAILED = 1
EXIT_FATAL = 2


def decide(result: LintResult) -> int:
    """Return the exit code for *result*.

    Exit codes:
        0: clean, or warnings within ``max_warnings``
        1: at least one error, or more warnings than allowed
        2: reserved for configuration and engine failures (set by the CLI)
    """
    if result.error_count > 0:
        return EXIT_LINT_FAILED
    if 0 <= result.max_warnings < result.warning_count:
        return EXIT_LINT_FAILED
    return EXIT_OK
