"""Tests for gate exit-code logic."""

import pytest

from embedlint.gate import EXIT_LINT_FAILED, EXIT_OK, decide
from embedlint.models import Diagnostic, FileResult, LintResult, Severity


def _result(*severities, max_warnings=-1):
    r = LintResult(engine="basic", max_warnings=max_warnings)
    r.files = [
        FileResult(
            path="page.html",
            diagnostics=[Diagnostic(1, i + 1, "problem", "rule", sev) for i, sev in enumerate(severities)],
        )
    ]
    return r


@pytest.fixture
def result_clean():
    return LintResult(engine="basic")


class TestDecide:
    def test_clean_passes(self, result_clean):
        assert decide(result_clean) == EXIT_OK

    def test_error_fails(self):
        assert decide(_result(Severity.ERROR)) == EXIT_LINT_FAILED

    def test_warnings_pass_without_limit(self):
        assert decide(_result(Severity.WARN, Severity.WARN)) == EXIT_OK

    def test_warnings_within_limit(self):
        assert decide(_result(Severity.WARN, Severity.WARN, max_warnings=2)) == EXIT_OK

    def test_too_many_warnings(self):
        assert decide(_result(Severity.WARN, Severity.WARN, max_warnings=1)) == EXIT_LINT_FAILED

    def test_zero_warnings_allowed(self):
        assert decide(_result(Severity.WARN, max_warnings=0)) == EXIT_LINT_FAILED

    def test_fatal_diagnostic_counts_as_error(self):
        r = LintResult(engine="basic")
        r.files = [FileResult("x.html", [Diagnostic(1, 1, "Cannot read file", fatal=True)])]
        assert decide(r) == EXIT_LINT_FAILED
