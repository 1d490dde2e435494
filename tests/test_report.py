"""Tests for report rendering."""

import json

import embedlint
from embedlint.models import Diagnostic, FileResult, Fix, LintResult, Severity
from embedlint.report import render_json, render_text


def _make_result() -> LintResult:
    r = LintResult(engine="basic", max_warnings=10)
    r.files = [
        FileResult(
            path="site/index.html",
            mode="html",
            fragment_count=2,
            diagnostics=[
                Diagnostic(6, 23, "'missing' is not defined.", "no-undef", Severity.ERROR),
                Diagnostic(12, 7, "Unnecessary semicolon.", "no-extra-semi", Severity.ERROR,
                           fix=Fix((140, 141))),
                Diagnostic(14, 5, "'tmp' is defined but never used.", "no-unused-vars", Severity.WARN),
            ],
        ),
        FileResult(path="site/clean.html", mode="html", fragment_count=1),
    ]
    return r


class TestTextOutput:
    def test_groups_by_file(self):
        output = render_text(_make_result(), color=False)
        assert "site/index.html" in output
        assert "site/clean.html" not in output

    def test_diagnostic_lines(self):
        lines = render_text(_make_result(), color=False).splitlines()
        assert "  6:23  error    'missing' is not defined.  no-undef" in lines
        assert "  14:5  warning  'tmp' is defined but never used.  no-unused-vars" in lines

    def test_summary(self):
        output = render_text(_make_result(), color=False)
        assert "3 problems (2 errors, 1 warning)" in output
        assert "1 potentially fixable" in output

    def test_fatal_without_rule(self):
        r = LintResult(engine="basic")
        r.files = [FileResult("x.html", [Diagnostic(1, 1, "Cannot read file: boom", fatal=True)])]
        lines = render_text(r, color=False).splitlines()
        assert lines[1] == "  1:1  error    Cannot read file: boom"

    def test_no_problems(self):
        r = LintResult(engine="basic", files=[FileResult("a.html")])
        assert render_text(r) == "No problems found in 1 file."

    def test_color_codes(self):
        assert "\033[91m" in render_text(_make_result(), color=True)


class TestJsonOutput:
    def test_valid_json(self):
        doc = json.loads(render_json(_make_result()))
        assert doc["tool"] == "embedlint"
        assert doc["version"] == embedlint.__version__
        assert doc["engine"] == "basic"

    def test_summary(self):
        doc = json.loads(render_json(_make_result()))
        assert doc["summary"] == {
            "files": 2,
            "errors": 2,
            "warnings": 1,
            "fixable": 1,
            "max_warnings": 10,
        }

    def test_file_results(self):
        doc = json.loads(render_json(_make_result()))
        first, second = doc["results"]
        assert first["filePath"] == "site/index.html"
        assert first["mode"] == "html"
        assert first["fragmentCount"] == 2
        assert (first["errorCount"], first["warningCount"], first["fixableCount"]) == (2, 1, 1)
        assert first["messages"][1]["fix"] == {"range": [140, 141], "text": ""}
        assert second["messages"] == []
