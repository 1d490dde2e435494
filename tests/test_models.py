"""Tests for the shared data models."""

import pytest

from embedlint.models import Diagnostic, FileResult, Fix, LintResult, Severity


class TestSeverity:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("off", Severity.OFF),
            ("warn", Severity.WARN),
            ("Warning", Severity.WARN),
            (" ERROR ", Severity.ERROR),
            ("1", Severity.WARN),
            (2, Severity.ERROR),
            (True, Severity.WARN),
            (False, Severity.OFF),
            (Severity.ERROR, Severity.ERROR),
        ],
    )
    def test_from_value(self, value, expected):
        assert Severity.from_value(value) is expected

    @pytest.mark.parametrize("value", ["loud", 3, None])
    def test_invalid(self, value):
        with pytest.raises((KeyError, ValueError)):
            Severity.from_value(value)

    def test_ordering_and_labels(self):
        assert Severity.ERROR > Severity.WARN > Severity.OFF
        assert str(Severity.WARN) == "warning"
        assert str(Severity.ERROR) == "error"


class TestDiagnostic:
    def test_to_dict_minimal(self):
        d = Diagnostic(2, 5, "'a' is not defined.", "no-undef")
        assert d.to_dict() == {
            "ruleId": "no-undef",
            "severity": 2,
            "message": "'a' is not defined.",
            "line": 2,
            "column": 5,
        }

    def test_to_dict_full(self):
        d = Diagnostic(
            1, 3, "Unnecessary semicolon.", "no-extra-semi",
            end_line=1, end_column=4, fix=Fix((2, 3)), source="a;;",
        )
        out = d.to_dict()
        assert out["endLine"] == 1
        assert out["endColumn"] == 4
        assert out["fix"] == {"range": [2, 3], "text": ""}
        assert out["source"] == "a;;"
        assert "fatal" not in out

    def test_fatal_flag(self):
        out = Diagnostic(1, 1, "Parsing error: x", fatal=True).to_dict()
        assert out["fatal"] is True
        assert out["ruleId"] is None

    def test_sort_key(self):
        ds = [Diagnostic(3, 1, "c"), Diagnostic(1, 9, "b"), Diagnostic(1, 2, "a")]
        assert [d.message for d in sorted(ds, key=Diagnostic.sort_key)] == ["a", "b", "c"]


class TestResults:
    def test_counts_aggregate_over_files(self):
        first = FileResult("a.html", [
            Diagnostic(1, 1, "e", "r", Severity.ERROR, fix=Fix((0, 1))),
            Diagnostic(2, 1, "w", "r", Severity.WARN),
        ])
        second = FileResult("b.html", [Diagnostic(1, 1, "w", "r", Severity.WARN)])
        result = LintResult(engine="basic", files=[first, second])
        assert (first.error_count, first.warning_count, first.fixable_count) == (1, 1, 1)
        assert (result.error_count, result.warning_count, result.fixable_count) == (1, 2, 1)
