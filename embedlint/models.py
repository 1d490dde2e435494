"""Data models used throughout embedlint."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

# ---------------------------------------------------------------------------
# Severity
# ---------------------------------------------------------------------------


class Severity(enum.IntEnum):
    """Diagnostic severity: ordered so higher value == more severe."""

    OFF = 0
    WARN = 1
    ERROR = 2

    @classmethod
    def from_value(cls, value: object) -> Severity:
        """Parse ``0/1/2``, ``off/warn/warning/error`` or a boolean."""
        if isinstance(value, Severity):
            return value
        if isinstance(value, bool):
            return cls.WARN if value else cls.OFF
        if isinstance(value, int):
            return cls(value)
        if isinstance(value, str):
            label = value.strip().upper()
            if label == "WARNING":
                return cls.WARN
            if label.isdigit():
                return cls(int(label))
            return cls[label]
        raise ValueError(f"Invalid severity: {value!r}")

    def __str__(self) -> str:
        return "warning" if self is Severity.WARN else self.name.lower()


# ---------------------------------------------------------------------------
# Diagnostic
# ---------------------------------------------------------------------------


@dataclass
class Fix:
    """A replacement of ``range`` (exclusive end) by ``text``."""

    range: tuple[int, int]
    text: str = ""


@dataclass
class Diagnostic:
    """A single reported issue.

    Line and column are 1-based.  Before remapping they are relative to
    the analyzed fragment, afterwards to the whole document.
    """

    line: int
    column: int
    message: str
    rule_id: str | None = None
    severity: Severity = Severity.ERROR
    end_line: int | None = None
    end_column: int | None = None
    fix: Fix | None = None
    source: str | None = None
    fatal: bool = False

    def sort_key(self) -> tuple[int, int]:
        return (self.line, self.column)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "ruleId": self.rule_id,
            "severity": int(self.severity),
            "message": self.message,
            "line": self.line,
            "column": self.column,
        }
        if self.end_line is not None:
            out["endLine"] = self.end_line
        if self.end_column is not None:
            out["endColumn"] = self.end_column
        if self.fix is not None:
            out["fix"] = {"range": list(self.fix.range), "text": self.fix.text}
        if self.source is not None:
            out["source"] = self.source
        if self.fatal:
            out["fatal"] = True
        return out


# ---------------------------------------------------------------------------
# Scope observation (first pass of the shared-scope resolver)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScopeObservation:
    """Names a fragment reads without declaring, and names it declares."""

    through: frozenset[str] = frozenset()
    declared: frozenset[str] = frozenset()


# ---------------------------------------------------------------------------
# Lint results
# ---------------------------------------------------------------------------


@dataclass
class FileResult:
    """Diagnostics for one linted file."""

    path: str
    diagnostics: list[Diagnostic] = field(default_factory=list)
    fragment_count: int = 0
    mode: str | None = None

    @property
    def error_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity == Severity.ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity == Severity.WARN)

    @property
    def fixable_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.fix is not None)


@dataclass
class LintResult:
    """Complete output of an embedlint run."""

    engine: str
    files: list[FileResult] = field(default_factory=list)
    max_warnings: int = -1

    # ---- helpers ----
    @property
    def error_count(self) -> int:
        return sum(f.error_count for f in self.files)

    @property
    def warning_count(self) -> int:
        return sum(f.warning_count for f in self.files)

    @property
    def fixable_count(self) -> int:
        return sum(f.fixable_count for f in self.files)
