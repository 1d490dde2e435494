"""Fragment extraction: turn markup documents into analyzable code fragments."""

from __future__ import annotations

from dataclasses import dataclass, field

from embedlint.extract.mapper import PositionMapper


@dataclass(frozen=True)
class CodeFragment:
    """One run of program text extracted from a document."""

    text: str
    index: int
    mapper: PositionMapper
    start_line: int = 1  # 1-indexed document line of the first character
    is_module: bool = False

    def __str__(self) -> str:
        return self.text


@dataclass
class ExtractResult:
    """Ordered fragments plus extraction anomalies."""

    fragments: list[CodeFragment] = field(default_factory=list)
    bad_indentation_lines: list[int] = field(default_factory=list)
    has_bom: bool = False
