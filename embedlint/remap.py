"""Diagnostic remapping: fragment coordinates back to document coordinates."""

from __future__ import annotations

from collections.abc import Iterable

from embedlint.extract.mapper import PositionMapper
from embedlint.models import Diagnostic, Fix


def _remap_fix(fix: Fix, mapper: PositionMapper, bom_offset: int) -> Fix | None:
    start, end = fix.range
    original_start = mapper.to_document_index(start)
    if original_start is None:
        return None
    if end <= start:
        original_end = original_start
    else:
        original_end = mapper.to_document_end_index(end)
        if original_end is None:
            return None
    return Fix(range=(original_start + bom_offset, original_end + bom_offset), text=fix.text)


def remap_diagnostics(
    diagnostics: Iterable[Diagnostic],
    mapper: PositionMapper,
    has_bom: bool = False,
) -> list[Diagnostic]:
    """Translate fragment-local *diagnostics* into document coordinates.

    Diagnostics whose location falls in synthetic text are dropped.  End
    locations that cannot be mapped are left untouched, and fixes that
    cannot be mapped are removed.
    """
    bom_offset = -1 if has_bom else 0
    remapped: list[Diagnostic] = []

    for diagnostic in diagnostics:
        # Some engines report column 0 on purpose; 1 is the first valid column.
        location = mapper.to_document(diagnostic.line, diagnostic.column or 1)
        if location is None:
            continue

        diagnostic.line, diagnostic.column = location
        diagnostic.source = mapper.document_line_text(diagnostic.line)

        if diagnostic.fix is not None:
            diagnostic.fix = _remap_fix(diagnostic.fix, mapper, bom_offset)

        if diagnostic.end_line and diagnostic.end_column:
            end_location = mapper.to_document_end(diagnostic.end_line, diagnostic.end_column)
            if end_location is not None:
                diagnostic.end_line, diagnostic.end_column = end_location

        remapped.append(diagnostic)

    return remapped


def merge_diagnostics(batches: Iterable[Iterable[Diagnostic]]) -> list[Diagnostic]:
    """Concatenate *batches* and sort by document line, then column."""
    merged = [d for batch in batches for d in batch]
    merged.sort(key=lambda d: d.sort_key())
    return merged
