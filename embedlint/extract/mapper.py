"""Position mapping between an extracted fragment and its document.

A :class:`PositionMapper` starts from the full document text and records a
list of non-overlapping edits (deletions, substitutions, insertions).  The
fragment text is the document with every edit applied, so every fragment
index can be traced back through the edit list instead of relying on a
single offset.

Coordinates:
    * character indices are 0-based;
    * lines and columns are 1-based, in both the fragment and the document.
"""

from __future__ import annotations

import bisect
import re
from dataclasses import dataclass

_NEWLINE_RE = re.compile(r"\r\n|\r|\n")


def line_starts(text: str) -> list[int]:
    """Return the index of the first character of every line in *text*."""
    return [0] + [m.end() for m in _NEWLINE_RE.finditer(text)]


@dataclass(frozen=True)
class _Edit:
    start: int
    end: int
    text: str

    @property
    def is_insertion(self) -> bool:
        return self.start == self.end


class PositionMapper:
    """Build a fragment out of a document and translate positions back."""

    def __init__(self, original: str) -> None:
        self._original = original
        self._original_starts = line_starts(original)
        self._edits: list[_Edit] = []
        self._text: str | None = None
        self._text_starts: list[int] | None = None

    # -- building --------------------------------------------------------

    def replace(self, start: int, end: int, text: str = "") -> None:
        """Replace document range ``[start, end)`` by *text*."""
        if not 0 <= start <= end <= len(self._original):
            raise ValueError(f"Invalid range [{start}, {end})")
        if start == end and not text:
            return
        edit = _Edit(start, end, text)
        keys = [(e.start, e.end) for e in self._edits]
        pos = bisect.bisect_right(keys, (start, end))
        before = self._edits[pos - 1] if pos else None
        after = self._edits[pos] if pos < len(self._edits) else None
        if (before and before.end > start) or (after and end > after.start):
            raise ValueError(f"Range [{start}, {end}) overlaps a previous edit")
        self._edits.insert(pos, edit)
        self._text = None
        self._text_starts = None

    def insert(self, index: int, text: str) -> None:
        """Insert synthetic *text* before document index *index*."""
        self.replace(index, index, text)

    # -- fragment view ---------------------------------------------------

    @property
    def text(self) -> str:
        if self._text is None:
            parts: list[str] = []
            cursor = 0
            for edit in self._edits:
                parts.append(self._original[cursor:edit.start])
                parts.append(edit.text)
                cursor = edit.end
            parts.append(self._original[cursor:])
            self._text = "".join(parts)
        return self._text

    def __str__(self) -> str:
        return self.text

    # -- translation -----------------------------------------------------

    def _locate(self, index: int) -> tuple[int, _Edit | None] | None:
        """Document index of fragment *index*, plus the substitution holding it."""
        if not 0 <= index <= len(self.text):
            return None
        offset = 0
        for edit in self._edits:
            start = edit.start + offset
            if index < start:
                break
            if index < start + len(edit.text):
                if edit.is_insertion:
                    return None
                return edit.start + min(index - start, edit.end - edit.start - 1), edit
            offset += len(edit.text) - (edit.end - edit.start)
        return index - offset, None

    def to_document_index(self, index: int) -> int | None:
        """Translate a fragment index to a document index.

        Returns ``None`` for indices inside inserted (synthetic) text or
        outside the fragment.
        """
        located = self._locate(index)
        return None if located is None else located[0]

    def to_document_end_index(self, index: int) -> int | None:
        """Translate an exclusive fragment end index to a document index.

        The end follows the last covered character, so text deleted right
        after it is never included.  An end inside a substitution covers the
        whole replaced range (``&lt;`` rather than ``&``).
        """
        if index <= 0:
            return self.to_document_index(index)
        located = self._locate(index - 1)
        if located is None:
            return None
        original, edit = located
        return edit.end if edit is not None else original + 1

    def to_document(self, line: int, column: int) -> tuple[int, int] | None:
        """Translate a fragment ``(line, column)`` to a document one."""
        index = self._fragment_index(line, column)
        original = None if index is None else self.to_document_index(index)
        if original is None:
            return None
        return self.document_location(original)

    def to_document_end(self, line: int, column: int) -> tuple[int, int] | None:
        """Translate an exclusive fragment end ``(line, column)``."""
        index = self._fragment_index(line, column)
        original = None if index is None else self.to_document_end_index(index)
        if original is None:
            return None
        return self.document_location(original)

    def _fragment_index(self, line: int, column: int) -> int | None:
        if self._text_starts is None:
            self._text_starts = line_starts(self.text)
        if not 1 <= line <= len(self._text_starts) or column < 1:
            return None
        return self._text_starts[line - 1] + column - 1

    def document_location(self, index: int) -> tuple[int, int]:
        """Return the document ``(line, column)`` of a document index."""
        line = bisect.bisect_right(self._original_starts, index)
        return line, index - self._original_starts[line - 1] + 1

    def document_line_text(self, line: int) -> str:
        """Return the literal text of document *line*, without terminator."""
        if not 1 <= line <= len(self._original_starts):
            return ""
        start = self._original_starts[line - 1]
        if line < len(self._original_starts):
            end = self._original_starts[line]
        else:
            end = len(self._original)
        return self._original[start:end].rstrip("\r\n")
