"""Script extraction for HTML and XML documents.

Uses the stdlib :class:`html.parser.HTMLParser` to locate ``<script>``
blocks (their content is handled as raw text by the parser), then builds one
:class:`CodeFragment` per block.  Each fragment text is derived from the
document through a :class:`PositionMapper`:

* everything outside the block is deleted;
* the block indentation is removed line by line (dedent);
* in XML mode, CDATA markers are removed and entities are decoded;
* an optional synthetic prelude is inserted at the fragment start.

Lines whose indentation does not follow the expected indentation are
reported by document line number but kept as-is.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from html.parser import HTMLParser

from embedlint.extract import CodeFragment, ExtractResult
from embedlint.extract.mapper import PositionMapper

BOM = "\ufeff"

# Newline followed by the indentation and the rest of the line.
_LINE_RE = re.compile(r"(\r\n|\n|\r)([ \t]*)([^\r\n]*)")
_TRAILING_WS_RE = re.compile(r"[ \t]*\Z")
_FIRST_INDENT_RE = re.compile(r"[\n\r]+([ \t]*)")

_XML_SCRIPT_END_RE = re.compile(r"</script|<!\[CDATA\[")
_XML_TOKEN_RE = re.compile(
    r"<!\[CDATA\[|\]\]>|&(?:#[0-9]+|#x[0-9a-fA-F]+|[A-Za-z][A-Za-z0-9]*);"
)
_XML_ENTITIES = {
    "lt": "<",
    "gt": ">",
    "amp": "&",
    "quot": '"',
    "apos": "'",
}


@dataclass(frozen=True)
class IndentDescriptor:
    """Expected indentation of script content.

    ``relative`` descriptors are added to the indentation of the line
    holding the opening ``<script>`` tag.
    """

    spaces: str
    relative: bool = False


# ---------------------------------------------------------------------------
# Script location
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _ScriptBlock:
    tag_start: int  # index of "<script"
    start: int  # first character after the opening tag
    end: int  # index of "</script", or end of document
    type: str | None


def _xml_script_end(text: str, start: int) -> int:
    """Index of the closing ``</script`` after *start*, skipping CDATA sections."""
    pos = start
    while True:
        match = _XML_SCRIPT_END_RE.search(text, pos)
        if match is None:
            return len(text)
        if match.group(0) == "</script":
            return match.start()
        close = text.find("]]>", match.end())
        if close == -1:
            return len(text)
        pos = close + 3


class _ScriptLocator(HTMLParser):
    """Collect the document ranges of ``<script>`` contents."""

    def __init__(self, text: str, xml: bool) -> None:
        super().__init__(convert_charrefs=False)
        self._text = text
        self._xml = xml
        # HTMLParser only counts "\n" when reporting positions.
        self._lf_starts = [0] + [i + 1 for i, c in enumerate(text) if c == "\n"]
        self._open: tuple[int, int, str | None] | None = None
        # Parser events before this offset belong to an XML script already located.
        self._resume = 0
        self.blocks: list[_ScriptBlock] = []

    def _offset(self) -> int:
        line, column = self.getpos()
        return self._lf_starts[line - 1] + column

    def handle_starttag(self, tag, attrs):
        if tag != "script" or self._open is not None or self._offset() < self._resume:
            return
        raw = self.get_starttag_text() or ""
        # XML tag names are case-sensitive.
        if self._xml and not raw[1:].startswith("script"):
            return
        tag_start = self._offset()
        script_type = dict(attrs).get("type")
        if self._xml:
            # HTMLParser ends raw text at the first "</script", even inside CDATA.
            end = _xml_script_end(self._text, tag_start + len(raw))
            self.blocks.append(_ScriptBlock(tag_start, tag_start + len(raw), end, script_type))
            self._resume = end + 1
            return
        self._open = (tag_start, tag_start + len(raw), script_type)

    def handle_startendtag(self, tag, attrs):
        # <script/> has no content.
        pass

    def handle_endtag(self, tag):
        if tag != "script" or self._open is None:
            return
        tag_start, start, script_type = self._open
        self.blocks.append(_ScriptBlock(tag_start, start, self._offset(), script_type))
        self._open = None

    def locate(self) -> list[_ScriptBlock]:
        self.feed(self._text)
        self.close()
        if self._open is not None:
            # Unterminated script: runs until the end of the document.
            tag_start, start, script_type = self._open
            self.blocks.append(_ScriptBlock(tag_start, start, len(self._text), script_type))
            self._open = None
        return self.blocks


# ---------------------------------------------------------------------------
# Indentation
# ---------------------------------------------------------------------------


def _compute_indent(
    descriptor: IndentDescriptor | None,
    text: str,
    tag_start: int,
    indent_slice: str,
) -> str:
    if descriptor is None:
        match = _FIRST_INDENT_RE.search(indent_slice)
        return match.group(1) if match else ""
    if descriptor.relative:
        line_start = max(text.rfind("\n", 0, tag_start), text.rfind("\r", 0, tag_start)) + 1
        tag_line = text[line_start:tag_start]
        base = tag_line[: len(tag_line) - len(tag_line.lstrip(" \t"))]
        return base + descriptor.spaces
    return descriptor.spaces


def _dedent(indent: str, block: str) -> tuple[list[tuple[int, int]], list[int]]:
    """Return ``(removals, bad_offsets)`` for *block*.

    Removals are ``[from, to)`` ranges relative to *block*; bad offsets are
    the block offsets of lines with an unexpected indentation.
    """
    removals: list[tuple[int, int]] = []
    bad: list[int] = []
    had_non_empty_line = False
    last_index = 0

    for match in _LINE_RE.finditer(block):
        newline, line_indent, line_text = match.groups()
        is_empty = not line_text
        is_first_non_empty = not is_empty and not had_non_empty_line

        # Stricter on the first line.
        if is_first_non_empty:
            bad_indentation = line_indent != indent
        else:
            bad_indentation = not line_indent.startswith(indent)

        if not bad_indentation:
            last_index = match.start() + len(newline) + len(indent)
            # A leading empty line is removed along with the indentation.
            from_index = 0 if match.start() == 0 else match.start() + len(newline)
            if from_index < last_index:
                removals.append((from_index, last_index))
        elif not is_empty:
            bad.append(match.start() + len(newline))

        if not is_empty:
            had_non_empty_line = True

    end_spaces = len(_TRAILING_WS_RE.search(block, last_index).group(0))
    if end_spaces:
        removals.append((len(block) - end_spaces, len(block)))
    return removals, bad


# ---------------------------------------------------------------------------
# XML content
# ---------------------------------------------------------------------------


def _decode_entity(entity: str) -> str | None:
    name = entity[1:-1]
    if name.startswith("#"):
        try:
            code = int(name[2:], 16) if name[1:2] in ("x", "X") else int(name[1:])
            return chr(code)
        except (ValueError, OverflowError):
            return None
    return _XML_ENTITIES.get(name)


def _apply_xml(mapper: PositionMapper, text: str, start: int, end: int) -> int:
    """Strip CDATA markers and decode entities in ``text[start:end]``.

    Returns the index where indentation analysis must stop: the start of a
    trailing ``]]>`` marker, else *end*.
    """
    in_cdata = False
    indent_end = end
    for match in _XML_TOKEN_RE.finditer(text, start, end):
        token = match.group(0)
        if token == "<![CDATA[":
            if not in_cdata:
                mapper.replace(match.start(), match.end())
                in_cdata = True
        elif token == "]]>":
            if in_cdata:
                mapper.replace(match.start(), match.end())
                in_cdata = False
                if match.end() == end:
                    indent_end = match.start()
        elif not in_cdata:
            decoded = _decode_entity(token)
            if decoded is not None:
                mapper.replace(match.start(), match.end(), decoded)
    return indent_end


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


DEFAULT_MIME_RE = re.compile(
    r"^(application|text)/(x-)?(javascript|babel|ecmascript-6)$|^module$",
    re.IGNORECASE,
)


def default_is_javascript(script_type: str) -> bool:
    return bool(DEFAULT_MIME_RE.match(script_type))


def extract(
    text: str,
    indent: IndentDescriptor | None = None,
    xml: bool = False,
    is_javascript: Callable[[str], bool] | None = None,
    prelude: str = "",
) -> ExtractResult:
    """Extract ``<script>`` fragments from an HTML or XML document.

    Fragments are returned in document order.  A ``<script>`` whose
    ``type`` attribute is rejected by *is_javascript* is skipped; a script
    without content still yields an (empty) fragment.
    """
    is_javascript = is_javascript or default_is_javascript
    result = ExtractResult(has_bom=text.startswith(BOM))

    for block in _ScriptLocator(text, xml).locate():
        if block.type and not is_javascript(block.type):
            continue

        start = block.start
        end = block.end - len(_TRAILING_WS_RE.search(text, start, block.end).group(0))

        mapper = PositionMapper(text)
        mapper.replace(0, start)
        mapper.replace(end, len(text))

        indent_end = _apply_xml(mapper, text, start, end) if xml else end
        indent_slice = text[start:indent_end]
        expected = _compute_indent(indent, text, block.tag_start, indent_slice)

        removals, bad_offsets = _dedent(expected, indent_slice)
        for from_index, to_index in removals:
            mapper.replace(start + from_index, start + to_index)
        for offset in bad_offsets:
            result.bad_indentation_lines.append(mapper.document_location(start + offset)[0])

        if prelude:
            mapper.insert(start, prelude)

        first = mapper.to_document_index(len(prelude))
        start_line = mapper.document_location(start if first is None else first)[0]
        result.fragments.append(
            CodeFragment(
                text=mapper.text,
                index=len(result.fragments),
                mapper=mapper,
                start_line=start_line,
                is_module=(block.type or "").strip().lower() == "module",
            )
        )

    return result
