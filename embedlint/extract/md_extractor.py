"""Markdown fence extraction: JavaScript fenced code blocks as fragments.

Uses ``markdown-it-py`` to find fenced code blocks, then rebuilds each
block from the raw document lines through a :class:`PositionMapper` so that
diagnostics map back to the Markdown file.  Blocks nested in containers
that rewrite their lines (block quotes) are skipped.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable

from markdown_it import MarkdownIt

from embedlint.extract import CodeFragment, ExtractResult
from embedlint.extract.extractor import BOM
from embedlint.extract.mapper import PositionMapper, line_starts

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGES = ("js", "javascript", "jsx", "mjs", "cjs")

_NEWLINES_RE = re.compile(r"\r\n|\r")


def default_is_javascript_lang(lang: str) -> bool:
    return lang.lower() in DEFAULT_LANGUAGES


def _is_closing_fence(line: str, markup: str) -> bool:
    stripped = line.strip()
    return (
        len(stripped) >= len(markup)
        and stripped == markup[0] * len(stripped)
    )


def extract_markdown(
    text: str,
    is_javascript_lang: Callable[[str], bool] | None = None,
    prelude: str = "",
) -> ExtractResult:
    """Extract JavaScript fenced code blocks from a Markdown document."""
    is_javascript_lang = is_javascript_lang or default_is_javascript_lang
    result = ExtractResult(has_bom=text.startswith(BOM))
    starts = line_starts(text)

    def _line_index(line: int) -> int:
        return starts[line] if line < len(starts) else len(text)

    for token in MarkdownIt().parse(text):
        if token.type != "fence" or not token.map:
            continue
        info = token.info.strip()
        lang = info.split()[0] if info else ""
        if not is_javascript_lang(lang):
            continue

        open_line, block_end = token.map
        fence_line = text[_line_index(open_line):_line_index(open_line + 1)]
        marker_column = fence_line.find(token.markup)

        last_line = block_end - 1
        closed = last_line > open_line and _is_closing_fence(
            text[_line_index(last_line):_line_index(last_line + 1)], token.markup
        )
        start = _line_index(open_line + 1)
        end = _line_index(last_line if closed else block_end)
        if end < start:
            end = start

        mapper = PositionMapper(text)
        mapper.replace(0, start)
        mapper.replace(end, len(text))

        # The fence indentation is not part of the code.
        if marker_column > 0:
            for line in range(open_line + 1, last_line if closed else block_end):
                line_start = _line_index(line)
                if line_start >= end:
                    break
                spaces = len(text[line_start:line_start + marker_column]) - len(
                    text[line_start:line_start + marker_column].lstrip(" ")
                )
                if spaces:
                    mapper.replace(line_start, line_start + spaces)

        normalized = _NEWLINES_RE.sub("\n", mapper.text)
        if normalized.rstrip("\n") != token.content.rstrip("\n"):
            logger.debug(
                "Skipping fenced block at line %d: nested container", open_line + 1
            )
            continue

        if prelude:
            mapper.insert(start, prelude)

        result.fragments.append(
            CodeFragment(
                text=mapper.text,
                index=len(result.fragments),
                mapper=mapper,
                start_line=open_line + 2,
                is_module=lang.lower() == "mjs",
            )
        )

    return result
