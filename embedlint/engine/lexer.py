"""JavaScript tokenizer for the built-in engine.

Regex-driven, in the spirit of a scanner rather than a parser: it knows
enough about strings, comments, template literals and regular expression
literals to never mistake their content for code.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

KEYWORDS = frozenset(
    {
        "async", "await", "break", "case", "catch", "class", "const",
        "continue", "debugger", "default", "delete", "do", "else", "export",
        "extends", "false", "finally", "for", "function", "if", "import",
        "in", "instanceof", "let", "new", "null", "of", "return", "static",
        "super", "switch", "this", "throw", "true", "try", "typeof", "var",
        "void", "while", "with", "yield",
    }
)

# Keywords after which a "/" starts a regular expression literal.
_REGEX_AFTER_KEYWORDS = frozenset(
    {
        "return", "typeof", "instanceof", "in", "of", "new", "delete", "void",
        "throw", "case", "do", "else", "yield", "await",
    }
)

_WHITESPACE_RE = re.compile(r"[\s\ufeff]+")
_LINE_COMMENT_RE = re.compile(r"//[^\r\n]*")
_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
_STRING_RE = {
    "'": re.compile(r"'(?:[^'\\\r\n]|\\(?:\r\n|[\s\S]))*'"),
    '"': re.compile(r'"(?:[^"\\\r\n]|\\(?:\r\n|[\s\S]))*"'),
}
_NUMBER_RE = re.compile(
    r"(?:0[xXbBoO][0-9a-fA-F_]+|(?:\d[\d_]*(?:\.[\d_]*)?|\.\d[\d_]*)(?:[eE][+-]?\d+)?)n?"
)
_NAME_RE = re.compile(r"#?(?:[^\W\d]|\$)(?:\w|\$)*")
_REGEX_RE = re.compile(r"/(?:[^/\\\r\n\[]|\\.|\[(?:[^\]\\\r\n]|\\.)*\])+/[A-Za-z]*")
_PUNCT_RE = re.compile(
    r">>>=|\.\.\.|===|!==|\*\*=|<<=|>>=|>>>|&&=|\|\|=|\?\?="
    r"|=>|==|!=|<=|>=|&&|\|\||\?\?|\?\.|\+\+|--|\+=|-=|\*=|/=|%=|&=|\|=|\^=|\*\*|<<|>>"
    r"|[{}()\[\];,<>+\-*/%&|^!~?:=.@]"
)


@dataclass(frozen=True)
class Token:
    kind: str  # name | keyword | punct | string | template | number | regex | private
    value: str
    start: int
    end: int


class LexError(Exception):
    """Raised when the text cannot be tokenized."""

    def __init__(self, message: str, index: int) -> None:
        super().__init__(message)
        self.index = index


def _regex_allowed(previous: Token | None) -> bool:
    if previous is None:
        return True
    if previous.kind == "punct":
        return previous.value not in (")", "]", "}", "++", "--")
    if previous.kind == "keyword":
        return previous.value in _REGEX_AFTER_KEYWORDS
    return False


def tokenize(text: str) -> list[Token]:
    """Split *text* into tokens, dropping whitespace and comments."""
    tokens: list[Token] = []
    # One entry per open "{" or "${": True when it belongs to a template.
    braces: list[bool] = []
    pos = 0
    length = len(text)

    def scan_template(start: int, quote_start: int) -> int:
        """Scan template characters from *start*; return the resume index."""
        i = start
        while i < length:
            ch = text[i]
            if ch == "\\":
                i += 2
                continue
            if ch == "`":
                tokens.append(Token("template", text[quote_start:i + 1], quote_start, i + 1))
                return i + 1
            if ch == "$" and text.startswith("${", i):
                tokens.append(Token("template", text[quote_start:i + 2], quote_start, i + 2))
                braces.append(True)
                return i + 2
            i += 1
        raise LexError("Unterminated template", quote_start)

    while pos < length:
        match = _WHITESPACE_RE.match(text, pos)
        if match:
            pos = match.end()
            continue

        if text.startswith("//", pos):
            pos = _LINE_COMMENT_RE.match(text, pos).end()
            continue
        if text.startswith("/*", pos):
            match = _BLOCK_COMMENT_RE.match(text, pos)
            if not match:
                raise LexError("Unterminated comment", pos)
            pos = match.end()
            continue

        ch = text[pos]
        previous = tokens[-1] if tokens else None

        if ch in _STRING_RE:
            match = _STRING_RE[ch].match(text, pos)
            if not match:
                raise LexError("Unterminated string constant", pos)
            tokens.append(Token("string", match.group(0), pos, match.end()))
            pos = match.end()
            continue

        if ch == "`":
            pos = scan_template(pos + 1, pos)
            continue

        if ch == "}" and braces and braces[-1]:
            braces.pop()
            pos = scan_template(pos + 1, pos)
            continue

        if ch.isdigit() or (ch == "." and text[pos + 1:pos + 2].isdigit()):
            match = _NUMBER_RE.match(text, pos)
            tokens.append(Token("number", match.group(0), pos, match.end()))
            pos = match.end()
            continue

        match = _NAME_RE.match(text, pos)
        if match:
            value = match.group(0)
            if value.startswith("#"):
                kind = "private"
            elif value in KEYWORDS:
                kind = "keyword"
            else:
                kind = "name"
            tokens.append(Token(kind, value, pos, match.end()))
            pos = match.end()
            continue

        if ch == "/" and _regex_allowed(previous):
            match = _REGEX_RE.match(text, pos)
            if not match:
                raise LexError("Unterminated regular expression", pos)
            tokens.append(Token("regex", match.group(0), pos, match.end()))
            pos = match.end()
            continue

        match = _PUNCT_RE.match(text, pos)
        if not match:
            raise LexError(f"Unexpected character '{ch}'", pos)
        value = match.group(0)
        if value == "{":
            braces.append(False)
        elif value == "}" and braces:
            braces.pop()
        tokens.append(Token("punct", value, pos, match.end()))
        pos = match.end()

    return tokens
