"""Built-in reference engine: scope-aware checks for plain JavaScript.

Walks the token stream produced by :mod:`embedlint.engine.lexer`, tracks
function scopes and declarations, then resolves every identifier reference.
It is not a complete JavaScript parser: blocks do not open scopes and
statements are recognized from their leading tokens only, which is enough
for the variable checks below.

Rules:
    no-undef         reference to a name declared nowhere
    no-unused-vars   declared name never read
    no-extra-semi    empty statement (fixable)
    no-debugger      ``debugger`` statement
"""

from __future__ import annotations

import bisect
from collections.abc import Callable, Collection, Iterable
from dataclasses import dataclass, field

from embedlint.engine.base import AnalysisConfig, ScopeHook
from embedlint.engine.lexer import LexError, Token, tokenize
from embedlint.extract.mapper import line_starts
from embedlint.models import Diagnostic, Fix, Severity

# ---------------------------------------------------------------------------
# Known globals
# ---------------------------------------------------------------------------

BUILTIN_GLOBALS = frozenset(
    {
        # ECMAScript
        "AggregateError", "Array", "ArrayBuffer", "Atomics", "BigInt",
        "Boolean", "DataView", "Date", "Error", "EvalError",
        "FinalizationRegistry", "Function", "Infinity", "Intl", "JSON", "Map",
        "Math", "NaN", "Number", "Object", "Promise", "Proxy", "RangeError",
        "ReferenceError", "Reflect", "RegExp", "Set", "String", "Symbol",
        "SyntaxError", "TypeError", "URIError", "WeakMap", "WeakRef",
        "WeakSet", "arguments", "decodeURI", "decodeURIComponent",
        "encodeURI", "encodeURIComponent", "escape", "eval", "globalThis",
        "isFinite", "isNaN", "parseFloat", "parseInt", "undefined",
        "unescape",
        # Browser
        "AbortController", "Audio", "Blob", "CustomEvent", "Element", "Event",
        "File", "FileReader", "FormData", "HTMLElement", "Headers", "Image",
        "IntersectionObserver", "MutationObserver", "Node", "Request",
        "ResizeObserver", "Response", "URL", "URLSearchParams", "WebSocket",
        "Worker", "XMLHttpRequest", "alert", "atob", "btoa",
        "cancelAnimationFrame", "clearInterval", "clearTimeout", "confirm",
        "console", "crypto", "customElements", "document", "fetch",
        "history", "localStorage", "location", "navigator", "performance",
        "prompt", "queueMicrotask", "requestAnimationFrame", "self",
        "sessionStorage", "setInterval", "setTimeout", "structuredClone",
        "window",
    }
)

_ASSIGN_OPS = frozenset(
    {
        "=", "+=", "-=", "*=", "/=", "%=", "**=", "<<=", ">>=", ">>>=",
        "&=", "|=", "^=", "&&=", "||=", "??=",
    }
)

# Tokens after which "{" opens an object literal rather than a block.
_EXPRESSION_PUNCT = _ASSIGN_OPS | {
    "(", "[", ",", ":", "?", "||", "&&", "??", "!", "+", "-", "...", "=>",
    "==", "===", "!=", "!==", "<", ">", "<=", ">=",
}
_EXPRESSION_KEYWORDS = frozenset(
    {"return", "yield", "await", "in", "of", "typeof", "void", "delete", "new", "case"}
)
_STATEMENT_KEYWORDS = frozenset(
    {"var", "let", "const", "class", "if", "for", "while", "do", "import", "export", "return"}
)
_CLOSERS = {"(": ")", "[": "]", "{": "}"}
_MEMBER_PREFIXES = frozenset({"static", "get", "set", "async", "*"})

# ---------------------------------------------------------------------------
# Scopes
# ---------------------------------------------------------------------------


@dataclass(eq=False)
class _Variable:
    name: str
    token: Token
    kind: str  # var | let | const | function | class | param | import
    has_init: bool = False
    used: bool = False
    written: bool = False
    exported: bool = False


@dataclass(eq=False)
class _Scope:
    parent: _Scope | None = None
    variables: dict[str, _Variable] = field(default_factory=dict)

    def lookup(self, name: str) -> _Variable | None:
        scope: _Scope | None = self
        while scope is not None:
            if name in scope.variables:
                return scope.variables[name]
            scope = scope.parent
        return None


@dataclass(frozen=True)
class _Reference:
    token: Token
    scope: _Scope
    is_write: bool = False
    in_typeof: bool = False


@dataclass
class _Frame:
    kind: str  # paren | bracket | block | object | class | class-decl | function | function-decl
    closer: str
    restore_scope: _Scope | None = None


# ---------------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------------


class _Analyzer:
    """Single pass over the tokens collecting declarations and references."""

    def __init__(self, text: str, tokens: list[Token]) -> None:
        self.text = text
        self.tokens = tokens
        self.program = _Scope()
        self.scope = self.program
        self.frames: list[_Frame] = []
        self.arrows: list[tuple[int, _Scope]] = []
        self.variables: list[_Variable] = []
        self.references: list[_Reference] = []
        self.extra_semis: list[Token] = []
        self.debuggers: list[Token] = []
        self.pending_body: tuple[_Scope, str] | None = None
        self.pending_class: tuple[str, int] | None = None
        self.declaring: tuple[str, int] | None = None
        self.exporting = False
        self.last_closed: tuple[str, int] | None = None

    # -- helpers ---------------------------------------------------------

    def _tok(self, i: int) -> Token | None:
        return self.tokens[i] if 0 <= i < len(self.tokens) else None

    def _newline_before(self, i: int) -> bool:
        prev = self._tok(i - 1)
        if prev is None:
            return False
        gap = self.text[prev.end:self.tokens[i].start]
        return "\n" in gap or "\r" in gap

    def _ends_statement(self, i: int) -> bool:
        """True when a newline before token *i* ends the previous statement."""
        prev = self._tok(i - 1)
        if prev is None or not self._newline_before(i):
            return False
        return prev.kind != "punct" or prev.value in (")", "]", "}")

    def _statement_start(self, i: int) -> bool:
        prev = self._tok(i - 1)
        if prev is not None and prev.value == "async":
            i -= 1
            prev = self._tok(i - 1)
        if prev is None or prev.value in (";", "{", "}"):
            return True
        if prev.kind == "keyword" and prev.value in ("export", "default"):
            return True
        return self._ends_statement(i)

    def _matching(self, i: int) -> int:
        depth = 0
        for j in range(i, len(self.tokens)):
            value = self.tokens[j].value
            if self.tokens[j].kind != "punct":
                continue
            if value in _CLOSERS:
                depth += 1
            elif value in (")", "]", "}"):
                depth -= 1
                if depth == 0:
                    return j
        raise LexError("Unexpected end of input", len(self.text))

    def _declare(
        self,
        token: Token,
        kind: str,
        has_init: bool = False,
        scope: _Scope | None = None,
    ) -> _Variable:
        scope = scope or self.scope
        variable = scope.variables.get(token.value)
        if variable is None:
            variable = _Variable(token.value, token, kind)
            scope.variables[token.value] = variable
            self.variables.append(variable)
        variable.has_init = variable.has_init or has_init
        variable.exported = variable.exported or self.exporting
        return variable

    def _reference(self, i: int, scope: _Scope, in_typeof: bool = False) -> None:
        token = self.tokens[i]
        prev, nxt = self._tok(i - 1), self._tok(i + 1)
        is_write = (nxt is not None and nxt.kind == "punct" and nxt.value in _ASSIGN_OPS) or (
            nxt is not None and nxt.value in ("++", "--") and not self._newline_before(i + 1)
        ) or (prev is not None and prev.value in ("++", "--"))
        self.references.append(_Reference(token, scope, is_write, in_typeof))

    def _pattern(self, start: int, end: int, kind: str, scope: _Scope, has_init: bool = False) -> None:
        """Declare the bindings of a parameter list or destructuring pattern."""
        defaults: list[int] = []  # nesting depths where a default value is open
        depth = 0
        for k in range(start, end):
            token = self.tokens[k]
            if token.kind == "punct":
                if token.value in _CLOSERS:
                    depth += 1
                elif token.value in (")", "]", "}"):
                    depth -= 1
                    while defaults and defaults[-1] > depth:
                        defaults.pop()
                elif token.value == "=":
                    defaults.append(depth)
                elif token.value == "," and defaults and defaults[-1] == depth:
                    defaults.pop()
                continue
            if token.kind != "name":
                continue
            prev, nxt = self._tok(k - 1), self._tok(k + 1)
            if prev is not None and prev.value in (".", "?."):
                continue
            if defaults:
                self._reference(k, scope)
            elif nxt is not None and nxt.value == ":":
                continue
            else:
                self._declare(token, kind, has_init, scope=scope)

    # -- walk ------------------------------------------------------------

    def run(self) -> _Analyzer:
        i = 0
        in_typeof = False
        while i < len(self.tokens):
            token = self.tokens[i]
            self._close_arrows(i)
            if self.declaring and self.declaring[1] == len(self.frames) and self._ends_statement(i):
                self._end_declaration()
            if token.kind == "keyword":
                i = self._keyword(i)
                in_typeof = token.value == "typeof"
                continue
            if token.kind == "name":
                i = self._name(i, in_typeof)
            elif token.kind == "punct":
                i = self._punct(i)
            else:
                i += 1
            in_typeof = False
        if self.frames:
            raise LexError("Unexpected end of input", len(self.text))
        return self

    def _close_arrows(self, i: int) -> None:
        token = self.tokens[i]
        while self.arrows and self.arrows[-1][0] == len(self.frames):
            ends = (token.kind == "punct" and token.value in (",", ";", ")", "]", "}")) or (
                token.kind == "keyword" and token.value in _STATEMENT_KEYWORDS
            ) or self._ends_statement(i)
            if not ends:
                return
            _, parent = self.arrows.pop()
            self.scope = parent

    def _end_declaration(self) -> None:
        self.declaring = None
        self.exporting = False

    def _keyword(self, i: int) -> int:
        token = self.tokens[i]
        value = token.value
        if value in ("var", "let", "const"):
            self.declaring = (value, len(self.frames))
            return self._declarator(i + 1)
        if value in ("in", "of") and self.declaring and self.declaring[1] == len(self.frames):
            self._end_declaration()
        elif value == "function":
            return self._function(i)
        elif value == "class":
            return self._class(i)
        elif value == "import":
            return self._import(i)
        elif value == "export":
            return self._export(i)
        elif value == "catch":
            nxt = self._tok(i + 1)
            if nxt is not None and nxt.value == "(":
                end = self._matching(i + 1)
                catch_scope = _Scope(self.scope)
                self._pattern(i + 2, end, "param", catch_scope)
                self.pending_body = (catch_scope, "block")
                return end + 1
        elif value == "debugger":
            self.debuggers.append(token)
        return i + 1

    def _declarator(self, i: int) -> int:
        token = self._tok(i)
        if token is None or self.declaring is None:
            return i
        kind = self.declaring[0]
        if token.kind == "name":
            nxt = self._tok(i + 1)
            has_init = nxt is not None and (
                nxt.value == "=" or (nxt.kind == "keyword" and nxt.value in ("of", "in"))
            )
            self._declare(token, kind, has_init)
            return i + 1
        if token.value in ("{", "["):
            end = self._matching(i)
            nxt = self._tok(end + 1)
            has_init = nxt is not None and nxt.value in ("=", "of", "in")
            self._pattern(i + 1, end, kind, self.scope, has_init)
            return end + 1
        return i

    def _function(self, i: int) -> int:
        is_declaration = self._statement_start(i)
        function_scope = _Scope(self.scope)
        j = i + 1
        star = self._tok(j)
        if star is not None and star.value == "*":
            j += 1
        name = self._tok(j)
        if name is not None and name.kind == "name":
            if is_declaration:
                self._declare(name, "function")
            j += 1
        self.exporting = False
        paren = self._tok(j)
        if paren is not None and paren.value == "(":
            end = self._matching(j)
            self._pattern(j + 1, end, "param", function_scope)
            j = end + 1
        self.pending_body = (function_scope, "function-decl" if is_declaration else "function")
        return j

    def _method(self, j: int) -> int:
        end = self._matching(j)
        method_scope = _Scope(self.scope)
        self._pattern(j + 1, end, "param", method_scope)
        self.pending_body = (method_scope, "function")
        return end + 1

    def _arrow_body(self, j: int, arrow_scope: _Scope) -> int:
        body = self._tok(j)
        if body is not None and body.value == "{":
            self.pending_body = (arrow_scope, "function")
            return j
        self.arrows.append((len(self.frames), self.scope))
        self.scope = arrow_scope
        return j

    def _class(self, i: int) -> int:
        is_declaration = self._statement_start(i)
        name = self._tok(i + 1)
        j = i + 1
        if name is not None and name.kind == "name":
            if is_declaration:
                self._declare(name, "class")
            j += 1
        self.exporting = False
        self.pending_class = ("class-decl" if is_declaration else "class", len(self.frames))
        return j

    def _import(self, i: int) -> int:
        nxt = self._tok(i + 1)
        if nxt is None or nxt.value in ("(", "."):
            return i + 1
        j = i + 1
        while j < len(self.tokens):
            token = self.tokens[j]
            if token.kind == "string" or token.value == ";":
                return j + 1
            if token.kind == "name":
                after = self._tok(j + 1)
                if token.value in ("from", "as"):
                    j += 1
                    continue
                if after is not None and after.value == "as":
                    j += 2
                    continue
                self._declare(token, "import")
            j += 1
        return j

    def _export(self, i: int) -> int:
        nxt = self._tok(i + 1)
        if nxt is None or nxt.value != "{":
            self.exporting = True
            return i + 1
        end = self._matching(i + 1)
        source = self._tok(end + 1)
        if source is None or source.value != "from":
            for k in range(i + 2, end):
                token = self.tokens[k]
                prev = self.tokens[k - 1]
                if token.kind == "name" and token.value != "as" and prev.value != "as":
                    self.references.append(_Reference(token, self.scope))
        return end + 1

    def _name(self, i: int, in_typeof: bool) -> int:
        token = self.tokens[i]
        prev, nxt = self._tok(i - 1), self._tok(i + 1)
        frame = self.frames[-1].kind if self.frames else "program"

        if prev is not None and prev.value in (".", "?."):
            return i + 1
        if prev is not None and prev.kind == "keyword" and prev.value in ("break", "continue"):
            return i + 1
        if nxt is not None and nxt.value == "=>":
            arrow_scope = _Scope(self.scope)
            self._declare(token, "param", scope=arrow_scope)
            return self._arrow_body(i + 2, arrow_scope)

        member_position = prev is not None and (
            prev.value in ("{", ",") or prev.value in _MEMBER_PREFIXES
        )
        if frame == "object" and member_position:
            if nxt is not None and nxt.value == ":":
                return i + 1
            if nxt is not None and nxt.value == "(":
                return self._method(i + 1)
            if token.value in ("get", "set") and nxt is not None and nxt.kind == "name":
                return i + 1
        if frame in ("class", "class-decl") and (
            prev is None or prev.value in ("{", "}", ";") or prev.value in _MEMBER_PREFIXES
        ):
            if nxt is not None and nxt.value == "(":
                return self._method(i + 1)
            return i + 1
        if nxt is not None and nxt.value == ":" and (prev is None or prev.value in (";", "{", "}")):
            # Statement label.
            return i + 1

        self._reference(i, self.scope, in_typeof)
        return i + 1

    def _object_expected(self, i: int) -> bool:
        prev = self._tok(i - 1)
        if prev is None:
            return False
        if prev.kind == "punct":
            return prev.value in _EXPRESSION_PUNCT
        return prev.kind == "keyword" and prev.value in _EXPRESSION_KEYWORDS

    def _punct(self, i: int) -> int:
        token = self.tokens[i]
        value = token.value
        depth = len(self.frames)

        if value == "(":
            end = self._matching(i)
            after = self._tok(end + 1)
            if after is not None and after.value == "=>":
                arrow_scope = _Scope(self.scope)
                self._pattern(i + 1, end, "param", arrow_scope)
                return self._arrow_body(end + 2, arrow_scope)
            self.frames.append(_Frame("paren", ")"))
        elif value == "[":
            self.frames.append(_Frame("bracket", "]"))
        elif value == "{":
            if self.pending_body is not None:
                body_scope, kind = self.pending_body
                self.pending_body = None
                self.frames.append(_Frame(kind, "}", restore_scope=self.scope))
                self.scope = body_scope
            elif self.pending_class is not None and self.pending_class[1] == depth:
                self.frames.append(_Frame(self.pending_class[0], "}"))
                self.pending_class = None
            else:
                kind = "object" if self._object_expected(i) else "block"
                self.frames.append(_Frame(kind, "}"))
        elif value in (")", "]", "}"):
            if not self.frames or self.frames[-1].closer != value:
                raise LexError(f"Unexpected token {value}", token.start)
            frame = self.frames.pop()
            if frame.restore_scope is not None:
                self.scope = frame.restore_scope
            self.last_closed = (frame.kind, i)
            if self.declaring and len(self.frames) < self.declaring[1]:
                self._end_declaration()
        elif value == ",":
            if self.declaring and self.declaring[1] == depth:
                return self._declarator(i + 1)
        elif value == ";":
            if self._is_extra_semi(i):
                self.extra_semis.append(token)
            if self.declaring and self.declaring[1] == depth:
                self._end_declaration()
            self.exporting = False
        return i + 1

    def _is_extra_semi(self, i: int) -> bool:
        frame = self.frames[-1].kind if self.frames else "program"
        if frame == "paren":
            return False
        prev = self._tok(i - 1)
        if prev is None or prev.value in (";", "{"):
            return True
        if prev.value == "}" and self.last_closed is not None and self.last_closed[1] == i - 1:
            closed = self.last_closed[0]
            return closed in ("block", "class-decl", "function-decl") or frame in ("class", "class-decl")
        return False


# ---------------------------------------------------------------------------
# Scope context handed to hooks
# ---------------------------------------------------------------------------


class _ProgramContext:
    def __init__(self, program: _Scope, through: list[_Reference]) -> None:
        self._program = program
        self.through = through

    def through_names(self) -> list[str]:
        return list(dict.fromkeys(r.token.value for r in self.through))

    def declared_names(self) -> list[str]:
        return list(self._program.variables)

    def mark_variable_as_used(self, name: str) -> bool:
        variable = self._program.variables.get(name)
        if variable is None:
            return False
        variable.used = True
        return True

    def discard_through(self, names: Collection[str]) -> None:
        names = set(names)
        self.through = [r for r in self.through if r.token.value not in names]


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

_Report = tuple[Token, str, Fix | None]


def _no_undef(analyzer: _Analyzer, context: _ProgramContext) -> Iterable[_Report]:
    for reference in context.through:
        if not reference.in_typeof:
            yield reference.token, f"'{reference.token.value}' is not defined.", None


def _no_unused_vars(analyzer: _Analyzer, context: _ProgramContext) -> Iterable[_Report]:
    for variable in analyzer.variables:
        if variable.kind == "param" or variable.used or variable.exported:
            continue
        assigned = variable.kind not in ("function", "class", "import") and (
            variable.has_init or variable.written
        )
        action = "assigned a value" if assigned else "defined"
        yield variable.token, f"'{variable.name}' is {action} but never used.", None


def _no_extra_semi(analyzer: _Analyzer, context: _ProgramContext) -> Iterable[_Report]:
    for token in analyzer.extra_semis:
        yield token, "Unnecessary semicolon.", Fix(range=(token.start, token.end), text="")


def _no_debugger(analyzer: _Analyzer, context: _ProgramContext) -> Iterable[_Report]:
    for token in analyzer.debuggers:
        yield token, "Unexpected 'debugger' statement.", None


RULES: dict[str, Callable[[_Analyzer, _ProgramContext], Iterable[_Report]]] = {
    "no-undef": _no_undef,
    "no-unused-vars": _no_unused_vars,
    "no-extra-semi": _no_extra_semi,
    "no-debugger": _no_debugger,
}

DEFAULT_RULES: dict[str, Severity] = {
    "no-undef": Severity.ERROR,
    "no-unused-vars": Severity.WARN,
    "no-extra-semi": Severity.ERROR,
    "no-debugger": Severity.ERROR,
}


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class BasicEngine:
    """Reference :class:`~embedlint.engine.base.Verifier` implementation."""

    name = "basic"
    version = "1.0"
    default_rules = DEFAULT_RULES

    def __init__(self, globals: Iterable[str] = ()) -> None:
        self.globals = frozenset(globals)

    def verify(
        self,
        text: str,
        config: AnalysisConfig,
        filename: str | None = None,
        hook: ScopeHook | None = None,
    ) -> list[Diagnostic]:
        starts = line_starts(text)

        def location(index: int) -> tuple[int, int]:
            line = bisect.bisect_right(starts, index)
            return line, index - starts[line - 1] + 1

        try:
            analyzer = _Analyzer(text, tokenize(text)).run()
        except LexError as exc:
            line, column = location(min(exc.index, len(text)))
            return [
                Diagnostic(
                    line=line,
                    column=column,
                    message=f"Parsing error: {exc}",
                    severity=Severity.ERROR,
                    fatal=True,
                )
            ]

        known = BUILTIN_GLOBALS | self.globals | config.globals
        through: list[_Reference] = []
        for reference in analyzer.references:
            variable = reference.scope.lookup(reference.token.value)
            if variable is None:
                if reference.token.value not in known:
                    through.append(reference)
            elif reference.is_write:
                variable.written = True
            else:
                variable.used = True

        context = _ProgramContext(analyzer.program, through)
        if hook is not None:
            hook(context)

        diagnostics: list[Diagnostic] = []
        for rule_id, check in RULES.items():
            severity = config.rules.get(rule_id, Severity.OFF)
            if severity == Severity.OFF:
                continue
            for token, message, fix in check(analyzer, context):
                line, column = location(token.start)
                end_line, end_column = location(token.end)
                diagnostics.append(
                    Diagnostic(
                        line=line,
                        column=column,
                        message=message,
                        rule_id=rule_id,
                        severity=severity,
                        end_line=end_line,
                        end_column=end_column,
                        fix=fix,
                    )
                )
        diagnostics.sort(key=lambda d: d.sort_key())
        return diagnostics
