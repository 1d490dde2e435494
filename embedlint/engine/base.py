"""Engine protocol: the stable contract every analysis engine must satisfy."""

from __future__ import annotations

from collections.abc import Callable, Collection
from dataclasses import dataclass, field, replace
from typing import Protocol, runtime_checkable

from embedlint.models import Diagnostic, Severity


@dataclass(frozen=True)
class AnalysisConfig:
    """Per-call analysis configuration handed to an engine."""

    rules: dict[str, Severity] = field(default_factory=dict)
    source_type: str = "script"  # script | module
    globals: frozenset[str] = frozenset()

    @property
    def is_module(self) -> bool:
        return self.source_type == "module"

    def muted(self) -> AnalysisConfig:
        """Same configuration with every rule disabled."""
        return replace(self, rules={})

    def as_module(self) -> AnalysisConfig:
        return replace(self, source_type="module")


@runtime_checkable
class ScopeContext(Protocol):
    """Top-level scope state exposed to a hook during one analysis."""

    def through_names(self) -> list[str]:
        """Names read by the code without a declaration in it."""
        ...

    def declared_names(self) -> list[str]:
        """Names declared at the top level of the code."""
        ...

    def mark_variable_as_used(self, name: str) -> bool:
        """Flag the top-level variable *name* as used.

        Returns ``False`` when no such variable is declared.
        """
        ...

    def discard_through(self, names: Collection[str]) -> None:
        """Treat *names* as declared elsewhere (never undeclared)."""
        ...


ScopeHook = Callable[[ScopeContext], None]


@runtime_checkable
class Verifier(Protocol):
    """Pluggable analysis engine contract."""

    name: str

    def verify(
        self,
        text: str,
        config: AnalysisConfig,
        filename: str | None = None,
        hook: ScopeHook | None = None,
    ) -> list[Diagnostic]:
        """Analyze *text* and return fragment-local diagnostics.

        *hook* runs once per analysis, after scope analysis and before any
        rule reads the scope.  Engines that cannot parse *text* return a
        single fatal diagnostic and do not run the hook.
        """
        ...
