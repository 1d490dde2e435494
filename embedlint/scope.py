"""Shared-scope resolution across the fragments of one document.

Scripts embedded separately in one page share one implicit global scope:
a variable declared by an earlier script is visible to later ones.  Each
fragment is analyzed on its own, so the resolver runs two passes:

1. observation: every shared fragment is analyzed with all rules muted,
   recording the names it reads without declaring (``through``) and the
   names it declares at its top level;
2. verification: each fragment is analyzed again with a hook that marks as
   used every name read by *later* fragments and removes from the
   undeclared candidates every name declared by *earlier* fragments.

Module fragments opt out: they are analyzed once, standalone, and neither
contribute to nor receive from the shared scope.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from embedlint.engine.base import AnalysisConfig, ScopeContext, ScopeHook
from embedlint.extract import CodeFragment
from embedlint.models import Diagnostic, ScopeObservation

logger = logging.getLogger(__name__)

FragmentRunner = Callable[[CodeFragment, AnalysisConfig, ScopeHook | None], list[Diagnostic]]


def observe(
    fragment: CodeFragment,
    config: AnalysisConfig,
    run: FragmentRunner,
) -> ScopeObservation:
    """Run the observation pass on *fragment*; its diagnostics are discarded."""
    seen: list[ScopeObservation] = []

    def hook(context: ScopeContext) -> None:
        seen.append(
            ScopeObservation(
                through=frozenset(context.through_names()),
                declared=frozenset(context.declared_names()),
            )
        )

    run(fragment, config.muted(), hook)
    if not seen:
        # The engine could not analyze the fragment (parse error).
        logger.debug("No scope observation for fragment %d", fragment.index)
        return ScopeObservation()
    return seen[0]


def _union(sets: Iterable[frozenset[str]]) -> set[str]:
    out: set[str] = set()
    for names in sets:
        out.update(names)
    return out


def _sharing_hook(used_later: set[str], declared_earlier: set[str]) -> ScopeHook:
    def hook(context: ScopeContext) -> None:
        for name in sorted(used_later):
            context.mark_variable_as_used(name)
        context.discard_through(declared_earlier)

    return hook


def verify_with_shared_scope(
    fragments: list[CodeFragment],
    config: AnalysisConfig,
    run: FragmentRunner,
) -> list[tuple[CodeFragment, list[Diagnostic]]]:
    """Verify *fragments* in document order with one shared global scope.

    Returns ``(fragment, diagnostics)`` pairs in fragment order.
    """
    if config.is_module:
        return verify_standalone(fragments, config, run)

    shared = [f for f in fragments if not f.is_module]

    # First pass: collect needed and declared globals of each fragment.
    observations = [observe(f, config, run) for f in shared]
    position = {f.index: i for i, f in enumerate(shared)}

    # Second pass: declare variables for each fragment, then verify.
    results: list[tuple[CodeFragment, list[Diagnostic]]] = []
    for fragment in fragments:
        if fragment.is_module:
            results.append((fragment, run(fragment, config.as_module(), None)))
            continue
        i = position[fragment.index]
        hook = _sharing_hook(
            used_later=_union(o.through for o in observations[i + 1:]),
            declared_earlier=_union(o.declared for o in observations[:i]),
        )
        results.append((fragment, run(fragment, config, hook)))
    return results


def verify_standalone(
    fragments: list[CodeFragment],
    config: AnalysisConfig,
    run: FragmentRunner,
) -> list[tuple[CodeFragment, list[Diagnostic]]]:
    """Verify each fragment once, as an isolated module."""
    module_config = config.as_module()
    return [(f, run(f, module_config, None)) for f in fragments]
