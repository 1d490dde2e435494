"""Engine registry: loading and selection of analysis engines."""

from __future__ import annotations

import importlib
import logging
import platform
import sys
from importlib.metadata import entry_points

from embedlint.engine.base import Verifier

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "embedlint.engines"
BUILTIN_ENGINE = "basic"


class EngineUnavailableError(RuntimeError):
    """No usable engine could be loaded for the requested name."""

    def __init__(self, engine_spec: str, reason: str) -> None:
        self.engine_spec = engine_spec
        self.reason = reason
        super().__init__(f"Could not load engine '{engine_spec}': {reason}\n\n{environment_report()}")


def environment_report() -> str:
    """Describe the environment the way a bug report needs it."""
    from embedlint import __version__

    names = sorted(ep.name for ep in entry_points(group=ENTRY_POINT_GROUP))
    lines = [
        f"embedlint: {__version__}",
        f"Python: {platform.python_version()} ({sys.executable})",
        f"Platform: {platform.platform()}",
        f"Command: {' '.join(sys.argv)}",
        f"Registered engines: {', '.join(names) if names else '(none)'}",
    ]
    return "\n".join(lines)


def _instantiate(obj: object) -> Verifier:
    engine = obj() if isinstance(obj, type) else obj
    if not isinstance(engine, Verifier):
        raise TypeError(f"{obj!r} does not implement verify()")
    return engine


def _load_entry_point_engines() -> dict[str, Verifier]:
    """Load engines registered via the ``embedlint.engines`` entry-point group."""
    engines: dict[str, Verifier] = {}
    for ep in entry_points(group=ENTRY_POINT_GROUP):
        try:
            engines[ep.name] = _instantiate(ep.load())
        except Exception as exc:  # a broken plugin must not hide the others
            logger.warning("Skipping engine '%s': %s", ep.name, exc)
    return engines


def load_import_engine(import_string: str) -> Verifier:
    """Load an engine from ``import:pkg.module:ClassName``.

    The *import_string* is the part after ``import:``.
    """
    module_path, _, class_name = import_string.rpartition(":")
    if not module_path or not class_name:
        raise EngineUnavailableError(f"import:{import_string}", "expected 'pkg.module:ClassName'")
    try:
        mod = importlib.import_module(module_path)
        return _instantiate(getattr(mod, class_name))
    except (ImportError, AttributeError, TypeError) as exc:
        raise EngineUnavailableError(f"import:{import_string}", str(exc)) from exc


def load_engine(engine_spec: str = BUILTIN_ENGINE) -> Verifier:
    """Return the engine named by *engine_spec*.

    ``basic``       the built-in engine
    ``<name>``      engine registered under that entry-point name
    ``import:...``  engine class from an import string
    """
    if engine_spec.startswith("import:"):
        return load_import_engine(engine_spec[len("import:"):])

    if engine_spec == BUILTIN_ENGINE:
        from embedlint.engine.basic import BasicEngine

        return BasicEngine()

    engines = _load_entry_point_engines()
    if engine_spec not in engines:
        raise EngineUnavailableError(engine_spec, "no registered engine with that name")
    logger.debug("Loaded engine '%s' from entry points", engine_spec)
    return engines[engine_spec]


def list_engines() -> list[Verifier]:
    """Return all available engines (for ``engines list``)."""
    engines = _load_entry_point_engines()
    if BUILTIN_ENGINE not in engines:
        from embedlint.engine.basic import BasicEngine

        engines[BUILTIN_ENGINE] = BasicEngine()
    return [engines[name] for name in sorted(engines)]
