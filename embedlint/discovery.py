"""Discovery: walk the given paths and collect lintable files."""

from __future__ import annotations

import fnmatch
import logging
import os
from collections.abc import Iterable
from pathlib import Path

logger = logging.getLogger(__name__)

# Directories never descended into.
DEFAULT_EXCLUDE_DIRS: set[str] = {
    ".git",
    "node_modules",
    "dist",
    "build",
    ".venv",
    "venv",
    "__pycache__",
}


def _matches_any_glob(path: str, globs: list[str]) -> bool:
    """Return True if *path* matches any of the *globs*."""
    return any(fnmatch.fnmatch(path, g) for g in globs)


def _excluded(path: Path, root: Path, globs: list[str]) -> bool:
    rel = path.relative_to(root).as_posix()
    return _matches_any_glob(rel, globs) or _matches_any_glob(path.name, globs)


def collect_files(
    paths: Iterable[str | Path],
    extensions: Iterable[str],
    exclude_globs: list[str] | None = None,
) -> list[Path]:
    """Return the files under *paths* whose suffix is in *extensions*.

    Explicitly named files are always included, whatever their suffix.
    Directory walks skip :data:`DEFAULT_EXCLUDE_DIRS` and anything matching
    *exclude_globs* (relative path or base name).
    """
    suffixes = {e.lower() for e in extensions}
    excludes = list(exclude_globs or [])
    collected: set[Path] = set()

    for entry in paths:
        root = Path(entry)
        if root.is_file():
            collected.add(root)
            continue
        if not root.is_dir():
            logger.warning("No such file or directory: %s", root)
            continue

        for dirpath, dirnames, filenames in os.walk(root):
            current = Path(dirpath)
            # Prune excluded directories in-place
            dirnames[:] = [
                d for d in dirnames
                if d not in DEFAULT_EXCLUDE_DIRS
                and not _excluded(current / d, root, excludes)
            ]
            for fname in filenames:
                fpath = current / fname
                if fpath.suffix.lower() not in suffixes:
                    continue
                if _excluded(fpath, root, excludes):
                    continue
                collected.add(fpath)

    return sorted(collected)
