"""Path helpers shared by the detection modules.

All paths handed between modules are absolute and use forward slashes, so
prefix comparisons behave the same on every platform.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


def normalize_path(path: str | Path) -> str:
    """Return *path* as an absolute, normalized, forward-slash string."""
    return os.path.normpath(os.path.abspath(os.fspath(path))).replace("\\", "/")


def is_within(path: str | Path, root: str | Path) -> bool:
    """Return ``True`` if *path* equals *root* or lies underneath it.

    The comparison is segment-aware: ``/a/src`` does not contain ``/a/srcx``.
    """
    norm_path = normalize_path(path)
    norm_root = normalize_path(root)
    if norm_path == norm_root:
        return True
    prefix = norm_root if norm_root.endswith("/") else norm_root + "/"
    return norm_path.startswith(prefix)


def relative_posix(path: str | Path, base: str | Path) -> str:
    """Return *path* relative to *base* with forward slashes."""
    return os.path.relpath(normalize_path(path), normalize_path(base)).replace("\\", "/")


def parent_directories(start_dir: str | Path, root: str | Path) -> list[str]:
    """List *start_dir* and its ancestors up to and including *root*.

    Returns an empty list when *start_dir* is outside *root*.  Every step is
    checked against *root*, so the walk never climbs above it and terminates
    at the filesystem root.
    """
    current = normalize_path(start_dir)
    norm_root = normalize_path(root)
    if not is_within(current, norm_root):
        return []

    dirs: list[str] = []
    while is_within(current, norm_root):
        dirs.append(current)
        if current == norm_root:
            break
        parent = normalize_path(os.path.dirname(current))
        if parent == current:
            break
        current = parent
    return dirs


def find_workspace_root(path: str | Path, roots: Iterable[str | Path]) -> str | None:
    """Return the deepest workspace root that contains *path*, if any."""
    candidates = [normalize_path(root) for root in roots if is_within(path, root)]
    if not candidates:
        return None
    return max(candidates, key=len)


def read_text(path: str | Path) -> str:
    """Read a UTF-8 text file.  Raises ``OSError`` / ``UnicodeDecodeError``."""
    return Path(path).read_text(encoding="utf-8")
