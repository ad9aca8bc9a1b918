"""Matching file paths against a framework's ``TestPatternSet``."""

from __future__ import annotations

import dataclasses
import logging
import os
import re
from typing import TYPE_CHECKING

from wcmatch import glob

from testscout.detection.frameworks import DEFAULT_TEST_PATTERNS
from testscout.utils.paths import is_within, normalize_path

if TYPE_CHECKING:
    from collections.abc import Iterable

    from testscout.detection.signals import TestPatternSet

logger = logging.getLogger(__name__)

ROOT_DIR_TOKEN_RE = re.compile(re.escape("<rootDir>"), re.IGNORECASE)

GLOB_FLAGS = glob.GLOBSTAR | glob.BRACE | glob.EXTGLOB | glob.IGNORECASE


def glob_match(relative_path: str, pattern: str) -> bool:
    """Case-insensitive extended-glob match; invalid patterns never match."""
    if not pattern:
        return False
    try:
        return glob.globmatch(relative_path, pattern, flags=GLOB_FLAGS)
    except (ValueError, re.error) as exc:
        logger.debug("Skipping invalid glob %r: %s", pattern, exc)
        return False


def regex_search(path: str, pattern: str) -> bool:
    """``re.search`` that treats an invalid pattern as never matching."""
    if not pattern:
        return False
    try:
        return re.search(pattern, path) is not None
    except re.error as exc:
        logger.debug("Skipping invalid regex %r: %s", pattern, exc)
        return False


def _strip_root_token(pattern: str) -> str:
    return ROOT_DIR_TOKEN_RE.sub("", pattern).lstrip("/")


def _relative(absolute_path: str, base: str) -> str | None:
    try:
        relative = os.path.relpath(absolute_path, base).replace("\\", "/")
    except ValueError:
        # Different drives on Windows.
        return None
    if relative == ".." or relative.startswith("../"):
        return None
    return relative


def resolve_root(base_dir: str, pattern_set: TestPatternSet) -> str:
    """The directory relative patterns are resolved against."""
    root = normalize_path(base_dir)
    if pattern_set.root_dir:
        root = normalize_path(os.path.join(root, pattern_set.root_dir))
    return root


def glob_base(base_dir: str, pattern_set: TestPatternSet) -> str:
    """``root`` narrowed by the set's ``dir`` (Vitest ``test.dir``, Playwright ``testDir``)."""
    root = resolve_root(base_dir, pattern_set)
    if pattern_set.dir:
        return normalize_path(os.path.join(root, pattern_set.dir))
    return root


def file_matches_patterns_explicit(
    file_path: str, base_dir: str, pattern_set: TestPatternSet
) -> bool:
    """Whether *file_path* matches *pattern_set* exactly as declared.

    Rules, first decisive one wins:

    1. with ``roots``, the file must lie under one of them;
    2. an ``ignore_patterns`` regex matching the absolute path rejects;
    3. an ``exclude_patterns`` glob matching the relative path rejects;
    4. any ``patterns`` entry matching accepts (regexes against the
       absolute path, globs against the path relative to the glob base).

    An empty ``patterns`` list matches nothing here; see
    :func:`file_matches_patterns` for default substitution.
    """
    absolute_path = normalize_path(file_path)
    root = resolve_root(base_dir, pattern_set)
    base = glob_base(base_dir, pattern_set)
    relative_path = _relative(absolute_path, base)

    if pattern_set.roots:
        resolved_roots = [
            normalize_path(os.path.join(root, ROOT_DIR_TOKEN_RE.sub(lambda _m: root, entry)))
            for entry in pattern_set.roots
        ]
        if not any(is_within(absolute_path, entry) for entry in resolved_roots):
            return False

    for pattern in pattern_set.ignore_patterns or ():
        if regex_search(absolute_path, ROOT_DIR_TOKEN_RE.sub("", pattern)):
            return False

    if relative_path is not None:
        for pattern in pattern_set.exclude_patterns or ():
            if glob_match(relative_path, _strip_root_token(pattern)):
                return False

    if pattern_set.is_regex:
        escaped_root = re.escape(root)
        return any(
            regex_search(absolute_path, ROOT_DIR_TOKEN_RE.sub(lambda _m: escaped_root, pattern))
            for pattern in pattern_set.patterns
        )

    if relative_path is None:
        return False
    return any(glob_match(relative_path, _strip_root_token(p)) for p in pattern_set.patterns)


def file_matches_patterns(
    file_path: str,
    base_dir: str,
    pattern_set: TestPatternSet,
    default_patterns: Iterable[str] = DEFAULT_TEST_PATTERNS,
) -> bool:
    """Like :func:`file_matches_patterns_explicit`, substituting *default_patterns*
    when the set declares no patterns of its own."""
    if not pattern_set.patterns:
        pattern_set = dataclasses.replace(
            pattern_set, patterns=list(default_patterns), is_regex=False
        )
    return file_matches_patterns_explicit(file_path, base_dir, pattern_set)


def matches_any(
    file_path: str,
    base_dir: str,
    pattern_sets: Iterable[TestPatternSet],
    default_patterns: Iterable[str] = DEFAULT_TEST_PATTERNS,
) -> bool:
    """Whether any of *pattern_sets* accepts *file_path* (defaults substituted)."""
    defaults = list(default_patterns)
    return any(
        file_matches_patterns(file_path, base_dir, pattern_set, defaults)
        for pattern_set in pattern_sets
    )


def matches_any_explicit(
    file_path: str, base_dir: str, pattern_sets: Iterable[TestPatternSet]
) -> bool:
    """Whether any set with explicit patterns accepts *file_path*."""
    return any(
        file_matches_patterns_explicit(file_path, base_dir, pattern_set)
        for pattern_set in pattern_sets
        if pattern_set.is_explicit
    )
