"""Memoization of framework detection results."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from testscout.detection.config_files import is_config_file_name
from testscout.detection.signals import Resolution, TestPatternSet
from testscout.utils.cache import MemoryCache
from testscout.utils.paths import is_within, normalize_path

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

_DEFAULT_MAX_ENTRIES = 10_000


@dataclass(frozen=True)
class CacheStats:
    """Snapshot of the per-file test classification cache."""

    size: int
    entries: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class _ParsedConfig:
    pattern_sets: list[TestPatternSet] | None
    sources: frozenset[str]


def _pair_key(directory: str, framework: str) -> str:
    return f"{framework}\n{directory}"


def _pair_directory(key: str) -> str:
    return key.split("\n", 1)[1]


def owning_directory(path: str) -> str:
    """The directory whose detection depends on *path*.

    ``test/jest-e2e.json`` belongs to the directory above ``test/``.
    """
    directory = os.path.dirname(path)
    if path.endswith("/test/jest-e2e.json"):
        directory = os.path.dirname(directory)
    return normalize_path(directory)


class DetectionCache:
    """Per-directory framework flags and per-file classification results.

    The cache only decides whether filesystem and parse work is repeated;
    a query after :meth:`invalidate_all` reproduces the cold answer.

    Args:
        max_entries: LRU bound for each of the underlying maps.
    """

    def __init__(self, max_entries: int = _DEFAULT_MAX_ENTRIES) -> None:
        self._max_entries = max_entries
        self._usage: MemoryCache[bool] = MemoryCache(max_size=max_entries)
        self._resolutions: MemoryCache[Resolution | None] = MemoryCache(max_size=max_entries)
        self._test_files: MemoryCache[bool] = MemoryCache(max_size=max_entries)
        self._pattern_sets: MemoryCache[_ParsedConfig] = MemoryCache(max_size=max_entries)

    def init(self) -> None:
        """Start from an empty state."""
        self._usage = MemoryCache(max_size=self._max_entries)
        self._resolutions = MemoryCache(max_size=self._max_entries)
        self._test_files = MemoryCache(max_size=self._max_entries)
        self._pattern_sets = MemoryCache(max_size=self._max_entries)

    # -- framework usage flags --

    def has_usage(self, directory: str, framework: str) -> bool:
        return _pair_key(directory, framework) in self._usage

    def get_usage(self, directory: str, framework: str) -> bool | None:
        return self._usage.get(_pair_key(directory, framework))

    def put_usage(self, directory: str, framework: str, used: bool) -> None:
        self._usage.put(_pair_key(directory, framework), used)

    # -- per-file resolutions --

    def has_resolution(self, file_path: str) -> bool:
        return file_path in self._resolutions

    def get_resolution(self, file_path: str) -> Resolution | None:
        return self._resolutions.get(file_path)

    def put_resolution(self, file_path: str, resolution: Resolution | None) -> None:
        self._resolutions.put(file_path, resolution)

    # -- per-file test classification --

    def has_test_file(self, file_path: str) -> bool:
        return file_path in self._test_files

    def get_test_file(self, file_path: str) -> bool | None:
        return self._test_files.get(file_path)

    def put_test_file(self, file_path: str, is_test: bool) -> None:
        self._test_files.put(file_path, is_test)

    # -- parsed configurations --

    def has_pattern_sets(self, framework: str, config_path: str) -> bool:
        return _pair_key(config_path, framework) in self._pattern_sets

    def get_pattern_sets(self, framework: str, config_path: str) -> list[TestPatternSet] | None:
        parsed = self._pattern_sets.get(_pair_key(config_path, framework))
        return parsed.pattern_sets if parsed is not None else None

    def put_pattern_sets(
        self,
        framework: str,
        config_path: str,
        pattern_sets: list[TestPatternSet] | None,
        read_files: Iterable[str] = (),
    ) -> None:
        """Store a parse of *config_path* along with every file it read.

        A later change to any of *read_files* drops the entry.
        """
        sources = frozenset({normalize_path(config_path), *map(normalize_path, read_files)})
        key = _pair_key(config_path, framework)
        self._pattern_sets.put(key, _ParsedConfig(pattern_sets, sources))

    # -- invalidation --

    def invalidate(self, path: str | None = None) -> list[str]:
        """Drop the entries affected by a change to *path*; everything when ``None``.

        A change to a configuration file or ``package.json`` drops every
        parsed config and every file-level entry under that file's
        directory.  A change to any other file a cached parse read (a config
        pulled in through ``projects``, a custom config path) drops that
        parse and the file-level entries that relied on it.

        Returns:
            The configs whose parses were dropped because they read *path*.
        """
        if path is None:
            self.invalidate_all()
            return []

        normalized = normalize_path(path)
        directory = owning_directory(normalized)
        self._resolutions.invalidate(normalized)
        self._test_files.invalidate(normalized)

        dropped_dirs = self._usage.invalidate_where(
            lambda key: _pair_directory(key) in (normalized, directory)
        )

        dependents = sorted(
            {
                _pair_directory(key)
                for key, parsed in self._pattern_sets.items()
                if normalized in parsed.sources
            }
        )
        directories: set[str] = {owning_directory(config) for config in dependents}

        if is_config_file_name(os.path.basename(normalized)):
            # A new config may be matched by a `projects` glob; drop every parse.
            self._pattern_sets.clear()
            directories.add(directory)
        else:
            self._pattern_sets.invalidate_where(lambda key: _pair_directory(key) in dependents)

        if not directories:
            return dependents

        resolved_by_dependent = {
            file_path
            for file_path, resolution in self._resolutions.items()
            if resolution is not None and resolution.config_path in dependents
        }

        def affected(key: str) -> bool:
            return key in resolved_by_dependent or any(
                is_within(key, entry) for entry in directories
            )

        dropped = self._resolutions.invalidate_where(affected)
        dropped += self._test_files.invalidate_where(affected)
        logger.debug(
            "Config change %s dropped %d file entries and %d directory flags",
            normalized,
            dropped,
            dropped_dirs,
        )
        return dependents

    def invalidate_all(self) -> None:
        """Clear every map."""
        self._usage.clear()
        self._resolutions.clear()
        self._test_files.clear()
        self._pattern_sets.clear()

    def stats(self) -> CacheStats:
        """Size and keys of the per-file test classification map."""
        return CacheStats(size=self._test_files.size, entries=list(self._test_files.keys()))
