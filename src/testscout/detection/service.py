"""Test file detection service.

``TestFileDetector`` is the entry point used by editors, CLIs and runners:
it answers whether a path is a test file, which framework owns it and
which directory that framework runs from.  All state lives in the
instance (cache, conflict warnings), so independent detectors never
share results.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

from testscout.config import Settings
from testscout.detection.cache import DetectionCache, owning_directory
from testscout.detection.config_files import get_config_path, is_config_file_name
from testscout.detection.conflicts import ConflictReporter, detect_pattern_conflict
from testscout.detection.frameworks import JEST, VITEST
from testscout.detection.patterns import matches_any
from testscout.detection.resolver import FrameworkResolver
from testscout.detection.signals import TestPatternSet
from testscout.utils.paths import normalize_path

if TYPE_CHECKING:
    from testscout.detection.cache import CacheStats
    from testscout.detection.conflicts import PatternConflictInfo
    from testscout.detection.signals import FrameworkResult, Resolution

logger = logging.getLogger(__name__)


class TestFileDetector:
    """Classifies source files by test framework.

    Args:
        settings: Settings store; defaults to an empty store rooted at the
            current directory.
        cache: Detection cache; a fresh one per detector by default.
        reporter: Sink for Jest/Vitest ambiguity warnings.
    """

    __test__ = False  # not a pytest test class

    def __init__(
        self,
        settings: Settings | None = None,
        cache: DetectionCache | None = None,
        reporter: ConflictReporter | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.cache = cache or DetectionCache()
        self.reporter = reporter or ConflictReporter()
        self.resolver = FrameworkResolver(self.settings, self.cache, self.reporter)

    # ── Framework lookup ────────────────────────────────────────────

    def resolve(self, path: str) -> Resolution | None:
        """Full resolution of *path*, including the evidence behind it."""
        return self.resolver.resolve(path)

    def get_test_framework_for_file(self, path: str) -> str | None:
        resolution = self.resolver.resolve(path)
        return resolution.framework if resolution is not None else None

    def find_test_framework_directory(
        self, path: str, target_framework: str | None = None
    ) -> FrameworkResult | None:
        """The owning directory and framework of *path*.

        With *target_framework*, ``None`` unless that framework owns the file.
        """
        resolution = self.resolver.resolve(path)
        if resolution is None:
            return None
        if target_framework is not None and resolution.framework != target_framework:
            return None
        return resolution.to_result()

    def find_jest_directory(self, path: str) -> str | None:
        result = self.find_test_framework_directory(path, JEST)
        return result.directory if result is not None else None

    def find_vitest_directory(self, path: str) -> str | None:
        result = self.find_test_framework_directory(path, VITEST)
        return result.directory if result is not None else None

    # ── Test file classification ────────────────────────────────────

    def test_pattern_sets(self, path: str) -> tuple[list[TestPatternSet], str, list[str]]:
        """Pattern sets that decide whether *path* is a test file.

        Returns ``(pattern_sets, base_dir, default_patterns)``: the resolving
        config's sets when there is one, otherwise an empty set matched
        against the framework defaults from the workspace root.
        """
        normalized = normalize_path(path)
        resolution = self.resolver.resolve(normalized)
        if resolution is not None and resolution.config_path:
            pattern_sets = self.resolver.pattern_sets(
                resolution.framework, resolution.config_path
            )
            return (
                pattern_sets or [TestPatternSet()],
                resolution.directory,
                self.resolver.patterns_for(resolution.framework),
            )

        base_dir = self.resolver.workspace_root_for(normalized) or os.path.dirname(normalized)
        if resolution is not None:
            defaults = self.resolver.patterns_for(resolution.framework)
        else:
            defaults = self.resolver.default_patterns
        return [TestPatternSet()], base_dir, defaults

    def matches_test_file_pattern(self, path: str) -> bool:
        pattern_sets, base_dir, defaults = self.test_pattern_sets(path)
        return matches_any(normalize_path(path), base_dir, pattern_sets, defaults)

    def is_test_file(self, path: str) -> bool:
        """Whether *path* is a test file of exactly one framework.

        Requires a resolution, a pattern match, and no other framework's
        config explicitly claiming the file.
        """
        normalized = normalize_path(path)
        if self.cache.has_test_file(normalized):
            return bool(self.cache.get_test_file(normalized))

        is_test = self._classify(normalized)
        self.cache.put_test_file(normalized, is_test)
        return is_test

    def _classify(self, path: str) -> bool:
        resolution = self.resolver.resolve(path)
        if resolution is None:
            logger.debug("%s: no framework", path)
            return False
        if not self.matches_test_file_pattern(path):
            logger.debug("%s: %s patterns do not match", path, resolution.framework)
            return False
        conflict = self.resolver.find_conflict(path, resolution)
        if conflict is not None:
            logger.debug("%s: claimed by both %s and %s", path, resolution.framework, conflict)
            return False
        return True

    def is_jest_test_file(self, path: str) -> bool:
        return self.is_test_file(path) and self.get_test_framework_for_file(path) == JEST

    def is_vitest_test_file(self, path: str) -> bool:
        return self.is_test_file(path) and self.get_test_framework_for_file(path) == VITEST

    # ── Conflicts ───────────────────────────────────────────────────

    def check_pattern_conflict(self, directory: str) -> PatternConflictInfo | None:
        """Compare Jest's and Vitest's patterns in *directory*.

        ``None`` unless both frameworks are configured there.  A conflict is
        reported through the reporter once per directory.
        """
        normalized = normalize_path(directory)
        jest_config = get_config_path(normalized, JEST)
        vitest_config = get_config_path(normalized, VITEST)
        if jest_config is None or vitest_config is None:
            return None

        info = detect_pattern_conflict(
            self.resolver.pattern_sets(JEST, jest_config),
            self.resolver.pattern_sets(VITEST, vitest_config),
            self.resolver.default_patterns,
        )
        if info.has_conflict:
            self.reporter.report(normalized, info)
        return info

    # ── Cache lifecycle ─────────────────────────────────────────────

    def invalidate(self, path: str | None = None) -> None:
        """Forget results affected by a change to *path*; everything when ``None``.

        A configuration change also re-arms the ambiguity warning for its
        directory, and for the directory of every config that read it.
        """
        if path is None:
            self.invalidate_all()
            return
        dependents = self.cache.invalidate(path)
        normalized = normalize_path(path)
        if is_config_file_name(os.path.basename(normalized)):
            self.reporter.clear(owning_directory(normalized))
        for config_path in dependents:
            self.reporter.clear(owning_directory(config_path))

    def invalidate_all(self) -> None:
        self.cache.invalidate_all()
        self.reporter.clear()

    def get_cache_stats(self) -> CacheStats:
        return self.cache.stats()
