"""Resolve the framework that owns a source file.

Resolution is an ordered tuple of independent detectors, each returning a
``Verdict`` or ``None``; the first verdict wins:

1. custom config-path overrides from the settings;
2. content signals in the file itself (``node:test``, ``Deno.test``,
   ``@playwright/test``);
3. the ancestor walk over configuration files, nearest directory first;
4. dependency and binary traces at the workspace root.

With auto-detection disabled only the first detector runs.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from testscout.detection.config_files import get_config_path, is_framework_used_in
from testscout.detection.conflicts import (
    ConflictReporter,
    detect_pattern_conflict,
    find_conflicting_framework,
    scoping_covers,
)
from testscout.detection.frameworks import (
    CONTENT_DETECTION_ORDER,
    FALLBACK_ORDER,
    FRAMEWORKS,
    JEST,
    PRIMARY_FRAMEWORKS,
    SECONDARY_FRAMEWORKS,
    VITEST,
    default_patterns_for,
)
from testscout.detection.parsers import parse_config
from testscout.detection.patterns import glob_match, matches_any
from testscout.detection.signals import Resolution, ResolutionSource, TestPatternSet, Verdict
from testscout.utils.paths import (
    find_workspace_root,
    normalize_path,
    parent_directories,
    read_text,
    relative_posix,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from testscout.config import Settings
    from testscout.detection.cache import DetectionCache

    Detector = Callable[["ResolutionContext"], "Verdict | None"]

logger = logging.getLogger(__name__)


@dataclass
class ResolutionContext:
    """Inputs shared by the detectors for one file."""

    file_path: str
    """Normalized absolute path of the file."""

    workspace_root: str
    """Deepest workspace root containing the file."""

    directories: list[str] = field(default_factory=list)
    """The file's directory and its ancestors up to the workspace root."""


def first_verdict(detectors: Iterable[Detector], context: ResolutionContext) -> Verdict | None:
    """Run *detectors* in order and return the first non-``None`` verdict."""
    for detector in detectors:
        verdict = detector(context)
        if verdict is not None:
            logger.debug(
                "%s decided %s: %s",
                getattr(detector, "__name__", detector),
                context.file_path,
                verdict.resolution,
            )
            return verdict
    return None


def resolve_config_path_or_mapping(
    value: str | dict[str, str] | None, file_path: str, root: str
) -> str | None:
    """Pick the configured path for *file_path* from a path or a glob map.

    Map keys are matched against the file's absolute path and its path
    relative to *root*; the first matching key wins.
    """
    if not value:
        return None
    if isinstance(value, str):
        return value

    absolute = normalize_path(file_path)
    relative = relative_posix(absolute, root)
    for pattern, config_path in value.items():
        if glob_match(absolute, pattern) or glob_match(relative, pattern):
            return config_path
    return None


_INDETERMINATE = object()


class FrameworkResolver:
    """Maps files to their owning framework, memoized in a ``DetectionCache``.

    Args:
        settings: Settings store (custom paths, disable flags, default patterns).
        cache: Cache shared with the caller; invalidation is the caller's job.
        reporter: Receives directory-level Jest/Vitest ambiguity reports.
    """

    def __init__(
        self,
        settings: Settings,
        cache: DetectionCache,
        reporter: ConflictReporter | None = None,
    ) -> None:
        self.settings = settings
        self.cache = cache
        self.reporter = reporter or ConflictReporter()
        self._detectors: tuple[Detector, ...] = (
            self.detect_custom_config,
            self.detect_from_content,
            self.detect_from_ancestors,
            self.detect_from_dependencies,
        )

    # ── Settings helpers ────────────────────────────────────────────

    @property
    def default_patterns(self) -> list[str]:
        return self.settings.default_test_patterns()

    def patterns_for(self, framework: str) -> list[str]:
        """Default patterns for *framework* when its config declares none."""
        return default_patterns_for(framework, self.default_patterns)

    def disabled_frameworks(self) -> list[str]:
        return [name for name in FRAMEWORKS if self.settings.is_disabled(name)]

    def workspace_root_for(self, file_path: str) -> str | None:
        return find_workspace_root(file_path, self.settings.workspace_roots())

    def context_for(self, file_path: str) -> ResolutionContext | None:
        """Build the detector context, or ``None`` outside every workspace root."""
        path = normalize_path(file_path)
        root = self.workspace_root_for(path)
        if root is None:
            logger.debug("%s is outside every workspace root", path)
            return None
        return ResolutionContext(
            file_path=path,
            workspace_root=root,
            directories=parent_directories(os.path.dirname(path), root),
        )

    # ── Cached lookups ──────────────────────────────────────────────

    def pattern_sets(self, framework: str, config_path: str) -> list[TestPatternSet] | None:
        """Parsed pattern sets of *config_path*, memoized until the config changes."""
        if self.cache.has_pattern_sets(framework, config_path):
            return self.cache.get_pattern_sets(framework, config_path)
        read_files: set[str] = set()
        pattern_sets = parse_config(framework, config_path, read_files)
        self.cache.put_pattern_sets(framework, config_path, pattern_sets, read_files)
        return pattern_sets

    def is_framework_used(self, directory: str, framework: str) -> bool:
        if self.cache.has_usage(directory, framework):
            return bool(self.cache.get_usage(directory, framework))
        used = is_framework_used_in(directory, framework)
        self.cache.put_usage(directory, framework, used)
        return used

    def config_matches(
        self, framework: str, config_path: str, base_dir: str, file_path: str
    ) -> bool:
        """Whether *config_path*'s pattern sets, or the defaults, accept *file_path*."""
        pattern_sets = self.pattern_sets(framework, config_path) or [TestPatternSet()]
        return matches_any(file_path, base_dir, pattern_sets, self.patterns_for(framework))

    # ── Public API ──────────────────────────────────────────────────

    def resolve(self, file_path: str) -> Resolution | None:
        """Resolve *file_path*; ``None`` when no framework owns it."""
        path = normalize_path(file_path)
        if self.cache.has_resolution(path):
            return self.cache.get_resolution(path)

        resolution: Resolution | None = None
        context = self.context_for(path)
        if context is not None:
            detectors = self._detectors
            if self.settings.auto_detection_disabled():
                detectors = (self.detect_custom_config,)
            verdict = first_verdict(detectors, context)
            resolution = verdict.resolution if verdict is not None else None

        self.cache.put_resolution(path, resolution)
        return resolution

    def find_conflict(self, file_path: str, resolution: Resolution) -> str | None:
        """Another framework whose config explicitly claims *file_path*, if any."""
        context = self.context_for(file_path)
        if context is None:
            return None
        return find_conflicting_framework(
            context.file_path,
            resolution.framework,
            context.directories,
            get_config_path,
            self.pattern_sets,
            disabled=self.disabled_frameworks(),
        )

    # ── Detectors ───────────────────────────────────────────────────

    def detect_custom_config(self, context: ResolutionContext) -> Verdict | None:
        """Per-framework ``config_path`` settings, bypassing the ancestor walk."""
        candidates: list[tuple[str, str]] = []
        for framework in (*PRIMARY_FRAMEWORKS, *SECONDARY_FRAMEWORKS):
            if self.settings.is_disabled(framework):
                continue
            config_path = self._custom_config_path(framework, context.file_path)
            if config_path is not None:
                candidates.append((framework, config_path))

        if not candidates:
            return None

        base_dir = context.workspace_root
        chosen = candidates[0]
        if len(candidates) > 1:
            matching = [
                candidate
                for candidate in candidates
                if self.config_matches(candidate[0], candidate[1], base_dir, context.file_path)
            ]
            if len(matching) == 1:
                chosen = matching[0]
            else:
                logger.debug(
                    "Custom configs %s are indistinguishable for %s; using %s",
                    [name for name, _ in candidates],
                    context.file_path,
                    chosen[0],
                )

        framework, config_path = chosen
        return Verdict(
            Resolution(
                framework=framework,
                directory=base_dir,
                source=ResolutionSource.CUSTOM,
                config_path=config_path,
            )
        )

    def _custom_config_path(self, framework: str, file_path: str) -> str | None:
        setting = self.settings.config_path_setting(framework)
        relative = resolve_config_path_or_mapping(setting, file_path, self.settings.root)
        if relative is None:
            return None
        config_path = normalize_path(os.path.join(self.settings.root, relative))
        if not os.path.isfile(config_path):
            logger.debug("Custom %s config %s does not exist", framework, config_path)
            return None
        return config_path

    def detect_from_content(self, context: ResolutionContext) -> Verdict | None:
        """Frameworks announced by the file's own imports or globals.

        A file announcing a disabled framework gets a blocking verdict.
        """
        try:
            content = read_text(context.file_path)
        except (OSError, UnicodeDecodeError) as exc:
            logger.debug("Cannot read %s for content detection: %s", context.file_path, exc)
            return None

        for framework in CONTENT_DETECTION_ORDER:
            descriptor = FRAMEWORKS[framework]
            if not any(re.search(signal.pattern, content) for signal in descriptor.content_signals):
                continue
            if self.settings.is_disabled(framework):
                logger.debug("%s announces disabled framework %s", context.file_path, framework)
                return Verdict(None)

            directory = os.path.dirname(context.file_path)
            config_path = None
            for candidate_dir in context.directories:
                config_path = get_config_path(candidate_dir, framework)
                if config_path is not None:
                    directory = candidate_dir
                    break
            return Verdict(
                Resolution(
                    framework=framework,
                    directory=normalize_path(directory),
                    source=ResolutionSource.CONTENT,
                    config_path=config_path,
                )
            )
        return None

    def detect_from_ancestors(self, context: ResolutionContext) -> Verdict | None:
        """Nearest directory with a deciding configuration wins.

        Directories where Jest and Vitest cannot be told apart are skipped;
        if nothing above decides, the nearest of them goes to Jest.
        """
        tie: tuple[str, str] | None = None
        for directory in context.directories:
            outcome = self._directory_verdict(directory, context.file_path)
            if outcome is _INDETERMINATE:
                if tie is None:
                    tie = (directory, get_config_path(directory, JEST) or "")
                continue
            if isinstance(outcome, Verdict):
                return outcome

        if tie is None:
            return None
        directory, config_path = tie
        logger.debug("Tie-break: %s resolves to %s in %s", context.file_path, JEST, directory)
        return Verdict(
            Resolution(
                framework=JEST,
                directory=directory,
                source=ResolutionSource.TIE_BREAK,
                config_path=config_path or None,
            )
        )

    def _directory_verdict(self, directory: str, file_path: str) -> object:
        """A ``Verdict``, ``_INDETERMINATE``, or ``None`` when no config is present."""
        primaries = {
            framework: path
            for framework in PRIMARY_FRAMEWORKS
            if (path := get_config_path(directory, framework)) is not None
        }

        if len(primaries) > 1:
            jest_matches = self.config_matches(JEST, primaries[JEST], directory, file_path)
            vitest_matches = self.config_matches(VITEST, primaries[VITEST], directory, file_path)
            if jest_matches != vitest_matches:
                winner = JEST if jest_matches else VITEST
                return self._config_verdict(winner, directory, primaries[winner])
            self.report_ambiguity(directory, primaries[JEST], primaries[VITEST])
            return _INDETERMINATE

        if primaries:
            framework, config_path = next(iter(primaries.items()))
            return self._config_verdict(framework, directory, config_path)

        secondaries = [
            (framework, path)
            for framework in SECONDARY_FRAMEWORKS
            if not self.settings.is_disabled(framework)
            and (path := get_config_path(directory, framework)) is not None
        ]
        if not secondaries:
            return None
        for framework, config_path in secondaries:
            if scoping_covers(
                framework, self.pattern_sets(framework, config_path), directory, file_path
            ):
                return self._config_verdict(framework, directory, config_path)
        framework, config_path = secondaries[0]
        return self._config_verdict(framework, directory, config_path)

    @staticmethod
    def _config_verdict(framework: str, directory: str, config_path: str) -> Verdict:
        return Verdict(
            Resolution(
                framework=framework,
                directory=directory,
                source=ResolutionSource.CONFIG,
                config_path=config_path,
            )
        )

    def report_ambiguity(self, directory: str, jest_config: str, vitest_config: str) -> None:
        info = detect_pattern_conflict(
            self.pattern_sets(JEST, jest_config),
            self.pattern_sets(VITEST, vitest_config),
            self.default_patterns,
        )
        if info.has_conflict:
            self.reporter.report(directory, info)

    def detect_from_dependencies(self, context: ResolutionContext) -> Verdict | None:
        """First framework in fallback order installed or declared at the workspace root."""
        root = context.workspace_root
        for framework in FALLBACK_ORDER:
            if self.settings.is_disabled(framework):
                continue
            if self.is_framework_used(root, framework):
                return Verdict(
                    Resolution(
                        framework=framework,
                        directory=root,
                        source=ResolutionSource.DEPENDENCY,
                    )
                )
        return None

