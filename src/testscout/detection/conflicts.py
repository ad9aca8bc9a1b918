"""Conflicts between frameworks claiming the same test files.

Two checks live here:

* **File-level exclusivity** (:func:`find_conflicting_framework`): a file
  provisionally owned by one framework is disqualified when another
  framework's configuration explicitly scopes it.  A competing
  configuration without explicit scoping never disqualifies.
* **Directory-level ambiguity** (:func:`detect_pattern_conflict`): Jest and
  Vitest configured side by side with indistinguishable patterns.  Reported
  once per directory through :class:`ConflictReporter`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from testscout.detection.frameworks import (
    DEFAULT_TEST_PATTERNS,
    PLAYWRIGHT,
    PRIMARY_FRAMEWORKS,
    SECONDARY_FRAMEWORKS,
)
from testscout.detection.patterns import glob_base, matches_any_explicit
from testscout.utils.paths import is_within, normalize_path

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from testscout.detection.signals import TestPatternSet

    ConfigLocator = Callable[[str, str], "str | None"]
    PatternLoader = Callable[[str, str], "list[TestPatternSet] | None"]

logger = logging.getLogger(__name__)

CONFLICT_SUGGESTION = (
    "Configure distinct testMatch/testRegex (Jest) or test.include (Vitest) "
    "patterns to resolve this."
)


class ConflictReason(Enum):
    """Why two primary frameworks cannot be told apart in a directory."""

    BOTH_DEFAULT = "both_default"
    BOTH_SAME_EXPLICIT = "both_same_explicit"
    EXPLICIT_MATCHES_DEFAULT = "explicit_matches_default"


@dataclass(frozen=True)
class PatternConflictInfo:
    """Result of comparing Jest's and Vitest's effective patterns."""

    has_conflict: bool
    jest_patterns: list[str] = field(default_factory=list)
    vitest_patterns: list[str] = field(default_factory=list)
    jest_is_default: bool = True
    vitest_is_default: bool = True
    reason: ConflictReason | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "has_conflict": self.has_conflict,
            "reason": self.reason.value if self.reason else None,
            "jest_patterns": list(self.jest_patterns),
            "vitest_patterns": list(self.vitest_patterns),
            "jest_is_default": self.jest_is_default,
            "vitest_is_default": self.vitest_is_default,
        }


def _explicit_patterns(pattern_sets: Sequence[TestPatternSet] | None) -> list[str]:
    if not pattern_sets:
        return []
    return [pattern for pattern_set in pattern_sets for pattern in pattern_set.patterns]


def _same_patterns(left: Iterable[str], right: Iterable[str]) -> bool:
    left_sorted = sorted(left)
    right_sorted = sorted(right)
    return left_sorted == right_sorted


def detect_pattern_conflict(
    jest_sets: Sequence[TestPatternSet] | None,
    vitest_sets: Sequence[TestPatternSet] | None,
    default_patterns: Sequence[str] = DEFAULT_TEST_PATTERNS,
) -> PatternConflictInfo:
    """Classify whether Jest and Vitest patterns are indistinguishable.

    Missing or pattern-less configs count as using *default_patterns*.
    """
    defaults = list(default_patterns)
    jest_explicit = _explicit_patterns(jest_sets)
    vitest_explicit = _explicit_patterns(vitest_sets)
    jest_is_default = not jest_explicit
    vitest_is_default = not vitest_explicit
    jest_patterns = jest_explicit or defaults
    vitest_patterns = vitest_explicit or defaults

    reason: ConflictReason | None = None
    if jest_is_default and vitest_is_default:
        reason = ConflictReason.BOTH_DEFAULT
    elif not jest_is_default and not vitest_is_default:
        if _same_patterns(jest_patterns, vitest_patterns):
            reason = ConflictReason.BOTH_SAME_EXPLICIT
    elif _same_patterns(jest_explicit or vitest_explicit, defaults):
        reason = ConflictReason.EXPLICIT_MATCHES_DEFAULT

    return PatternConflictInfo(
        has_conflict=reason is not None,
        reason=reason,
        jest_patterns=jest_patterns,
        vitest_patterns=vitest_patterns,
        jest_is_default=jest_is_default,
        vitest_is_default=vitest_is_default,
    )


def conflict_message(directory: str, info: PatternConflictInfo) -> str | None:
    """Human-readable warning for *info*, or ``None`` without a conflict."""
    prefix = f'Both Jest and Vitest detected in "{directory}"'
    if info.reason is ConflictReason.BOTH_DEFAULT:
        detail = "but neither has explicit test patterns."
    elif info.reason is ConflictReason.BOTH_SAME_EXPLICIT:
        detail = "with identical test patterns."
    elif info.reason is ConflictReason.EXPLICIT_MATCHES_DEFAULT:
        detail = "with overlapping test patterns (one explicit, one default)."
    else:
        return None
    return (
        f"{prefix} {detail} Cannot determine which framework to use for test files. "
        f"{CONFLICT_SUGGESTION}"
    )


class ConflictReporter:
    """Emits each directory's ambiguity warning once until its config changes."""

    def __init__(self) -> None:
        self._warned: set[str] = set()

    def report(self, directory: str, info: PatternConflictInfo) -> bool:
        """Log a warning for *directory*; returns ``True`` if one was emitted."""
        key = normalize_path(directory)
        message = conflict_message(key, info)
        if message is None or key in self._warned:
            return False
        self._warned.add(key)
        logger.warning(message)
        logger.debug(
            "Pattern conflict details: Jest patterns=%s (default=%s), "
            "Vitest patterns=%s (default=%s)",
            info.jest_patterns,
            info.jest_is_default,
            info.vitest_patterns,
            info.vitest_is_default,
        )
        return True

    def has_warned(self, directory: str) -> bool:
        return normalize_path(directory) in self._warned

    def clear(self, directory: str | None = None) -> None:
        """Forget the warning for *directory*, or all warnings."""
        if directory is None:
            self._warned.clear()
            return
        key = normalize_path(directory)
        if key in self._warned:
            self._warned.discard(key)
            logger.debug("Cleared pattern conflict warning for %s", key)


# ── File-level exclusivity ──────────────────────────────────────────


def scoping_covers(
    framework: str,
    pattern_sets: Sequence[TestPatternSet] | None,
    base_dir: str,
    file_path: str,
) -> bool:
    """Whether *framework*'s explicit scoping claims *file_path*.

    Explicit scoping is a declared pattern list, or Playwright's ``testDir``.
    """
    sets = list(pattern_sets or ())
    if framework == PLAYWRIGHT and any(
        pattern_set.dir and is_within(file_path, glob_base(base_dir, pattern_set))
        for pattern_set in sets
    ):
        return True
    return matches_any_explicit(file_path, base_dir, sets)


def competing_frameworks(framework: str) -> tuple[str, ...]:
    """Frameworks whose scoping can disqualify a file owned by *framework*.

    Primary frameworks only compete with secondary ones here; Jest vs.
    Vitest is settled by the resolver.
    """
    if framework in PRIMARY_FRAMEWORKS:
        return SECONDARY_FRAMEWORKS
    return tuple(
        name for name in (*PRIMARY_FRAMEWORKS, *SECONDARY_FRAMEWORKS) if name != framework
    )


def find_conflicting_framework(
    file_path: str,
    framework: str,
    directories: Iterable[str],
    locate_config: ConfigLocator,
    load_patterns: PatternLoader,
    disabled: Iterable[str] = (),
) -> str | None:
    """Return the first other framework whose config explicitly claims *file_path*.

    Args:
        file_path: Normalized absolute path of the file.
        framework: The file's provisional framework.
        directories: The file's ancestor chain, nearest first.
        locate_config: ``(directory, framework) -> config path | None``.
        load_patterns: ``(framework, config path) -> pattern sets | None``.
        disabled: Frameworks to ignore.
    """
    skip = set(disabled)
    candidates = [name for name in competing_frameworks(framework) if name not in skip]
    for directory in directories:
        for candidate in candidates:
            config_path = locate_config(directory, candidate)
            if config_path is None:
                continue
            pattern_sets = load_patterns(candidate, config_path)
            if scoping_covers(candidate, pattern_sets, directory, file_path):
                logger.debug(
                    "%s config %s claims %s; dropping %s classification",
                    candidate,
                    config_path,
                    file_path,
                    framework,
                )
                return candidate
    return None
