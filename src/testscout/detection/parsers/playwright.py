"""Playwright configuration parser."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from testscout.detection.parsers.common import load_config_source, string_list, string_value
from testscout.detection.signals import TestPatternSet
from testscout.parsing.config_object import RegexLiteral

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_SCOPING_KEYS = ("testDir", "testMatch", "testIgnore")


def _test_match(value: Any) -> tuple[list[str], bool]:
    """Return ``(patterns, is_regex)`` for a ``testMatch`` value.

    A list mixing globs and regex literals keeps the globs only.
    """
    if isinstance(value, RegexLiteral):
        return [value.pattern], True
    if isinstance(value, str):
        return ([value] if value else []), False
    if isinstance(value, list):
        globs = [item for item in value if isinstance(item, str) and item]
        regexes = [item.pattern for item in value if isinstance(item, RegexLiteral)]
        if globs or not regexes:
            return globs, False
        return regexes, True
    return [], False


def _options_to_set(options: dict[str, Any]) -> TestPatternSet:
    patterns, is_regex = _test_match(options.get("testMatch"))
    return TestPatternSet(
        patterns=patterns,
        is_regex=is_regex,
        exclude_patterns=string_list(options.get("testIgnore")) or None,
        dir=string_value(options.get("testDir")),
    )


def parse_playwright_config(config_path: str | Path) -> list[TestPatternSet] | None:
    """Read ``testDir``, ``testMatch`` and ``testIgnore``.

    Each entry of ``projects`` inherits the top-level values and yields its
    own set.
    """
    config = load_config_source(config_path)
    if config is None:
        return None

    base = {key: config[key] for key in _SCOPING_KEYS if key in config}
    results: list[TestPatternSet] = []
    projects = config.get("projects")
    if isinstance(projects, list):
        for project in projects:
            if isinstance(project, dict) and any(key in project for key in _SCOPING_KEYS):
                merged = {**base, **{k: project[k] for k in _SCOPING_KEYS if k in project}}
                results.append(_options_to_set(merged))

    if not results and base:
        results.append(_options_to_set(base))
    if not results:
        return None

    logger.debug(
        "Parsed Playwright config: %s. Result: %s",
        config_path,
        [result.to_dict() for result in results],
    )
    return results
