"""Rstest configuration parser."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from testscout.detection.config_files import get_config_path
from testscout.detection.frameworks import RSTEST
from testscout.detection.parsers.common import (
    anchor_to,
    load_config_source,
    project_targets,
    resolve_dir,
    string_list,
    string_value,
)
from testscout.detection.signals import TestPatternSet
from testscout.utils.paths import normalize_path

logger = logging.getLogger(__name__)


def _exclude_patterns(value: Any) -> list[str] | None:
    """``exclude`` is either a list or ``{patterns: [...]}``."""
    if isinstance(value, dict):
        value = value.get("patterns")
    return string_list(value) or None


def parse_rstest_options(config: dict[str, Any], config_dir: str) -> TestPatternSet | None:
    include = string_list(config.get("include")) or None
    exclude = _exclude_patterns(config.get("exclude"))
    root = string_value(config.get("root"))
    if include is None and exclude is None and root is None:
        return None
    return TestPatternSet(
        patterns=include or [],
        root_dir=resolve_dir(root, config_dir),
        exclude_patterns=exclude,
    )


def parse_rstest_config(
    config_path: str | Path, seen: set[str] | None = None
) -> list[TestPatternSet] | None:
    """Parse an Rstest config, following ``projects`` like Jest does.

    *seen* collects the config files read.
    """
    path = normalize_path(config_path)
    if seen is None:
        seen = set()
    if path in seen:
        return None
    seen.add(path)

    config = load_config_source(path)
    if config is None:
        return None
    config_dir = normalize_path(Path(path).parent)

    projects = config.get("projects")
    if isinstance(projects, list):
        results = _parse_projects(projects, config_dir, seen)
        logger.debug("Parsed Rstest config: %s. Projects found: %d", path, len(results))
        return results or None

    parsed = parse_rstest_options(config, config_dir)
    if parsed is None:
        return None
    logger.debug("Parsed Rstest config: %s. Result: %s", path, parsed.to_dict())
    return [parsed]


def _parse_projects(projects: list[Any], config_dir: str, seen: set[str]) -> list[TestPatternSet]:
    results: list[TestPatternSet] = []
    for project in projects:
        if isinstance(project, dict):
            parsed = parse_rstest_options(project, config_dir)
            if parsed is not None:
                results.append(parsed)
        elif isinstance(project, str):
            for target in project_targets(project, config_dir):
                results.extend(_parse_project_target(target, seen))
    return results


def _parse_project_target(target: str, seen: set[str]) -> list[TestPatternSet]:
    if Path(target).is_dir():
        found = get_config_path(target, RSTEST)
        if found is None:
            return [TestPatternSet(root_dir=normalize_path(target))]
        return anchor_to(parse_rstest_config(found, seen) or [], target)
    return anchor_to(parse_rstest_config(target, seen) or [], str(Path(target).parent))
