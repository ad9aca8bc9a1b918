"""Jest configuration parser."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from testscout.detection.config_files import get_config_path
from testscout.detection.frameworks import JEST
from testscout.detection.parsers.common import (
    anchor_to,
    load_config_source,
    project_targets,
    regex_list,
    resolve_dir,
    string_list,
)
from testscout.detection.signals import TestPatternSet
from testscout.utils.paths import normalize_path

logger = logging.getLogger(__name__)


def parse_jest_options(config: dict[str, Any], config_dir: str) -> TestPatternSet | None:
    """Map one Jest options object to a pattern set.

    ``testMatch`` wins over ``testRegex``.  A config declaring only
    ``roots`` or ``testPathIgnorePatterns`` yields an empty-pattern set so
    the defaults apply within those bounds.
    """
    raw_root = config.get("rootDir")
    root_dir = resolve_dir(raw_root, config_dir) if isinstance(raw_root, str) else None
    roots = string_list(config.get("roots")) or None
    ignore_patterns = regex_list(config.get("testPathIgnorePatterns")) or None

    test_match = string_list(config.get("testMatch"))
    if test_match:
        return TestPatternSet(
            patterns=test_match,
            root_dir=root_dir,
            roots=roots,
            ignore_patterns=ignore_patterns,
        )

    test_regex = regex_list(config.get("testRegex"))
    if test_regex:
        return TestPatternSet(
            patterns=test_regex,
            is_regex=True,
            root_dir=root_dir,
            roots=roots,
            ignore_patterns=ignore_patterns,
        )

    if roots or ignore_patterns:
        return TestPatternSet(root_dir=root_dir, roots=roots, ignore_patterns=ignore_patterns)
    return None


def parse_jest_config(
    config_path: str | Path, seen: set[str] | None = None
) -> list[TestPatternSet] | None:
    """Parse a Jest config file (JS/TS module, JSON, or ``package.json``).

    A ``projects`` array is resolved recursively: string entries name
    config files or project directories relative to the config, object
    entries are inline project configs.  Each project config is rooted at
    its own directory unless it sets ``rootDir``.

    Args:
        config_path: The config file.
        seen: Collects every config file read, the root included; a file
            already in it is skipped.
    """
    path = normalize_path(config_path)
    if seen is None:
        seen = set()
    if path in seen:
        logger.debug("Skipping already visited Jest config %s", path)
        return None
    seen.add(path)

    config = load_config_source(path, json_key="jest")
    if config is None:
        return None
    config_dir = normalize_path(Path(path).parent)

    projects = config.get("projects")
    if isinstance(projects, list) and projects:
        results = _parse_projects(projects, config_dir, seen)
        if results:
            logger.debug("Parsed Jest projects in %s: %d pattern sets", path, len(results))
            return results

    parsed = parse_jest_options(config, config_dir)
    if parsed is None:
        return None
    logger.debug("Parsed Jest config: %s. Result: %s", path, parsed.to_dict())
    return [parsed]


def _parse_projects(projects: list[Any], config_dir: str, seen: set[str]) -> list[TestPatternSet]:
    results: list[TestPatternSet] = []
    for project in projects:
        if isinstance(project, dict):
            parsed = parse_jest_options(project, config_dir)
            if parsed is not None:
                results.append(parsed)
            elif "rootDir" in project and isinstance(project["rootDir"], str):
                results.append(TestPatternSet(root_dir=resolve_dir(project["rootDir"], config_dir)))
            continue
        if not isinstance(project, str):
            continue
        for target in project_targets(project, config_dir):
            results.extend(_parse_project_target(target, seen))
    return results


def _parse_project_target(target: str, seen: set[str]) -> list[TestPatternSet]:
    target_path = Path(target)
    if target_path.is_file():
        return anchor_to(parse_jest_config(target, seen) or [], str(target_path.parent))
    if target_path.is_dir():
        project_config = get_config_path(target, JEST)
        if project_config is not None:
            parsed = parse_jest_config(project_config, seen)
            if parsed:
                return anchor_to(parsed, target)
        # A project directory without explicit scoping uses the defaults under it.
        return [TestPatternSet(root_dir=normalize_path(target_path))]
    logger.debug("Jest project %s does not exist", target)
    return []
