"""Vitest configuration parser."""

from __future__ import annotations

import logging
from pathlib import Path

from testscout.detection.parsers.common import (
    load_config_source,
    resolve_dir,
    string_list,
    string_value,
)
from testscout.detection.signals import TestPatternSet
from testscout.utils.paths import normalize_path

logger = logging.getLogger(__name__)


def parse_vitest_config(config_path: str | Path) -> list[TestPatternSet] | None:
    """Parse ``vitest.config.*`` / ``vite.config.*`` into a pattern set.

    Reads ``test.include``, ``test.exclude``, ``test.dir`` and the top-level
    ``root``.  Returns ``None`` without a ``test`` section, or when none of
    those keys is present.
    """
    config = load_config_source(config_path)
    if config is None:
        return None

    test = config.get("test")
    if not isinstance(test, dict):
        return None

    config_dir = normalize_path(Path(config_path).parent)
    include = string_list(test.get("include")) or None
    exclude = string_list(test.get("exclude")) or None
    test_dir = string_value(test.get("dir"))
    root = string_value(config.get("root"))

    if not include and not exclude and not test_dir and not root:
        return None

    result = TestPatternSet(
        patterns=include or [],
        root_dir=resolve_dir(root, config_dir),
        exclude_patterns=exclude,
        dir=test_dir,
    )
    logger.debug("Parsed Vitest config: %s. Result: %s", config_path, result.to_dict())
    return [result]
