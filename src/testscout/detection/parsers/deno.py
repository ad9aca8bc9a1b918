"""Deno configuration parser (``deno.json`` / ``deno.jsonc``)."""

from __future__ import annotations

import logging
from pathlib import Path

from testscout.detection.parsers.common import load_config_source, string_list
from testscout.detection.signals import TestPatternSet
from testscout.utils.paths import normalize_path

logger = logging.getLogger(__name__)


def parse_deno_config(config_path: str | Path) -> list[TestPatternSet] | None:
    """Read ``test.include`` / ``test.exclude`` from a Deno config.

    Patterns are relative to the config file's directory.
    """
    config = load_config_source(config_path)
    if config is None:
        return None

    test = config.get("test")
    if not isinstance(test, dict):
        return None

    include = string_list(test.get("include")) or []
    exclude = string_list(test.get("exclude")) or []
    if not include and not exclude:
        return None

    logger.debug("Parsed Deno config: %s. Include: %s, Exclude: %s", config_path, include, exclude)
    return [
        TestPatternSet(
            patterns=include,
            root_dir=normalize_path(Path(config_path).parent),
            exclude_patterns=exclude or None,
        )
    ]
