"""Cypress configuration parser."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from testscout.detection.parsers.common import load_config_source, string_list
from testscout.detection.signals import TestPatternSet

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


def parse_cypress_config(config_path: str | Path) -> list[TestPatternSet] | None:
    """Read ``e2e.specPattern`` (preferred) or the top-level ``specPattern``."""
    config = load_config_source(config_path)
    if config is None:
        return None

    e2e = config.get("e2e")
    section = e2e if isinstance(e2e, dict) and "specPattern" in e2e else config
    spec_patterns = string_list(section.get("specPattern")) or None
    exclude = string_list(section.get("excludeSpecPattern")) or None
    if spec_patterns is None and exclude is None:
        return None

    result = TestPatternSet(patterns=spec_patterns or [], exclude_patterns=exclude)
    logger.debug("Parsed Cypress config: %s. Result: %s", config_path, result.to_dict())
    return [result]
