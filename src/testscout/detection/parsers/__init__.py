"""Framework configuration parsers.

Every parser maps a configuration file to a list of ``TestPatternSet``s, or
``None`` when the file is unreadable or declares none of the keys the
parser understands.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from testscout.detection.frameworks import CYPRESS, DENO, JEST, PLAYWRIGHT, RSTEST, VITEST
from testscout.detection.parsers.cypress import parse_cypress_config
from testscout.detection.parsers.deno import parse_deno_config
from testscout.detection.parsers.jest import parse_jest_config
from testscout.detection.parsers.playwright import parse_playwright_config
from testscout.detection.parsers.rstest import parse_rstest_config
from testscout.detection.parsers.vitest import parse_vitest_config
from testscout.utils.paths import normalize_path

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from testscout.detection.signals import TestPatternSet

PARSERS: dict[str, Callable[[str | Path], list[TestPatternSet] | None]] = {
    JEST: parse_jest_config,
    VITEST: parse_vitest_config,
    DENO: parse_deno_config,
    PLAYWRIGHT: parse_playwright_config,
    CYPRESS: parse_cypress_config,
    RSTEST: parse_rstest_config,
}


# Parsers that follow `projects` into further config files.
PROJECT_PARSERS: dict[str, Callable[[str | Path, set[str]], list[TestPatternSet] | None]] = {
    JEST: parse_jest_config,
    RSTEST: parse_rstest_config,
}


def parse_config(
    framework: str, config_path: str | Path, read_files: set[str] | None = None
) -> list[TestPatternSet] | None:
    """Parse *config_path* with the parser registered for *framework*.

    When given, *read_files* receives the normalized path of every config
    file the parse depended on.
    """
    parser = PARSERS.get(framework)
    if parser is None:
        return None
    files = read_files if read_files is not None else set()
    project_parser = PROJECT_PARSERS.get(framework)
    if project_parser is not None:
        return project_parser(config_path, files)
    files.add(normalize_path(config_path))
    return parser(config_path)


__all__ = [
    "PARSERS",
    "PROJECT_PARSERS",
    "parse_config",
    "parse_cypress_config",
    "parse_deno_config",
    "parse_jest_config",
    "parse_playwright_config",
    "parse_rstest_config",
    "parse_vitest_config",
]
