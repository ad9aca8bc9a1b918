"""ES module detection for Jest projects."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from testscout.detection.config_files import get_config_path, read_package_json
from testscout.detection.frameworks import JEST
from testscout.utils.paths import read_text

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_ESM_CONFIG_RE = re.compile(r"""extensionsToTreatAsEsm['"]?\s*[:=]|useESM['"]?\s*[:=]\s*true""")


def is_esm_project(project_dir: str | Path, jest_config_path: str | None = None) -> bool:
    """Whether Jest in *project_dir* runs test files as ES modules.

    True when ``package.json`` declares ``"type": "module"``, or when the
    Jest config (*jest_config_path*, else the one in *project_dir*) sets
    ``extensionsToTreatAsEsm`` or ``useESM: true``.
    """
    package_json = read_package_json(project_dir)
    if package_json is not None and package_json.get("type") == "module":
        return True

    config_path = jest_config_path or get_config_path(project_dir, JEST)
    if config_path is None:
        return False
    try:
        content = read_text(config_path)
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("Cannot read Jest config %s: %s", config_path, exc)
        return False
    return _ESM_CONFIG_RE.search(content) is not None
