"""Helpers shared by the framework configuration parsers."""

from __future__ import annotations

import dataclasses
import json
import logging
import os
import re
from pathlib import Path
from typing import Any

from wcmatch import glob

from testscout.detection.signals import TestPatternSet
from testscout.parsing.config_object import (
    UNRESOLVED,
    RegexLiteral,
    extract_config_object,
    substitute_dirname,
)
from testscout.utils.paths import normalize_path, read_text

logger = logging.getLogger(__name__)

ROOT_DIR_TOKEN = "<rootDir>"

_GLOB_CHARS = frozenset("*?[{")

# Strings are matched first so comment markers inside them survive.
_JSONC_COMMENT_RE = re.compile(r'\\"|"(?:\\.|[^"\\])*"|(//[^\n]*|/\*[\s\S]*?\*/)')


def strip_json_comments(text: str) -> str:
    """Remove ``//`` and ``/* */`` comments from JSONC text."""
    return _JSONC_COMMENT_RE.sub(lambda m: "" if m.group(1) else m.group(0), text)


def load_config_source(
    config_path: str | Path, json_key: str | None = None
) -> dict[str, Any] | None:
    """Load a configuration file into a plain dict.

    ``.json`` files are parsed strictly (``package.json`` configs are read
    from *json_key*), ``.jsonc`` files after stripping comments, and
    JavaScript/TypeScript modules through the static extractor with
    ``__dirname`` replaced by the file's directory.

    Returns ``None`` when the file cannot be read or yields no object.
    """
    path = Path(config_path)
    try:
        content = read_text(path)
    except (OSError, UnicodeDecodeError) as exc:
        logger.error("Error reading config file %s: %s", path, exc)
        return None

    if path.suffix in {".json", ".jsonc"}:
        data = _parse_json(content, path)
        if isinstance(data, dict) and json_key is not None and path.name == "package.json":
            data = data.get(json_key)
        return data if isinstance(data, dict) else None

    config = extract_config_object(content, path.name)
    if config is UNRESOLVED or not isinstance(config, dict):
        logger.debug("Could not statically resolve %s", path)
        return None
    return substitute_dirname(config, normalize_path(path.parent))


def _parse_json(content: str, path: Path) -> Any:
    try:
        return json.loads(content)
    except json.JSONDecodeError:
        pass
    try:
        return json.loads(strip_json_comments(content))
    except json.JSONDecodeError as exc:
        logger.debug("Invalid JSON in %s: %s", path, exc)
        return None


def string_value(value: Any) -> str | None:
    """Return *value* if it is a non-empty string."""
    return value if isinstance(value, str) and value else None


def string_list(value: Any) -> list[str] | None:
    """Coerce a string or list of strings into a list.

    Non-string list entries are dropped; anything else yields ``None``.
    """
    if isinstance(value, str):
        return [value] if value else None
    if isinstance(value, list):
        return [item for item in value if isinstance(item, str) and item]
    return None


def regex_list(value: Any) -> list[str] | None:
    """Coerce a regex source (string, regex literal, or list of either) into patterns."""
    if isinstance(value, RegexLiteral):
        return [value.pattern]
    if isinstance(value, str):
        return [value] if value else None
    if isinstance(value, list):
        patterns: list[str] = []
        for item in value:
            if isinstance(item, RegexLiteral):
                patterns.append(item.pattern)
            elif isinstance(item, str) and item:
                patterns.append(item)
        return patterns
    return None


def resolve_dir(value: str | None, config_dir: str) -> str | None:
    """Resolve a directory setting relative to the configuration's directory."""
    if not value:
        return None
    value = value.replace(ROOT_DIR_TOKEN, config_dir)
    return normalize_path(os.path.join(config_dir, value))


def project_targets(entry: str, config_dir: str) -> list[str]:
    """Expand a ``projects`` string entry into absolute paths.

    ``<rootDir>`` is replaced by *config_dir*; entries containing glob
    characters are expanded against the filesystem.
    """
    resolved = normalize_path(os.path.join(config_dir, entry.replace(ROOT_DIR_TOKEN, config_dir)))
    if not _GLOB_CHARS.intersection(resolved):
        return [resolved]

    matches = glob.glob(resolved, flags=glob.GLOBSTAR | glob.BRACE | glob.EXTGLOB)
    return sorted(normalize_path(match) for match in matches)


def anchor_to(pattern_sets: list[TestPatternSet], directory: str) -> list[TestPatternSet]:
    """Give sets without a ``root_dir`` the directory of the config that declared them.

    A config pulled in through ``projects`` is rooted at its own directory,
    not at the directory of the config that listed it.
    """
    root = normalize_path(directory)
    return [
        pattern_set if pattern_set.root_dir else dataclasses.replace(pattern_set, root_dir=root)
        for pattern_set in pattern_sets
    ]
