"""Locating framework configuration files and installed packages on disk."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

from testscout.detection.frameworks import FRAMEWORKS
from testscout.parsing.config_object import extract_config_object
from testscout.utils.paths import normalize_path, read_text

logger = logging.getLogger(__name__)

_TEST_KEY_RE = re.compile(r"\btest\s*[:=]")


def read_json(path: str | Path) -> Any:
    """Read a JSON file, returning ``None`` when it is missing or malformed."""
    try:
        return json.loads(read_text(path))
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as exc:
        logger.error("Error reading %s: %s", path, exc)
        return None
    except json.JSONDecodeError as exc:
        logger.debug("Invalid JSON in %s: %s", path, exc)
        return None


def read_package_json(directory: str | Path) -> dict[str, Any] | None:
    """Return the parsed ``package.json`` of *directory* (``None`` if absent or invalid)."""
    data = read_json(Path(directory) / "package.json")
    return data if isinstance(data, dict) else None


def package_json_has_key(path: str | Path, key: str) -> bool:
    """Whether the ``package.json`` at *path* declares the top-level *key*."""
    data = read_json(path)
    return isinstance(data, dict) and key in data


def config_has_key(path: str | Path, key: str) -> bool:
    """Whether the JS/TS/JSON configuration at *path* declares the top-level *key*.

    When the module cannot be evaluated statically, a textual ``test:`` /
    ``test =`` occurrence is accepted for the ``test`` key.
    """
    path = Path(path)
    if path.suffix == ".json":
        return package_json_has_key(path, key)
    try:
        content = read_text(path)
    except (OSError, UnicodeDecodeError) as exc:
        logger.error("Error reading config file %s: %s", path, exc)
        return False
    config = extract_config_object(content, path.name)
    if isinstance(config, dict):
        return key in config
    return key == "test" and _TEST_KEY_RE.search(content) is not None


def get_config_path(directory: str | Path, framework: str) -> str | None:
    """Return the first configuration file of *framework* present in *directory*.

    Files are tried in the catalog's priority order; a file with a
    ``required_key`` only counts when it declares that key.
    """
    descriptor = FRAMEWORKS.get(framework)
    if descriptor is None:
        return None

    base = Path(directory)
    for config_file in descriptor.config_files:
        candidate = base / config_file.name
        if not candidate.is_file():
            continue
        if config_file.required_key is None or config_has_key(candidate, config_file.required_key):
            return normalize_path(candidate)
    return None


def binary_exists(directory: str | Path, binary_name: str) -> bool:
    """Whether *binary_name* is installed under ``directory/node_modules``."""
    base = Path(directory) / "node_modules"
    candidates = (
        base / ".bin" / binary_name,
        base / ".bin" / f"{binary_name}.cmd",
        base / binary_name / "package.json",
    )
    return any(candidate.exists() for candidate in candidates)


def package_json_declares(package_json: dict[str, Any], framework: str) -> bool:
    """Whether *package_json* lists *framework* as a dependency or top-level key."""
    descriptor = FRAMEWORKS.get(framework)
    if descriptor is None:
        return False
    names = {dep.name for dep in descriptor.dependencies} | {framework}
    for section in ("dependencies", "devDependencies", "peerDependencies"):
        deps = package_json.get(section)
        if isinstance(deps, dict) and names.intersection(deps):
            return True
    return framework in package_json


def is_framework_used_in(directory: str | Path, framework: str) -> bool:
    """Whether *directory* shows any trace of *framework*.

    Checks installed binaries, configuration files and ``package.json``.
    """
    descriptor = FRAMEWORKS.get(framework)
    if descriptor is None:
        return False
    if descriptor.binary_name and binary_exists(directory, descriptor.binary_name):
        return True
    if get_config_path(directory, framework):
        return True
    package_json = read_package_json(directory)
    return package_json is not None and package_json_declares(package_json, framework)


def is_config_file_name(name: str) -> bool:
    """Whether *name* (a base name) is a recognized configuration file name."""
    if name == "package.json":
        return True
    return any(
        Path(config_file.name).name == name
        for descriptor in FRAMEWORKS.values()
        for config_file in descriptor.config_files
    )
