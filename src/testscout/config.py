"""Configuration parsing from ``.testscout.yml``."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml

from testscout.detection.frameworks import (
    DEFAULT_TEST_PATTERNS,
    FRAMEWORKS,
    PRIMARY_FRAMEWORKS,
)
from testscout.utils.paths import normalize_path

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".testscout.yml"

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")

_MISSING = object()


class ConfigError(ValueError):
    """Raised when ``.testscout.yml`` cannot be parsed into a mapping."""


def _resolve_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with environment variable values."""

    def _replace(match: re.Match[str]) -> str:
        var = match.group(1)
        resolved = os.environ.get(var)
        if resolved is None:
            logger.warning("Environment variable %s is not set (referenced in config)", var)
            return ""
        return resolved

    return _ENV_VAR_RE.sub(_replace, value)


def _resolve_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively resolve environment variables in a dictionary."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, str):
            result[key] = _resolve_env_vars(value)
        elif isinstance(value, dict):
            result[key] = _resolve_dict(value)
        elif isinstance(value, list):
            result[key] = [
                _resolve_env_vars(item) if isinstance(item, str) else item for item in value
            ]
        else:
            result[key] = value
    return result


@dataclass
class WorkspaceConfig:
    """Workspace layout."""

    roots: list[str] = field(default_factory=list)
    """Workspace root directories, relative to the project root (empty = project root)."""


@dataclass
class DetectionConfig:
    """Framework detection switches."""

    disable_auto_detection: bool = False
    """Only consult custom config paths; skip content, config and dependency detection."""

    default_test_patterns: list[str] = field(default_factory=lambda: list(DEFAULT_TEST_PATTERNS))
    """Patterns used when a primary framework's config declares none."""


@dataclass
class FrameworkConfig:
    """Per-framework overrides."""

    config_path: str | dict[str, str] | None = None
    """A config path, or a map from file glob to config path (first match wins)."""

    disabled: bool = False
    """Ignore this framework entirely (secondary frameworks only)."""


@dataclass
class TestscoutConfig:
    """Complete configuration from ``.testscout.yml``."""

    __test__ = False  # not a pytest test class

    root: str
    """Project root directory."""

    workspace: WorkspaceConfig = field(default_factory=WorkspaceConfig)
    """Workspace configuration."""

    detection: DetectionConfig = field(default_factory=DetectionConfig)
    """Detection configuration."""

    frameworks: dict[str, FrameworkConfig] = field(default_factory=dict)
    """Per-framework overrides keyed by framework name."""

    raw: dict[str, Any] = field(default_factory=dict)
    """Raw parsed YAML for extension/debugging."""

    def framework(self, name: str) -> FrameworkConfig:
        return self.frameworks.get(name) or FrameworkConfig()

    def to_dict(self) -> dict[str, Any]:
        """Settings-shaped dict: sections plus one top-level key per framework."""
        data: dict[str, Any] = {
            "root": self.root,
            "workspace": asdict(self.workspace),
            "detection": asdict(self.detection),
        }
        for name, framework_config in self.frameworks.items():
            data[name] = asdict(framework_config)
        return data


class Settings:
    """Read-only settings store addressed by dotted keys.

    ``settings.get("jest.config_path")`` reads ``data["jest"]["config_path"]``.

    Args:
        data: Nested settings mapping (usually ``TestscoutConfig.to_dict()``).
        root: Project root that relative workspace roots resolve against.
    """

    def __init__(self, data: dict[str, Any] | None = None, root: str | Path | None = None) -> None:
        self._data = data or {}
        if root is None:
            root = self._data.get("root") or os.getcwd()
        self.root = normalize_path(root)

    @classmethod
    def from_config(cls, config: TestscoutConfig) -> Settings:
        return cls(config.to_dict(), root=config.root)

    def get(self, key: str, default: Any = None) -> Any:
        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, dict):
                return default
            node = node.get(part, _MISSING)
            if node is _MISSING:
                return default
        return node

    def workspace_roots(self) -> list[str]:
        """Absolute workspace roots; the project root when none are configured."""
        roots = self.get("workspace.roots") or []
        if isinstance(roots, str):
            roots = [roots]
        resolved = [
            normalize_path(os.path.join(self.root, entry))
            for entry in roots
            if isinstance(entry, str) and entry
        ]
        return resolved or [self.root]

    def default_test_patterns(self) -> list[str]:
        patterns = self.get("detection.default_test_patterns")
        if isinstance(patterns, list) and patterns:
            return [pattern for pattern in patterns if isinstance(pattern, str)]
        return list(DEFAULT_TEST_PATTERNS)

    def auto_detection_disabled(self) -> bool:
        return bool(self.get("detection.disable_auto_detection", False))

    def is_disabled(self, framework: str) -> bool:
        """Whether *framework* is switched off; primary frameworks cannot be."""
        if framework in PRIMARY_FRAMEWORKS:
            return False
        return bool(self.get(f"{framework}.disabled", False))

    def config_path_setting(self, framework: str) -> str | dict[str, str] | None:
        value = self.get(f"{framework}.config_path")
        if isinstance(value, (str, dict)) and value:
            return value
        return None


def _parse_config_path(value: Any) -> str | dict[str, str] | None:
    if isinstance(value, str):
        return value or None
    if isinstance(value, dict):
        return {str(pattern): str(path) for pattern, path in value.items()}
    return None


def _parse_framework_config(raw: dict[str, Any]) -> FrameworkConfig:
    return FrameworkConfig(
        config_path=_parse_config_path(raw.get("config_path")),
        disabled=bool(raw.get("disabled", False)),
    )


def load_config(root: str | Path) -> TestscoutConfig:
    """Load and parse ``.testscout.yml`` from *root*.

    A missing file yields the defaults.

    Raises:
        ConfigError: If the file is not valid YAML or not a mapping.
    """
    root_path = Path(root).resolve()
    config_file = root_path / CONFIG_FILE_NAME

    raw: dict[str, Any] = {}
    if config_file.is_file():
        text = config_file.read_text(encoding="utf-8")
        try:
            parsed = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {config_file}: {exc}") from exc
        if parsed is not None and not isinstance(parsed, dict):
            raise ConfigError(f"{config_file} must contain a mapping at the top level")
        raw = _resolve_dict(parsed or {})

    # Parse workspace section
    workspace_raw = raw.get("workspace", {})
    if not isinstance(workspace_raw, dict):
        workspace_raw = {}
    roots = workspace_raw.get("roots", [])
    if isinstance(roots, str):
        roots = [roots]

    workspace = WorkspaceConfig(
        roots=[str(entry) for entry in roots] if isinstance(roots, list) else [],
    )

    # Parse detection section
    detection_raw = raw.get("detection", {})
    if not isinstance(detection_raw, dict):
        detection_raw = {}
    patterns = detection_raw.get("default_test_patterns")

    detection = DetectionConfig(
        disable_auto_detection=bool(detection_raw.get("disable_auto_detection", False)),
        default_test_patterns=(
            [str(pattern) for pattern in patterns]
            if isinstance(patterns, list) and patterns
            else list(DEFAULT_TEST_PATTERNS)
        ),
    )

    # Per-framework sections
    frameworks: dict[str, FrameworkConfig] = {}
    for name in FRAMEWORKS:
        section = raw.get(name)
        if isinstance(section, dict):
            frameworks[name] = _parse_framework_config(section)

    return TestscoutConfig(
        root=str(root_path),
        workspace=workspace,
        detection=detection,
        frameworks=frameworks,
        raw=raw,
    )


def _validate_workspace_config(config: TestscoutConfig) -> list[str]:
    """Validate workspace roots."""
    errors: list[str] = []
    for entry in config.workspace.roots:
        path = Path(config.root) / entry
        if not path.is_dir():
            errors.append(f"workspace.roots entry does not exist: {entry}")
    return errors


def _validate_detection_config(detection: DetectionConfig) -> list[str]:
    errors: list[str] = []
    if not detection.default_test_patterns:
        errors.append("detection.default_test_patterns must not be empty")
    return errors


def _validate_framework_config(name: str, framework: FrameworkConfig, root: str) -> list[str]:
    """Validate one framework section."""
    errors: list[str] = []
    if framework.disabled and name in PRIMARY_FRAMEWORKS:
        errors.append(f"{name}.disabled is only supported for secondary frameworks")

    config_path = framework.config_path
    targets = config_path.values() if isinstance(config_path, dict) else [config_path]
    for target in targets:
        if target and not (Path(root) / target).is_file():
            errors.append(f"{name}.config_path does not exist: {target}")
    return errors


def validate_config(config: TestscoutConfig) -> list[str]:
    """Validate the configuration and return a list of error messages.

    Returns an empty list if the configuration is valid.
    """
    errors: list[str] = []

    unknown = sorted(
        key
        for key in config.raw
        if key not in FRAMEWORKS and key not in {"workspace", "detection"}
    )
    errors.extend(f"Unknown configuration section: {key}" for key in unknown)

    errors.extend(_validate_workspace_config(config))
    errors.extend(_validate_detection_config(config.detection))
    for name, framework in config.frameworks.items():
        errors.extend(_validate_framework_config(name, framework, config.root))

    return errors
