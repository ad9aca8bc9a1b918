"""Types shared by the framework detection modules.

Signals describe the evidence a framework leaves behind (configuration
files, dependencies, source imports).  ``FrameworkDescriptor`` bundles them
into a static catalog entry.  ``TestPatternSet`` is the neutral result of
parsing a framework's configuration, and ``Resolution`` / ``FrameworkResult``
carry the outcome of resolving a single file.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class FrameworkRole(Enum):
    """How a framework competes during resolution."""

    PRIMARY = "primary"
    SECONDARY = "secondary"
    CONTENT_ONLY = "content_only"


class ResolutionSource(Enum):
    """Which detection step produced a resolution."""

    CUSTOM = "custom"
    CONTENT = "content"
    CONFIG = "config"
    TIE_BREAK = "tie-break"
    DEPENDENCY = "dependency"


# ── Signal dataclasses ──────────────────────────────────────────────


@dataclass(frozen=True)
class ConfigFile:
    """A configuration file name, relative to the directory being checked.

    ``required_key`` restricts the file to the cases where its configuration
    declares that top-level key: ``vite.config.ts`` counts for Vitest only
    with a ``test`` section, ``package.json`` counts for Jest only with a
    ``jest`` section.
    """

    name: str
    required_key: str | None = None


@dataclass(frozen=True)
class Dependency:
    """A package name looked up in ``package.json`` dependency sections."""

    name: str


@dataclass(frozen=True)
class ImportPattern:
    """A source-level regex announcing the framework.

    Example: ``from 'node:test'`` → node-test, ``Deno.test(`` → Deno.
    """

    pattern: str


# ── Framework descriptor ────────────────────────────────────────────


@dataclass(frozen=True)
class FrameworkDescriptor:
    """Static description of how to detect a single framework."""

    name: str
    role: FrameworkRole
    config_files: tuple[ConfigFile, ...] = ()
    binary_name: str | None = None
    dependencies: tuple[Dependency, ...] = ()
    package_json_key: str | None = None
    content_signals: tuple[ImportPattern, ...] = ()
    default_patterns: tuple[str, ...] | None = None
    """Patterns used when a parsed set declares none; ``None`` means the
    configurable primary defaults."""


# ── Parsed configuration ────────────────────────────────────────────


@dataclass
class TestPatternSet:
    """Test-file scoping declared by one framework configuration.

    An empty ``patterns`` list means the framework is configured but
    declares no explicit patterns; callers substitute the defaults.
    """

    __test__ = False  # not a pytest test class

    patterns: list[str] = field(default_factory=list)
    is_regex: bool = False
    root_dir: str | None = None
    roots: list[str] | None = None
    ignore_patterns: list[str] | None = None
    """Regex patterns matched against the absolute path (Jest)."""
    exclude_patterns: list[str] | None = None
    """Glob patterns matched against the relative path."""
    dir: str | None = None

    @property
    def is_explicit(self) -> bool:
        return bool(self.patterns)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-friendly dict, omitting unset optional fields."""
        data: dict[str, Any] = {"patterns": list(self.patterns), "is_regex": self.is_regex}
        for key in ("root_dir", "roots", "ignore_patterns", "exclude_patterns", "dir"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data


# ── Resolution results ──────────────────────────────────────────────


@dataclass(frozen=True)
class FrameworkResult:
    """The owning directory and framework of a file."""

    directory: str
    framework: str


@dataclass(frozen=True)
class Resolution:
    """A file's resolution, with the evidence that produced it."""

    framework: str
    directory: str
    source: ResolutionSource
    config_path: str | None = None

    def to_result(self) -> FrameworkResult:
        return FrameworkResult(directory=self.directory, framework=self.framework)


@dataclass(frozen=True)
class Verdict:
    """Outcome of one detector in the resolution pipeline.

    A verdict whose ``resolution`` is ``None`` is *blocking*: resolution stops
    and the file belongs to no framework.
    """

    resolution: Resolution | None
