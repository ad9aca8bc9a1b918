"""Built-in framework catalog."""

from __future__ import annotations

from testscout.detection.signals import (
    ConfigFile,
    Dependency,
    FrameworkDescriptor,
    FrameworkRole,
    ImportPattern,
)

JEST = "jest"
VITEST = "vitest"
NODE_TEST = "node-test"
DENO = "deno"
PLAYWRIGHT = "playwright"
CYPRESS = "cypress"
RSTEST = "rstest"

DEFAULT_TEST_PATTERNS: tuple[str, ...] = (
    "**/*.{test,spec}.?(c|m)[jt]s?(x)",
    "**/__tests__/**/*.?(c|m)[jt]s?(x)",
)

_JS_EXTENSIONS = ("js", "ts", "mjs", "mts", "cjs", "cts")
_E2E_EXTENSIONS = ("ts", "js", "mts", "mjs", "cts", "cjs")


def _config_files(
    stem: str, extensions: tuple[str, ...], required_key: str | None = None
) -> tuple[ConfigFile, ...]:
    return tuple(ConfigFile(f"{stem}.{ext}", required_key) for ext in extensions)


# ── Built-in descriptors ────────────────────────────────────────────


def builtin_frameworks() -> list[FrameworkDescriptor]:
    """Return the catalog in dependency-fallback priority order.

    Content-only frameworks (node-test, Deno's source signals) come last;
    they never take part in the fallback because they have no dependency
    or binary.
    """
    return [
        # ── Vitest ──
        FrameworkDescriptor(
            name=VITEST,
            role=FrameworkRole.PRIMARY,
            config_files=(
                _config_files("vitest.config", _JS_EXTENSIONS)
                + _config_files("vite.config", _JS_EXTENSIONS, required_key="test")
            ),
            binary_name="vitest",
            dependencies=(Dependency("vitest"),),
        ),
        # ── Jest ──
        FrameworkDescriptor(
            name=JEST,
            role=FrameworkRole.PRIMARY,
            config_files=(
                ConfigFile("jest.config.js"),
                ConfigFile("jest.config.ts"),
                ConfigFile("jest.config.mjs"),
                ConfigFile("jest.config.cjs"),
                ConfigFile("jest.config.mts"),
                ConfigFile("jest.config.cts"),
                ConfigFile("jest.config.json"),
                ConfigFile("test/jest-e2e.json"),
                ConfigFile("package.json", required_key="jest"),
            ),
            binary_name="jest",
            dependencies=(Dependency("jest"),),
            package_json_key="jest",
        ),
        # ── Rstest ──
        FrameworkDescriptor(
            name=RSTEST,
            role=FrameworkRole.SECONDARY,
            config_files=_config_files("rstest.config", _E2E_EXTENSIONS),
            binary_name="rstest",
            dependencies=(Dependency("@rstest/core"),),
        ),
        # ── Playwright ──
        FrameworkDescriptor(
            name=PLAYWRIGHT,
            role=FrameworkRole.SECONDARY,
            config_files=_config_files("playwright.config", _E2E_EXTENSIONS),
            binary_name="playwright",
            dependencies=(Dependency("@playwright/test"), Dependency("playwright")),
            content_signals=(ImportPattern(r"""from\s+['"]@playwright/test['"]"""),),
            default_patterns=("**/*.@(spec|test).?(c|m)[jt]s?(x)",),
        ),
        # ── Cypress ──
        FrameworkDescriptor(
            name=CYPRESS,
            role=FrameworkRole.SECONDARY,
            config_files=(
                *_config_files("cypress.config", _E2E_EXTENSIONS),
                ConfigFile("cypress.json"),
            ),
            binary_name="cypress",
            dependencies=(Dependency("cypress"),),
            default_patterns=("cypress/e2e/**/*.cy.{js,jsx,ts,tsx}",),
        ),
        # ── Deno ──
        FrameworkDescriptor(
            name=DENO,
            role=FrameworkRole.SECONDARY,
            config_files=(ConfigFile("deno.json"), ConfigFile("deno.jsonc")),
            content_signals=(
                ImportPattern(r"\bDeno\.test\s*\("),
                ImportPattern(r"""['"]jsr:@std/"""),
                ImportPattern(r"""['"]https?://deno\.land/std"""),
            ),
            default_patterns=("**/{*_,*.,}test.{ts,tsx,mts,js,mjs,jsx}",),
        ),
        # ── node:test ──
        FrameworkDescriptor(
            name=NODE_TEST,
            role=FrameworkRole.CONTENT_ONLY,
            content_signals=(
                ImportPattern(r"""from\s+['"]node:test['"]"""),
                ImportPattern(r"""require\s*\(\s*['"]node:test['"]\s*\)"""),
            ),
        ),
    ]


FRAMEWORKS: dict[str, FrameworkDescriptor] = {fw.name: fw for fw in builtin_frameworks()}

PRIMARY_FRAMEWORKS: tuple[str, ...] = (JEST, VITEST)
"""Primary frameworks in tie-break order: the first one wins ties."""

SECONDARY_FRAMEWORKS: tuple[str, ...] = tuple(
    fw.name for fw in FRAMEWORKS.values() if fw.role is FrameworkRole.SECONDARY
)

FALLBACK_ORDER: tuple[str, ...] = tuple(
    fw.name for fw in FRAMEWORKS.values() if fw.binary_name or fw.dependencies
)

CONTENT_DETECTION_ORDER: tuple[str, ...] = (NODE_TEST, DENO, PLAYWRIGHT)


def get_framework(name: str) -> FrameworkDescriptor:
    """Look up a catalog entry.  Raises ``KeyError`` for unknown names."""
    return FRAMEWORKS[name]


def default_patterns_for(name: str, primary_defaults: tuple[str, ...] | list[str]) -> list[str]:
    """Return the patterns to use for *name* when its config declares none."""
    descriptor = FRAMEWORKS.get(name)
    if descriptor is None or descriptor.default_patterns is None:
        return list(primary_defaults)
    return list(descriptor.default_patterns)
