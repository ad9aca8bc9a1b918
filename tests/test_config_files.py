"""Tests for config file discovery and dependency traces."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from testscout.detection.config_files import (
    binary_exists,
    config_has_key,
    get_config_path,
    is_config_file_name,
    is_framework_used_in,
    package_json_declares,
)
from testscout.detection.frameworks import (
    FALLBACK_ORDER,
    SECONDARY_FRAMEWORKS,
    default_patterns_for,
    get_framework,
)
from testscout.detection.signals import FrameworkRole
from testscout.utils.paths import normalize_path

if TYPE_CHECKING:
    from pathlib import Path


def _write_file(root: Path, rel: str, content: str = "") -> Path:
    """Write *content* to a file at *root/rel*."""
    p = root / rel
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(content, encoding="utf-8")
    return p


def _write_package_json(root: Path, data: dict[str, object]) -> None:
    _write_file(root, "package.json", json.dumps(data))


class TestGetConfigPath:
    def test_jest_config(self, tmp_path: Path) -> None:
        path = _write_file(tmp_path, "jest.config.js", "module.exports = {};")
        assert get_config_path(tmp_path, "jest") == normalize_path(path)

    def test_priority_order(self, tmp_path: Path) -> None:
        _write_file(tmp_path, "jest.config.ts", "export default {};")
        js = _write_file(tmp_path, "jest.config.js", "module.exports = {};")
        assert get_config_path(tmp_path, "jest") == normalize_path(js)

    def test_jest_e2e_config(self, tmp_path: Path) -> None:
        path = _write_file(tmp_path, "test/jest-e2e.json", "{}")
        assert get_config_path(tmp_path, "jest") == normalize_path(path)

    def test_package_json_needs_jest_key(self, tmp_path: Path) -> None:
        _write_package_json(tmp_path, {"name": "app"})
        assert get_config_path(tmp_path, "jest") is None

        _write_package_json(tmp_path, {"name": "app", "jest": {"testMatch": ["**/*.t.js"]}})
        assert get_config_path(tmp_path, "jest") == normalize_path(tmp_path / "package.json")

    def test_vite_config_without_test_key_is_ignored(self, tmp_path: Path) -> None:
        _write_file(
            tmp_path,
            "vite.config.ts",
            "export default defineConfig({ plugins: [react()] });",
        )
        assert get_config_path(tmp_path, "vitest") is None

    def test_vite_config_with_test_key(self, tmp_path: Path) -> None:
        path = _write_file(
            tmp_path,
            "vite.config.ts",
            "export default defineConfig({ test: { environment: 'jsdom' } });",
        )
        assert get_config_path(tmp_path, "vitest") == normalize_path(path)

    def test_vitest_config_preferred_over_vite(self, tmp_path: Path) -> None:
        _write_file(tmp_path, "vite.config.ts", "export default { test: {} };")
        path = _write_file(tmp_path, "vitest.config.ts", "export default {};")
        assert get_config_path(tmp_path, "vitest") == normalize_path(path)

    def test_secondary_frameworks(self, tmp_path: Path) -> None:
        _write_file(tmp_path, "playwright.config.ts", "export default {};")
        _write_file(tmp_path, "cypress.json", "{}")
        _write_file(tmp_path, "deno.jsonc", "{}")
        _write_file(tmp_path, "rstest.config.mjs", "export default {};")
        assert get_config_path(tmp_path, "playwright") is not None
        assert get_config_path(tmp_path, "cypress") is not None
        assert get_config_path(tmp_path, "deno") is not None
        assert get_config_path(tmp_path, "rstest") is not None

    def test_unknown_framework(self, tmp_path: Path) -> None:
        assert get_config_path(tmp_path, "mocha") is None


class TestConfigHasKey:
    def test_textual_fallback_for_dynamic_module(self, tmp_path: Path) -> None:
        path = _write_file(
            tmp_path,
            "vite.config.ts",
            "export default defineConfig(async () => { const x = await load(); "
            "return cond ? { test: {} } : { test: x }; });",
        )
        assert config_has_key(path, "test")

    def test_missing_key(self, tmp_path: Path) -> None:
        path = _write_file(tmp_path, "vite.config.ts", "export default { build: {} };")
        assert not config_has_key(path, "test")


class TestFrameworkUsage:
    def test_dev_dependency(self, tmp_path: Path) -> None:
        _write_package_json(tmp_path, {"devDependencies": {"vitest": "^1.0.0"}})
        assert is_framework_used_in(tmp_path, "vitest")
        assert not is_framework_used_in(tmp_path, "jest")

    def test_scoped_dependency_name(self) -> None:
        assert package_json_declares({"devDependencies": {"@playwright/test": "1"}}, "playwright")
        assert package_json_declares({"devDependencies": {"@rstest/core": "0.1"}}, "rstest")

    def test_installed_binary(self, tmp_path: Path) -> None:
        _write_file(tmp_path, "node_modules/.bin/jest")
        assert binary_exists(tmp_path, "jest")
        assert is_framework_used_in(tmp_path, "jest")

    def test_nothing(self, tmp_path: Path) -> None:
        assert not is_framework_used_in(tmp_path, "cypress")


class TestCatalog:
    def test_fallback_order(self) -> None:
        assert FALLBACK_ORDER == ("vitest", "jest", "rstest", "playwright", "cypress")

    def test_roles(self) -> None:
        assert get_framework("jest").role is FrameworkRole.PRIMARY
        assert get_framework("node-test").role is FrameworkRole.CONTENT_ONLY
        assert set(SECONDARY_FRAMEWORKS) == {"rstest", "playwright", "cypress", "deno"}

    def test_default_patterns(self) -> None:
        assert default_patterns_for("jest", ["**/*.x.ts"]) == ["**/*.x.ts"]
        assert default_patterns_for("cypress", ["**/*.x.ts"]) == [
            "cypress/e2e/**/*.cy.{js,jsx,ts,tsx}"
        ]


class TestIsConfigFileName:
    def test_known_names(self) -> None:
        assert is_config_file_name("jest.config.js")
        assert is_config_file_name("vite.config.mts")
        assert is_config_file_name("jest-e2e.json")
        assert is_config_file_name("package.json")
        assert is_config_file_name("deno.jsonc")

    def test_source_files(self) -> None:
        assert not is_config_file_name("index.ts")
        assert not is_config_file_name("app.test.ts")
