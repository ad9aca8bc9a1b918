"""Tests for the testscout CLI commands."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest
import yaml
from click.testing import CliRunner

from testscout import __version__
from testscout.cli import _framework_for_config, cli
from testscout.config import CONFIG_FILE_NAME
from testscout.utils.paths import normalize_path

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


def _write_file(root: Path, rel: str, content: str = "") -> Path:
    p = root / rel
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(content, encoding="utf-8")
    return p


class TestVersion:
    def test_version_flag(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestClassify:
    def test_json_output(self, runner: CliRunner, tmp_path: Path) -> None:
        _write_file(tmp_path, "jest.config.js", "module.exports = { testMatch: ['**/*.unit.js'] };")
        test_file = _write_file(tmp_path, "src/a.unit.js")
        source_file = _write_file(tmp_path, "src/a.js")

        result = runner.invoke(
            cli,
            [
                "classify",
                str(test_file),
                str(source_file),
                "--path",
                str(tmp_path),
                "--json-output",
            ],
        )
        assert result.exit_code == 0, result.output
        rows = json.loads(result.stdout)
        assert rows[0]["framework"] == "jest"
        assert rows[0]["source"] == "config"
        assert rows[0]["directory"] == normalize_path(tmp_path)
        assert rows[0]["is_test_file"] is True
        assert rows[1]["is_test_file"] is False

    def test_table_output(self, runner: CliRunner, tmp_path: Path) -> None:
        _write_file(tmp_path, "vitest.config.ts", "export default { test: {} };")
        test_file = _write_file(tmp_path, "a.test.ts")

        result = runner.invoke(cli, ["classify", str(test_file), "--path", str(tmp_path)])
        assert result.exit_code == 0, result.output
        assert "vitest" in result.output
        assert "yes" in result.output

    def test_invalid_config_aborts(self, runner: CliRunner, tmp_path: Path) -> None:
        _write_file(tmp_path, CONFIG_FILE_NAME, "- not\n- a mapping\n")
        test_file = _write_file(tmp_path, "a.test.ts")

        result = runner.invoke(cli, ["classify", str(test_file), "--path", str(tmp_path)])
        assert result.exit_code == 1
        assert "Failed to load configuration" in result.output


class TestPatterns:
    def test_guesses_framework(self, runner: CliRunner, tmp_path: Path) -> None:
        config = _write_file(
            tmp_path, "vitest.config.ts", "export default { test: { include: ['**/*.t.ts'] } };"
        )
        result = runner.invoke(cli, ["patterns", str(config)])
        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["framework"] == "vitest"
        assert payload["pattern_sets"] == [{"patterns": ["**/*.t.ts"], "is_regex": False}]

    def test_explicit_framework(self, runner: CliRunner, tmp_path: Path) -> None:
        config = _write_file(tmp_path, "e2e.config.ts", "export default { testDir: 'e2e' };")
        result = runner.invoke(cli, ["patterns", str(config), "--framework", "playwright"])
        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["pattern_sets"][0]["dir"] == "e2e"

    def test_unknown_file_aborts(self, runner: CliRunner, tmp_path: Path) -> None:
        config = _write_file(tmp_path, "settings.js", "module.exports = {};")
        result = runner.invoke(cli, ["patterns", str(config)])
        assert result.exit_code == 1
        assert "--framework" in result.output

    def test_framework_for_config(self, tmp_path: Path) -> None:
        assert _framework_for_config(_write_file(tmp_path, "jest.config.ts")) == "jest"
        assert _framework_for_config(_write_file(tmp_path, "cypress.json", "{}")) == "cypress"
        assert _framework_for_config(_write_file(tmp_path, "x/test/jest-e2e.json", "{}")) == "jest"


class TestConflicts:
    def test_reports_conflict(self, runner: CliRunner, tmp_path: Path) -> None:
        _write_file(tmp_path, "jest.config.js", "module.exports = {};")
        _write_file(tmp_path, "vitest.config.ts", "export default { test: {} };")
        result = runner.invoke(
            cli, ["conflicts", str(tmp_path), "--path", str(tmp_path), "--json-output"]
        )
        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["has_conflict"] is True
        assert payload["reason"] == "both_default"

    def test_distinct_patterns(self, runner: CliRunner, tmp_path: Path) -> None:
        _write_file(tmp_path, "jest.config.js", "module.exports = { testMatch: ['**/*.unit.js'] };")
        _write_file(tmp_path, "vitest.config.ts", "export default { test: {} };")
        result = runner.invoke(cli, ["conflicts", str(tmp_path), "--path", str(tmp_path)])
        assert result.exit_code == 0, result.output
        assert "distinct" in result.output

    def test_single_framework(self, runner: CliRunner, tmp_path: Path) -> None:
        _write_file(tmp_path, "jest.config.js", "module.exports = {};")
        result = runner.invoke(
            cli, ["conflicts", str(tmp_path), "--path", str(tmp_path), "--json-output"]
        )
        assert result.exit_code == 0
        assert json.loads(result.stdout) is None

    def test_uses_configured_default_patterns(self, runner: CliRunner, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILE_NAME).write_text(
            yaml.dump({"detection": {"default_test_patterns": ["**/*.unit.js"]}}),
            encoding="utf-8",
        )
        _write_file(tmp_path, "jest.config.js", "module.exports = { testMatch: ['**/*.unit.js'] };")
        _write_file(tmp_path, "vitest.config.ts", "export default { test: {} };")
        result = runner.invoke(
            cli, ["conflicts", str(tmp_path), "--path", str(tmp_path), "--json-output"]
        )
        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["reason"] == "explicit_matches_default"
        assert payload["vitest_patterns"] == ["**/*.unit.js"]


class TestConfigCommands:
    def test_show_yaml(self, runner: CliRunner, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILE_NAME).write_text(
            yaml.dump({"cypress": {"disabled": True}}), encoding="utf-8"
        )
        result = runner.invoke(cli, ["config", "show", "--path", str(tmp_path)])
        assert result.exit_code == 0, result.output
        assert "disabled: true" in result.output

    def test_show_json(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["config", "show", "--path", str(tmp_path), "--json-output"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["workspace"] == {"roots": []}
        assert "raw" not in data

    def test_validate_ok(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["config", "validate", "--path", str(tmp_path)])
        assert result.exit_code == 0
        assert "Configuration is valid" in result.output

    def test_validate_errors(self, runner: CliRunner, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILE_NAME).write_text(
            yaml.dump({"jest": {"config_path": "missing.js"}}), encoding="utf-8"
        )
        result = runner.invoke(cli, ["config", "validate", "--path", str(tmp_path)])
        assert result.exit_code == 1
        assert "missing.js" in result.output
