"""Command-line interface for testscout."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from testscout import __version__
from testscout.config import ConfigError, Settings, load_config, validate_config
from testscout.detection.config_files import get_config_path
from testscout.detection.frameworks import FRAMEWORKS
from testscout.detection.parsers import parse_config
from testscout.detection.service import TestFileDetector
from testscout.utils.paths import normalize_path

logger = logging.getLogger(__name__)
console = Console()


def _configure_logging(*, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_detector(path: str) -> TestFileDetector:
    try:
        config = load_config(path)
    except ConfigError as e:
        console.print(f"[red]✗[/red] Failed to load configuration: {e}")
        raise click.Abort from e
    return TestFileDetector(Settings.from_config(config))


def _framework_for_config(config_path: Path) -> str | None:
    """Guess the framework a config file belongs to from its location."""
    directory = config_path.parent
    for name in FRAMEWORKS:
        found = get_config_path(directory, name)
        if found is not None and found == normalize_path(config_path):
            return name
    if config_path.name == "jest-e2e.json":
        return "jest"
    return None


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging on stderr.")
@click.version_option(version=__version__, prog_name="testscout")
@click.pass_context
def cli(ctx: click.Context, *, verbose: bool) -> None:
    """testscout: find test files and the framework that owns them."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    _configure_logging(verbose=verbose)


@cli.command("classify")
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--path",
    "project",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Project root directory.",
)
@click.option("--json-output", "as_json", is_flag=True, help="Output as JSON.")
def classify(paths: tuple[str, ...], project: str, *, as_json: bool) -> None:
    """Report framework, owning directory and test-file verdict for PATHS.

    Example:
      testscout classify src/api.test.ts src/api.ts
    """
    detector = _load_detector(project)
    rows: list[dict[str, Any]] = []
    for path in paths:
        resolution = detector.resolve(path)
        rows.append(
            {
                "path": normalize_path(path),
                "framework": resolution.framework if resolution else None,
                "directory": resolution.directory if resolution else None,
                "source": resolution.source.value if resolution else None,
                "config_path": resolution.config_path if resolution else None,
                "is_test_file": detector.is_test_file(path),
            }
        )

    if as_json:
        click.echo(json.dumps(rows, indent=2))
        return

    table = Table(title="Test file classification")
    table.add_column("File")
    table.add_column("Framework")
    table.add_column("Directory")
    table.add_column("Source", style="dim")
    table.add_column("Test file", justify="center")
    for row in rows:
        table.add_row(
            row["path"],
            row["framework"] or "-",
            row["directory"] or "-",
            row["source"] or "-",
            "[green]yes[/green]" if row["is_test_file"] else "[dim]no[/dim]",
        )
    console.print(table)


@cli.command("patterns")
@click.argument("config_file", type=click.Path(exists=True, dir_okay=False, resolve_path=True))
@click.option(
    "--framework",
    type=click.Choice(sorted(name for name in FRAMEWORKS if name != "node-test")),
    default=None,
    help="Framework of CONFIG_FILE (guessed from the file name by default).",
)
def patterns(config_file: str, framework: str | None) -> None:
    """Print the test pattern sets declared by CONFIG_FILE as JSON.

    Example:
      testscout patterns packages/web/vitest.config.ts
    """
    config_path = Path(config_file)
    name = framework or _framework_for_config(config_path)
    if name is None:
        console.print(
            f"[red]✗[/red] Cannot tell which framework {config_path.name} belongs to; "
            "pass --framework."
        )
        raise click.Abort

    pattern_sets = parse_config(name, config_path)
    payload = {
        "framework": name,
        "config_path": normalize_path(config_path),
        "pattern_sets": (
            [pattern_set.to_dict() for pattern_set in pattern_sets]
            if pattern_sets is not None
            else None
        ),
    }
    click.echo(json.dumps(payload, indent=2))


@cli.command("conflicts")
@click.argument(
    "directory", type=click.Path(exists=True, file_okay=False, resolve_path=True)
)
@click.option(
    "--path",
    "project",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Project root directory (where .testscout.yml lives).",
)
@click.option("--json-output", "as_json", is_flag=True, help="Output as JSON.")
def conflicts(directory: str, project: str, *, as_json: bool) -> None:
    """Check whether Jest and Vitest patterns in DIRECTORY overlap.

    Default test patterns come from the project configuration.

    Example:
      testscout conflicts packages/app
    """
    detector = _load_detector(project)
    info = detector.check_pattern_conflict(directory)

    if as_json:
        click.echo(json.dumps(info.to_dict() if info else None, indent=2))
        return

    if info is None:
        console.print("[dim]Jest and Vitest are not both configured here.[/dim]")
        return
    if not info.has_conflict:
        console.print("[green]✓[/green] Jest and Vitest patterns are distinct.")
        return

    reason = info.reason.value if info.reason else "unknown"
    console.print(f"[yellow]⚠[/yellow] Pattern conflict: {reason}")
    console.print(f"  Jest:   {', '.join(info.jest_patterns)}")
    console.print(f"  Vitest: {', '.join(info.vitest_patterns)}")


@cli.group("config")
def config_group() -> None:
    """Inspect `.testscout.yml` configuration."""


@config_group.command("show")
@click.option(
    "--path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Project root directory.",
)
@click.option("--json-output", "as_json", is_flag=True, help="Output as JSON instead of YAML.")
def config_show(path: str, *, as_json: bool) -> None:
    """Display the resolved configuration.

    Example:
      testscout config show --json-output
    """
    try:
        config = load_config(path)
    except ConfigError as e:
        console.print(f"[red]✗[/red] Failed to load configuration: {e}")
        raise click.Abort from e

    config_dict = asdict(config)
    config_dict.pop("raw", None)

    if as_json:
        click.echo(json.dumps(config_dict, indent=2))
    else:
        console.print("[bold cyan]Configuration:[/bold cyan]")
        click.echo(yaml.safe_dump(config_dict, sort_keys=False, default_flow_style=False))


@config_group.command("validate")
@click.option(
    "--path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Project root directory.",
)
def config_validate(path: str) -> None:
    """Validate `.testscout.yml`.

    Example:
      testscout config validate
    """
    try:
        config = load_config(path)
    except ConfigError as e:
        console.print(f"[red]✗[/red] Failed to load configuration: {e}")
        raise click.Abort from e

    errors = validate_config(config)
    if not errors:
        console.print("[green]✓[/green] Configuration is valid!")
        return

    console.print(f"[red]✗[/red] Found {len(errors)} configuration error(s):")
    for idx, error in enumerate(errors, start=1):
        console.print(f"  {idx}. [red]{error}[/red]")
    raise click.Abort
