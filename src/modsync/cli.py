"""Command-line interface for modsync."""

import asyncio
import os
from pathlib import Path

import structlog
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .config import load_config
from .core.instance import load_instance_manifest, resolve_instance_root, summarize_manifest
from .core.plan_loader import load_plan
from .models.plan import UpdatePlan
from .utils.exceptions import ModsyncError
from .validation.safety import check_plan_paths

app = typer.Typer(
    name="modsync",
    help="modsync - apply modpack update plans to instance directories",
    add_completion=False,
)

console = Console()
logger = structlog.get_logger(__name__)


def _plan_table(plan: UpdatePlan) -> Table:
    table = Table(title="Update Plan")
    table.add_column("Phase", style="cyan")
    table.add_column("Entries", justify="right", style="green")
    table.add_column("On failure")

    policies = {
        "add": "abort",
        "replace": "abort",
        "disable": "continue",
        "remove": "abort",
        "overrides": "continue",
    }
    for phase, count in plan.phase_counts().items():
        table.add_row(phase, str(count), policies[phase])
    table.add_row("[bold]total[/bold]", f"[bold]{plan.total}[/bold]", "")
    return table


@app.command()
def validate(
    plan_file: Path = typer.Argument(..., help="Update plan (JSON)", exists=True),
) -> None:
    """
    Validate an update plan without applying it.

    Checks:
    - JSON syntax and plan shape
    - Paths that would escape the instance directory

    Examples:
        modsync validate plan.json
    """
    console.print(f"\n[bold blue]Validating plan:[/bold blue] {plan_file}\n")

    try:
        plan = load_plan(plan_file)
    except ModsyncError as e:
        console.print(f"[red]ERROR: {e}[/red]")
        raise typer.Exit(code=1) from e

    unsafe = check_plan_paths(plan)
    console.print(_plan_table(plan))

    if unsafe:
        console.print(f"\n[red]ERROR: {len(unsafe)} unsafe paths in plan:[/red]")
        for path in unsafe:
            console.print(f"  - {path}")
        raise typer.Exit(code=1)

    console.print("\n[green]PASS: Plan is valid[/green]")


@app.command()
def apply(
    plan_file: Path = typer.Argument(..., help="Update plan (JSON)", exists=True),
    instance: Path | None = typer.Option(
        None, "--instance", "-i", help="Instance directory (overrides configuration)"
    ),
    config_file: Path | None = typer.Option(None, "--config", "-c", help="Configuration file"),
    report: Path | None = typer.Option(None, "--report", help="Write a JSON report to this path"),
    show_plan: bool = typer.Option(
        False, "--show-plan", help="Preview the plan and exit without applying it"
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Log verbosity: TRACE, DEBUG, VERBOSE, INFO, WARNING, ERROR",
    ),
    log_filter: str | None = typer.Option(
        None,
        "--log-filter",
        help="Filter logs by component (comma-separated, e.g., 'reconciler,fetcher')",
    ),
) -> None:
    """
    Apply an update plan to a mod instance directory.

    Phases run in order: add, replace, disable, remove, overrides.
    A failed add, replace or remove aborts the update; failed disables and
    override writes are reported and skipped.

    Examples:
        modsync apply plan.json --instance ~/curseforge/Instances/MyPack
        modsync apply plan.json --config modsync.yaml --report report.json
        modsync apply plan.json --show-plan
    """
    from .execution.runner import SyncRunner
    from .observability import configure_logging

    try:
        config = load_config(config_file)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]ERROR: {e}[/red]")
        raise typer.Exit(code=1) from e

    configure_logging(
        level=log_level or os.environ.get("LOG_LEVEL") or config.logging.level,
        json_logs=config.logging.format == "json",
        log_file=config.logging.file,
        log_filter=log_filter,
    )

    try:
        plan = load_plan(plan_file)
        instance_root = resolve_instance_root(config, instance)
    except ModsyncError as e:
        console.print(f"[red]ERROR: {e}[/red]")
        raise typer.Exit(code=1) from e

    console.print(
        Panel.fit(
            f"[bold blue]Modpack Update[/bold blue]\n\n"
            f"Plan: {plan_file}\n"
            f"Instance: [cyan]{instance_root}[/cyan]\n"
            f"Entries: {plan.total}",
            border_style="blue",
        )
    )

    if show_plan:
        console.print(_plan_table(plan))
        return

    async def run_apply() -> int:
        runner = SyncRunner(config, console)
        return await runner.run(plan, instance_root, report_path=report)

    try:
        exit_code = asyncio.run(run_apply())
    except ModsyncError as e:
        console.print(f"\n[bold red]ERROR:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    if exit_code != 0:
        raise typer.Exit(code=exit_code)


@app.command()
def instance(
    instance_dir: Path | None = typer.Option(
        None, "--instance", "-i", help="Instance directory (overrides configuration)"
    ),
    config_file: Path | None = typer.Option(None, "--config", "-c", help="Configuration file"),
) -> None:
    """
    Show the instance metadata that update plans are computed against.

    Examples:
        modsync instance --instance ~/curseforge/Instances/MyPack
    """
    try:
        config = load_config(config_file)
        root = resolve_instance_root(config, instance_dir)
        summary = summarize_manifest(load_instance_manifest(root))
    except (ModsyncError, FileNotFoundError, ValueError) as e:
        console.print(f"[red]ERROR: {e}[/red]")
        raise typer.Exit(code=1) from e

    table = Table(title=f"Instance: {root}")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Name", str(summary["name"]))
    table.add_row("Game version", str(summary["game_version"]))
    table.add_row("Mod loader", str(summary["mod_loader"] or "-"))
    table.add_row("Installed addons", str(summary["installed_addons"]))
    console.print(table)


@app.command()
def version() -> None:
    """Show version information."""
    console.print(
        Panel.fit(
            "[bold]modsync[/bold]\n\n"
            f"Version: [cyan]{__version__}[/cyan]\n"
            "Python: 3.11+\n\n"
            "[bold]Phases:[/bold]\n"
            "- add: download new mods\n"
            "- replace: swap changed mods\n"
            "- disable: rename mods to .disabled\n"
            "- remove: delete dropped mods\n"
            "- overrides: write config and resource files",
            title="About",
            border_style="blue",
        )
    )
