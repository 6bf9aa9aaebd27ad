"""Typer-based CLI for bumpbot."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__, config
from .config_manager import FILE_KEYS, Settings, load_settings, save_setting
from .diff_engine import DiffEngine
from .errors import BumpbotError
from .git import Git
from .logging_setup import configure_logging, streams_output
from .models import Manifest, RunOutcome, RunResult, Snapshot
from .orchestrator import UpgradeOrchestrator
from .runner import CommandRunner
from .snapshot import SnapshotCollector, read_manifest

logger = logging.getLogger(__name__)
console = Console()

app = typer.Typer(
    help="Open pull requests for outdated npm/yarn dependencies.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="⚙️  Show and edit settings.", no_args_is_help=True)
app.add_typer(config_app, name="config")


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"bumpbot v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    )
):
    """bumpbot: snapshot, upgrade, diff and open a pull request."""
    pass


def _fail(exc: BumpbotError) -> None:
    logger.debug("fatal error", exc_info=exc)
    console.print(f"[red]✗[/red] {escape(str(exc))}")
    raise typer.Exit(1)


def _build_orchestrator(settings: Settings) -> UpgradeOrchestrator:
    runner = CommandRunner(settings.workspace, stream_output=streams_output())
    return UpgradeOrchestrator(settings, git=Git(CommandRunner(settings.workspace)), runner=runner)


def _report(result: RunResult) -> None:
    """Print one line per terminal outcome."""
    outcome = result.outcome
    if outcome is RunOutcome.FOUND_EXISTING:
        console.print(f"[yellow]•[/yellow] Found existing branch [bold]{escape(result.branch)}[/bold]")
    elif outcome is RunOutcome.NO_CHANGES:
        console.print("[green]✓[/green] Did not find outdated dependencies.")
    elif outcome is RunOutcome.DRY_RUN:
        typer.echo(result.report)
        console.print("[cyan]•[/cyan] Dry run: nothing was pushed. Use --execute to open a pull request.")
    elif outcome is RunOutcome.PULL_REQUEST_CREATED:
        pr = result.pull_request
        console.print(f"[green]✓[/green] Opened pull request #{pr.number} {pr.url}".rstrip())
    else:
        raise AssertionError(f"unhandled outcome {outcome}")


@app.command(
    "run",
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)
def run(
    ctx: typer.Context,
    workspace: Optional[Path] = typer.Option(
        None, "--workspace", "-w", file_okay=False, help="Project directory (default: WORKSPACE or cwd)."
    ),
    execute: Optional[bool] = typer.Option(
        None, "--execute/--dry-run", help="Push and open a pull request instead of only reporting."
    ),
    keep: Optional[bool] = typer.Option(None, "--keep/--no-keep", help="Keep the working branch."),
    shadows: Optional[bool] = typer.Option(
        None, "--shadows/--no-shadows", help="Include transitive (undeclared) packages in the report."
    ),
    update_command: Optional[str] = typer.Option(
        None,
        "--update-command",
        help="Upgrade tool to run. Configured update_args are dropped; pass its arguments after the options.",
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="debug, info, warning or error."),
):
    """Upgrade dependencies and open a pull request with the changes.

    Unknown trailing arguments are passed to the upgrade command.

    Example:
      bumpbot run --dry-run
      bumpbot run --execute --target minor
    """
    configure_logging(log_level)
    try:
        settings = load_settings({
            "workspace": workspace,
            "execute": execute,
            "keep_branch": keep,
            "include_transitive": shadows,
            "update_command": update_command,
            "log_level": log_level,
        })
        configure_logging(settings.log_level)
        result = _build_orchestrator(settings).run(list(ctx.args))
    except BumpbotError as exc:
        _fail(exc)
    _report(result)


@app.command("snapshot")
def snapshot(
    workspace: Optional[Path] = typer.Option(None, "--workspace", "-w", file_okay=False, help="Project directory."),
    shadows: bool = typer.Option(False, "--shadows", help="Include transitive packages."),
    as_json: bool = typer.Option(False, "--json", help="Print name -> version JSON."),
):
    """Show installed package versions of the workspace."""
    try:
        settings = load_settings({"workspace": workspace})
        manifest = read_manifest(settings.manifest_path)
    except BumpbotError as exc:
        _fail(exc)

    snap = SnapshotCollector().collect(settings.workspace, manifest, include_transitive=shadows)
    if as_json:
        typer.echo(json.dumps(snap.versions(), indent=2, sort_keys=True))
        return
    if not snap:
        typer.echo("No installed packages found.")
        return

    table = Table(title=manifest.title)
    table.add_column("package")
    table.add_column("version")
    for name, version in snap.versions().items():
        table.add_row(name, version)
    console.print(table)


def _load_versions(path: Path) -> Snapshot:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise typer.BadParameter(f"Could not read {path}: {exc}")
    if not isinstance(data, dict):
        raise typer.BadParameter(f"{path} must hold a JSON object of name -> version")
    versions: Dict[str, str] = {}
    for name, value in data.items():
        versions[name] = value.get("version", "") if isinstance(value, dict) else str(value)
    return Snapshot.from_versions(versions)


@app.command("diff")
def diff(
    old: Path = typer.Argument(..., exists=True, dir_okay=False, help="Snapshot JSON before the upgrade."),
    new: Path = typer.Argument(..., exists=True, dir_okay=False, help="Snapshot JSON after the upgrade."),
    manifest_path: Optional[Path] = typer.Option(
        None, "--manifest", "-m", exists=True, dir_okay=False, help="package.json used for headings."
    ),
    markdown: bool = typer.Option(False, "--markdown", help="Render the pull-request Markdown body."),
):
    """Render the report for two saved snapshots (see `bumpbot snapshot --json`)."""
    try:
        manifest = read_manifest(manifest_path) if manifest_path else Manifest(name="project", version="")
    except BumpbotError as exc:
        _fail(exc)

    engine = DiffEngine()
    before, after = _load_versions(old), _load_versions(new)
    if markdown:
        typer.echo(engine.render_markdown(manifest, before, after))
    else:
        typer.echo(engine.render_table(manifest, before, after))


@config_app.command("show")
def show_config():
    """Show the effective settings."""
    try:
        settings = load_settings()
    except BumpbotError as exc:
        _fail(exc)

    table = Table(title="bumpbot settings", show_header=False)
    table.add_column("key", style="bold")
    table.add_column("value")
    table.add_row("workspace", str(settings.workspace))
    table.add_row("execute", str(settings.execute))
    table.add_row("keep", str(settings.keep_branch))
    table.add_row("shadows", str(settings.include_transitive))
    table.add_row("token", settings.masked_token())
    table.add_row("update command", " ".join([settings.update_command, *settings.update_args]))
    table.add_row("label", settings.label)
    table.add_row("remote", settings.remote)
    table.add_row("git user", f"{settings.user_name} <{settings.user_email}>")
    table.add_row("commit message", settings.commit_message)
    table.add_row("branch prefix", settings.branch_prefix)
    table.add_row("config file", str(config.CONFIG_FILE))
    console.print(table)


@config_app.command("set")
def set_config(
    key: str = typer.Argument(..., help=f"One of: {', '.join(sorted(FILE_KEYS))}"),
    value: str = typer.Argument(..., help="New value."),
):
    """Persist a setting in the config file."""
    try:
        path = save_setting(key, value)
    except BumpbotError as exc:
        _fail(exc)
    console.print(f"[green]✓[/green] Saved {escape(key)} to {escape(str(path))}")
