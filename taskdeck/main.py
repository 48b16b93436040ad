#!/usr/bin/env python3
"""
Main CLI entry point for taskdeck
"""

import asyncio
import sys
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from taskdeck import __version__
from taskdeck.config.constants import ERROR_EVENT, MAX_DIFF_LINES, MESSAGE_EVENT
from taskdeck.config.settings import ConsoleSettings, get_env_info
from taskdeck.diff import RevealGate, build_file_views, split_unified_diff
from taskdeck.exceptions import ApiConnectionError, ApiNotFoundError, TaskdeckError
from taskdeck.models import CollectionSnapshot, DiffFile, LogEntry, TaskDiff
from taskdeck.services.api_client import ConsoleApiClient
from taskdeck.services.event_source import ServerSentEvent
from taskdeck.services.log_merger import merge_log_entry
from taskdeck.services.log_stream import parse_log_message
from taskdeck.ui.diff_render import render_file_views
from taskdeck.utils.log_format import format_log_entry, format_log_summary
from taskdeck.utils.logging_utils import setup_cli_logging

app = typer.Typer(
    help="taskdeck - operator console for a task-orchestration service",
    no_args_is_help=True,
)
console = Console()


def _settings(ctx: typer.Context) -> ConsoleSettings:
    api_url = (ctx.obj or {}).get("api_url")
    try:
        return ConsoleSettings.from_env(api_url=api_url)
    except TaskdeckError as e:
        _fail(e)


def _fail(error: TaskdeckError) -> None:
    console.print(f"[red]Error: {error.message}[/red]")
    raise typer.Exit(1) from error


def _client(settings: ConsoleSettings) -> ConsoleApiClient:
    return ConsoleApiClient(settings.api_url, timeout=settings.http_timeout_seconds)


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-error output"),
    api_url: Optional[str] = typer.Option(
        None, "--api-url", envvar="TASKDECK_API_URL", help="Base URL of the orchestration service"
    ),
):
    """
    taskdeck - watch tasks, stream their logs and read their diffs.

    [bold]Examples:[/bold]

    Open the console:
        [cyan]taskdeck tui[/cyan]

    Follow a running task:
        [cyan]taskdeck watch 3f2a9c[/cyan]

    Review local changes:
        [cyan]git diff | taskdeck diff[/cyan]
    """
    if verbose and quiet:
        typer.echo("Error: --verbose and --quiet are mutually exclusive", err=True)
        raise typer.Exit(1)

    setup_cli_logging(verbose=verbose, quiet=quiet)
    ctx.obj = {"api_url": api_url, "verbose": verbose}


@app.command()
def version():
    """Show taskdeck version"""
    typer.echo(f"taskdeck version {__version__}")


@app.command("env")
def env_info():
    """Show taskdeck environment variables and their current values."""
    table = Table(title="Environment")
    table.add_column("Variable", style="cyan")
    table.add_column("Value")
    table.add_column("Default", style="dim")
    table.add_column("Description")
    invalid = False
    for name, info in get_env_info().items():
        if info["is_set"]:
            value = escape(info["value"]) if info["valid"] else f"[red]{escape(info['value'])} (invalid)[/red]"
        else:
            value = "[dim]unset[/dim]"
        invalid = invalid or not info["valid"]
        table.add_row(name, value, str(info["default"] or ""), info["description"])
    console.print(table)
    if invalid:
        raise typer.Exit(1)


@app.command()
def tui(
    ctx: typer.Context,
    no_poll: bool = typer.Option(False, "--no-poll", help="Rely on push updates only"),
):
    """Launch the interactive console."""
    from taskdeck.services.console_session import ConsoleSession
    from taskdeck.ui.app import TaskDeckApp
    from taskdeck.utils.logging_utils import setup_tui_logging

    settings = _settings(ctx)
    log_file = setup_tui_logging(verbose=(ctx.obj or {}).get("verbose", False))
    session = ConsoleSession(settings, polling=not no_poll)
    try:
        TaskDeckApp(session).run()
    except KeyboardInterrupt:
        pass
    except Exception as e:
        console.print(f"❌ Error: {e}", style="red")
        console.print(f"[dim]See {log_file}[/dim]")
        raise typer.Exit(1) from e


# ── snapshot ──────────────────────────────────────────────────────────


async def _fetch_snapshot(settings: ConsoleSettings) -> CollectionSnapshot:
    async with _client(settings) as client:
        return await client.fetch_snapshot()


def _snapshot_json(snapshot: CollectionSnapshot) -> dict:
    return {
        "envs": [env.raw for env in snapshot.environments],
        "tasks": [task.raw for task in snapshot.tasks],
        "accounts": {
            "accounts": list(snapshot.accounts.accounts),
            "activeAccountId": snapshot.accounts.active_account_id,
        },
    }


def _print_snapshot(snapshot: CollectionSnapshot) -> None:
    envs = Table(title="Environments")
    envs.add_column("ID", style="cyan")
    envs.add_column("Repository")
    envs.add_column("Branch")
    for env in snapshot.environments:
        envs.add_row(env.env_id, env.repo_url, env.default_branch)
    console.print(envs)

    tasks = Table(title="Tasks")
    tasks.add_column("ID", style="cyan")
    tasks.add_column("Status")
    tasks.add_column("Environment")
    tasks.add_column("Branch")
    tasks.add_column("Runs", justify="right")
    for task in snapshot.tasks:
        tasks.add_row(task.task_id, task.status.value, task.env_id, task.branch_name, str(len(task.runs)))
    console.print(tasks)

    accounts = Table(title="Accounts")
    accounts.add_column("ID", style="cyan")
    accounts.add_column("Label")
    accounts.add_column("Active")
    for account in snapshot.accounts.accounts:
        account_id = str(account.get("id", ""))
        active = "✓" if account_id == snapshot.accounts.active_account_id else ""
        accounts.add_row(account_id, str(account.get("label", "")), active)
    console.print(accounts)


@app.command()
def snapshot(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", help="Print raw JSON"),
):
    """Fetch environments, tasks and accounts once and print them."""
    settings = _settings(ctx)
    try:
        result = asyncio.run(_fetch_snapshot(settings))
    except TaskdeckError as e:
        _fail(e)

    if json_output:
        console.print_json(data=_snapshot_json(result))
    else:
        _print_snapshot(result)


# ── watch ─────────────────────────────────────────────────────────────


def _print_entry(entry: LogEntry) -> None:
    console.print(f"[dim]{escape(format_log_summary(entry))}[/dim]")
    body = format_log_entry(entry)
    if body:
        console.print(body, markup=False, highlight=False)


class _EntryPrinter:
    """Prints streamed entries of one run, each id at most once."""

    def __init__(self, run_id: str, entries=()):
        self.run_id = run_id
        self.entries = tuple(entries)

    def on_message(self, event: ServerSentEvent) -> None:
        parsed = parse_log_message(event.data)
        if parsed is None or parsed[0] != self.run_id:
            return
        merged = merge_log_entry(self.entries, parsed[1])
        if merged is not self.entries:
            self.entries = merged
            _print_entry(parsed[1])


async def _watch(settings: ConsoleSettings, task_id: str) -> None:
    async with _client(settings) as client:
        detail = await client.get_task(task_id)
        run_id = detail.latest_run_id
        if not run_id:
            console.print(f"[yellow]Task {task_id} has no runs yet[/yellow]")
            return

        run_log = detail.find_run_log(run_id)
        printer = _EntryPrinter(run_id, run_log.entries if run_log else ())
        for entry in printer.entries:
            _print_entry(entry)
        if not detail.task.is_active:
            console.print(f"[dim]Task {task_id} is {detail.status.value}[/dim]")
            return

        source = client.log_events(task_id, run_id)
        source.add_event_listener(MESSAGE_EVENT, printer.on_message)
        source.add_event_listener(
            ERROR_EVENT, lambda error: console.print(f"[dim]Stream interrupted: {error}[/dim]")
        )
        source.open()
        try:
            while True:
                await asyncio.sleep(settings.poll_interval_seconds)
                try:
                    detail = await client.get_task(task_id)
                except ApiConnectionError:
                    continue
                if not detail.task.is_active or detail.latest_run_id != run_id:
                    break
        finally:
            await source.aclose()
        console.print(f"[dim]Task {task_id} is {detail.status.value}[/dim]")


@app.command()
def watch(
    ctx: typer.Context,
    task_id: str = typer.Argument(..., help="Task to follow"),
):
    """Print the latest run's log entries as they stream in."""
    settings = _settings(ctx)
    try:
        asyncio.run(_watch(settings, task_id))
    except KeyboardInterrupt:
        pass
    except ApiNotFoundError as e:
        console.print(f"[red]Error: Task {task_id} not found[/red]")
        raise typer.Exit(1) from e
    except TaskdeckError as e:
        _fail(e)


# ── diff ──────────────────────────────────────────────────────────────


def _read_diff_text(file: Optional[Path], repo: Optional[Path], base: Optional[str]) -> str:
    if repo is not None or base is not None:
        from taskdeck.utils.git import read_worktree_diff

        return read_worktree_diff(repo, base)
    if file is not None and str(file) != "-":
        return file.read_text(encoding="utf-8", errors="replace")
    if sys.stdin.isatty():
        raise typer.BadParameter("Pass a diff file, pipe one on stdin, or use --repo")
    return sys.stdin.read()


def _diff_files(text: str, source_name: str, max_lines: int) -> List[DiffFile]:
    files = split_unified_diff(text, max_lines=max_lines)
    if files or not text.strip():
        return files
    # A single-file diff without a git header
    stripped = text.rstrip()
    line_count = len(stripped.split("\n"))
    return [DiffFile(path=source_name, line_count=line_count, text=text, too_large=line_count > max_lines)]


@app.command()
def diff(
    file: Optional[Path] = typer.Argument(None, help="Diff file to read ('-' or omitted for stdin)"),
    repo: Optional[Path] = typer.Option(None, "--repo", help="Read the diff from this git worktree"),
    base: Optional[str] = typer.Option(None, "--base", help="Diff HEAD against this commit (base...HEAD)"),
    reveal: Optional[List[str]] = typer.Option(None, "--reveal", help="Render this large file anyway (repeatable)"),
    show_all: bool = typer.Option(False, "--all", help="Render every large file"),
    max_lines: int = typer.Option(MAX_DIFF_LINES, "--max-lines", help="Withhold files longer than this"),
):
    """Render a unified diff with line numbers and change stats."""
    try:
        text = _read_diff_text(file, repo, base)
    except OSError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from e
    except TaskdeckError as e:
        _fail(e)

    source_name = file.name if file is not None and str(file) != "-" else "stdin"
    files = _diff_files(text, source_name, max_lines)
    if not files:
        console.print("[dim]No changes[/dim]")
        return

    gate = RevealGate(reveal or ())
    if show_all:
        for diff_file in files:
            gate.reveal(diff_file.path)
    views = build_file_views(TaskDiff(available=True, files=tuple(files)), gate)

    for line in render_file_views(views):
        console.print(line, highlight=False)

    shown = [view.stats for view in views if view.stats is not None]
    withheld = len(views) - len(shown)
    summary = (
        f"{len(views)} files changed, "
        f"[green]+{sum(s.additions for s in shown)}[/green] "
        f"[red]-{sum(s.deletions for s in shown)}[/red]"
    )
    if withheld:
        summary += f" ([yellow]{withheld} withheld[/yellow], use --reveal PATH or --all)"
    console.print()
    console.print(summary)


def run():
    """Entry point for the CLI"""
    app()


if __name__ == "__main__":
    run()
