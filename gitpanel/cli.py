"""CLI entry point for GitPanel."""

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from gitpanel import __version__
from gitpanel.commands.actions import CommandResult
from gitpanel.config import get_settings, load_settings
from gitpanel.errors import ConfigurationError
from gitpanel.extension import GitExtension
from gitpanel.git.diff import DiffContext
from gitpanel.git.sequencer import Outcome, OutcomeStatus
from gitpanel.git.status import FileStatusCategory, FileStatusEntry
from gitpanel.ui.credentials import ConsoleConfirm, ConsoleCredentialPrompt, ConsoleTextPrompt
from gitpanel.ui.status_bar import render_status_bar
from gitpanel.utils.logging import setup_logging

app = typer.Typer(
    name="gitpanel",
    help="Git panel - stage, diff, discard and sync a repository through the Git backend service",
    add_completion=True,
    no_args_is_help=True,
)

console = Console()

CATEGORY_STYLES = {
    FileStatusCategory.UNTRACKED: "red",
    FileStatusCategory.STAGED: "green",
    FileStatusCategory.UNSTAGED: "yellow",
    FileStatusCategory.PARTIALLY_STAGED: "cyan",
}


class _State:
    path: Path = Path.cwd()
    assume_yes: bool = False


state = _State()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]GitPanel[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    path: Path = typer.Option(
        Path("."),
        "--path",
        "-p",
        help="Directory inside the repository to work on",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output",
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Do not ask for confirmation",
    ),
    version: bool = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """GitPanel - git operations through a local Git backend service."""
    setup_logging(verbose=verbose)
    try:
        load_settings(config_path=config, force_reload=config is not None)
    except ConfigurationError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)
    state.path = path.resolve()
    state.assume_yes = yes


def _print_diff_view(context: DiffContext) -> DiffContext:
    console.print(
        f"[bold]{context.file_path}[/bold]: "
        f"[dim]{context.previous_ref.value}[/dim] -> [cyan]{context.current_ref.value}[/cyan]"
    )
    return context


@asynccontextmanager
async def _extension(require_repository: bool = True) -> AsyncIterator[GitExtension]:
    """Activated extension bound to the --path directory."""
    ext = GitExtension.from_settings(
        get_settings(),
        credential_prompt=ConsoleCredentialPrompt(console),
        create_diff_view=_print_diff_view,
        activate_view=lambda view: None,
        confirm=ConsoleConfirm(console, assume_yes=state.assume_yes),
        ask_text=ConsoleTextPrompt(),
    )
    try:
        await ext.activate(state.path)
        if require_repository and not ext.tracker.is_bound:
            console.print(f"[red]Not a git repository (or backend unreachable): {state.path}[/red]")
            raise typer.Exit(1)
        yield ext
    finally:
        await ext.dispose()


def _select(ext: GitExtension, paths: list[str]) -> list[FileStatusEntry]:
    """Status entries for the given paths; unknown paths are reported."""
    by_path = {entry.path: entry for entry in ext.tracker.files}
    selected = []
    for path in paths:
        entry = by_path.get(path)
        if entry is None:
            console.print(f"[yellow]No changes for {path}[/yellow]")
            continue
        selected.append(entry)
    return selected


def _report(result: CommandResult, verb: str) -> None:
    if result.cancelled:
        console.print("[dim]Cancelled.[/dim]")
    for error in result.errors:
        console.print(f"[red]{error.message}[/red]")
    if result.paths:
        console.print(f"[green]{verb}:[/green] {', '.join(result.paths)}")
    if result.errors:
        raise typer.Exit(1)


def _report_outcome(outcome: Outcome) -> None:
    title = outcome.operation.title
    if outcome.status == OutcomeStatus.SUCCEEDED:
        body = outcome.message or "Done"
        console.print(Panel(body, title=title, border_style="green"))
    elif outcome.status == OutcomeStatus.CANCELLED:
        console.print(Panel("Cancelled", title=title, border_style="yellow"))
    else:
        console.print(Panel(outcome.message, title=f"{title} failed", border_style="red"))
        raise typer.Exit(1)


@app.command()
def status() -> None:
    """Show the branch and changed files."""
    asyncio.run(_status())


async def _status() -> None:
    async with _extension() as ext:
        tracker = ext.tracker
        console.print(f"[bold]{tracker.root_path}[/bold]")
        console.print(render_status_bar(ext.branch_item, ext.progress_item))

        if not tracker.files:
            console.print("[dim]Nothing to commit, working tree clean[/dim]")
            return

        table = Table()
        table.add_column("XY", no_wrap=True)
        table.add_column("File")
        table.add_column("Status")
        for entry in tracker.files:
            style = CATEGORY_STYLES[entry.category]
            table.add_row(f"{entry.x}{entry.y}", entry.path, f"[{style}]{entry.category.value}[/{style}]")
        console.print(table)


@app.command()
def diff(
    files: list[str] = typer.Argument(..., help="Repository-relative files to diff"),
) -> None:
    """Show which revisions are compared for each file."""
    asyncio.run(_diff(files))


async def _diff(files: list[str]) -> None:
    async with _extension() as ext:
        _report(ext.actions.diff(_select(ext, files)), "Diffed")


@app.command()
def add(files: list[str] = typer.Argument(..., help="Files to stage or track")) -> None:
    """Stage the changes of files, or start tracking them."""
    asyncio.run(_add(files))


async def _add(files: list[str]) -> None:
    async with _extension() as ext:
        _report(await ext.actions.add(_select(ext, files)), "Staged")


@app.command()
def unstage(files: list[str] = typer.Argument(..., help="Files to unstage")) -> None:
    """Unstage the changes of files."""
    asyncio.run(_unstage(files))


async def _unstage(files: list[str]) -> None:
    async with _extension() as ext:
        _report(await ext.actions.unstage(_select(ext, files)), "Unstaged")


@app.command()
def discard(files: list[str] = typer.Argument(..., help="Files to discard")) -> None:
    """Permanently discard the changes of files."""
    asyncio.run(_discard(files))


async def _discard(files: list[str]) -> None:
    async with _extension() as ext:
        _report(await ext.actions.discard(_select(ext, files)), "Discarded")


@app.command()
def ignore(
    files: list[str] = typer.Argument(..., help="Files to ignore"),
    extension: bool = typer.Option(False, "--extension", "-e", help="Ignore the file's extension"),
) -> None:
    """Add files (or a file's extension) to .gitignore."""
    asyncio.run(_ignore(files, extension))


async def _ignore(files: list[str], extension: bool) -> None:
    async with _extension() as ext:
        selected = _select(ext, files)
        if extension:
            if len(selected) != 1 or not selected[0].extension:
                console.print("[red]--extension needs exactly one file with an extension[/red]")
                raise typer.Exit(1)
            result = await ext.actions.ignore_extension(selected[0])
        else:
            result = await ext.actions.ignore(selected)
        _report(result, "Ignored")


@app.command()
def push() -> None:
    """Push to the remote, asking for credentials if needed."""
    asyncio.run(_remote("push"))


@app.command()
def pull() -> None:
    """Pull from the remote, asking for credentials if needed."""
    asyncio.run(_remote("pull"))


async def _remote(operation: str) -> None:
    async with _extension() as ext:
        action = ext.actions.push if operation == "push" else ext.actions.pull
        with console.status(f"Git {operation.capitalize()}..."):
            result = await action()
        if result.value is None:
            _report(result, operation)
            return
        _report_outcome(result.value)


@app.command()
def init() -> None:
    """Initialize a repository in --path."""
    asyncio.run(_init())


async def _init() -> None:
    async with _extension(require_repository=False) as ext:
        if ext.tracker.is_bound:
            console.print(f"[yellow]Already inside a repository: {ext.tracker.root_path}[/yellow]")
            return
        _report(await ext.actions.init(state.path), "Initialized")


@app.command()
def clone(url: str = typer.Argument(..., help="Repository URL")) -> None:
    """Clone a repository into --path."""
    asyncio.run(_clone(url))


async def _clone(url: str) -> None:
    async with _extension(require_repository=False) as ext:
        _report(await ext.actions.clone(url, state.path), "Cloned into")


@app.command("remote-add")
def remote_add(
    url: str = typer.Argument(..., help="Remote repository URL"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Remote name"),
) -> None:
    """Add a remote repository."""
    asyncio.run(_remote_add(url, name))


async def _remote_add(url: str, name: Optional[str]) -> None:
    async with _extension() as ext:
        result = await ext.actions.add_remote(url, name)
        _report(result, "Added remote")
        if result.ok:
            console.print(f"[green]Remote added:[/green] {name or 'origin'} {url}")


@app.command()
def config() -> None:
    """Show current configuration."""
    settings = get_settings()

    console.print(Panel("[bold]Current Configuration[/bold]", border_style="blue"))

    console.print("\n[bold]Backend:[/bold]")
    console.print(f"  URL:     {settings.backend.base_url}")
    console.print(f"  Token:   {'✓ Set' if settings.backend.token else '✗ Not set'}")
    console.print(f"  Timeout: {settings.backend.timeout}s")

    console.print("\n[bold]Staging:[/bold]")
    console.print(f"  Simple staging: {settings.staging.simple_staging}")

    console.print("\n[bold]Diff:[/bold]")
    console.print(f"  Double click opens diff: {settings.diff.double_click_diff}")
    console.print(f"  Supported extensions: {', '.join(settings.diff.supported_extensions)}")

    attempts = settings.remote.max_credential_attempts
    console.print("\n[bold]Remote:[/bold]")
    console.print(f"  Credential attempts: {attempts if attempts is not None else 'unlimited'}")


if __name__ == "__main__":
    app()
