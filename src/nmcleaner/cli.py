"""CLI interface for nmcleaner."""

from datetime import datetime
from pathlib import Path
from typing import Optional

import typer

from nmcleaner import __version__
from nmcleaner.cleaner import remove_node_modules
from nmcleaner.config import (
    add_exclude,
    load_settings,
    remove_exclude,
    reset_settings,
    set_max_depth,
)
from nmcleaner.display import (
    RemovalProgressBar,
    choose_targets,
    configure_logging,
    confirm_removal,
    console,
    make_progress,
    show_removal_result,
    show_scan_outcome,
)
from nmcleaner.models import DEFAULT_EXCLUDES, RemovalMode, ScanOutcome, SearchConfig
from nmcleaner.scanner import scan_node_modules

app = typer.Typer(
    name="nmcleaner",
    help="Find and remove node_modules directories",
    add_completion=False,
)
config_app = typer.Typer(help="Show or change settings")
app.add_typer(config_app, name="config")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"nmcleaner version {__version__}")
        raise typer.Exit()


def _scan_with_status(config: SearchConfig, now: Optional[datetime] = None) -> ScanOutcome:
    with console.status(f"Scanning {config.start_path}..."):
        return scan_node_modules(config, now=now)


def _run_removal(
    path: str,
    mode: RemovalMode,
    dry_run: bool,
    backup: bool,
    depth: Optional[int],
    keep_paths: bool,
) -> None:
    settings = load_settings()
    options = settings.removal_options(
        path,
        mode=mode,
        dry_run=dry_run,
        backup=backup,
        max_depth=depth,
        backup_keep_paths=keep_paths,
    )

    if dry_run:
        console.print("[yellow]DRY RUN - nothing will be deleted[/yellow]\n")

    with RemovalProgressBar() as progress_bar:
        result = remove_node_modules(
            options,
            select=choose_targets,
            confirm=confirm_removal,
            progress_callback=progress_bar,
            scan=_scan_with_status,
        )

    console.print()
    show_removal_result(result)
    raise typer.Exit(result.exit_code)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logging."),
) -> None:
    """nmcleaner - find and remove node_modules directories."""
    configure_logging(verbose)

    # Without a command, interactively clean the home directory
    if ctx.invoked_subcommand is None:
        _run_removal(
            str(Path.home()),
            RemovalMode.INTERACTIVE,
            dry_run=False,
            backup=False,
            depth=None,
            keep_paths=False,
        )


@app.command(name="list")
def list_directories(
    path: str = typer.Option(str(Path.home()), "--path", "-p", help="Directory to search"),
    depth: Optional[int] = typer.Option(
        None, "--depth", "-d", min=-1, help="Maximum search depth (-1 for unbounded)"
    ),
) -> None:
    """Show all node_modules directories below a path."""
    settings = load_settings()
    options = settings.removal_options(path, max_depth=depth)
    config = options.search_config()

    with make_progress() as progress:
        task = progress.add_task(f"Scanning {config.start_path}...", total=None)

        def update_progress(found: str, current: int, total: int):
            progress.update(task, completed=current, total=total, description="Measuring directories...")

        outcome = scan_node_modules(config, progress_callback=update_progress)

    show_scan_outcome(outcome)
    if not outcome.ok:
        raise typer.Exit(2)


@app.command(name="rm")
def remove(
    path: str = typer.Option(str(Path.home()), "--path", "-p", help="Directory to search"),
    mode: RemovalMode = typer.Option(
        RemovalMode.INTERACTIVE,
        "--mode",
        "-m",
        case_sensitive=False,
        help="all - every directory, unused - untouched for a month, interactive - choose",
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be removed"),
    backup: bool = typer.Option(False, "--backup", help="Zip the directories before removing them"),
    depth: Optional[int] = typer.Option(
        None, "--depth", "-d", min=-1, help="Maximum search depth (-1 for unbounded)"
    ),
    keep_paths: bool = typer.Option(
        False,
        "--keep-paths",
        help="Name backup entries by relative path instead of directory name",
    ),
) -> None:
    """Remove node_modules directories."""
    _run_removal(path, mode, dry_run, backup, depth, keep_paths)


@config_app.command("show")
def config_show() -> None:
    """Show current settings."""
    settings = load_settings()

    console.print("[bold]Settings[/bold]\n")
    console.print(f"  Target name: {settings.target_name}")
    depth = "unbounded" if settings.max_depth == -1 else str(settings.max_depth)
    console.print(f"  Max depth:   {depth}")
    console.print(f"  Backup dir:  {settings.backup_dir or 'current directory'}")

    console.print("\n[bold]Built-in exclusions:[/bold]")
    for pattern in DEFAULT_EXCLUDES:
        console.print(f"  • {pattern}")

    if settings.exclude:
        console.print("\n[bold]Your exclusions:[/bold]")
        for pattern in settings.exclude:
            console.print(f"  • {pattern}")


@config_app.command("add-exclude")
def config_add_exclude(
    pattern: str = typer.Argument(..., help="Glob relative to the scan root, e.g. '**/work/**'"),
) -> None:
    """Exclude paths matching a glob."""
    result = add_exclude(pattern)
    if not result["success"]:
        console.print(f"[red]{result['error']}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Excluding {pattern}[/green]")


@config_app.command("remove-exclude")
def config_remove_exclude(
    pattern: str = typer.Argument(..., help="Previously added glob"),
) -> None:
    """Stop excluding a glob."""
    result = remove_exclude(pattern)
    if not result["success"]:
        console.print(f"[red]{result['error']}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]No longer excluding {pattern}[/green]")


@config_app.command("set-depth")
def config_set_depth(
    depth: int = typer.Argument(..., help="Default search depth (-1 for unbounded)"),
) -> None:
    """Set the default search depth."""
    result = set_max_depth(depth)
    if not result["success"]:
        console.print(f"[red]{result['error']}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Default depth set to {depth}[/green]")


@config_app.command("reset")
def config_reset() -> None:
    """Restore default settings."""
    result = reset_settings()
    if not result["success"]:
        console.print(f"[red]{result['error']}[/red]")
        raise typer.Exit(1)
    console.print("[green]Settings reset[/green]")


if __name__ == "__main__":
    app()
