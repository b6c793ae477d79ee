"""Rich terminal display for nmcleaner."""

import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.prompt import Confirm, Prompt
from rich.table import Table
from rich.tree import Tree

from nmcleaner.models import RemovalResult, RemovalStatus, ScanOutcome, ScanTarget

console = Console()

MB = 1024**2
GB = 1024**3

SIZE_UNITS = ["B", "KB", "MB", "GB"]

# (label, color, lower bound in bytes), largest first
SIZE_GROUPS = [
    ("Very large (>1GB)", "red", GB),
    ("Large (100MB-1GB)", "yellow", 100 * MB),
    ("Medium (10MB-100MB)", "blue", 10 * MB),
    ("Small (<10MB)", "green", 0),
]


def configure_logging(verbose: bool = False) -> None:
    """Route log records through the shared rich console."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)],
        force=True,
    )


def format_size(size_bytes: int) -> str:
    """Format bytes to human-readable string (binary units, two decimals)."""
    size = float(size_bytes)
    unit = 0
    while size >= 1024 and unit < len(SIZE_UNITS) - 1:
        size /= 1024
        unit += 1
    return f"{size:.2f} {SIZE_UNITS[unit]}"


def size_group(size_bytes: int) -> tuple[str, str]:
    """Get (label, color) of the size band a directory falls into."""
    for label, color, lower in SIZE_GROUPS:
        if size_bytes >= lower:
            return label, color
    return SIZE_GROUPS[-1][0], SIZE_GROUPS[-1][1]


def status_label(target: ScanTarget) -> str:
    """Get styled used/unused label."""
    return "[yellow]Unused[/yellow]" if target.is_unused else "[green]Active[/green]"


def group_by_size(targets: list[ScanTarget]) -> dict[str, list[ScanTarget]]:
    """Group targets into size bands, each sorted largest first."""
    groups: dict[str, list[ScanTarget]] = {label: [] for label, _, _ in SIZE_GROUPS}
    for target in targets:
        label, _ = size_group(target.size_bytes)
        groups[label].append(target)
    for items in groups.values():
        items.sort(key=lambda t: t.size_bytes, reverse=True)
    return groups


def show_targets(targets: list[ScanTarget], title: str = "node_modules") -> None:
    """Display targets as a tree grouped by size."""
    total = sum(t.size_bytes for t in targets)
    unused = sum(1 for t in targets if t.is_unused)

    console.print(f"[bold]Found {len(targets)} directories[/bold]")
    console.print(f"[bold]Total size: {format_size(total)}[/bold] (unused: {unused})\n")

    tree = Tree(f"[bold]{title}[/bold]")
    colors = {label: color for label, color, _ in SIZE_GROUPS}
    for label, items in group_by_size(targets).items():
        if not items:
            continue
        color = colors[label]
        group_size = sum(t.size_bytes for t in items)
        branch = tree.add(
            f"[{color}]{label}[/{color}] ({len(items)}, {format_size(group_size)})"
        )
        for target in items:
            node = branch.add(f"[{color}]{target.path}[/{color}]")
            node.add(f"[dim]Size: {format_size(target.size_bytes)}[/dim]")
            node.add(f"[dim]Last modified: {target.last_modified:%Y-%m-%d}[/dim]")
            node.add(f"Status: {status_label(target)}")

    console.print(tree)


def show_scan_outcome(outcome: ScanOutcome) -> None:
    """Display a scan outcome, telling a failed scan apart from an empty one."""
    if not outcome.ok:
        console.print(f"[red]Scan failed: {outcome.error}[/red]")
    elif not outcome.targets:
        console.print("[yellow]No node_modules directories found[/yellow]")
    else:
        show_targets(outcome.targets)


def make_progress() -> Progress:
    """Create a transient progress bar on the shared console."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )


class RemovalProgressBar:
    """Progress bar fed by the removal progress callback.

    The bar is only started on the first update so it never overlaps the
    interactive prompts that precede removal.
    """

    def __init__(self) -> None:
        self.progress: Progress | None = None
        self.task = None

    def __call__(self, current: int, total: int, bytes_freed: int) -> None:
        if self.progress is None:
            self.progress = make_progress()
            self.progress.start()
            self.task = self.progress.add_task("Removing directories", total=total)
        self.progress.update(
            self.task,
            completed=current,
            description=f"Removing directories ({format_size(bytes_freed)} freed)",
        )

    def __enter__(self) -> "RemovalProgressBar":
        return self

    def __exit__(self, *exc_info) -> None:
        if self.progress is not None:
            self.progress.stop()


def show_selection_table(targets: list[ScanTarget]) -> None:
    """Display numbered targets for interactive selection."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Path")
    table.add_column("Size", justify="right")
    table.add_column("Last modified")
    table.add_column("Status")

    for i, target in enumerate(targets, start=1):
        table.add_row(
            str(i),
            target.path,
            format_size(target.size_bytes),
            f"{target.last_modified:%Y-%m-%d}",
            status_label(target),
        )

    console.print(table)


def parse_selection(answer: str, count: int) -> list[int]:
    """
    Parse a selection like ``1,3 5-7`` into zero-based indices.

    ``all`` selects everything, ``none`` or an empty answer nothing.

    Raises:
        ValueError: If the answer contains something other than numbers and ranges
    """
    answer = answer.strip().lower()
    if answer == "all":
        return list(range(count))
    if answer in ("", "none"):
        return []

    indices: set[int] = set()
    for token in answer.replace(",", " ").split():
        if "-" in token:
            start_str, end_str = token.split("-", 1)
            start, end = int(start_str), int(end_str)
            if start > end:
                raise ValueError(f"Invalid range: {token}")
            numbers = range(start, end + 1)
        else:
            numbers = range(int(token), int(token) + 1)
        for number in numbers:
            if not 1 <= number <= count:
                raise ValueError(f"No directory numbered {number}")
            indices.add(number - 1)

    return sorted(indices)


def choose_targets(targets: list[ScanTarget]) -> list[ScanTarget]:
    """Let the user pick targets; unused ones are pre-selected."""
    show_selection_table(targets)

    preselected = [str(i) for i, t in enumerate(targets, start=1) if t.is_unused]
    default = ",".join(preselected) if preselected else "none"

    while True:
        answer = Prompt.ask(
            "Select directories to remove (numbers, ranges, 'all' or 'none')",
            default=default,
            console=console,
        )
        try:
            indices = parse_selection(answer, len(targets))
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            continue
        return [targets[i] for i in indices]


def confirm_removal(count: int, total_bytes: int) -> bool:
    """Ask the user to confirm removing the selection."""
    return Confirm.ask(
        f"Remove {count} directories ({format_size(total_bytes)})?",
        default=False,
        console=console,
    )


def show_removal_result(result: RemovalResult) -> None:
    """Display the outcome of a removal run."""
    if result.status == RemovalStatus.DRY_RUN:
        console.print(f"[blue]{result.message}[/blue]\n")
        show_targets(result.selected)
        return

    if result.status == RemovalStatus.SCAN_FAILED:
        console.print(f"[red]Scan failed: {result.message}[/red]")
        return

    if result.status == RemovalStatus.BACKUP_FAILED:
        console.print(f"[red]Backup failed, nothing was removed: {result.message}[/red]")
        return

    if result.status in (
        RemovalStatus.NOTHING_FOUND,
        RemovalStatus.NOTHING_SELECTED,
        RemovalStatus.DECLINED,
    ):
        console.print(f"[yellow]{result.message}[/yellow]")
        return

    if result.status == RemovalStatus.INTERRUPTED:
        console.print(f"[yellow]{result.message}[/yellow]")

    color = "yellow" if result.has_errors else "green"
    console.print(f"[bold {color}]Removed {result.removed_count} directories[/bold {color}]")
    console.print(f"Freed: {format_size(result.total_bytes_freed)}")

    if result.backup_path:
        console.print(f"Backup: {result.backup_path}")

    if result.errors:
        console.print("\n[red]Some directories could not be removed:[/red]")
        for failure in result.errors:
            console.print(f"  {failure.path}: {failure.error}")
