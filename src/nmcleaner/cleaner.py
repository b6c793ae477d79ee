"""Removal of scanned node_modules directories."""

import logging
import shutil
import threading
from datetime import datetime
from typing import Callable

from nmcleaner.backup import create_backup
from nmcleaner.errors import BackupError, RemovalError
from nmcleaner.models import (
    RemovalFailure,
    RemovalMode,
    RemovalOptions,
    RemovalResult,
    RemovalStatus,
    ScanOutcome,
    ScanTarget,
    SearchConfig,
)
from nmcleaner.scanner import scan_node_modules

logger = logging.getLogger(__name__)

SelectFn = Callable[[list[ScanTarget]], list[ScanTarget]]
ConfirmFn = Callable[[int, int], bool]
ProgressFn = Callable[[int, int, int], None]
ScanFn = Callable[..., ScanOutcome]


def delete_directory(path: str) -> None:
    """
    Remove a directory tree.

    Raises:
        RemovalError: If the tree cannot be removed
    """
    try:
        shutil.rmtree(path)
    except OSError as e:
        raise RemovalError(path, str(e)) from e


def select_targets(
    targets: list[ScanTarget],
    mode: RemovalMode,
    select: SelectFn | None = None,
) -> list[ScanTarget]:
    """
    Pick the targets a removal run acts on.

    Args:
        targets: Scanned directories
        mode: Selection strategy
        select: Chooser used in interactive mode

    Returns:
        The chosen subset, possibly empty
    """
    if mode == RemovalMode.ALL:
        return list(targets)
    if mode == RemovalMode.UNUSED:
        return [t for t in targets if t.is_unused]
    if select is None:
        raise ValueError("Interactive mode requires a select callback")
    return list(select(targets))


def remove_node_modules(
    options: RemovalOptions,
    *,
    select: SelectFn | None = None,
    confirm: ConfirmFn | None = None,
    progress_callback: ProgressFn | None = None,
    scan: ScanFn = scan_node_modules,
    now: datetime | None = None,
    cancel_event: threading.Event | None = None,
) -> RemovalResult:
    """
    Scan for node_modules directories and remove the selected ones.

    Runs scan, selection, then either a dry-run report or an optional backup
    followed by removal. One failed removal never stops the others. A failed
    backup stops the run before anything is removed.

    Args:
        options: What to scan and how to remove
        select: Interactive chooser, callback(targets) -> chosen targets
        confirm: Interactive confirmation, callback(count, total_bytes) -> bool
        progress_callback: Optional callback(current, total, bytes_freed)
            called after each removal attempt
        scan: Scanner, callback(config, now=...) -> ScanOutcome
        now: Reference time for staleness
        cancel_event: When set, no further removals are started

    Returns:
        RemovalResult describing what happened
    """
    if options.mode == RemovalMode.INTERACTIVE and select is None:
        raise ValueError("Interactive mode requires a select callback")

    config: SearchConfig = options.search_config()
    outcome = scan(config, now=now)

    if not outcome.ok:
        return RemovalResult(status=RemovalStatus.SCAN_FAILED, message=outcome.error)

    if not outcome.targets:
        return RemovalResult(
            status=RemovalStatus.NOTHING_FOUND,
            message=f"No {config.target_name} directories found",
        )

    selected = select_targets(outcome.targets, options.mode, select)
    if not selected:
        if options.mode == RemovalMode.UNUSED:
            message = "No unused directories found"
        else:
            message = "No directories selected"
        return RemovalResult(status=RemovalStatus.NOTHING_SELECTED, message=message)

    result = RemovalResult(selected=selected)

    if options.dry_run:
        result.status = RemovalStatus.DRY_RUN
        result.message = f"Dry run: {len(selected)} directories would be removed"
        return result

    if options.mode == RemovalMode.INTERACTIVE and confirm is not None:
        if not confirm(len(selected), result.selected_bytes):
            result.status = RemovalStatus.DECLINED
            result.message = "Operation cancelled"
            return result

    if options.backup:
        try:
            backup_path = create_backup(
                [t.path for t in selected],
                destination_dir=options.backup_dir,
                root=outcome.start_path if options.backup_keep_paths else None,
            )
        except BackupError as e:
            logger.error("Backup failed, nothing was removed: %s", e)
            result.status = RemovalStatus.BACKUP_FAILED
            result.message = str(e)
            return result
        result.backup_path = str(backup_path)

    total = len(selected)
    for current, target in enumerate(selected, start=1):
        if cancel_event is not None and cancel_event.is_set():
            result.status = RemovalStatus.INTERRUPTED
            break

        try:
            delete_directory(target.path)
        except RemovalError as e:
            logger.error("Failed to remove %s", e)
            result.errors.append(RemovalFailure(path=target.path, error=e.reason))
        else:
            result.removed_count += 1
            result.total_bytes_freed += target.size_bytes

        if progress_callback:
            progress_callback(current, total, result.total_bytes_freed)

    if result.status == RemovalStatus.INTERRUPTED:
        result.message = f"Interrupted after removing {result.removed_count} of {total} directories"
    else:
        result.message = f"Removed {result.removed_count} directories"
    return result
