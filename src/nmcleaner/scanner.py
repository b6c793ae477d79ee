"""Scanning and measuring node_modules directories."""

import logging
import os
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable

from nmcleaner.errors import EntityScanError, ScanRootError
from nmcleaner.models import ScanOutcome, ScanTarget, SearchConfig
from nmcleaner.recursive_scanner import filter_nested, find_matching_directories

logger = logging.getLogger(__name__)


def expand_path(path: str) -> Path:
    """Expand ~ and environment variables in path."""
    return Path(os.path.expanduser(os.path.expandvars(path)))


def get_directory_size(path: Path) -> int:
    """
    Sum the sizes of all regular files below a directory.

    Nested node_modules are included. Symlinks are not followed. Entries
    that cannot be read count as zero and are logged; only a failure to
    list ``path`` itself raises.

    Raises:
        OSError: If ``path`` cannot be listed
    """
    pending: list[str] = []
    with os.scandir(path) as entries:
        total = _sum_entries(entries, pending)

    # Depth-first over an explicit stack, any tree depth
    while pending:
        directory = pending.pop()
        try:
            with os.scandir(directory) as entries:
                total += _sum_entries(entries, pending)
        except OSError as e:
            logger.warning("Cannot read %s, counting it as 0 bytes: %s", directory, e)
    return total


def _sum_entries(entries, pending: list[str]) -> int:
    total = 0
    for entry in entries:
        try:
            if entry.is_dir(follow_symlinks=False):
                pending.append(entry.path)
            elif entry.is_file(follow_symlinks=False):
                total += entry.stat(follow_symlinks=False).st_size
        except OSError as e:
            logger.warning("Cannot read %s, counting it as 0 bytes: %s", entry.path, e)
    return total


def one_month_before(now: datetime) -> datetime:
    """
    Subtract one calendar month from ``now``.

    The day of month is kept and overflows into the next month when the
    previous month is shorter, so March 31 becomes March 3 (March 2 in a
    leap year) rather than the last day of February.
    """
    if now.month == 1:
        year, month = now.year - 1, 12
    else:
        year, month = now.year, now.month - 1
    return now.replace(year=year, month=month, day=1) + timedelta(days=now.day - 1)


def is_unused(last_modified: datetime, now: datetime | None = None) -> bool:
    """Whether a directory was last modified more than a calendar month ago."""
    if now is None:
        now = datetime.now()
    return last_modified < one_month_before(now)


def measure_directory(path: Path, now: datetime) -> ScanTarget:
    """
    Build a ScanTarget for one directory.

    Raises:
        EntityScanError: If the directory cannot be stat'ed or listed
    """
    try:
        stats = path.stat()
        size = get_directory_size(path)
    except OSError as e:
        raise EntityScanError(str(path), str(e)) from e

    last_modified = datetime.fromtimestamp(stats.st_mtime)
    return ScanTarget(
        path=str(path),
        size_bytes=size,
        last_modified=last_modified,
        is_unused=is_unused(last_modified, now),
    )


def scan_node_modules(
    config: SearchConfig,
    now: datetime | None = None,
    progress_callback: Callable[[str, int, int], None] | None = None,
) -> ScanOutcome:
    """
    Find, measure and classify the topmost target directories below a root.

    Results keep discovery order. A directory that cannot be measured is left
    out with a warning; an unusable root yields an outcome with ``error`` set.

    Args:
        config: Search configuration
        now: Reference time for staleness (default: current time)
        progress_callback: Optional callback(path, processed, total)

    Returns:
        ScanOutcome with the found targets
    """
    if now is None:
        now = datetime.now()

    try:
        candidates = list(find_matching_directories(config, skip_inside_match=True))
    except ScanRootError as e:
        logger.error("Cannot scan %s: %s", config.start_path, e)
        return ScanOutcome(start_path=config.start_path, error=str(e))

    paths = filter_nested(candidates, config.start_path, config.target_name)
    logger.info("Found %d %s directories under %s", len(paths), config.target_name, config.start_path)

    targets: list[ScanTarget] = []
    for i, path in enumerate(paths, start=1):
        try:
            targets.append(measure_directory(path, now))
        except EntityScanError as e:
            logger.warning("Skipping %s", e)

        if progress_callback:
            progress_callback(str(path), i, len(paths))

    return ScanOutcome(start_path=config.start_path, targets=targets)
