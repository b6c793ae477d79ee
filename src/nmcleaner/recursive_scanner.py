"""Recursive discovery of node_modules directories.

Finds every directory with the target name below a scan root, honouring a
depth limit and a list of exclusion globs, and reduces the matches to the
topmost ones.
"""

import logging
import os
import re
from pathlib import Path
from typing import Generator, Iterable, Iterator

from nmcleaner.errors import ScanRootError
from nmcleaner.models import SearchConfig

logger = logging.getLogger(__name__)


def compile_exclude_pattern(pattern: str) -> re.Pattern[str]:
    """
    Translate a glob into a regex matched against '/'-separated relative paths.

    ``**/`` matches zero or more leading directories, a trailing ``/**``
    matches everything below, ``*`` and ``?`` never cross a ``/``.
    """
    parts: list[str] = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**/", i):
            parts.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("/**", i) and i + 3 == len(pattern):
            parts.append("(?:/.*)?")
            i += 3
        elif pattern.startswith("**", i):
            parts.append(".*")
            i += 2
        elif pattern[i] == "*":
            parts.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            parts.append("[^/]")
            i += 1
        else:
            parts.append(re.escape(pattern[i]))
            i += 1
    return re.compile("".join(parts), re.DOTALL)


class ExcludeMatcher:
    """Compiled exclusion globs for one scan."""

    def __init__(self, patterns: Iterable[str]) -> None:
        self.patterns = list(patterns)
        self._full = [compile_exclude_pattern(p) for p in self.patterns]
        # "dir/**" patterns exclude a whole subtree, so traversal can stop there
        self._subtree = [
            compile_exclude_pattern(p[:-3]) for p in self.patterns if p.endswith("/**") and len(p) > 3
        ]

    def is_excluded(self, rel_path: str) -> bool:
        """Whether a candidate path (relative to the scan root) is denied."""
        return any(regex.fullmatch(rel_path) for regex in self._full)

    def prunes(self, rel_dir: str) -> bool:
        """Whether nothing below this directory can survive the exclusions."""
        return any(regex.fullmatch(rel_dir) for regex in self._subtree)


def is_excluded(rel_path: str, patterns: Iterable[str]) -> bool:
    """Check a relative path against a list of exclusion globs."""
    return ExcludeMatcher(patterns).is_excluded(rel_path)


def find_matching_directories(
    config: SearchConfig,
    skip_inside_match: bool = False,
) -> Generator[Path, None, None]:
    """
    Find directories named ``config.target_name`` below ``config.start_path``.

    A match may sit below at most ``config.max_depth`` intermediate
    directories (unbounded when -1). Symlinks are never followed. Candidates
    matching an exclusion glob are dropped.

    Args:
        config: Search configuration
        skip_inside_match: If True, don't descend into matched directories

    Yields:
        Absolute paths of matching directories, in discovery order

    Raises:
        ScanRootError: If the start path is missing, not a directory or unreadable
    """
    root = Path(config.start_path)
    if not root.exists():
        raise ScanRootError(f"Path does not exist: {root}")
    if not root.is_dir():
        raise ScanRootError(f"Not a directory: {root}")

    try:
        root_entries = _list_directories(root)
    except OSError as e:
        raise ScanRootError(f"Cannot read {root}: {e}") from e

    excludes = ExcludeMatcher(config.exclude)
    yield from _walk(root_entries, config, excludes, skip_inside_match)


def _list_directories(path: Path) -> list[os.DirEntry]:
    with os.scandir(path) as entries:
        dirs = [entry for entry in entries if _is_real_dir(entry)]
    return sorted(dirs, key=lambda entry: entry.name)


def _is_real_dir(entry: os.DirEntry) -> bool:
    try:
        return entry.is_dir(follow_symlinks=False)
    except OSError:
        return False


def _walk(
    root_entries: list[os.DirEntry],
    config: SearchConfig,
    excludes: ExcludeMatcher,
    skip_inside_match: bool,
) -> Generator[Path, None, None]:
    # One (entries, rel_dir, depth) frame per open directory, so matches come
    # out in sorted pre-order at any tree depth
    stack: list[tuple[Iterator[os.DirEntry], str, int]] = [(iter(root_entries), "", 0)]

    while stack:
        entries, rel_dir, depth = stack[-1]
        entry = next(entries, None)
        if entry is None:
            stack.pop()
            continue

        rel_path = f"{rel_dir}/{entry.name}" if rel_dir else entry.name
        entry_path = Path(entry.path)

        if entry.name == config.target_name:
            if excludes.is_excluded(rel_path):
                logger.debug("Excluded %s", entry_path)
            else:
                yield entry_path
            if skip_inside_match:
                continue

        can_descend = config.max_depth == -1 or depth + 1 <= config.max_depth
        if not can_descend or excludes.prunes(rel_path):
            continue

        try:
            children = _list_directories(entry_path)
        except OSError as e:
            # Unreadable subdirectories are skipped, not fatal
            logger.debug("Skipping %s: %s", entry_path, e)
            continue

        stack.append((iter(children), rel_path, depth + 1))


def filter_nested(
    paths: Iterable[Path | str],
    start_path: Path | str,
    target_name: str,
) -> list[Path]:
    """
    Keep only topmost matches.

    A path is kept when its part below ``start_path`` contains the target
    name exactly once; anything deeper lives inside another match and goes
    away together with it.
    """
    root = Path(start_path)
    kept: list[Path] = []

    for path in paths:
        path = Path(path)
        try:
            parts = path.relative_to(root).parts
        except ValueError:
            parts = path.parts
        if sum(1 for part in parts if part == target_name) == 1:
            kept.append(path)
        else:
            logger.debug("Dropping nested match %s", path)

    return kept
