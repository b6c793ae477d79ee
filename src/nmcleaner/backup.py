"""Zip backups of directories taken before they are removed."""

import logging
import os
import stat
import zipfile
from datetime import datetime, timezone
from pathlib import Path

from nmcleaner.errors import BackupError

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "node_modules_backup_"


def backup_filename(now: datetime | None = None) -> str:
    """
    Archive name for a backup taken at ``now``.

    Uses an ISO 8601 UTC timestamp with millisecond precision where ':' and
    '.' are replaced by '-', e.g. ``node_modules_backup_2024-05-01T10-20-30-123Z.zip``.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    now = now.astimezone(timezone.utc)
    stamp = now.strftime("%Y-%m-%dT%H:%M:%S") + f".{now.microsecond // 1000:03d}Z"
    return f"{BACKUP_PREFIX}{stamp.replace(':', '-').replace('.', '-')}.zip"


def _unique_path(path: Path) -> Path:
    candidate = path
    counter = 1
    while candidate.exists():
        candidate = path.with_name(f"{path.stem}-{counter}{path.suffix}")
        counter += 1
    return candidate


def _write_symlink(archive: zipfile.ZipFile, path: str, arcname: str) -> None:
    info = zipfile.ZipInfo(arcname)
    info.create_system = 3  # unix, so external_attr carries the file mode
    info.external_attr = (stat.S_IFLNK | 0o777) << 16
    archive.writestr(info, os.readlink(path))


def _add_directory(archive: zipfile.ZipFile, directory: Path, arcname: str) -> None:
    archive.write(directory, arcname)

    pending = [(str(directory), arcname)]
    while pending:
        dirpath, base = pending.pop()
        with os.scandir(dirpath) as it:
            entries = sorted(it, key=lambda entry: entry.name)

        subdirs = []
        for entry in entries:
            entry_name = f"{base}/{entry.name}"
            mode = entry.stat(follow_symlinks=False).st_mode
            if stat.S_ISLNK(mode):
                _write_symlink(archive, entry.path, entry_name)
            elif stat.S_ISDIR(mode):
                archive.write(entry.path, entry_name)
                subdirs.append((entry.path, entry_name))
            elif stat.S_ISREG(mode):
                archive.write(entry.path, entry_name)
            else:
                # FIFOs, sockets and devices would block or fail on read
                logger.warning("Skipping %s: not a regular file", entry.path)
        pending.extend(reversed(subdirs))


def create_backup(
    paths: list[str],
    destination_dir: Path | str | None = None,
    root: Path | str | None = None,
    now: datetime | None = None,
) -> Path:
    """
    Pack directories into a single zip archive.

    Each directory is stored under its basename, so two directories with the
    same name end up sharing a prefix in the archive. Pass ``root`` to name
    entries by their path relative to it instead.

    The archive is closed before this returns. On failure the partial archive
    is deleted.

    Args:
        paths: Directories to archive, in order
        destination_dir: Directory for the archive (default: current directory)
        root: Optional scan root for relative entry names
        now: Timestamp used for the archive name

    Returns:
        Path of the written archive

    Raises:
        BackupError: If the archive cannot be written
    """
    target_dir = Path(destination_dir) if destination_dir is not None else Path.cwd()
    backup_path = _unique_path(target_dir / backup_filename(now))

    try:
        with zipfile.ZipFile(backup_path, "w", zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
            for path_str in paths:
                directory = Path(path_str)
                if root is not None:
                    arcname = directory.relative_to(root).as_posix()
                else:
                    arcname = directory.name
                _add_directory(archive, directory, arcname)
    except (OSError, ValueError, zipfile.BadZipFile) as e:
        backup_path.unlink(missing_ok=True)
        raise BackupError(f"Could not create backup {backup_path}: {e}") from e

    logger.info("Backup written to %s", backup_path)
    return backup_path
