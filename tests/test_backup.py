"""Tests for zip backups."""

import os
import stat
import zipfile
from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from nmcleaner.backup import BACKUP_PREFIX, backup_filename, create_backup
from nmcleaner.errors import BackupError

FIXED_TIME = datetime(2024, 5, 1, 10, 20, 30, 123456, tzinfo=timezone.utc)


@pytest.fixture
def modules(tmp_path):
    """Two node_modules directories with a little content each."""
    first = tmp_path / "app" / "node_modules"
    (first / "react").mkdir(parents=True)
    (first / "react" / "index.js").write_text("module.exports = {}")
    (first / "empty").mkdir()

    second = tmp_path / "lib" / "node_modules"
    second.mkdir(parents=True)
    (second / "left-pad.js").write_text("pad")

    out = tmp_path / "backups"
    out.mkdir()
    return first, second, out


class TestBackupFilename:
    def test_replaces_unsafe_characters(self):
        assert backup_filename(FIXED_TIME) == f"{BACKUP_PREFIX}2024-05-01T10-20-30-123Z.zip"

    def test_converts_to_utc(self):
        from datetime import timedelta

        local = datetime(2024, 5, 1, 12, 20, 30, tzinfo=timezone(timedelta(hours=2)))
        assert backup_filename(local) == f"{BACKUP_PREFIX}2024-05-01T10-20-30-000Z.zip"

    def test_defaults_to_now(self):
        name = backup_filename()
        assert name.startswith(BACKUP_PREFIX)
        assert name.endswith("Z.zip")
        assert ":" not in name


class TestCreateBackup:
    def test_archives_directories_under_basename(self, modules):
        first, second, out = modules

        backup_path = create_backup([str(first)], destination_dir=out, now=FIXED_TIME)

        assert backup_path.parent == out
        assert backup_path.name == backup_filename(FIXED_TIME)
        with zipfile.ZipFile(backup_path) as archive:
            names = archive.namelist()
            assert "node_modules/react/index.js" in names
            assert "node_modules/empty/" in names
            assert archive.read("node_modules/react/index.js") == b"module.exports = {}"

    def test_uses_deflate(self, modules):
        first, _, out = modules

        backup_path = create_backup([str(first)], destination_dir=out, now=FIXED_TIME)

        with zipfile.ZipFile(backup_path) as archive:
            info = archive.getinfo("node_modules/react/index.js")
            assert info.compress_type == zipfile.ZIP_DEFLATED

    def test_keep_paths_uses_relative_names(self, modules, tmp_path):
        first, second, out = modules

        backup_path = create_backup(
            [str(first), str(second)], destination_dir=out, root=tmp_path, now=FIXED_TIME
        )

        with zipfile.ZipFile(backup_path) as archive:
            names = archive.namelist()
            assert "app/node_modules/react/index.js" in names
            assert "lib/node_modules/left-pad.js" in names

    def test_same_basenames_share_prefix(self, modules):
        first, second, out = modules

        backup_path = create_backup([str(first), str(second)], destination_dir=out, now=FIXED_TIME)

        with zipfile.ZipFile(backup_path) as archive:
            names = archive.namelist()
            assert "node_modules/react/index.js" in names
            assert "node_modules/left-pad.js" in names

    def test_stores_symlinks_as_links(self, modules):
        first, _, out = modules
        (first / ".bin").mkdir()
        (first / ".bin" / "tool").symlink_to("../react/index.js")

        backup_path = create_backup([str(first)], destination_dir=out, now=FIXED_TIME)

        with zipfile.ZipFile(backup_path) as archive:
            info = archive.getinfo("node_modules/.bin/tool")
            assert stat.S_ISLNK(info.external_attr >> 16)
            assert archive.read(info) == b"../react/index.js"

    def test_same_timestamp_does_not_overwrite(self, modules):
        first, _, out = modules

        one = create_backup([str(first)], destination_dir=out, now=FIXED_TIME)
        two = create_backup([str(first)], destination_dir=out, now=FIXED_TIME)

        assert one != two
        assert one.exists() and two.exists()
        assert two.name.endswith("-1.zip")

    def test_defaults_to_current_directory(self, modules, monkeypatch):
        first, _, out = modules
        monkeypatch.chdir(out)

        backup_path = create_backup([str(first)], now=FIXED_TIME)

        assert backup_path.parent == out

    def test_missing_destination_raises(self, modules, tmp_path):
        first, _, _ = modules

        with pytest.raises(BackupError):
            create_backup([str(first)], destination_dir=tmp_path / "nowhere")

    def test_missing_source_raises_and_cleans_up(self, modules, tmp_path):
        _, _, out = modules

        with pytest.raises(BackupError):
            create_backup([str(tmp_path / "gone")], destination_dir=out, now=FIXED_TIME)

        assert list(out.iterdir()) == []

    def test_write_failure_leaves_no_partial_archive(self, modules):
        first, _, out = modules

        with patch.object(zipfile.ZipFile, "write", side_effect=OSError("disk full")):
            with pytest.raises(BackupError, match="disk full"):
                create_backup([str(first)], destination_dir=out, now=FIXED_TIME)

        assert list(out.iterdir()) == []

    @pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="needs named pipes")
    def test_skips_special_files(self, modules, caplog):
        first, _, out = modules
        os.mkfifo(first / "pipe")

        backup_path = create_backup([str(first)], destination_dir=out, now=FIXED_TIME)

        with zipfile.ZipFile(backup_path) as archive:
            names = archive.namelist()
            assert "node_modules/pipe" not in names
            assert "node_modules/react/index.js" in names
        assert "not a regular file" in caplog.text

    def test_archives_very_deep_trees(self, modules):
        first, _, out = modules
        deep = first
        for _ in range(600):
            deep = deep / "d"
            deep.mkdir()
        (deep / "leaf.js").write_text("x")

        backup_path = create_backup([str(first)], destination_dir=out, now=FIXED_TIME)

        with zipfile.ZipFile(backup_path) as archive:
            assert "node_modules/" + "d/" * 600 + "leaf.js" in archive.namelist()
