"""Pytest configuration and shared fixtures."""

import os
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from nmcleaner.models import ScanTarget


@pytest.fixture(autouse=True)
def isolated_config(tmp_path_factory, monkeypatch):
    """Keep every test away from the real ~/.nmcleaner/config.json."""
    config_file = tmp_path_factory.mktemp("nmcleaner-config") / "config.json"
    monkeypatch.setattr("nmcleaner.config.CONFIG_FILE", config_file)
    return config_file


@pytest.fixture
def now() -> datetime:
    return datetime.now()


def set_mtime(path: Path, when: datetime) -> None:
    timestamp = when.timestamp()
    os.utime(path, (timestamp, timestamp))


@pytest.fixture
def make_target():
    """Factory for ScanTarget instances."""

    def _make(path: str, size: int = 1000, is_unused: bool = False, days_old: int = 1) -> ScanTarget:
        return ScanTarget(
            path=path,
            size_bytes=size,
            last_modified=datetime.now() - timedelta(days=days_old),
            is_unused=is_unused,
        )

    return _make


@pytest.fixture
def project_tree(tmp_path, now):
    """
    Two projects: ``a`` with a stale node_modules (2000 bytes, nested
    node_modules inside) and ``b`` with a fresh one (100 bytes).
    """
    a_modules = tmp_path / "a" / "node_modules"
    (a_modules / "node_modules").mkdir(parents=True)
    (a_modules / "one.js").write_bytes(b"x" * 500)
    (a_modules / "two.js").write_bytes(b"y" * 1500)
    set_mtime(a_modules, now - timedelta(days=40))

    b_modules = tmp_path / "b" / "node_modules"
    b_modules.mkdir(parents=True)
    (b_modules / "index.js").write_bytes(b"z" * 100)
    set_mtime(b_modules, now - timedelta(days=2))

    return tmp_path
