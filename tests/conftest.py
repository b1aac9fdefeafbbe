# tests/conftest.py

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from types import SimpleNamespace

import pytest

from todoln.tasks.task_store import TaskStore


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the CLI.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the user's data dir and environment.
    """
    data_dir = tmp_path / "data"
    return SimpleNamespace(
        app_name="todoln",
        log_level="WARNING",
        data_dir=data_dir,
        tasks_db_path=data_dir / "todoln.db",
        log_dir=tmp_path / "logs",
        backup_name="todoln_backup.db",
    )


@pytest.fixture()
def store(tmp_path: Path) -> Iterator[TaskStore]:
    """
    Real SQLite store per test: position bookkeeping is what we want to test.
    """
    with TaskStore(tmp_path / "todoln.db") as s:
        yield s


@pytest.fixture()
def garbage_file(tmp_path: Path) -> Path:
    path = tmp_path / "garbage.db"
    path.write_bytes(b"this is not an sqlite database\n" * 64)
    return path
