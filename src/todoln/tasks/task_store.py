# src/todoln/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import os
import shutil
import sqlite3
from collections.abc import Iterable
from dataclasses import replace
from pathlib import Path

from .task_models import Task

logger = logging.getLogger(__name__)

# Counts and positions are reported as signed 32-bit integers.
MAX_COUNT = 2**31 - 1

# Unpositioned rows (fresh appends) sort after positioned ones, in id order.
_POSITION_ORDER = "ORDER BY idx IS NULL, idx ASC, id ASC"

_REQUIRED_COLUMNS = frozenset({"id", "idx", "name", "done"})


class TaskStoreError(RuntimeError):
    """Base class for task store failures."""


class StoreUnavailableError(TaskStoreError):
    """The database file cannot be opened or provisioned."""


class DuplicateTaskError(TaskStoreError):
    def __init__(self, name: str) -> None:
        super().__init__(f"A task named '{name}' already exists.")
        self.name = name


class RestoreError(TaskStoreError):
    """A backup file was missing or is not a task database."""


class TaskStore:
    """
    SQLite task store.

    Positions live in the `idx` column, which is only a cache: every read that
    hands positions to a caller renumbers them 1..N first (resync), so a gap
    left by a removal never leaks out.

    Connection lifetime:
    - one connection per TaskStore, opened in __init__
    - use it as a context manager so the connection is released when the
      command finishes
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None
        self._open()
        logger.debug("TaskStore ready db=%s total=%s", self._db_path, self.count())

    def __enter__(self) -> TaskStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    # ---- low-level helpers ----

    @staticmethod
    def _connect(path: Path) -> sqlite3.Connection:
        conn = sqlite3.connect(str(path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        return conn

    def _open(self) -> None:
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = self._connect(self._db_path)
        except (OSError, sqlite3.Error) as e:
            raise StoreUnavailableError(
                f"Failed to connect to the database {self._db_path}: {e}"
            ) from e

        try:
            self._ensure_schema(conn)
        except sqlite3.Error as e:
            conn.close()
            raise StoreUnavailableError(f"Failed to create table in {self._db_path}: {e}") from e

        self._conn = conn

    @staticmethod
    def _ensure_schema(conn: sqlite3.Connection) -> None:
        cur = conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS tasks (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                idx INTEGER UNIQUE,
                name TEXT NOT NULL UNIQUE,
                done INTEGER NOT NULL DEFAULT 0
            )
            """
        )
        conn.commit()

    @property
    def _db(self) -> sqlite3.Connection:
        if self._conn is None:
            raise TaskStoreError("TaskStore is closed")
        return self._conn

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=int(row["id"]),
            position=int(row["idx"]) if row["idx"] is not None else None,
            name=str(row["name"]),
            done=bool(row["done"]),
        )

    def _fetch_ordered(self, conn: sqlite3.Connection) -> list[Task]:
        rows = conn.execute(f"SELECT id, idx, name, done FROM tasks {_POSITION_ORDER}").fetchall()
        return [self._row_to_task(r) for r in rows]

    @staticmethod
    def _assign_positions(conn: sqlite3.Connection, ordered: list[Task]) -> list[Task]:
        """Write positions 1..N in the given order. Caller owns the transaction."""
        renumbered = [replace(t, position=i) for i, t in enumerate(ordered, start=1)]
        if all(old.position == new.position for old, new in zip(ordered, renumbered)):
            return renumbered

        # Clear first so no intermediate assignment collides with the UNIQUE index.
        conn.execute("UPDATE tasks SET idx = NULL")
        conn.executemany(
            "UPDATE tasks SET idx = ? WHERE id = ?",
            [(t.position, t.id) for t in renumbered],
        )
        return renumbered

    def _resync(self, conn: sqlite3.Connection) -> list[Task]:
        return self._assign_positions(conn, self._fetch_ordered(conn))

    @staticmethod
    def _insert(conn: sqlite3.Connection, name: str, position: int | None = None) -> int:
        try:
            cur = conn.execute(
                "INSERT INTO tasks(idx, name) VALUES (?, ?)",
                (position, name),
            )
        except sqlite3.IntegrityError as e:
            if "tasks.name" in str(e):
                raise DuplicateTaskError(name) from e
            raise TaskStoreError(f"Failed to add task {name}: {e}") from e
        rowid = cur.lastrowid
        if rowid is None:
            raise TaskStoreError("SQLite did not return lastrowid for tasks insert")
        return int(rowid)

    # ---- public API ----

    def count(self) -> int:
        (n,) = self._db.execute("SELECT COUNT(*) FROM tasks").fetchone()
        n = int(n)
        if n > MAX_COUNT:
            logger.warning("Task count %s exceeds %s; truncating.", n, MAX_COUNT)
            return MAX_COUNT
        return n

    def list_and_resync(self) -> list[Task]:
        """Return every task in position order with positions renumbered 1..N (persisted)."""
        conn = self._db
        with conn:
            return self._resync(conn)

    def append_many(self, names: Iterable[str]) -> list[Task]:
        """
        Append tasks at the end, in input order.

        All-or-nothing: a duplicate name raises DuplicateTaskError and no task
        from this call is kept.
        """
        names = list(names)
        conn = self._db
        with conn:
            new_ids = {self._insert(conn, name) for name in names}
            tasks = self._resync(conn)
        logger.debug("Appended %d task(s) total=%d", len(new_ids), len(tasks))
        return [t for t in tasks if t.id in new_ids]

    def insert_many_at(self, target_position: int, names: Iterable[str]) -> list[Task]:
        """
        Insert tasks so the first lands at target_position.

        Every task at or after target_position moves up by len(names). Shift
        and inserts share one transaction. A target of 0 means the top.
        """
        names = list(names)
        if not names:
            return []

        start = max(int(target_position), 1)
        shift = len(names)
        conn = self._db
        with conn:
            self._resync(conn)
            to_shift = conn.execute(
                "SELECT id FROM tasks WHERE idx >= ? ORDER BY idx DESC",
                (start,),
            ).fetchall()
            # Highest first: a moved row never lands on one that has not moved yet.
            for row in to_shift:
                conn.execute("UPDATE tasks SET idx = idx + ? WHERE id = ?", (shift, row["id"]))

            new_ids = {
                self._insert(conn, name, position=start + offset)
                for offset, name in enumerate(names)
            }
            tasks = self._resync(conn)

        logger.debug("Inserted %d task(s) at %d, shifted %d", shift, start, len(to_shift))
        return [t for t in tasks if t.id in new_ids]

    def rename(self, position: int, new_name: str) -> bool:
        conn = self._db
        try:
            with conn:
                cur = conn.execute("UPDATE tasks SET name = ? WHERE idx = ?", (new_name, int(position)))
        except sqlite3.IntegrityError as e:
            raise DuplicateTaskError(new_name) from e
        return cur.rowcount == 1

    def mark_done(self, position: int) -> bool:
        conn = self._db
        with conn:
            cur = conn.execute("UPDATE tasks SET done = 1 WHERE idx = ?", (int(position),))
        return cur.rowcount == 1

    def sort(self) -> list[Task]:
        """Move done tasks below todo tasks; each group keeps its relative order."""
        conn = self._db
        with conn:
            tasks = self._fetch_ordered(conn)
            todo = [t for t in tasks if not t.done]
            done = [t for t in tasks if t.done]
            # Dropping the old positions forces every row to be rewritten.
            return self._assign_positions(conn, [replace(t, position=None) for t in todo + done])

    def remove(self, position: int) -> bool:
        """Delete the task at position. The gap stays until the next resync."""
        conn = self._db
        with conn:
            cur = conn.execute("DELETE FROM tasks WHERE idx = ?", (int(position),))
        return cur.rowcount == 1

    def remove_by_id(self, task_id: int) -> bool:
        conn = self._db
        with conn:
            cur = conn.execute("DELETE FROM tasks WHERE id = ?", (int(task_id),))
        return cur.rowcount == 1

    def delete_all(self) -> int:
        conn = self._db
        with conn:
            cur = conn.execute("DELETE FROM tasks")
        logger.debug("Deleted all tasks n=%d", cur.rowcount)
        return cur.rowcount

    def search(self, term: str) -> list[Task]:
        """
        Case-sensitive substring search.

        Hits come back in position order, numbered 1..K over the hits only.
        """
        rows = self._db.execute(
            f"SELECT id, idx, name, done FROM tasks WHERE instr(name, ?) > 0 {_POSITION_ORDER}",
            (term,),
        ).fetchall()
        return [replace(self._row_to_task(r), position=i) for i, r in enumerate(rows, start=1)]

    # ---- backup / restore ----

    def backup(self, destination: str | Path) -> Path:
        """Byte-for-byte copy of the database file."""
        dest = Path(destination)
        self._db.commit()
        shutil.copyfile(self._db_path, dest)
        logger.info("Backed up %s to %s", self._db_path, dest)
        return dest

    def restore(self, source: str | Path) -> None:
        """
        Replace the live database with a backup.

        The candidate is staged next to the live file and validated before the
        swap; an invalid candidate is deleted and the live database is left as it was.
        """
        source = Path(source)
        if not source.is_file():
            raise RestoreError(f"Backup file not found: {source}")

        staged = self._db_path.with_name(self._db_path.name + ".restore")
        shutil.copyfile(source, staged)
        try:
            self.validate_file(staged, shown_as=source)
        except RestoreError:
            with contextlib.suppress(OSError):
                staged.unlink()
            raise

        self.close()
        os.replace(staged, self._db_path)
        self._open()
        logger.info("Restored %s from %s", self._db_path, source)

    @classmethod
    def validate_file(cls, path: str | Path, *, shown_as: str | Path | None = None) -> None:
        """
        Raise RestoreError unless path is an SQLite file holding a tasks table.

        Messages name shown_as when given (the user's backup, not a staged copy).
        """
        label = shown_as if shown_as is not None else path
        try:
            conn = cls._connect(Path(path))
            try:
                cols = {row["name"] for row in conn.execute("PRAGMA table_info(tasks)")}
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise RestoreError(f"Failed to open the database {label}: {e}") from e

        missing = _REQUIRED_COLUMNS - cols
        if missing:
            raise RestoreError(
                f"{label} is not a task database (missing: {', '.join(sorted(missing))})"
            )
