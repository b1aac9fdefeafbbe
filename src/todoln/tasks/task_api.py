# src/todoln/tasks/task_api.py

"""
Command engine.

One function per CLI verb. Each validates its input, calls into an already
opened TaskStore and returns a single CommandResult for the presentation
layer. User mistakes come back as error results; environment failures
(StoreUnavailableError, OSError) propagate to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from ..config import DEFAULT_BACKUP_NAME
from .task_models import DisplayKind, Task
from .task_store import DuplicateTaskError, RestoreError, TaskStore

logger = logging.getLogger(__name__)


class ResultKind(StrEnum):
    SUCCESS = "success"
    NOTICE = "notice"
    ERROR = "error"
    LISTING = "listing"
    RAW = "raw"
    MATCHES = "matches"


@dataclass(slots=True)
class CommandResult:
    kind: ResultKind
    message: str = ""
    tasks: list[Task] = field(default_factory=list)
    title: str | None = None
    # Batch commands: the position that stopped the batch.
    failed_at: int | None = None

    @property
    def ok(self) -> bool:
        return self.kind is not ResultKind.ERROR

    @classmethod
    def success(cls, message: str) -> CommandResult:
        return cls(ResultKind.SUCCESS, message)

    @classmethod
    def notice(cls, message: str) -> CommandResult:
        return cls(ResultKind.NOTICE, message)

    @classmethod
    def error(cls, message: str, *, failed_at: int | None = None) -> CommandResult:
        return cls(ResultKind.ERROR, message, failed_at=failed_at)


_TITLES = {
    DisplayKind.ALL: "Tasks:",
    DisplayKind.TODO: "Tasks todo:",
    DisplayKind.DONE: "Tasks done:",
}


def _clean_names(names: Iterable[str]) -> list[str]:
    return [n.strip() for n in names if n and n.strip()]


def _join(values: Iterable[object]) -> str:
    return ", ".join(str(v) for v in values)


def add_tasks(store: TaskStore, names: Iterable[str]) -> CommandResult:
    to_add = _clean_names(names)
    if not to_add:
        return CommandResult.error("Error: No valid tasks provided.")

    try:
        store.append_many(to_add)
    except DuplicateTaskError as e:
        return CommandResult.error(f"Error: {e}")

    logger.info("Added %d task(s)", len(to_add))
    return CommandResult.success(f"Task(s) added successfully: {_join(to_add)}")


def insert_tasks(store: TaskStore, position: int, names: Iterable[str]) -> CommandResult:
    if position < 0:
        return CommandResult.error("Error: Index must be non-negative.")

    total = store.count()
    if position > total:
        return CommandResult.error(
            f"Error: Cannot insert at index {position} as the total number of tasks is: {total}"
        )

    to_insert = _clean_names(names)
    if not to_insert:
        return CommandResult.error("Error: No valid tasks provided.")

    try:
        store.insert_many_at(position, to_insert)
    except DuplicateTaskError as e:
        return CommandResult.error(f"Error: {e}")

    logger.info("Inserted %d task(s) at %d", len(to_insert), position)
    return CommandResult.success(f"Task(s) inserted successfully: {_join(to_insert)}")


def modify_task(store: TaskStore, position: int, new_name: str) -> CommandResult:
    store.list_and_resync()
    if position <= 0 or position > store.count():
        return CommandResult.error(f"Error: Invalid index '{position}'.")

    new_name = (new_name or "").strip()
    if not new_name:
        return CommandResult.error("Error: New task cannot be empty or whitespace-only.")
    # Commas separate names on the command line, so such a name could never be added.
    if "," in new_name:
        return CommandResult.error(f"Error: Task name cannot contain a comma: '{new_name}'.")

    try:
        renamed = store.rename(position, new_name)
    except DuplicateTaskError as e:
        return CommandResult.error(f"Failed to modify task {position}: {e}")
    if not renamed:
        return CommandResult.error(f"Failed to modify task {position}: no task at that position.")

    return CommandResult.success(f"Task modified successfully: '{new_name}'")


def _filtered(store: TaskStore, kind_name: str) -> tuple[DisplayKind | None, list[Task]]:
    tasks = store.list_and_resync()
    kind = DisplayKind.from_str(kind_name)
    if kind is None:
        return None, []
    return kind, [t for t in tasks if kind.accepts(t)]


def _invalid_kind(kind_name: str) -> CommandResult:
    choices = ", ".join(k.value for k in DisplayKind)
    return CommandResult.notice(f"Invalid display type '{kind_name}'. Use one of: {choices}.")


def list_tasks(store: TaskStore, kind_name: str = "all") -> CommandResult:
    kind, tasks = _filtered(store, kind_name)
    if kind is None:
        return _invalid_kind(kind_name)
    if not tasks:
        return CommandResult.notice("No tasks found.")
    return CommandResult(ResultKind.LISTING, tasks=tasks, title=_TITLES[kind])


def raw_tasks(store: TaskStore, kind_name: str = "all") -> CommandResult:
    kind, tasks = _filtered(store, kind_name)
    if kind is None:
        return _invalid_kind(kind_name)
    return CommandResult(ResultKind.RAW, tasks=tasks)


def find_tasks(store: TaskStore, term: str) -> CommandResult:
    hits = store.search(term)
    if not hits:
        return CommandResult.error(f"No tasks found matching '{term}'.")
    return CommandResult(ResultKind.MATCHES, tasks=hits)


def mark_done(store: TaskStore, positions: Sequence[int]) -> CommandResult:
    """Mark positions done in order; the first missing position stops the batch."""
    if not positions:
        return CommandResult.error("Error: No task positions provided.")

    store.list_and_resync()
    completed: list[int] = []
    for position in positions:
        if not store.mark_done(position):
            logger.info("Done stopped at %s after %s", position, completed)
            return CommandResult.error(
                f"Failed to mark task {position} as done: no task at that position.",
                failed_at=position,
            )
        completed.append(position)

    return CommandResult.success(f"Task(s) completed successfully: {_join(completed)}")


def sort_tasks(store: TaskStore) -> CommandResult:
    store.sort()
    return CommandResult.success("Tasks sorted successfully")


def remove_tasks(store: TaskStore, positions: Sequence[int]) -> CommandResult:
    """
    Remove positions in order; the first missing position stops the batch.

    Positions refer to the listing taken when the command starts: removal does
    not renumber until the batch is over.
    """
    if not positions:
        return CommandResult.error("Error: No task positions provided.")

    store.list_and_resync()
    removed: list[int] = []
    try:
        for position in positions:
            if not store.remove(position):
                logger.info("Remove stopped at %s after %s", position, removed)
                return CommandResult.error(
                    f"Failed to remove task {position}: no task at that position.",
                    failed_at=position,
                )
            removed.append(position)
    finally:
        store.list_and_resync()

    return CommandResult.success(f"Task(s) removed successfully: {_join(removed)}")


def clear_done(store: TaskStore) -> CommandResult:
    completed = [t for t in store.list_and_resync() if t.done]
    if not completed:
        return CommandResult.notice("No completed tasks to clear.")

    for task in completed:
        store.remove_by_id(task.id)
    store.list_and_resync()

    return CommandResult.success(
        f"Completed task(s) cleared successfully: {_join(t.name for t in completed)}"
    )


def reset_tasks(store: TaskStore) -> CommandResult:
    n = store.delete_all()
    logger.info("Reset removed %d task(s)", n)
    return CommandResult.success("Tasks reset successfully")


def backup_tasks(
    store: TaskStore,
    *,
    cwd: Path | None = None,
    filename: str = DEFAULT_BACKUP_NAME,
) -> CommandResult:
    dest = (cwd or Path.cwd()) / filename
    store.backup(dest)
    return CommandResult.success(f"Task database backed up successfully: {dest}")


def resolve_backup_path(path: str | Path, cwd: Path | None = None) -> Path:
    p = Path(path).expanduser()
    if not p.is_absolute():
        p = (cwd or Path.cwd()) / p
    return p


def restore_tasks(store: TaskStore, path: str | Path, *, cwd: Path | None = None) -> CommandResult:
    source = resolve_backup_path(path, cwd)
    try:
        store.restore(source)
    except RestoreError as e:
        return CommandResult.error(f"Failed to restore database: {e}")
    return CommandResult.success("Task database restored successfully")
