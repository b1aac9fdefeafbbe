# src/todoln/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class DisplayKind(StrEnum):
    """Which tasks a listing shows."""

    ALL = "all"
    TODO = "todo"
    DONE = "done"

    @classmethod
    def from_str(cls, raw: str | None) -> DisplayKind | None:
        if raw is None:
            return None
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return None

    def accepts(self, task: Task) -> bool:
        if self is DisplayKind.TODO:
            return not task.done
        if self is DisplayKind.DONE:
            return task.done
        return True


@dataclass(frozen=True, slots=True)
class Task:
    id: int
    # 1-based display position; None only for rows not yet resynced.
    position: int | None
    name: str
    done: bool = False
