# src/todoln/cli/render.py

from __future__ import annotations

from rich.console import Console
from rich.text import Text

from ..tasks.task_api import CommandResult, ResultKind
from ..tasks.task_models import Task

DONE_STYLE = "strike bright_black"


def task_line(task: Task) -> Text:
    """'  [3] Buy milk' with a bold position; done tasks are struck through."""
    return Text.assemble(
        "  [",
        (str(task.position), "bold"),
        "] ",
        (task.name, DONE_STYLE if task.done else ""),
    )


def render_result(result: CommandResult, *, console: Console, err_console: Console) -> None:
    kind = result.kind

    if kind is ResultKind.SUCCESS:
        console.print(Text(result.message, style="green"))
    elif kind is ResultKind.ERROR:
        err_console.print(Text(result.message, style="red"))
    elif kind is ResultKind.NOTICE:
        console.print(Text(result.message))
    elif kind is ResultKind.LISTING:
        console.print(Text(result.title or "Tasks:", style="bold underline"))
        console.print()
        for task in result.tasks:
            console.print(task_line(task))
    elif kind is ResultKind.MATCHES:
        for task in result.tasks:
            console.print(Text.assemble((str(task.position), "bold"), " ", task.name))
    elif kind is ResultKind.RAW:
        # Plain names for piping: no markup, no highlighting.
        for task in result.tasks:
            console.out(task.name, highlight=False)
