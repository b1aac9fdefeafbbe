# src/todoln/cli/commands.py

from __future__ import annotations

import argparse
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

from ..config import DEFAULT_BACKUP_NAME
from ..tasks import task_api
from ..tasks.task_api import CommandResult
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CommandContext:
    """What a handler may touch: the open store, settings and the caller's cwd."""

    store: TaskStore
    settings: object
    cwd: Path


CommandHandler = Callable[[CommandContext, argparse.Namespace], CommandResult]
ArgumentBuilder = Callable[[argparse.ArgumentParser], None]


@dataclass(slots=True)
class _CommandEntry:
    name: str
    handler: CommandHandler
    help_text: str
    aliases: list[str] = field(default_factory=list)
    arguments: ArgumentBuilder | None = None


class CommandRegistry:
    """Verb registry: builds the argparse subcommands and routes parsed args to handlers."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._entries: dict[str, _CommandEntry] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
        arguments: ArgumentBuilder | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._entries[key] = _CommandEntry(key, handler, help_text, list(aliases), arguments)
        self._handlers[key] = handler
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def names(self) -> list[str]:
        return list(self._entries)

    def add_subparsers(self, parser: argparse.ArgumentParser) -> None:
        sub = parser.add_subparsers(dest="cmd", metavar="<command>")
        for entry in self._entries.values():
            p = sub.add_parser(entry.name, aliases=entry.aliases, help=entry.help_text)
            if entry.arguments is not None:
                entry.arguments(p)

    def handle(self, ctx: CommandContext, args: argparse.Namespace) -> CommandResult:
        name = str(args.cmd or "").lower()
        handler = self._handlers.get(name)
        if not handler:
            return CommandResult.error(f"Unknown command: {name}.")
        logger.debug("Dispatching %s", name)
        return handler(ctx, args)


registry = CommandRegistry()


# ---- argument parsing helpers ----


def comma_separated(raw: str) -> list[str]:
    return raw.split(",")


def comma_separated_ints(raw: str) -> list[int]:
    out: list[int] = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            out.append(int(part))
        except ValueError:
            raise argparse.ArgumentTypeError(f"invalid task position: '{part}'") from None
    return out


def flatten(groups: Iterable[list]) -> list:
    return [item for group in groups or [] for item in group]


def _names_arg(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "names",
        nargs="+",
        type=comma_separated,
        metavar="task_names",
        help="Task name(s); separate several with commas",
    )


def _positions_arg(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "positions",
        nargs="+",
        type=comma_separated_ints,
        metavar="task_indices",
        help="Task position(s) from `list`; separate several with commas",
    )


def _kind_arg(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "kind",
        nargs="?",
        default="all",
        metavar="display_type",
        help="Which tasks to show: all, todo or done (default: all)",
    )


def _insert_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("position", type=int, metavar="index", help="Position to insert at")
    _names_arg(p)


def _modify_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("position", type=int, metavar="task_index", help="Task to modify")
    p.add_argument("new_name", help="The new name for the task")


def _find_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("term", metavar="search_term", help="Text to look for (case-sensitive)")


def _restore_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("path", metavar="backup_path", help="Backup file to restore")


# ---- handlers ----


def cmd_add(ctx: CommandContext, args: argparse.Namespace) -> CommandResult:
    return task_api.add_tasks(ctx.store, flatten(args.names))


def cmd_insert(ctx: CommandContext, args: argparse.Namespace) -> CommandResult:
    return task_api.insert_tasks(ctx.store, args.position, flatten(args.names))


def cmd_modify(ctx: CommandContext, args: argparse.Namespace) -> CommandResult:
    return task_api.modify_task(ctx.store, args.position, args.new_name)


def cmd_list(ctx: CommandContext, args: argparse.Namespace) -> CommandResult:
    return task_api.list_tasks(ctx.store, getattr(args, "kind", "all"))


def cmd_raw(ctx: CommandContext, args: argparse.Namespace) -> CommandResult:
    return task_api.raw_tasks(ctx.store, args.kind)


def cmd_find(ctx: CommandContext, args: argparse.Namespace) -> CommandResult:
    return task_api.find_tasks(ctx.store, args.term)


def cmd_done(ctx: CommandContext, args: argparse.Namespace) -> CommandResult:
    return task_api.mark_done(ctx.store, flatten(args.positions))


def cmd_sort(ctx: CommandContext, args: argparse.Namespace) -> CommandResult:
    return task_api.sort_tasks(ctx.store)


def cmd_remove(ctx: CommandContext, args: argparse.Namespace) -> CommandResult:
    return task_api.remove_tasks(ctx.store, flatten(args.positions))


def cmd_clear(ctx: CommandContext, args: argparse.Namespace) -> CommandResult:
    return task_api.clear_done(ctx.store)


def cmd_reset(ctx: CommandContext, args: argparse.Namespace) -> CommandResult:
    return task_api.reset_tasks(ctx.store)


def cmd_backup(ctx: CommandContext, args: argparse.Namespace) -> CommandResult:
    filename = getattr(ctx.settings, "backup_name", None) or DEFAULT_BACKUP_NAME
    return task_api.backup_tasks(ctx.store, cwd=ctx.cwd, filename=filename)


def cmd_restore(ctx: CommandContext, args: argparse.Namespace) -> CommandResult:
    return task_api.restore_tasks(ctx.store, args.path, cwd=ctx.cwd)


registry.register("add", cmd_add, "Adds new tasks", aliases=["a", "+"], arguments=_names_arg)
registry.register(
    "insert", cmd_insert, "Adds new tasks at a given index", aliases=["ins", "i"], arguments=_insert_args
)
registry.register(
    "modify", cmd_modify, "Changes the name of a task", aliases=["m", "edit"], arguments=_modify_args
)
registry.register("list", cmd_list, "Lists tasks", aliases=["ls", "l"], arguments=_kind_arg)
registry.register("raw", cmd_raw, "Prints tasks as plain text", aliases=["r", "show"], arguments=_kind_arg)
registry.register(
    "find", cmd_find, "Lists tasks matching a search term", aliases=["f", "search"], arguments=_find_args
)
registry.register(
    "done", cmd_done, "Marks tasks as done", aliases=["dn", "complete"], arguments=_positions_arg
)
registry.register("sort", cmd_sort, "Sorts tasks (todo -> done)", aliases=["s", "order"])
registry.register(
    "remove",
    cmd_remove,
    "Removes tasks",
    aliases=["rm", "del", "delete", "-"],
    arguments=_positions_arg,
)
registry.register("clear", cmd_clear, "Removes all tasks marked as done", aliases=["cls", "clean"])
registry.register("reset", cmd_reset, "Deletes all tasks", aliases=["clearall", "deleteall"])
registry.register(
    "backup", cmd_backup, "Backs up the task database to the current directory", aliases=["b", "export"]
)
registry.register(
    "restore",
    cmd_restore,
    "Restores a previously saved backup file",
    aliases=["rest", "import"],
    arguments=_restore_args,
)
