# src/todoln/cli/main.py

"""
CLI entrypoint.

Initializes logging, parses one command, runs it against a TaskStore that is
opened for this command only, renders the result and maps it to an exit code:
0 success, 1 user error, 2 usage error (argparse), 3 fatal environment error.
"""

from __future__ import annotations

import argparse
import logging
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from rich.console import Console
from rich.text import Text

from ..config import get_settings
from ..logging_setup import level_from_name, setup_logging
from ..tasks.task_store import TaskStore, TaskStoreError
from .commands import CommandContext, registry
from .render import render_result

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_USER_ERROR = 1
EXIT_FATAL = 3

try:
    __version__ = version("todoln")
except PackageNotFoundError:
    __version__ = "0.0.0+local"


def build_parser(prog: str = "todoln") -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog=prog,
        description="A fast and minimal task organiser.",
        epilog="Without a command, all tasks are listed.",
    )
    p.add_argument("--db", type=Path, default=None, help="Use this database file instead of the default")
    p.add_argument("-v", "--verbose", action="store_true", help="Show debug logs on stderr")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    registry.add_subparsers(p)
    return p


def main(
    argv: list[str] | None = None,
    *,
    settings=None,
    console: Console | None = None,
    err_console: Console | None = None,
) -> int:
    if settings is None:
        settings = get_settings()
    console = console or Console()
    err_console = err_console or Console(stderr=True)

    args = build_parser(getattr(settings, "app_name", None) or "todoln").parse_args(argv)
    if args.cmd is None:
        args.cmd = "list"
        args.kind = "all"

    console_level = (
        logging.DEBUG if args.verbose else level_from_name(getattr(settings, "log_level", None))
    )
    db_path = args.db or settings.tasks_db_path

    try:
        setup_logging(log_dir=getattr(settings, "log_dir", settings.data_dir), console_level=console_level)
        logger.debug("Running %s db=%s", args.cmd, db_path)

        with TaskStore(db_path) as store:
            ctx = CommandContext(store=store, settings=settings, cwd=Path.cwd())
            result = registry.handle(ctx, args)
    except (TaskStoreError, OSError) as e:
        logger.debug("Fatal error running %s", args.cmd, exc_info=True)
        err_console.print(Text(f"Fatal: {e}", style="bold red"))
        return EXIT_FATAL

    render_result(result, console=console, err_console=err_console)
    if not result.ok:
        logger.debug("Command %s failed: %s", args.cmd, result.message)
        return EXIT_USER_ERROR
    return EXIT_OK


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
