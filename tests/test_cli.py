# tests/test_cli.py

from __future__ import annotations

import argparse
import io
from pathlib import Path
from types import SimpleNamespace

import pytest
from rich.console import Console

from todoln.cli import main as cli_main
from todoln.cli.commands import CommandRegistry, comma_separated_ints, flatten, registry
from todoln.tasks.task_api import CommandResult


class _Run:
    """Runs the CLI in-process and captures both consoles as plain text."""

    def __init__(self, settings: SimpleNamespace) -> None:
        self.settings = settings
        self.out = ""
        self.err = ""

    def __call__(self, *argv: str) -> int:
        out, err = io.StringIO(), io.StringIO()
        code = cli_main.main(
            list(argv),
            settings=self.settings,
            console=Console(file=out, color_system=None, width=200),
            err_console=Console(file=err, color_system=None, width=200),
        )
        self.out, self.err = out.getvalue(), err.getvalue()
        return code


@pytest.fixture()
def run(settings: SimpleNamespace, monkeypatch) -> _Run:
    # Logging configuration is global; keep the test runner's handlers intact.
    monkeypatch.setattr(cli_main, "setup_logging", lambda **kwargs: None)
    return _Run(settings)


def test_add_then_list(run: _Run) -> None:
    assert run("add", "buy milk,walk dog", "call mum") == 0
    assert "Task(s) added successfully: buy milk, walk dog, call mum" in run.out

    assert run("list", "all") == 0
    lines = run.out.splitlines()
    assert lines[0] == "Tasks:"
    assert lines[2:] == ["  [1] buy milk", "  [2] walk dog", "  [3] call mum"]


def test_no_command_lists_all(run: _Run) -> None:
    run("add", "a")
    assert run() == 0
    assert "  [1] a" in run.out


def test_aliases_route_to_the_same_commands(run: _Run) -> None:
    assert run("+", "a,b,c") == 0
    assert run("i", "1", "top") == 0
    assert run("dn", "2") == 0
    assert run("-", "4") == 0
    assert run("show", "all") == 0
    assert run.out == "top\na\nb\n"
    assert run("ls", "done") == 0
    assert "  [2] a" in run.out


def test_raw_prints_bare_names(run: _Run) -> None:
    run("add", "a,b")
    run("done", "1")
    assert run("raw", "todo") == 0
    assert run.out == "b\n"


def test_find_prints_renumbered_positions(run: _Run) -> None:
    run("add", "x,milk,y,more milk")
    assert run("find", "milk") == 0
    assert run.out.splitlines() == ["1 milk", "2 more milk"]


def test_user_error_exit_code(run: _Run) -> None:
    run("add", "a")
    assert run("modify", "5", "x") == 1
    assert "Invalid index '5'" in run.err
    assert run.out == ""


def test_batch_failure_reports_position(run: _Run) -> None:
    run("add", "a,b,c")
    assert run("done", "2,999,3") == 1
    assert "999" in run.err
    run("raw", "done")
    assert run.out == "b\n"


def test_invalid_display_type_exits_zero(run: _Run) -> None:
    assert run("list", "someday") == 0
    assert "Invalid display type" in run.out


def test_unparseable_position_is_a_usage_error(run: _Run) -> None:
    with pytest.raises(SystemExit) as excinfo:
        run("done", "1,x")
    assert excinfo.value.code == 2


def test_app_name_is_the_program_name(run: _Run, settings: SimpleNamespace, capsys) -> None:
    settings.app_name = "mytasks"
    with pytest.raises(SystemExit) as excinfo:
        run("--version")
    assert excinfo.value.code == 0
    assert capsys.readouterr().out.startswith("mytasks ")


def test_modify_with_comma_is_a_user_error(run: _Run) -> None:
    run("add", "a")
    assert run("modify", "1", "x,y") == cli_main.EXIT_USER_ERROR
    assert run("raw") == 0
    assert run.out.splitlines() == ["a"]


def test_fatal_error_exit_code(run: _Run, settings: SimpleNamespace, garbage_file: Path) -> None:
    settings.tasks_db_path = garbage_file
    assert run("list") == cli_main.EXIT_FATAL
    assert run.err.startswith("Fatal:")


def test_db_option_overrides_settings(run: _Run, settings: SimpleNamespace, tmp_path: Path) -> None:
    other = tmp_path / "other.db"
    assert run("--db", str(other), "add", "elsewhere") == 0
    assert other.is_file()
    assert not settings.tasks_db_path.exists()


def test_backup_and_restore_through_the_cli(run: _Run, tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    run("add", "a,b")
    assert run("backup") == 0
    assert (tmp_path / "todoln_backup.db").is_file()

    run("reset")
    run("raw")
    assert run.out == ""

    assert run("restore", "todoln_backup.db") == 0
    run("raw")
    assert run.out == "a\nb\n"


def test_restore_invalid_file(run: _Run, garbage_file: Path) -> None:
    run("add", "keep")
    assert run("import", str(garbage_file)) == 1
    run("raw")
    assert run.out == "keep\n"


def test_clear_and_sort(run: _Run) -> None:
    run("add", "a,b,c,d")
    run("done", "1,3")
    assert run("order") == 0
    run("raw")
    assert run.out == "b\nd\na\nc\n"
    assert run("clean") == 0
    run("raw")
    assert run.out == "b\nd\n"


def test_comma_separated_ints() -> None:
    assert comma_separated_ints("1,2, 3,") == [1, 2, 3]
    with pytest.raises(argparse.ArgumentTypeError):
        comma_separated_ints("1,two")
    assert flatten([[1, 2], [3]]) == [1, 2, 3]


def test_registry_has_every_verb() -> None:
    assert set(registry.names()) == {
        "add", "insert", "modify", "list", "raw", "find", "done",
        "sort", "remove", "clear", "reset", "backup", "restore",
    }


def test_registry_unknown_command(store) -> None:
    reg = CommandRegistry()
    reg.register("ping", lambda ctx, args: CommandResult.success("pong"), "ping", aliases=["p"])

    ctx = SimpleNamespace(store=store)
    assert reg.handle(ctx, argparse.Namespace(cmd="P")).message == "pong"
    assert not reg.handle(ctx, argparse.Namespace(cmd="nope")).ok
