"""End-to-end tests for the apicat command line."""

from __future__ import annotations

import json

import click
import pytest
import typer

from apicat import __version__
from apicat.cli import _complete_function, _complete_package, app


@pytest.fixture
def invoke(runner, dsn):
    def _invoke(*args: str, env: dict[str, str] | None = None):
        return runner.invoke(app, ["--dsn", dsn, *args], env=env)

    return _invoke


def _envelope(result) -> dict:
    return json.loads(result.stdout.strip().splitlines()[-1])


def test_help_lists_commands(runner) -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for command in ("update-from-modules", "packages", "function-stats", "meta"):
        assert command in result.output


def test_update_and_list_json(invoke) -> None:
    result = invoke("--json", "update", "Foo", "--metadata", '{"summary": "Foo things"}')
    assert result.exit_code == 0, result.output
    envelope = _envelope(result)
    assert envelope["status"] == 200
    assert envelope["error"] is None
    assert envelope["meta"]["tool"] == "apicat.update"
    assert envelope["meta"]["version"] == __version__

    result = invoke("--json", "packages")
    assert _envelope(result)["result"] == ["Foo"]


def test_text_output(invoke) -> None:
    invoke("update", "Foo", "--metadata", "{}", "--function", "run")
    invoke("update", "Foo", "--metadata", "{}", "--function", "stop")

    result = invoke("--text", "functions")
    assert result.exit_code == 0
    assert result.stdout.splitlines() == ["Foo::run", "Foo::stop"]


def test_text_rows_without_color(invoke) -> None:
    invoke("update", "Foo", "--metadata", '{"summary": "Foo things"}')
    result = invoke("--text", "--no-color", "packages", "--detail")
    lines = result.stdout.splitlines()
    assert lines[0] == "name\tsummary\tdist\textra\tmtime"
    assert lines[1].startswith("Foo\tFoo things\t\t\t")


def test_output_mode_from_environment(invoke) -> None:
    invoke("update", "Foo", "--metadata", "{}")
    result = invoke("packages", env={"APICAT_OUTPUT": "text"})
    assert result.stdout.strip() == "Foo"


def test_not_found_exit_code(invoke) -> None:
    result = invoke("--json", "meta", "Nope::nothing")
    assert result.exit_code == 20
    envelope = _envelope(result)
    assert envelope["status"] == 404
    assert envelope["error"]["code"] == "E3404"
    assert envelope["result"] is None


def test_text_errors_go_to_stderr(invoke) -> None:
    result = invoke("--text", "--no-color", "delete", "Nope")
    assert result.exit_code == 20
    assert "Error: No package named 'Nope'" in result.output
    assert result.stdout == ""


def test_invalid_metadata_json(invoke) -> None:
    result = invoke("--json", "update", "Foo", "--metadata", "{not json")
    assert result.exit_code == 2
    envelope = _envelope(result)
    assert envelope["status"] == 400
    assert envelope["error"]["code"] == "E1105"
    assert envelope["error"]["suggestion"]["example"].startswith("apicat update")


def test_quiet_suppresses_success_output(invoke) -> None:
    result = invoke("-q", "update", "Foo", "--metadata", "{}")
    assert result.exit_code == 0
    assert result.stdout == ""


def test_update_from_modules_dry_run(invoke) -> None:
    result = invoke("--json", "update-from-modules", "json", "--dry-run")
    assert result.exit_code == 0, result.output
    envelope = _envelope(result)
    assert envelope["meta"]["dry_run"] is True
    assert envelope["result"]["candidates"] == ["json"]
    assert [action["action"] for action in envelope["result"]["actions"]] == ["refresh"]

    assert _envelope(invoke("--json", "packages"))["result"] == []


def test_update_from_modules_and_query(invoke) -> None:
    result = invoke("--json", "update-from-modules", "json")
    assert result.exit_code == 0, result.output
    assert _envelope(result)["result"]["refreshed"] == ["json"]

    functions = _envelope(invoke("--json", "functions", "--package", "json"))["result"]
    assert "json::dumps" in functions
    assert "json::loads" in functions

    arguments = _envelope(invoke("--json", "arguments", "--package", "json", "--function", "loads"))["result"]
    assert "json::loads::s" in arguments

    stats = _envelope(invoke("--json", "stats"))["result"]
    assert stats["num_packages"] == 1
    assert stats["num_functions"] == len(functions)

    per_function = _envelope(invoke("--json", "function-stats"))["result"]
    assert {"package", "name", "num_args"} == set(per_function[0])

    per_argument = _envelope(invoke("--json", "argument-stats"))["result"]
    assert {"name": "s", "num_functions": 1} in per_argument


def test_update_from_modules_load_failure(invoke) -> None:
    result = invoke("--json", "update-from-modules", "apicat_no_such_module")
    assert result.exit_code == 40
    assert _envelope(result)["error"]["code"] == "E4101"


def test_completion_callbacks(invoke, dsn) -> None:
    invoke("update", "Foo", "--metadata", "{}", "--function", "run")
    invoke("update", "Fizz", "--metadata", "{}")

    ctx = click.Context(typer.main.get_command(app))
    ctx.params = {"dsn": dsn, "package": "Foo"}

    assert _complete_package(ctx, "F") == ["Fizz", "Foo"]
    assert _complete_package(ctx, "Fo") == ["Foo"]
    assert _complete_function(ctx, "r") == ["run"]


def test_completion_on_broken_dsn_is_empty() -> None:
    ctx = click.Context(typer.main.get_command(app))
    ctx.params = {"dsn": "nosuchdriver://host/db"}
    assert _complete_package(ctx, "F") == []
