from __future__ import annotations

from typer.testing import CliRunner

from main import app

runner = CliRunner()


def test_classify_command():
    result = runner.invoke(app, ["classify", "mariadb", "2006"])
    assert result.exit_code == 0
    assert result.output.strip() == "ConnectionError"

    result = runner.invoke(app, ["classify", "mssql", "999", "--sqlstate", "42000"])
    assert result.output.strip() == "QueryError"


def test_render_with_repeat():
    result = runner.invoke(
        app,
        ["render", "INSERT INTO t VALUES (?)", "1", "--types", "i", "--repeat", "i:2", "--repeat", "i:3"],
    )
    assert result.exit_code == 0
    assert result.output.strip() == (
        "INSERT INTO t VALUES (1); INSERT INTO t VALUES (2); INSERT INTO t VALUES (3)"
    )


def test_render_with_append():
    result = runner.invoke(app, ["render", "SELECT 2", "--append", "SELECT 1"])
    assert result.exit_code == 0
    assert result.output.strip() == "SELECT 2; SELECT 1"


def test_render_mssql_rejects_repeat():
    result = runner.invoke(app, ["render", "SELECT ?", "--engine", "mssql", "--repeat", "i:1"])
    assert result.exit_code == 1
    assert "multi-query" in result.output


def test_render_argument_mismatch_exits_with_error():
    result = runner.invoke(app, ["render", "SELECT ?", "1", "2"])
    assert result.exit_code == 1
    assert "Error:" in result.output
