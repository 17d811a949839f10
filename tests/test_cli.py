"""Tests for the Typer CLI, run against a local board directory."""

import json

import pytest
from typer.testing import CliRunner

from taskforce.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def local_board(tmp_path, monkeypatch):
    monkeypatch.delenv("TASKFORCE_GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("TASKFORCE_KV_URL", raising=False)
    monkeypatch.setenv("TASKFORCE_DATA_DIR", str(tmp_path / "board"))
    monkeypatch.setenv("TASKFORCE_LOG_LEVEL", "WARNING")
    return tmp_path / "board"


def test_create_and_board_json():
    result = runner.invoke(app, ["create", "Build endpoint", "--priority", "high", "-l", "api"])
    assert result.exit_code == 0
    assert "ticket-001" in result.output

    result = runner.invoke(app, ["board", "--json"])
    tickets = json.loads(result.stdout)
    assert tickets[0]["priority"] == "high"
    assert tickets[0]["labels"] == ["api"]


def test_move_claims_for_agent():
    runner.invoke(app, ["create", "Build endpoint"])

    result = runner.invoke(app, ["move", "ticket-001", "in_progress", "--agent", "backend-agent"])
    assert result.exit_code == 0

    shown = json.loads(runner.invoke(app, ["show", "ticket-001", "--json"]).stdout)
    assert shown["ticket"]["assignee"] == "backend-agent"
    assert "CLAIMED" in shown["log"]


def test_log_and_stats():
    runner.invoke(app, ["create", "Build endpoint"])

    result = runner.invoke(
        app, ["log", "ticket-001", "-a", "qa", "-m", "waiting on API key", "-t", "blocked"]
    )
    assert result.exit_code == 0

    stats = json.loads(runner.invoke(app, ["stats", "--json"]).stdout)
    assert stats["total"] == 1
    assert stats["todo"] == 1


def test_delete_with_confirmation_flag(local_board):
    runner.invoke(app, ["create", "Build endpoint"])

    result = runner.invoke(app, ["delete", "ticket-001", "--yes"])

    assert result.exit_code == 0
    assert not (local_board / "todo" / "ticket-001.json").exists()


def test_unknown_ticket_exits_1():
    result = runner.invoke(app, ["show", "ticket-404"])

    assert result.exit_code == 1
    assert "not found" in result.output


def test_invalid_input_exits_2():
    result = runner.invoke(app, ["create", "   "])
    assert result.exit_code == 2
