"""
NotesHub Tools — CLI Tests
===========================

typer's CliRunner drives the commands; network-facing commands are
pointed at mocks.
"""

import json
from unittest.mock import AsyncMock, patch

from typer.testing import CliRunner

from noteshub.client.indicator import IndicatorState
from noteshub.tools.cli import app

runner = CliRunner()


def test_visits_record_and_list(tmp_path):
    store = tmp_path / "local-storage.json"

    first = runner.invoke(app, ["visits", "record", "browse", "--store-path", str(store)])
    again = runner.invoke(app, ["visits", "record", "browse", "--store-path", str(store)])
    listed = runner.invoke(app, ["visits", "list", "--store-path", str(store)])

    assert first.exit_code == 0
    assert "Recorded visit" in first.stdout
    assert "already recorded" in again.stdout
    assert "- browse" in listed.stdout
    assert json.loads(json.loads(store.read_text())["visitedPages"]) == ["browse"]


def test_status_once_prints_state():
    with patch(
        "noteshub.tools.cli.StatusPoller.poll_once",
        new=AsyncMock(return_value=IndicatorState.WARNING),
    ):
        result = runner.invoke(app, ["status", "--once", "--url", "http://x/api/db-status"])

    assert result.exit_code == 0
    assert "Checking..." in result.stdout


def test_status_rejects_bad_interval():
    result = runner.invoke(app, ["status", "--once", "--interval", "5"])
    assert result.exit_code == 2


def test_tunnel_unknown_provider():
    result = runner.invoke(app, ["tunnel", "--provider", "serveo"])
    assert result.exit_code == 2


def test_tunnel_failure_exit_code():
    with patch("noteshub.tools.cli.run_tunnel", new=AsyncMock(return_value=1)) as mock_run:
        result = runner.invoke(app, ["tunnel", "--provider", "localtunnel", "--port", "8080"])

    assert result.exit_code == 1
    mock_run.assert_awaited_once_with("localtunnel", port=8080, keep_running=False)
