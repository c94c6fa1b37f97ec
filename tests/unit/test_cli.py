"""Tests for the CLI module."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import httpx
import pytest
import respx
from click.testing import CliRunner

from market_gateway.cli import cli

BASE = "https://yahoo.test"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    """A config pointing at a fake Yahoo host and a temp ledger."""
    path = tmp_path / "market-gateway.yml"
    path.write_text(
        f"upstream:\n  base_url: {BASE}\n"
        f"ledger:\n  path: {tmp_path / 'balances.json'}\n"
        "logging:\n  level: WARNING\n"
    )
    # serve exports this for the app factory; monkeypatch restores it afterwards
    monkeypatch.setenv("MARKET_GATEWAY_CONFIG", str(path))
    return str(path)


# ---------------------------------------------------------------------------
# price / chart
# ---------------------------------------------------------------------------


class TestPriceCommand:
    @respx.mock
    def test_json_output(self, runner, config_file, acme_chart):
        respx.get(f"{BASE}/v8/finance/chart/ACME").mock(
            return_value=httpx.Response(200, json=acme_chart)
        )
        result = runner.invoke(cli, ["-c", config_file, "price", "ACME", "--json"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == {"symbol": "ACME", "price": 12.0, "changePercent": 20.0}

    @respx.mock
    def test_fetch_failure_exits_1(self, runner, config_file):
        respx.get(f"{BASE}/v8/finance/chart/ACME").mock(side_effect=httpx.ConnectError("down"))
        result = runner.invoke(cli, ["-c", config_file, "price", "ACME"])
        assert result.exit_code == 1

    @respx.mock
    def test_no_data_exits_1(self, runner, config_file):
        respx.get(f"{BASE}/v8/finance/chart/ACME").mock(
            return_value=httpx.Response(200, json={"chart": {"result": []}})
        )
        result = runner.invoke(cli, ["-c", config_file, "price", "ACME"])
        assert result.exit_code == 1


class TestChartCommand:
    @respx.mock
    def test_json_output(self, runner, config_file, acme_chart):
        route = respx.get(f"{BASE}/v8/finance/chart/ACME").mock(
            return_value=httpx.Response(200, json=acme_chart)
        )
        result = runner.invoke(
            cli,
            ["-c", config_file, "chart", "ACME", "--from", "1700000000", "--to", "1700000100", "-i", "1m", "--json"],
        )
        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["interval"] == "1M"
        assert len(payload["data"]) == 2
        assert dict(route.calls.last.request.url.params)["period1"] == "1700000000"

    @respx.mock
    def test_unsupported_interval_makes_no_request(self, runner, config_file):
        route = respx.get(f"{BASE}/v8/finance/chart/ACME")
        result = runner.invoke(
            cli, ["-c", config_file, "chart", "ACME", "--from", "1", "--to", "2", "-i", "2m"]
        )
        assert result.exit_code == 1
        assert not route.called

    def test_from_and_to_required(self, runner, config_file):
        result = runner.invoke(cli, ["-c", config_file, "chart", "ACME"])
        assert result.exit_code == 2


# ---------------------------------------------------------------------------
# balance
# ---------------------------------------------------------------------------


class TestBalanceCommands:
    def test_get_unknown_user(self, runner, config_file):
        result = runner.invoke(cli, ["-c", config_file, "balance", "get", "alice"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == {"userId": "alice", "balance": 0}

    def test_set_then_adjust(self, runner, config_file):
        runner.invoke(cli, ["-c", config_file, "balance", "set", "alice", "10"])
        result = runner.invoke(cli, ["-c", config_file, "balance", "adjust", "alice", "--", "-2.5"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["balance"] == 7.5

    def test_set_non_finite_exits_1(self, runner, config_file, tmp_path):
        result = runner.invoke(cli, ["-c", config_file, "balance", "set", "alice", "nan"])
        assert result.exit_code == 1
        assert not (tmp_path / "balances.json").exists()

    def test_list(self, runner, config_file):
        runner.invoke(cli, ["-c", config_file, "balance", "set", "bob", "3"])
        result = runner.invoke(cli, ["-c", config_file, "balance", "list"])
        assert result.exit_code == 0, result.output

    def test_corrupt_ledger_exits_1(self, runner, config_file, tmp_path):
        (tmp_path / "balances.json").write_text("{nope")
        result = runner.invoke(cli, ["-c", config_file, "balance", "get", "alice"])
        assert result.exit_code == 1


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------


class TestServeCommand:
    def test_runs_uvicorn_factory(self, runner, config_file):
        fake_uvicorn = MagicMock()
        with patch.dict("sys.modules", {"uvicorn": fake_uvicorn}):
            result = runner.invoke(cli, ["-c", config_file, "serve", "--port", "9000"])
        assert result.exit_code == 0, result.output
        fake_uvicorn.run.assert_called_once()
        args, kwargs = fake_uvicorn.run.call_args
        assert args == ("market_gateway.api.app:create_app",)
        assert kwargs["factory"] is True
        assert kwargs["port"] == 9000
        assert kwargs["host"] == "0.0.0.0"
