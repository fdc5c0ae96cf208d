"""Tests for the bybitgw CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml
from conftest import TEST_BASE_URL, RecordingTransport, envelope_body, query_params
from typer.testing import CliRunner

from bybitgw import __version__, cli
from bybitgw.api import BybitClient
from bybitgw.auth import Credentials
from bybitgw.gateway import Gateway
from bybitgw.gateway.signer import HEADER_SIGN

runner = CliRunner()


@pytest.fixture(autouse=True)
def mock_client(monkeypatch: pytest.MonkeyPatch, transport: RecordingTransport) -> None:
    """Route every CLI command through the mock transport."""

    def make_client() -> BybitClient:
        gateway = Gateway(
            credentials=Credentials("cli-key", "cli-secret"),
            base_url=TEST_BASE_URL,
            http_client=transport.client(),
        )
        return BybitClient(gateway)

    monkeypatch.setattr(cli, "make_client", make_client)


class TestGlobalOptions:
    """Tests for --version and --config."""

    def test_version(self) -> None:
        result = runner.invoke(cli.app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_bad_config_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("- not\n- a mapping\n")

        result = runner.invoke(cli.app, ["--config", str(path), "config", "show"])

        assert result.exit_code == 1
        assert "mapping" in result.output

    def test_config_file_applied(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("server:\n  port: 7001\n")

        result = runner.invoke(cli.app, ["--config", str(path), "config", "show"])

        assert result.exit_code == 0
        assert "7001" in result.output

    def test_testnet_switches_base_url(self) -> None:
        result = runner.invoke(cli.app, ["--testnet", "config", "show"])

        assert result.exit_code == 0, result.output
        assert "https://api-testnet.bybit.com" in result.output


class TestMarketCommands:
    """Tests for tickers and kline."""

    def test_tickers(self, transport: RecordingTransport) -> None:
        transport.queue(
            json_body=envelope_body(
                {
                    "category": "spot",
                    "list": [
                        {
                            "symbol": "BTCUSDT",
                            "lastPrice": "65000.5",
                            "bid1Price": "65000",
                            "ask1Price": "65001",
                            "price24hPcnt": "0.0123",
                            "volume24h": "100",
                        }
                    ],
                }
            )
        )

        result = runner.invoke(cli.app, ["tickers", "--symbol", "BTCUSDT"])

        assert result.exit_code == 0, result.output
        assert "BTCUSDT" in result.output
        assert query_params(transport.last) == {"category": "spot", "symbol": "BTCUSDT"}

    def test_tickers_vendor_error(self, transport: RecordingTransport) -> None:
        transport.queue(json_body=envelope_body(code=10001, message="params error"))

        result = runner.invoke(cli.app, ["tickers", "--category", "bogus"])

        assert result.exit_code == 1
        assert "Error" in result.output
        assert "10001" in result.output

    def test_tickers_server_error(self, transport: RecordingTransport) -> None:
        transport.queue(500, text="boom")
        result = runner.invoke(cli.app, ["tickers"])
        assert result.exit_code == 1
        assert "ServerError" in result.output

    def test_kline(self, transport: RecordingTransport) -> None:
        transport.queue(
            json_body=envelope_body(
                {
                    "symbol": "BTCUSDT",
                    "list": [["1700000000000", "1", "2", "0.5", "1.5", "10", "15"]],
                }
            )
        )

        result = runner.invoke(cli.app, ["kline", "BTCUSDT", "--interval", "D", "--limit", "1"])

        assert result.exit_code == 0, result.output
        assert "2023-11-14" in result.output
        assert query_params(transport.last)["interval"] == "D"

    def test_kline_empty(self, transport: RecordingTransport) -> None:
        transport.queue(json_body=envelope_body({"list": []}))
        result = runner.invoke(cli.app, ["kline", "BTCUSDT"])
        assert result.exit_code == 0
        assert "No candles" in result.output


class TestAccountCommands:
    """Tests for balance, positions and orders."""

    def test_balance(self, transport: RecordingTransport) -> None:
        transport.queue(
            json_body=envelope_body(
                {
                    "list": [
                        {
                            "accountType": "UNIFIED",
                            "totalEquity": "1000",
                            "coin": [{"coin": "USDT", "walletBalance": "1000", "usdValue": "1000"}],
                        }
                    ]
                }
            )
        )

        result = runner.invoke(cli.app, ["balance"])

        assert result.exit_code == 0, result.output
        assert "USDT" in result.output
        assert HEADER_SIGN in transport.last.headers

    def test_positions_skips_flat(self, transport: RecordingTransport) -> None:
        transport.queue(
            json_body=envelope_body(
                {
                    "list": [
                        {"symbol": "BTCUSDT", "side": "Buy", "size": "0.5", "leverage": "10"},
                        {"symbol": "ETHUSDT", "side": "", "size": "0"},
                    ]
                }
            )
        )

        result = runner.invoke(cli.app, ["positions"])

        assert result.exit_code == 0, result.output
        assert "BTCUSDT" in result.output
        assert "ETHUSDT" not in result.output
        assert query_params(transport.last) == {"category": "linear", "settleCoin": "USDT"}

    def test_no_positions(self, transport: RecordingTransport) -> None:
        transport.queue(json_body=envelope_body({"list": []}))
        result = runner.invoke(cli.app, ["positions", "--symbol", "BTCUSDT"])
        assert result.exit_code == 0
        assert "No open positions" in result.output
        assert query_params(transport.last) == {"category": "linear", "symbol": "BTCUSDT"}

    def test_orders_history(self, transport: RecordingTransport) -> None:
        transport.queue(
            json_body=envelope_body(
                {
                    "list": [
                        {
                            "orderId": "1234567890abcdef",
                            "symbol": "BTCUSDT",
                            "side": "Sell",
                            "orderType": "Limit",
                            "orderStatus": "Filled",
                            "price": "70000",
                            "qty": "0.1",
                            "cumExecQty": "0.1",
                        }
                    ]
                }
            )
        )

        result = runner.invoke(cli.app, ["orders", "--history"])

        assert result.exit_code == 0, result.output
        assert "Filled" in result.output
        assert transport.last.url.path == "/v5/order/history"

    def test_open_orders_auth_failure(self, transport: RecordingTransport) -> None:
        transport.queue(json_body=envelope_body(code=10005, message="Permission denied"))
        result = runner.invoke(cli.app, ["orders"])
        assert result.exit_code == 1
        assert "AuthFailed" in result.output


class TestCallCommand:
    """Tests for the raw endpoint call."""

    def test_get_with_params(self, transport: RecordingTransport) -> None:
        transport.queue(json_body=envelope_body({"timeSecond": "1700000000"}))

        result = runner.invoke(cli.app, ["call", "get", "market/tickers", "category=spot"])

        assert result.exit_code == 0, result.output
        assert "timeSecond" in result.output
        assert query_params(transport.last) == {"category": "spot"}
        assert HEADER_SIGN not in transport.last.headers

    def test_post_is_signed(self, transport: RecordingTransport) -> None:
        result = runner.invoke(
            cli.app, ["call", "POST", "order/cancel", "category=linear", "symbol=BTCUSDT"]
        )

        assert result.exit_code == 0, result.output
        assert json.loads(transport.last.content) == {"category": "linear", "symbol": "BTCUSDT"}
        assert HEADER_SIGN in transport.last.headers

    def test_auth_flag(self, transport: RecordingTransport) -> None:
        result = runner.invoke(cli.app, ["call", "GET", "account/info", "--auth"])
        assert result.exit_code == 0, result.output
        assert HEADER_SIGN in transport.last.headers

    def test_bad_param(self, transport: RecordingTransport) -> None:
        result = runner.invoke(cli.app, ["call", "GET", "market/time", "oops"])
        assert result.exit_code == 2
        assert transport.requests == []

    def test_bad_method(self, transport: RecordingTransport) -> None:
        result = runner.invoke(cli.app, ["call", "DELETE", "order/cancel"])
        assert result.exit_code == 1
        assert "InvalidParameter" in result.output
        assert transport.requests == []


class TestConfigCommands:
    """Tests for config init and show."""

    def test_init(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"

        result = runner.invoke(cli.app, ["config", "init", "--path", str(path)])

        assert result.exit_code == 0, result.output
        data = yaml.safe_load(path.read_text())
        assert data["server"]["port"] == 50051

    def test_init_refuses_overwrite(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("keep: me\n")

        result = runner.invoke(cli.app, ["config", "init", "--path", str(path)])

        assert result.exit_code == 1
        assert path.read_text() == "keep: me\n"

    def test_init_force(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("keep: me\n")

        result = runner.invoke(cli.app, ["config", "init", "--path", str(path), "--force"])

        assert result.exit_code == 0
        assert "server" in yaml.safe_load(path.read_text())

    def test_show_masks_credentials(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BYBIT_API_KEY", "abcd1234efgh5678")
        monkeypatch.setenv("BYBIT_API_SECRET", "topsecretvalue")

        result = runner.invoke(cli.app, ["config", "show"])

        assert result.exit_code == 0, result.output
        assert "abcd...5678" in result.output
        assert "abcd1234efgh5678" not in result.output
        assert "topsecretvalue" not in result.output
