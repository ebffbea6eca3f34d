from __future__ import annotations

import json
from datetime import date
from typing import Any

import pytest

from alpaca_ledger import cli


class StubClient:
    def __init__(self, records: list[dict[str, Any]], bars: list[dict[str, Any]] | None = None) -> None:
        self.records = records
        self.bars = bars or []
        self.requests: list[tuple[str, dict[str, Any] | None]] = []

    def account_currency(self) -> str:
        return "USD"

    def trading_url(self, path: str) -> str:
        return path

    def data_url(self, path: str) -> str:
        return path

    def get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        self.requests.append((url, params))
        if url.endswith("/bars"):
            return {"bars": self.bars}
        return self.records


def _no_client() -> StubClient:
    raise AssertionError("no request expected")


def test_activity_command_prints_ledger(monkeypatch, capsys, raw_activity_page, tmp_path) -> None:
    client = StubClient(raw_activity_page)
    monkeypatch.setattr(cli, "_make_client", lambda: client)
    registry = tmp_path / "registry.json"
    registry.write_text(
        json.dumps({"AAPL": "Apple Inc.", "MSFT": "Microsoft Corporation", "TSM": "TSMC"}),
        encoding="utf-8",
    )

    exit_code = cli.main(
        ["activity", "--registry", str(registry), "--transfer-account", "Assets:Bank:Checking"]
    )

    out = capsys.readouterr().out
    assert exit_code == 0
    assert out.startswith("2023-05-01 * Apple Inc.\n")
    assert "2023-05-10 * TSMC\n" in out
    assert f"  {'Assets:Bank:Checking':<51}    {'-1000.00 USD':>15}\n" in out
    assert out.endswith("\n\n")
    assert client.requests[0][1]["direction"] == "asc"


def test_begin_and_split_options(monkeypatch, capsys, raw_activity_page) -> None:
    client = StubClient(raw_activity_page)
    monkeypatch.setattr(cli, "_make_client", lambda: client)

    exit_code = cli.main(
        ["activity", "-b", "2023-05-01", "--split", "AAPL:2023-05-20:2/1", "--force-separate-fees"]
    )

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "30 AAPL @ 75.00 USD" in out
    assert ":unassociated:" not in out
    assert client.requests[0][1]["after"] == "2023-04-30"


def test_invalid_account_name_fails_before_any_request(monkeypatch, capsys) -> None:
    monkeypatch.setattr(cli, "_make_client", _no_client)

    exit_code = cli.main(["activity", "--brokerage-account", "Assets:Alpaca  Cash"])

    assert exit_code == 1
    err = capsys.readouterr().err
    assert err.startswith("error: --brokerage-account")


def test_invalid_split_fails_before_any_request(monkeypatch, capsys) -> None:
    monkeypatch.setattr(cli, "_make_client", _no_client)

    assert cli.main(["activity", "--split", "AAPL:2023-05-20"]) == 1
    assert "--split" in capsys.readouterr().err


def test_malformed_activity_prints_nothing_to_stdout(monkeypatch, capsys, raw_activity_page) -> None:
    raw_activity_page[2]["price"] = "n/a"
    monkeypatch.setattr(cli, "_make_client", lambda: StubClient(raw_activity_page))

    exit_code = cli.main(["activity"])

    captured = capsys.readouterr()
    assert exit_code == 1
    assert captured.out == ""
    assert "20230501140000000::f3" in captured.err


def test_missing_credentials_exit_with_error(monkeypatch, capsys) -> None:
    monkeypatch.delenv("APCA_API_KEY_ID", raising=False)
    monkeypatch.delenv("APCA_API_SECRET_KEY", raising=False)

    assert cli.main(["activity"]) == 1
    assert "APCA_API_KEY_ID" in capsys.readouterr().err


def test_bad_begin_date_is_a_usage_error(capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["activity", "--begin", "05/01/2023"])

    assert excinfo.value.code == 2
    assert "yyyy-mm-dd" in capsys.readouterr().err


def test_prices_command(monkeypatch, capsys) -> None:
    client = StubClient([], bars=[{"t": "2023-06-02T04:00:00Z", "c": "180.95"}])
    monkeypatch.setattr(cli, "_make_client", lambda: client)

    exit_code = cli.main(["prices", "aapl", "msft", "--date", "2023-06-02"])

    assert exit_code == 0
    assert capsys.readouterr().out == (
        "P 2023-06-02 AAPL 180.95 USD\nP 2023-06-02 MSFT 180.95 USD\n"
    )
    assert client.requests[0][1]["end"] == date(2023, 6, 2).isoformat()


def test_prices_command_reports_missing_symbols(monkeypatch, capsys) -> None:
    monkeypatch.setattr(cli, "_make_client", lambda: StubClient([]))

    assert cli.main(["prices", "ZZZZ", "-d", "2023-06-02"]) == 1
    assert "ZZZZ" in capsys.readouterr().err


def test_prices_command_reports_malformed_bars(monkeypatch, capsys) -> None:
    client = StubClient([], bars=[{"t": "2023-06-02T04:00:00Z"}])
    monkeypatch.setattr(cli, "_make_client", lambda: client)

    assert cli.main(["prices", "AAPL", "-d", "2023-06-02"]) == 1
    assert "error: malformed bar for AAPL" in capsys.readouterr().err
