from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import pytest

from alpaca_ledger.config.settings import Settings
from alpaca_ledger.core.models import Activity, ActivityKind, Regulator, TradeSide


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def make_trade() -> Callable[..., Activity]:
    def _make(
        sequence: int,
        *,
        quantity: str,
        price: str,
        symbol: str = "AAPL",
        order_id: str | None = "O1",
        at: datetime = datetime(2023, 5, 1, 14, 0, tzinfo=timezone.utc),
    ) -> Activity:
        qty = Decimal(quantity)
        px = Decimal(price)
        return Activity(
            kind=ActivityKind.TRADE,
            activity_id=f"fill-{sequence}",
            timestamp=at,
            sequence=sequence,
            amount=-(qty * px),
            symbol=symbol,
            quantity=qty,
            price=px,
            side=TradeSide.BUY if qty > 0 else TradeSide.SELL,
            order_id=order_id,
        )

    return _make


@pytest.fixture
def make_fee() -> Callable[..., Activity]:
    def _make(
        sequence: int,
        *,
        amount: str,
        kind: ActivityKind = ActivityKind.REGULATORY_FEE,
        symbol: str | None = None,
        order_id: str | None = None,
        at: datetime = datetime(2023, 5, 1, tzinfo=timezone.utc),
        description: str = "",
    ) -> Activity:
        return Activity(
            kind=kind,
            activity_id=f"fee-{sequence}",
            timestamp=at,
            sequence=sequence,
            amount=Decimal(amount),
            symbol=symbol,
            order_id=order_id,
            description=description,
            regulator=Regulator.SEC if kind == ActivityKind.REGULATORY_FEE else None,
        )

    return _make


@pytest.fixture
def make_dividend() -> Callable[..., Activity]:
    def _make(sequence: int, *, amount: str, symbol: str, at: datetime) -> Activity:
        return Activity(
            kind=ActivityKind.DIVIDEND,
            activity_id=f"div-{sequence}",
            timestamp=at,
            sequence=sequence,
            amount=Decimal(amount),
            symbol=symbol,
        )

    return _make


@pytest.fixture
def raw_activity_page() -> list[dict[str, Any]]:
    """One month of account activity as returned by /v2/account/activities."""
    return [
        {
            "id": "20230501133000000::f1",
            "activity_type": "FILL",
            "transaction_time": "2023-05-01T13:30:00Z",
            "type": "partial_fill",
            "price": "150.00",
            "qty": "10",
            "side": "buy",
            "symbol": "AAPL",
            "order_id": "O1",
        },
        {
            "id": "20230501133100000::f2",
            "activity_type": "FILL",
            "transaction_time": "2023-05-01T13:31:00Z",
            "type": "fill",
            "price": "150.00",
            "qty": "5",
            "side": "buy",
            "symbol": "AAPL",
            "order_id": "O1",
        },
        {
            "id": "20230501140000000::f3",
            "activity_type": "FILL",
            "transaction_time": "2023-05-01T14:00:00Z",
            "type": "fill",
            "price": "300.00",
            "qty": "4",
            "side": "sell",
            "symbol": "MSFT",
            "order_id": "O2",
        },
        {
            "id": "20230501000000000::r1",
            "activity_type": "FEE",
            "date": "2023-05-01",
            "net_amount": "-0.03",
            "description": "REG fee",
            "order_id": "O2",
        },
        {
            "id": "20230502000000000::r2",
            "activity_type": "FEE",
            "date": "2023-05-02",
            "net_amount": "-0.01",
            "description": "TAF fee",
            "order_id": "O2",
        },
        {
            "id": "20230510000000000::d1",
            "activity_type": "DIV",
            "date": "2023-05-10",
            "net_amount": "12.50",
            "symbol": "TSM",
            "qty": "25",
            "per_share_amount": "0.5",
        },
        {
            "id": "20230512000000000::p1",
            "activity_type": "PTC",
            "date": "2023-05-12",
            "net_amount": "-0.60",
            "symbol": "TSM",
            "description": "ADR Fees",
        },
        {
            "id": "20230515000000000::c1",
            "activity_type": "CSD",
            "date": "2023-05-15",
            "net_amount": "1000",
            "description": "ACH deposit",
        },
        {
            "id": "20230531000000000::i1",
            "activity_type": "INT",
            "date": "2023-05-31",
            "net_amount": "0.12",
        },
        {
            "id": "20230602000000000::r3",
            "activity_type": "FEE",
            "date": "2023-06-02",
            "net_amount": "-0.02",
            "description": "Regulatory fee adjustment",
        },
    ]
