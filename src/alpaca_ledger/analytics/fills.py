"""Coalesce partial fills of one order into aggregate fills."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from alpaca_ledger.core.models import Activity, ActivityKind, MergedFill, TradeSide

MergeKey = tuple[str, str, Decimal, TradeSide | None, date]


def _merge_key(trade: Activity) -> MergeKey | None:
    if not trade.order_id:
        return None
    return (trade.order_id, trade.symbol or "", trade.price, trade.side, trade.trade_date)


def merge_fills(trades: Iterable[Activity]) -> list[MergedFill]:
    """Group same-day fills sharing order id, symbol, price and side.

    Each group takes the position (and timestamp) of its earliest fill; fills
    without an order id are never merged.
    """
    groups: list[list[Activity]] = []
    index_by_key: dict[MergeKey, int] = {}

    ordered = sorted(trades, key=lambda item: (item.timestamp, item.sequence))
    for trade in ordered:
        if trade.kind != ActivityKind.TRADE:
            raise ValueError(f"merge_fills expects trades, got {trade.kind.value}")
        key = _merge_key(trade)
        if key is not None and key in index_by_key:
            groups[index_by_key[key]].append(trade)
            continue
        if key is not None:
            index_by_key[key] = len(groups)
        groups.append([trade])

    return [MergedFill(fills=tuple(group)) for group in groups]


def split_by_order(merged: Iterable[MergedFill]) -> dict[str, list[Activity]]:
    """Recover the constituent fills of every order id."""
    by_order: dict[str, list[Activity]] = defaultdict(list)
    for fill in merged:
        for trade in fill.fills:
            by_order[trade.order_id or trade.activity_id].append(trade)
    return dict(by_order)
