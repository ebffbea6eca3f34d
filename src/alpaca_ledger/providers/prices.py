from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from alpaca_ledger.providers.alpaca import AlpacaClient
from alpaca_ledger.utils.dates import parse_timestamp
from alpaca_ledger.utils.money import format_amount, to_decimal

# Weekends and market holidays have no bar; look back this far for the last close.
LOOKBACK_DAYS = 7


@dataclass(frozen=True, slots=True)
class ClosePrice:
    symbol: str
    as_of: date
    close: Decimal

    def directive(self, currency: str) -> str:
        """Ledger market price directive, e.g. ``P 2023-06-01 AAPL 150.00 USD``."""
        return f"P {self.as_of.isoformat()} {self.symbol} {format_amount(self.close, currency)}"


class PriceProvider:
    """Historic daily close lookup backed by the Alpaca market data API."""

    def __init__(self, client: AlpacaClient, *, feed: str | None = None) -> None:
        self.client = client
        self.feed = feed

    def get_close(self, symbol: str, as_of: date) -> ClosePrice | None:
        token = symbol.strip().upper()
        params: dict[str, str | int] = {
            "timeframe": "1Day",
            "start": (as_of - timedelta(days=LOOKBACK_DAYS)).isoformat(),
            "end": as_of.isoformat(),
            "adjustment": "raw",
            "limit": LOOKBACK_DAYS + 1,
        }
        if self.feed:
            params["feed"] = self.feed
        payload = self.client.get_json(self.client.data_url(f"/v2/stocks/{token}/bars"), params)
        bars = (payload or {}).get("bars") or []
        candidates = []
        for bar in bars:
            stamp = bar.get("t") if isinstance(bar, dict) else None
            if stamp is None or bar.get("c") is None:
                raise ValueError(f"malformed bar for {token}: {bar!r}")
            bar_date = parse_timestamp(stamp).date()
            if bar_date <= as_of:
                candidates.append((bar_date, bar))
        if not candidates:
            return None
        bar_date, bar = max(candidates, key=lambda item: item[0])
        return ClosePrice(symbol=token, as_of=bar_date, close=to_decimal(bar["c"]))
