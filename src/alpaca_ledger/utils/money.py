"""Money helpers for exact decimal parsing and ledger amount rendering."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

ZERO = Decimal("0")


def to_decimal(value: int | str | Decimal) -> Decimal:
    """Parse ``value`` as an exact decimal.

    Floats are rejected because they cannot represent most prices exactly.
    """
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ValueError(f"Not a finite decimal: {value}")
        return value
    if isinstance(value, bool) or isinstance(value, float):
        raise ValueError(f"Refusing to parse inexact value: {value!r}")
    if isinstance(value, int):
        return Decimal(value)
    text = str(value).strip().replace(",", "")
    if not text:
        raise ValueError("Empty decimal value")
    try:
        parsed = Decimal(text)
    except InvalidOperation as exc:
        raise ValueError(f"Unable to parse decimal: {value!r}") from exc
    if not parsed.is_finite():
        raise ValueError(f"Not a finite decimal: {value!r}")
    return parsed


def _plain(value: Decimal) -> str:
    if value == 0:
        value = abs(value)
    return f"{value:f}"


def with_min_precision(value: Decimal, places: int = 2) -> Decimal:
    normalized = value.normalize()
    if normalized.as_tuple().exponent > -places:
        normalized = normalized.quantize(Decimal(1).scaleb(-places))
    return normalized


def format_quantity(value: Decimal) -> str:
    return _plain(value.normalize())


def format_amount(value: Decimal, currency: str) -> str:
    """Render ``value`` with at least two fractional digits, e.g. ``150.00 USD``."""
    return f"{_plain(with_min_precision(value))} {currency}"


def trade_cash_amount(quantity: Decimal, price: Decimal) -> Decimal:
    """Return the signed cash impact of a fill, negative for buys."""
    return -(quantity * price)
