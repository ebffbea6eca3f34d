from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal
from typing import Any

from alpaca_ledger.core.errors import ActivityParseError
from alpaca_ledger.core.models import Regulator, TradeSide
from alpaca_ledger.utils.dates import parse_timestamp
from alpaca_ledger.utils.money import to_decimal

UUID_RE = re.compile(
    r"\b[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}\b", re.IGNORECASE
)
SPLIT_RATIO_RE = re.compile(r"\b(\d+)\s*(?:-\s*for\s*-|\s+for\s+|:)\s*(\d+)\b", re.IGNORECASE)
ADR_RE = re.compile(r"\bADR\b", re.IGNORECASE)
TAF_RE = re.compile(r"\bTAF\b", re.IGNORECASE)


def record_id(record: Mapping[str, Any]) -> str | None:
    value = record.get("id")
    text = str(value).strip() if value is not None else ""
    return text or None


def normalize_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def normalize_symbol(value: Any) -> str | None:
    token = normalize_text(value).upper()
    return token or None


def require_field(record: Mapping[str, Any], name: str) -> Any:
    value = record.get(name)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ActivityParseError("required field is missing", activity_id=record_id(record), field=name)
    return value


def parse_decimal_field(record: Mapping[str, Any], name: str) -> Decimal:
    value = require_field(record, name)
    try:
        return to_decimal(value)
    except ValueError as exc:
        raise ActivityParseError(str(exc), activity_id=record_id(record), field=name) from exc


def parse_timestamp_field(record: Mapping[str, Any], *names: str) -> datetime:
    for name in names:
        value = record.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        try:
            return parse_timestamp(value)
        except ValueError as exc:
            raise ActivityParseError(str(exc), activity_id=record_id(record), field=name) from exc
    raise ActivityParseError(
        "required field is missing", activity_id=record_id(record), field=" or ".join(names)
    )


def normalize_side(record: Mapping[str, Any]) -> TradeSide:
    text = normalize_text(require_field(record, "side")).lower()
    aliases = {
        "buy": TradeSide.BUY,
        "sell": TradeSide.SELL,
        "sell_short": TradeSide.SELL_SHORT,
        "short_sell": TradeSide.SELL_SHORT,
    }
    side = aliases.get(text)
    if side is None:
        raise ActivityParseError(f"unsupported side {text!r}", activity_id=record_id(record), field="side")
    return side


def signed_quantity(side: TradeSide, quantity: Decimal) -> Decimal:
    magnitude = abs(quantity)
    return magnitude if side == TradeSide.BUY else -magnitude


def extract_order_id(record: Mapping[str, Any]) -> str | None:
    order_id = normalize_text(record.get("order_id"))
    if order_id:
        return order_id
    match = UUID_RE.search(normalize_text(record.get("description")))
    return match.group(0) if match else None


def classify_regulator(description: str) -> Regulator:
    return Regulator.FINRA_TAF if TAF_RE.search(description) else Regulator.SEC


def mentions_adr(description: str) -> bool:
    return bool(ADR_RE.search(description))


def _first_present(record: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        if record.get(name) is not None:
            return record[name]
    return None


def parse_split_ratio(record: Mapping[str, Any]) -> tuple[int, int] | None:
    """Return (numerator, denominator) from explicit fields or the description."""
    numerator = _first_present(record, "split_to", "numerator")
    denominator = _first_present(record, "split_from", "denominator")
    if numerator is not None and denominator is not None:
        try:
            num, den = int(str(numerator)), int(str(denominator))
        except ValueError as exc:
            raise ActivityParseError(
                "split ratio must be integral", activity_id=record_id(record), field="split_to"
            ) from exc
        if num > 0 and den > 0:
            return num, den
        raise ActivityParseError(
            "split ratio must be positive", activity_id=record_id(record), field="split_to"
        )

    match = SPLIT_RATIO_RE.search(normalize_text(record.get("description")))
    if not match:
        return None
    num, den = int(match.group(1)), int(match.group(2))
    if num <= 0 or den <= 0:
        return None
    return num, den
