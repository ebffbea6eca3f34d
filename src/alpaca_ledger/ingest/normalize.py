"""Convert raw Alpaca activity records into canonical ``Activity`` values."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any

from alpaca_ledger.core.errors import ActivityParseError
from alpaca_ledger.core.models import Activity, ActivityKind, SplitEvent
from alpaca_ledger.ingest.dedupe import dedupe_records
from alpaca_ledger.ingest.validators import (
    classify_regulator,
    extract_order_id,
    mentions_adr,
    normalize_side,
    normalize_symbol,
    normalize_text,
    parse_decimal_field,
    parse_split_ratio,
    parse_timestamp_field,
    record_id,
    require_field,
    signed_quantity,
)
from alpaca_ledger.utils.logging import get_logger
from alpaca_ledger.utils.money import ZERO, trade_cash_amount

LOGGER = get_logger(__name__)

TRANSFER_TYPES = frozenset({"CSD", "CSW", "CSR", "JNLC", "ACATC", "TRANS"})
SPLIT_TYPES = frozenset({"SPLIT", "REORG"})


@dataclass(slots=True)
class NormalizationResult:
    activities: list[Activity] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    unknown_count: int = 0
    duplicate_count: int = 0


def _activity_id(record: Mapping[str, Any], sequence: int) -> str:
    return record_id(record) or f"#{sequence}"


def _normalize_fill(record: Mapping[str, Any], sequence: int) -> Activity:
    side = normalize_side(record)
    quantity = signed_quantity(side, parse_decimal_field(record, "qty"))
    price = parse_decimal_field(record, "price")
    symbol = normalize_symbol(require_field(record, "symbol"))
    timestamp = parse_timestamp_field(record, "transaction_time", "date")
    try:
        return Activity(
            kind=ActivityKind.TRADE,
            activity_id=_activity_id(record, sequence),
            timestamp=timestamp,
            sequence=sequence,
            amount=trade_cash_amount(quantity, price),
            symbol=symbol,
            quantity=quantity,
            price=price,
            side=side,
            order_id=normalize_text(record.get("order_id")) or None,
        )
    except ValueError as exc:
        raise ActivityParseError(str(exc), activity_id=record_id(record)) from exc


def _non_trade(
    record: Mapping[str, Any], sequence: int, kind: ActivityKind, **extra: Any
) -> Activity:
    return Activity(
        kind=kind,
        activity_id=_activity_id(record, sequence),
        timestamp=parse_timestamp_field(record, "date", "transaction_time"),
        sequence=sequence,
        amount=parse_decimal_field(record, "net_amount"),
        symbol=normalize_symbol(record.get("symbol")),
        description=normalize_text(record.get("description")),
        **extra,
    )


def _normalize_split(record: Mapping[str, Any], sequence: int) -> Activity | None:
    timestamp = parse_timestamp_field(record, "date", "transaction_time")
    symbol = normalize_symbol(require_field(record, "symbol"))
    ratio = parse_split_ratio(record)
    if ratio is None:
        return None
    split = SplitEvent(
        symbol=symbol or "",
        effective_date=timestamp.date(),
        numerator=ratio[0],
        denominator=ratio[1],
    )
    return Activity(
        kind=ActivityKind.SPLIT,
        activity_id=_activity_id(record, sequence),
        timestamp=timestamp,
        sequence=sequence,
        amount=ZERO,
        symbol=symbol,
        description=normalize_text(record.get("description")),
        split=split,
    )


def normalize_activity(record: Mapping[str, Any], sequence: int) -> Activity | None:
    """Normalize one raw record.

    Returns ``None`` for records of an unknown kind. Raises
    ``ActivityParseError`` when a recognized record is malformed.
    """
    if not isinstance(record, Mapping):
        raise ActivityParseError(f"expected a JSON object, got {type(record).__name__}")
    activity_type = normalize_text(require_field(record, "activity_type")).upper()

    if activity_type == "FILL":
        return _normalize_fill(record, sequence)
    if activity_type.startswith("DIV"):
        if not normalize_symbol(record.get("symbol")):
            raise ActivityParseError(
                "dividend entry does not have an associated symbol",
                activity_id=record_id(record),
                field="symbol",
            )
        return _non_trade(record, sequence, ActivityKind.DIVIDEND)
    if activity_type == "FEE":
        description = normalize_text(record.get("description"))
        if mentions_adr(description):
            return _non_trade(record, sequence, ActivityKind.ADR_FEE)
        return _non_trade(
            record,
            sequence,
            ActivityKind.REGULATORY_FEE,
            order_id=extract_order_id(record),
            regulator=classify_regulator(description),
        )
    if activity_type == "PTC":
        return _non_trade(record, sequence, ActivityKind.ADR_FEE)
    if activity_type in TRANSFER_TYPES:
        return _non_trade(record, sequence, ActivityKind.TRANSFER)
    if activity_type in SPLIT_TYPES:
        return _normalize_split(record, sequence)
    return None


def normalize_activities(records: Iterable[Mapping[str, Any]]) -> NormalizationResult:
    deduped = dedupe_records(records)
    result = NormalizationResult(
        warnings=list(deduped.warnings), duplicate_count=deduped.duplicate_count
    )
    for sequence, record in deduped.records:
        activity = normalize_activity(record, sequence)
        if activity is not None:
            result.activities.append(activity)
            continue

        activity_type = normalize_text(record.get("activity_type")).upper()
        rid = _activity_id(record, sequence)
        if activity_type in SPLIT_TYPES:
            message = (
                f"split activity {rid} for {normalize_symbol(record.get('symbol'))} carries no "
                "ratio; supply it with --split"
            )
        else:
            message = f"unknown activity kind {activity_type!r} in record {rid}; skipped"
            result.unknown_count += 1
        LOGGER.warning(message)
        result.warnings.append(message)
    return result


def ensure_chronological(
    activities: list[Activity], *, newest_first: bool = False
) -> list[Activity]:
    """Return activities oldest first, keeping source order for equal timestamps.

    Input is taken as oldest first unless ``newest_first`` is set, in which
    case it is reversed and re-sequenced before sorting.
    """
    if newest_first:
        LOGGER.debug("reversing newest-first activities")
        activities = [
            replace(activity, sequence=index)
            for index, activity in enumerate(reversed(activities))
        ]
    return sorted(activities, key=lambda item: (item.timestamp, item.sequence))


def drop_before(activities: list[Activity], begin: date | None) -> list[Activity]:
    if begin is None:
        return activities
    return [activity for activity in activities if activity.trade_date >= begin]
