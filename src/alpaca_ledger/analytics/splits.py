"""Retroactive stock split adjustment of historical fills."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import replace
from datetime import date
from decimal import Decimal
from fractions import Fraction

from alpaca_ledger.core.models import Activity, ActivityKind, SplitEvent
from alpaca_ledger.utils.logging import get_logger

LOGGER = get_logger(__name__)

# Alpaca books a split on or near its ex-date; entries this close are one event.
SPLIT_MATCH_WINDOW_DAYS = 7


def _same_event(first: SplitEvent, second: SplitEvent) -> bool:
    return (
        first.symbol == second.symbol
        and abs((first.effective_date - second.effective_date).days) <= SPLIT_MATCH_WINDOW_DAYS
    )


def collect_splits(
    supplied: Iterable[SplitEvent], activities: Iterable[Activity]
) -> list[SplitEvent]:
    """Merge out-of-band splits with those found in the activity stream.

    A stream split within ``SPLIT_MATCH_WINDOW_DAYS`` of a supplied split for
    the same symbol is the same corporate action and is discarded; the
    supplied one wins. Splits repeating a (symbol, date) pair count once.
    """
    explicit: dict[tuple[str, date], SplitEvent] = {}
    for split in supplied:
        explicit.setdefault((split.symbol, split.effective_date), split)

    from_stream: dict[tuple[str, date], SplitEvent] = {}
    for activity in activities:
        if activity.kind != ActivityKind.SPLIT or activity.split is None:
            continue
        split = activity.split
        override = next((item for item in explicit.values() if _same_event(item, split)), None)
        if override is not None:
            log = LOGGER.warning if override.ratio != split.ratio else LOGGER.info
            log(
                "split for %s on %s (ratio %s) from activity %s discarded in favor of %s on %s",
                split.symbol,
                split.effective_date,
                split.ratio,
                activity.activity_id,
                override.ratio,
                override.effective_date,
            )
            continue
        from_stream.setdefault((split.symbol, split.effective_date), split)

    merged = [*explicit.values(), *from_stream.values()]
    return sorted(merged, key=lambda item: (item.symbol, item.effective_date))


def cumulative_ratio(activity: Activity, splits: Iterable[SplitEvent]) -> Fraction:
    ratio = Fraction(1)
    for split in splits:
        if split.symbol == activity.symbol and activity.trade_date < split.effective_date:
            ratio *= split.ratio
    return ratio


def adjust_activity(activity: Activity, ratio: Fraction) -> Activity:
    if ratio == 1:
        return activity
    numerator = Decimal(ratio.numerator)
    denominator = Decimal(ratio.denominator)
    return replace(
        activity,
        quantity=activity.quantity * numerator / denominator,
        price=activity.price * denominator / numerator,
    )


def apply_splits(activities: Iterable[Activity], splits: Iterable[SplitEvent]) -> list[Activity]:
    """Rescale trades dated strictly before each applicable split.

    Quantities are multiplied and prices divided by the compounded ratio of
    every later split for the same symbol. Cash amounts stay untouched.
    """
    by_symbol: dict[str, list[SplitEvent]] = defaultdict(list)
    for split in splits:
        by_symbol[split.symbol].append(split)

    adjusted: list[Activity] = []
    for activity in activities:
        if activity.kind != ActivityKind.TRADE or activity.symbol not in by_symbol:
            adjusted.append(activity)
            continue
        ratio = cumulative_ratio(activity, by_symbol[activity.symbol])
        if ratio != 1:
            LOGGER.debug("adjusting %s by split ratio %s", activity.activity_id, ratio)
        adjusted.append(adjust_activity(activity, ratio))
    return adjusted


def splits_from_records(records: Iterable[dict]) -> list[SplitEvent]:
    """Build split events from ``{symbol, effective_date, numerator, denominator}`` objects."""
    splits: list[SplitEvent] = []
    for index, record in enumerate(records):
        if not isinstance(record, dict):
            raise ValueError(f"split #{index} must be a JSON object")
        missing = [
            name
            for name in ("symbol", "effective_date", "numerator", "denominator")
            if record.get(name) in (None, "")
        ]
        if missing:
            raise ValueError(f"split #{index} is missing {', '.join(missing)}")
        splits.append(
            SplitEvent.parse(
                f"{record['symbol']}:{record['effective_date']}:"
                f"{record['numerator']}/{record['denominator']}"
            )
        )
    return splits
