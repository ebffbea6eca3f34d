"""End-to-end reconciliation of raw activity records into ledger entries.

Stages run in a fixed order: drop re-delivered records, normalize, order
chronologically, filter by the begin date, adjust for splits, merge fills,
associate fees, build entries.
Splits are applied before merging so merge keys compare post-split prices.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from alpaca_ledger.analytics.fees import FeeAssociationResult, associate_fees
from alpaca_ledger.analytics.fills import merge_fills
from alpaca_ledger.analytics.splits import apply_splits, collect_splits
from alpaca_ledger.config.registry import SymbolRegistry
from alpaca_ledger.config.settings import Settings
from alpaca_ledger.core.models import Activity, ActivityKind, LedgerEntry, MergedFill, SplitEvent
from alpaca_ledger.ingest.normalize import drop_before, ensure_chronological, normalize_activities
from alpaca_ledger.ledger.formatter import build_entries, render_ledger
from alpaca_ledger.utils.logging import get_logger
from alpaca_ledger.utils.money import ZERO

LOGGER = get_logger(__name__)


@dataclass(slots=True)
class ReconciliationReport:
    entries: list[LedgerEntry] = field(default_factory=list)
    fills: list[MergedFill] = field(default_factory=list)
    dividends: list[Activity] = field(default_factory=list)
    transfers: list[Activity] = field(default_factory=list)
    splits: list[SplitEvent] = field(default_factory=list)
    association: FeeAssociationResult = field(default_factory=FeeAssociationResult)
    warnings: list[str] = field(default_factory=list)
    records_seen: int = 0
    unknown_count: int = 0
    duplicate_count: int = 0
    fee_total_in: Decimal = ZERO

    @property
    def fee_total_out(self) -> Decimal:
        return self.association.total()


def reconcile(
    records: Iterable[Mapping[str, Any]],
    settings: Settings,
    registry: SymbolRegistry | None = None,
    splits: Iterable[SplitEvent] = (),
    *,
    newest_first: bool = False,
) -> ReconciliationReport:
    """Run the full pipeline over already materialized raw records.

    ``ActivityParseError`` and ``RegistryError`` propagate; nothing partial is
    returned in that case.
    """
    if registry is None:
        registry = SymbolRegistry.passthrough()
    raw = list(records)
    normalized = normalize_activities(raw)
    ordered = ensure_chronological(normalized.activities, newest_first=newest_first)
    activities = drop_before(ordered, settings.begin)

    split_events = collect_splits(splits, normalized.activities)
    activities = apply_splits(activities, split_events)

    trades = [item for item in activities if item.kind == ActivityKind.TRADE]
    dividends = [item for item in activities if item.kind == ActivityKind.DIVIDEND]
    transfers = [item for item in activities if item.kind == ActivityKind.TRANSFER]
    fees = [item for item in activities if item.is_fee]

    fills = merge_fills(trades)
    association = associate_fees(
        fills, dividends, fees, force_separate=settings.force_separate_fees
    )
    entries = build_entries(fills, dividends, transfers, association, settings, registry)

    LOGGER.info(
        "reconciled %d records into %d entries (%d fills from %d trades, %d fees attached)",
        len(raw),
        len(entries),
        len(fills),
        len(trades),
        len(association.attached()),
    )
    return ReconciliationReport(
        entries=entries,
        fills=fills,
        dividends=dividends,
        transfers=transfers,
        splits=split_events,
        association=association,
        warnings=[*normalized.warnings, *association.warnings],
        records_seen=len(raw),
        unknown_count=normalized.unknown_count,
        duplicate_count=normalized.duplicate_count,
        fee_total_in=sum((fee.amount for fee in fees), ZERO),
    )


def export_ledger(
    records: Iterable[Mapping[str, Any]],
    settings: Settings,
    currency: str,
    registry: SymbolRegistry | None = None,
    splits: Iterable[SplitEvent] = (),
    *,
    newest_first: bool = False,
) -> tuple[str, ReconciliationReport]:
    report = reconcile(
        records, settings, registry=registry, splits=splits, newest_first=newest_first
    )
    return render_ledger(report.entries, currency), report
