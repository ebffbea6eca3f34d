"""Best-effort association of regulatory and ADR fees with trades and dividends.

Associations are kept in lookup tables keyed by the target's identity; a fee
that cannot be matched simply stays standalone.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from alpaca_ledger.core.models import Activity, ActivityKind, MergedFill, TradeSide
from alpaca_ledger.utils.logging import get_logger
from alpaca_ledger.utils.money import ZERO

LOGGER = get_logger(__name__)

REGULATORY_FEE_LOOKBACK_DAYS = 5
ADR_FEE_LOOKBACK_DAYS = 31

_SELL_SIDES = frozenset({TradeSide.SELL, TradeSide.SELL_SHORT})


@dataclass(frozen=True, slots=True)
class StandaloneFee:
    fee: Activity
    unassociated: bool


@dataclass(slots=True)
class FeeAssociationResult:
    by_fill: dict[str, list[Activity]] = field(default_factory=dict)
    by_dividend: dict[str, list[Activity]] = field(default_factory=dict)
    standalone: list[StandaloneFee] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def fees_for_fill(self, fill: MergedFill) -> tuple[Activity, ...]:
        return tuple(self.by_fill.get(fill.key, ()))

    def fees_for_dividend(self, dividend: Activity) -> tuple[Activity, ...]:
        return tuple(self.by_dividend.get(dividend.activity_id, ()))

    def attached(self) -> list[Activity]:
        fees = [fee for group in self.by_fill.values() for fee in group]
        fees.extend(fee for group in self.by_dividend.values() for fee in group)
        return fees

    def total(self) -> Decimal:
        attached = sum((fee.amount for fee in self.attached()), ZERO)
        return attached + sum((item.fee.amount for item in self.standalone), ZERO)


def _days_after(later: Activity, earlier: date) -> int:
    return (later.trade_date - earlier).days


def match_regulatory_fee(fee: Activity, fills: Sequence[MergedFill]) -> MergedFill | None:
    """Match by order id first, then by nearest earlier sell of the same symbol."""
    if fee.order_id:
        same_order = [fill for fill in fills if fill.order_id == fee.order_id]
        if same_order:
            return min(
                same_order,
                key=lambda fill: (
                    fill.trade_date > fee.trade_date,
                    abs(_days_after(fee, fill.trade_date)),
                    fill.sequence,
                ),
            )

    if not fee.symbol:
        return None
    candidates = [
        fill
        for fill in fills
        if fill.symbol == fee.symbol
        and fill.side in _SELL_SIDES
        and 0 <= _days_after(fee, fill.trade_date) <= REGULATORY_FEE_LOOKBACK_DAYS
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda fill: (_days_after(fee, fill.trade_date), fill.sequence))


def match_adr_fee(fee: Activity, dividends: Sequence[Activity]) -> Activity | None:
    """Match the most recent dividend of the same symbol within the lookback window."""
    if not fee.symbol:
        return None
    candidates = [
        dividend
        for dividend in dividends
        if dividend.symbol == fee.symbol
        and 0 <= _days_after(fee, dividend.trade_date) <= ADR_FEE_LOOKBACK_DAYS
    ]
    if not candidates:
        return None
    return min(
        candidates,
        key=lambda dividend: (_days_after(fee, dividend.trade_date), -dividend.sequence),
    )


def associate_fees(
    fills: Sequence[MergedFill],
    dividends: Sequence[Activity],
    fees: Iterable[Activity],
    *,
    force_separate: bool = False,
) -> FeeAssociationResult:
    result = FeeAssociationResult()
    for fee in fees:
        if not fee.is_fee:
            raise ValueError(f"associate_fees expects fees, got {fee.kind.value}")

        if force_separate:
            result.standalone.append(StandaloneFee(fee=fee, unassociated=False))
            continue

        if fee.kind == ActivityKind.REGULATORY_FEE:
            fill = match_regulatory_fee(fee, fills)
            if fill is not None:
                result.by_fill.setdefault(fill.key, []).append(fee)
                continue
            target = "trade"
        else:
            dividend = match_adr_fee(fee, dividends)
            if dividend is not None:
                result.by_dividend.setdefault(dividend.activity_id, []).append(fee)
                continue
            target = "dividend"

        message = (
            f"fee {fee.activity_id} of {fee.amount} on {fee.trade_date} could not be "
            f"matched to a {target}; emitting it standalone"
        )
        LOGGER.warning(message)
        result.warnings.append(message)
        result.standalone.append(StandaloneFee(fee=fee, unassociated=True))
    return result
