"""Render reconciled activity as Ledger CLI transactions."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from fractions import Fraction

from alpaca_ledger.analytics.fees import FeeAssociationResult, StandaloneFee
from alpaca_ledger.config.registry import SymbolRegistry
from alpaca_ledger.config.settings import Settings
from alpaca_ledger.core.models import (
    Activity,
    ActivityKind,
    LedgerEntry,
    MergedFill,
    Posting,
    Regulator,
)
from alpaca_ledger.utils.money import ZERO, format_amount, format_quantity

ALPACA = "Alpaca Securities LLC"
TRANSFER_PAYEE = "Alpaca Transfer"
UNASSOCIATED_TAG = "unassociated"

ACCOUNT_WIDTH = 51
QUANTITY_WIDTH = 13
AMOUNT_WIDTH = 15


def _single_line(text: str) -> str:
    return " ".join(str(text or "").split())


def fee_account(fee: Activity, settings: Settings) -> str:
    if fee.kind == ActivityKind.ADR_FEE:
        return settings.adr_fee_account if fee.symbol else settings.brokerage_fee_account
    if fee.regulator == Regulator.FINRA_TAF:
        return settings.finra_taf_account
    if fee.regulator == Regulator.SEC:
        return settings.sec_fee_account
    return settings.brokerage_fee_account


def _fee_postings(fees: Iterable[Activity], settings: Settings) -> list[Posting]:
    return [Posting(account=fee_account(fee, settings), amount=-fee.amount) for fee in fees]


def trade_entry(
    fill: MergedFill, fees: Sequence[Activity], settings: Settings, registry: SymbolRegistry
) -> LedgerEntry:
    fee_total = sum((fee.amount for fee in fees), ZERO)
    postings = [
        Posting(
            account=settings.investment_account,
            amount=-fill.amount,
            quantity=fill.quantity,
            commodity=fill.symbol,
            price=fill.price,
        ),
        *_fee_postings(fees, settings),
        Posting(account=settings.brokerage_account, amount=fill.amount + fee_total),
    ]
    return LedgerEntry(
        entry_date=fill.trade_date,
        description=registry.name_for(fill.symbol),
        postings=tuple(postings),
        symbol=fill.symbol,
        sequence=fill.sequence,
    )


def dividend_entry(
    dividend: Activity, fees: Sequence[Activity], settings: Settings, registry: SymbolRegistry
) -> LedgerEntry:
    fee_total = sum((fee.amount for fee in fees), ZERO)
    postings = [
        Posting(account=settings.dividend_account, amount=-dividend.amount),
        *_fee_postings(fees, settings),
        Posting(account=settings.brokerage_account, amount=dividend.amount + fee_total),
    ]
    symbol = dividend.symbol or ""
    return LedgerEntry(
        entry_date=dividend.trade_date,
        description=registry.name_for(symbol),
        postings=tuple(postings),
        symbol=symbol,
        sequence=dividend.sequence,
    )


def standalone_fee_entry(item: StandaloneFee, settings: Settings) -> LedgerEntry:
    fee = item.fee
    notes = (_single_line(fee.description),) if fee.description else ()
    return LedgerEntry(
        entry_date=fee.trade_date,
        description=ALPACA,
        postings=(
            Posting(account=fee_account(fee, settings), amount=-fee.amount),
            Posting(account=settings.brokerage_account, amount=fee.amount),
        ),
        symbol=fee.symbol or "",
        sequence=fee.sequence,
        notes=notes,
        tags=(UNASSOCIATED_TAG,) if item.unassociated else (),
    )


def transfer_entry(transfer: Activity, settings: Settings) -> LedgerEntry:
    notes = (_single_line(transfer.description),) if transfer.description else ()
    return LedgerEntry(
        entry_date=transfer.trade_date,
        description=TRANSFER_PAYEE,
        postings=(
            Posting(account=settings.brokerage_account, amount=transfer.amount),
            Posting(account=settings.transfer_account, amount=-transfer.amount),
        ),
        symbol=transfer.symbol or "",
        sequence=transfer.sequence,
        notes=notes,
    )


def build_entries(
    fills: Sequence[MergedFill],
    dividends: Sequence[Activity],
    transfers: Sequence[Activity],
    association: FeeAssociationResult,
    settings: Settings,
    registry: SymbolRegistry,
) -> list[LedgerEntry]:
    entries = [
        trade_entry(fill, association.fees_for_fill(fill), settings, registry) for fill in fills
    ]
    entries.extend(
        dividend_entry(dividend, association.fees_for_dividend(dividend), settings, registry)
        for dividend in dividends
    )
    entries.extend(standalone_fee_entry(item, settings) for item in association.standalone)
    entries.extend(transfer_entry(transfer, settings) for transfer in transfers)
    return order_entries(entries)


def order_entries(entries: Iterable[LedgerEntry]) -> list[LedgerEntry]:
    """Sort oldest first by (date, symbol, input order).

    Input that arrives newest first (as the API pages by default) ends up
    reversed; the sort is stable so equal keys keep their relative order.
    """
    return sorted(entries, key=lambda entry: entry.sort_key)


def _format_posting(posting: Posting, currency: str) -> str:
    account = f"{posting.account:<{ACCOUNT_WIDTH}}"
    if posting.quantity is None or posting.commodity is None:
        return f"  {account}    {format_amount(posting.amount, currency):>{AMOUNT_WIDTH}}"

    quantity = f"{format_quantity(posting.quantity):>{QUANTITY_WIDTH}}"
    price = posting.price if posting.price is not None else ZERO
    # Compared exactly; decimal context rounding can hide a non-terminating split price.
    if Fraction(posting.quantity) * Fraction(price) == Fraction(posting.amount):
        cost = f"@ {format_amount(price, currency)}"
    else:
        cost = f"@@ {format_amount(abs(posting.amount), currency)}"
    return f"  {account}  {quantity} {posting.commodity} {cost}"


def format_entry(entry: LedgerEntry, currency: str) -> str:
    lines = [f"{entry.entry_date.isoformat()} * {_single_line(entry.description)}"]
    lines.extend(f"  ; {note}" for note in entry.notes)
    lines.extend(f"  ; :{tag}:" for tag in entry.tags)
    lines.extend(_format_posting(posting, currency) for posting in entry.postings)
    return "\n".join(lines) + "\n"


def render_ledger(entries: Iterable[LedgerEntry], currency: str) -> str:
    return "".join(f"{format_entry(entry, currency)}\n" for entry in order_entries(entries))
