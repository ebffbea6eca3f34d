from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from alpaca_ledger.analytics.fees import associate_fees
from alpaca_ledger.analytics.fills import merge_fills
from alpaca_ledger.core.models import ActivityKind


def _utc(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


def test_regulatory_fee_attaches_to_fill_with_same_order_id(make_trade, make_fee):
    fills = merge_fills(
        [
            make_trade(0, quantity="-4", price="300", symbol="MSFT", order_id="O2"),
            make_trade(1, quantity="1", price="10", symbol="MSFT", order_id="O3"),
        ]
    )
    fee = make_fee(2, amount="-0.03", order_id="O2", at=_utc(2023, 5, 2))

    result = associate_fees(fills, [], [fee])

    assert result.fees_for_fill(fills[0]) == (fee,)
    assert result.fees_for_fill(fills[1]) == ()
    assert result.standalone == []
    assert result.warnings == []


def test_regulatory_fee_without_order_falls_back_to_recent_sell(make_trade, make_fee):
    fills = merge_fills(
        [make_trade(0, quantity="-4", price="300", symbol="MSFT", order_id=None)]
    )
    near = make_fee(1, amount="-0.03", symbol="MSFT", at=_utc(2023, 5, 3))
    late = make_fee(2, amount="-0.02", symbol="MSFT", at=_utc(2023, 5, 20))

    result = associate_fees(fills, [], [near, late])

    assert result.fees_for_fill(fills[0]) == (near,)
    assert [item.fee for item in result.standalone] == [late]
    assert result.standalone[0].unassociated


def test_force_separate_keeps_every_fee_standalone_without_warnings(make_trade, make_fee):
    fills = merge_fills([make_trade(0, quantity="-1", price="10", order_id="O2")])
    fee = make_fee(1, amount="-0.01", order_id="O2")

    result = associate_fees(fills, [], [fee], force_separate=True)

    assert result.by_fill == {}
    assert [item.fee for item in result.standalone] == [fee]
    assert not result.standalone[0].unassociated
    assert result.warnings == []


def test_adr_fee_attaches_to_most_recent_dividend_in_window(make_dividend, make_fee):
    older = make_dividend(0, amount="10.00", symbol="TSM", at=_utc(2023, 4, 1))
    recent = make_dividend(1, amount="12.50", symbol="TSM", at=_utc(2023, 5, 10))
    fee = make_fee(2, amount="-0.60", kind=ActivityKind.ADR_FEE, symbol="TSM", at=_utc(2023, 5, 12))

    result = associate_fees([], [older, recent], [fee])

    assert result.fees_for_dividend(recent) == (fee,)
    assert result.fees_for_dividend(older) == ()


def test_adr_fee_outside_window_is_unassociated(make_dividend, make_fee):
    dividend = make_dividend(0, amount="12.50", symbol="TSM", at=_utc(2023, 3, 1))
    fee = make_fee(1, amount="-0.60", kind=ActivityKind.ADR_FEE, symbol="TSM", at=_utc(2023, 5, 12))

    result = associate_fees([], [dividend], [fee])

    assert result.by_dividend == {}
    assert len(result.warnings) == 1
    assert "fee-1" in result.warnings[0]
    assert "could not be matched to a dividend" in result.warnings[0]


def test_fee_totals_are_conserved(make_trade, make_dividend, make_fee):
    fills = merge_fills([make_trade(0, quantity="-4", price="300", order_id="O2")])
    dividend = make_dividend(1, amount="12.50", symbol="TSM", at=_utc(2023, 5, 10))
    fees = [
        make_fee(2, amount="-0.03", order_id="O2"),
        make_fee(3, amount="-0.01", order_id="O2"),
        make_fee(4, amount="-0.60", kind=ActivityKind.ADR_FEE, symbol="TSM", at=_utc(2023, 5, 12)),
        make_fee(5, amount="-0.02"),
    ]

    result = associate_fees(fills, [dividend], fees)

    assert result.total() == sum((fee.amount for fee in fees), Decimal("0"))
    assert len(result.attached()) + len(result.standalone) == len(fees)
    assert [item.fee.activity_id for item in result.standalone] == ["fee-5"]


def test_adr_fee_prefers_later_dividend_on_the_same_date(make_dividend, make_fee):
    first = make_dividend(0, amount="5.00", symbol="TSM", at=_utc(2023, 5, 10))
    second = make_dividend(1, amount="7.50", symbol="TSM", at=_utc(2023, 5, 10))
    fee = make_fee(2, amount="-0.60", kind=ActivityKind.ADR_FEE, symbol="TSM", at=_utc(2023, 5, 12))

    result = associate_fees([], [first, second], [fee])

    assert result.fees_for_dividend(second) == (fee,)
    assert result.fees_for_dividend(first) == ()


def test_regulatory_fee_prefers_nearest_fill_of_the_order_on_or_before_it(make_trade, make_fee):
    fills = merge_fills(
        [
            make_trade(0, quantity="-1", price="10.00", order_id="O1", at=_utc(2023, 5, 1)),
            make_trade(1, quantity="-1", price="10.10", order_id="O1", at=_utc(2023, 5, 2)),
            make_trade(2, quantity="-1", price="10.20", order_id="O1", at=_utc(2023, 5, 4)),
        ]
    )
    fee = make_fee(3, amount="-0.03", order_id="O1", at=_utc(2023, 5, 3))

    result = associate_fees(fills, [], [fee])

    assert [fill.price for fill in fills] == [Decimal("10.00"), Decimal("10.10"), Decimal("10.20")]
    assert result.fees_for_fill(fills[1]) == (fee,)


def test_regulatory_fee_tie_goes_to_earliest_fill_of_the_order(make_trade, make_fee):
    fills = merge_fills(
        [
            make_trade(0, quantity="-1", price="10.00", order_id="O1"),
            make_trade(1, quantity="-1", price="10.05", order_id="O1"),
        ]
    )
    fee = make_fee(2, amount="-0.03", order_id="O1", at=_utc(2023, 5, 2))

    result = associate_fees(fills, [], [fee])

    assert len(fills) == 2
    assert result.fees_for_fill(fills[0]) == (fee,)
    assert result.fees_for_fill(fills[1]) == ()
