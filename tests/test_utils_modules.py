from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from alpaca_ledger.utils.dates import parse_date, parse_timestamp
from alpaca_ledger.utils.logging import level_for_verbosity
from alpaca_ledger.utils.money import format_amount, format_quantity, to_decimal, trade_cash_amount


def test_dates_helpers_return_utc_aware_shapes():
    naive = parse_timestamp("2023-05-01")
    assert naive == datetime(2023, 5, 1, tzinfo=timezone.utc)

    offset = parse_timestamp("2023-05-01T20:30:00-04:00")
    assert offset.tzinfo is not None
    assert offset.utcoffset() == timedelta(0)
    assert offset == datetime(2023, 5, 2, 0, 30, tzinfo=timezone.utc)

    assert parse_timestamp(date(2024, 2, 29)).tzinfo is not None


def test_parse_timestamp_rejects_garbage():
    with pytest.raises(ValueError):
        parse_timestamp("yesterday-ish")
    with pytest.raises(ValueError):
        parse_timestamp("  ")


def test_parse_date_requires_iso_format():
    assert parse_date("2023-06-01") == date(2023, 6, 1)
    with pytest.raises(ValueError, match="yyyy-mm-dd"):
        parse_date("06/01/2023")


def test_to_decimal_is_exact_and_strict():
    assert to_decimal("150.10") == Decimal("150.10")
    assert to_decimal(" 1,250.5 ") == Decimal("1250.5")
    assert to_decimal(7) == Decimal(7)
    for bad in ("abc", "", "NaN", 0.1, True):
        with pytest.raises(ValueError):
            to_decimal(bad)


def test_money_helpers_format_values():
    assert format_amount(Decimal("150"), "USD") == "150.00 USD"
    assert format_amount(Decimal("150.000"), "USD") == "150.00 USD"
    assert format_amount(Decimal("0.0123"), "USD") == "0.0123 USD"
    assert format_amount(Decimal("-2250.00"), "USD") == "-2250.00 USD"
    assert format_amount(Decimal("1E+3"), "USD") == "1000.00 USD"
    assert format_amount(Decimal("-0"), "USD") == "0.00 USD"
    assert format_quantity(Decimal("15.000")) == "15"
    assert format_quantity(Decimal("-0.5")) == "-0.5"
    assert trade_cash_amount(Decimal("10"), Decimal("150.00")) == Decimal("-1500.00")


def test_verbosity_maps_to_logging_levels():
    assert level_for_verbosity(0) == logging.WARNING
    assert level_for_verbosity(1) == logging.INFO
    assert level_for_verbosity(2) == logging.DEBUG
    assert level_for_verbosity(5) == logging.DEBUG
