from __future__ import annotations

import argparse
import json
import sys
from datetime import date
from pathlib import Path

import requests

from alpaca_ledger.analytics.reconciliation import export_ledger
from alpaca_ledger.analytics.splits import splits_from_records
from alpaca_ledger.config.registry import SymbolRegistry
from alpaca_ledger.config.settings import (
    DEFAULT_ADR_FEE_ACCOUNT,
    DEFAULT_BROKERAGE_ACCOUNT,
    DEFAULT_BROKERAGE_FEE_ACCOUNT,
    DEFAULT_DIVIDEND_ACCOUNT,
    DEFAULT_FINRA_TAF_ACCOUNT,
    DEFAULT_INVESTMENT_ACCOUNT,
    DEFAULT_SEC_FEE_ACCOUNT,
    DEFAULT_TRANSFER_ACCOUNT,
    Settings,
    get_settings,
)
from alpaca_ledger.core.errors import ConfigError
from alpaca_ledger.core.models import SplitEvent
from alpaca_ledger.providers.activities import ActivitySource
from alpaca_ledger.providers.alpaca import AlpacaClient, AlpacaCredentials
from alpaca_ledger.providers.prices import PriceProvider
from alpaca_ledger.utils.dates import parse_date
from alpaca_ledger.utils.logging import configure_logging, get_logger, level_for_verbosity

LOGGER = get_logger(__name__)

_ACCOUNT_OPTIONS = (
    ("investment_account", DEFAULT_INVESTMENT_ACCOUNT, "the account holding the shares"),
    ("brokerage_account", DEFAULT_BROKERAGE_ACCOUNT, "the account holding uninvested cash"),
    ("brokerage_fee_account", DEFAULT_BROKERAGE_FEE_ACCOUNT, "the brokerage's fee account"),
    ("dividend_account", DEFAULT_DIVIDEND_ACCOUNT, "the account dividends are booked against"),
    ("sec_fee_account", DEFAULT_SEC_FEE_ACCOUNT, "the account for SEC regulatory fees"),
    ("finra_taf_account", DEFAULT_FINRA_TAF_ACCOUNT, "the account for FINRA trade activity fees"),
    ("adr_fee_account", DEFAULT_ADR_FEE_ACCOUNT, "the account for ADR custody fees"),
    ("transfer_account", DEFAULT_TRANSFER_ACCOUNT, "the counter account of cash transfers"),
)


def _make_client() -> AlpacaClient:
    return AlpacaClient(AlpacaCredentials.from_env())


def _date_arg(raw: str) -> date:
    try:
        return parse_date(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _load_splits(args: argparse.Namespace) -> list[SplitEvent]:
    splits: list[SplitEvent] = []
    for raw in args.split or []:
        try:
            splits.append(SplitEvent.parse(raw))
        except ValueError as exc:
            raise ConfigError(f"--split {raw!r}: {exc}") from exc
    if args.splits_file:
        path = Path(args.splits_file)
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(payload, list):
                raise ValueError("expected a JSON array of splits")
            splits.extend(splits_from_records(payload))
        except (OSError, ValueError) as exc:
            raise ConfigError(f"--splits-file {path}: {exc}") from exc
    return splits


def _settings_from_args(args: argparse.Namespace) -> Settings:
    overrides = {name: getattr(args, name) for name, _, _ in _ACCOUNT_OPTIONS}
    return get_settings(
        begin=args.begin,
        force_separate_fees=args.force_separate_fees,
        **overrides,
    )


def _cmd_activity(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    splits = _load_splits(args)
    registry = (
        SymbolRegistry.from_file(args.registry) if args.registry else SymbolRegistry.passthrough()
    )

    client = _make_client()
    currency = client.account_currency()
    records = ActivitySource(client).fetch_all(settings.begin)
    text, report = export_ledger(
        records, settings, currency, registry=registry, splits=splits
    )

    sys.stdout.write(text)
    sys.stdout.flush()
    if report.warnings:
        LOGGER.warning(
            "%d warning(s) during export; %d record(s) of unknown kind skipped",
            len(report.warnings),
            report.unknown_count,
        )
    return 0


def _cmd_prices(args: argparse.Namespace) -> int:
    as_of = args.date or date.today()
    provider = PriceProvider(_make_client(), feed=args.feed)
    lines: list[str] = []
    missing: list[str] = []
    for symbol in args.symbols:
        price = provider.get_close(symbol, as_of)
        if price is None:
            missing.append(symbol.upper())
            continue
        lines.append(price.directive(args.currency))
    if missing:
        raise ValueError(f"no price data on or before {as_of} for {', '.join(missing)}")
    sys.stdout.write("".join(f"{line}\n" for line in lines))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="alpaca-ledger",
        description="Export Alpaca account activity in Ledger CLI format",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        dest="verbosity",
        action="count",
        default=0,
        help="Increase verbosity (can be supplied multiple times).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    sp_activity = subparsers.add_parser("activity", help="Print account activity as ledger entries")
    sp_activity.add_argument(
        "--registry",
        help="Path to a JSON object mapping symbols to display names.",
    )
    sp_activity.add_argument(
        "-b",
        "--begin",
        type=_date_arg,
        help="Only show activities dated at the given date or after (format: yyyy-mm-dd).",
    )
    sp_activity.add_argument(
        "--force-separate-fees",
        action="store_true",
        default=None,
        help="Keep regulatory and ADR fees separate instead of matching them with trades.",
    )
    sp_activity.add_argument(
        "--split",
        action="append",
        metavar="SYMBOL:YYYY-MM-DD:N/D",
        help="A stock split to adjust earlier fills for (repeatable).",
    )
    sp_activity.add_argument(
        "--splits-file",
        help="JSON array of {symbol, effective_date, numerator, denominator} objects.",
    )
    for name, default, help_text in _ACCOUNT_OPTIONS:
        sp_activity.add_argument(
            "--" + name.replace("_", "-"),
            dest=name,
            default=None,
            help=f"The name of {help_text} (default: {default}).",
        )
    sp_activity.set_defaults(func=_cmd_activity)

    sp_prices = subparsers.add_parser("prices", help="Print historic close prices as P directives")
    sp_prices.add_argument("symbols", nargs="+", help="Symbols to look up.")
    sp_prices.add_argument(
        "-d",
        "--date",
        type=_date_arg,
        help="Date to look up the close for (default: today).",
    )
    sp_prices.add_argument("--currency", default="USD", help="Currency of the prices.")
    sp_prices.add_argument("--feed", default=None, help="Market data feed, e.g. iex or sip.")
    sp_prices.set_defaults(func=_cmd_prices)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(level_for_verbosity(args.verbosity) if args.verbosity else None)
    try:
        return args.func(args)
    except (ValueError, OSError, requests.RequestException) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
