from __future__ import annotations

import os
import re
from dataclasses import dataclass, fields, replace
from datetime import date
from typing import Any

from alpaca_ledger.core.errors import ConfigError
from alpaca_ledger.utils.dates import parse_date

DEFAULT_INVESTMENT_ACCOUNT = "Assets:Investments:Alpaca:Stock"
DEFAULT_BROKERAGE_ACCOUNT = "Assets:Alpaca Brokerage"
DEFAULT_BROKERAGE_FEE_ACCOUNT = "Expenses:Broker:Fee"
DEFAULT_DIVIDEND_ACCOUNT = "Income:Dividend"
DEFAULT_SEC_FEE_ACCOUNT = "Expenses:Broker:SEC Fee"
DEFAULT_FINRA_TAF_ACCOUNT = "Expenses:Broker:FINRA TAF"
DEFAULT_ADR_FEE_ACCOUNT = "Expenses:Broker:ADR Fee"
DEFAULT_TRANSFER_ACCOUNT = "Assets:Checking"

ENV_PREFIX = "ALPACA_LEDGER_"

# Ledger ends an account name at a tab or two consecutive spaces.
_ACCOUNT_BREAK_RE = re.compile(r"\t|\n|\r| {2}")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "t", "yes", "y", "on"}


@dataclass(frozen=True)
class Settings:
    investment_account: str = DEFAULT_INVESTMENT_ACCOUNT
    brokerage_account: str = DEFAULT_BROKERAGE_ACCOUNT
    brokerage_fee_account: str = DEFAULT_BROKERAGE_FEE_ACCOUNT
    dividend_account: str = DEFAULT_DIVIDEND_ACCOUNT
    sec_fee_account: str = DEFAULT_SEC_FEE_ACCOUNT
    finra_taf_account: str = DEFAULT_FINRA_TAF_ACCOUNT
    adr_fee_account: str = DEFAULT_ADR_FEE_ACCOUNT
    transfer_account: str = DEFAULT_TRANSFER_ACCOUNT
    force_separate_fees: bool = False
    begin: date | None = None

    def account_names(self) -> dict[str, str]:
        return {
            item.name: getattr(self, item.name)
            for item in fields(self)
            if item.name.endswith("_account")
        }

    def validate(self) -> Settings:
        for name, value in self.account_names().items():
            flag = "--" + name.replace("_", "-")
            if not isinstance(value, str) or not value.strip():
                raise ConfigError(f"{flag} must not be empty")
            if value != value.strip():
                raise ConfigError(f"{flag} has leading or trailing whitespace: {value!r}")
            if _ACCOUNT_BREAK_RE.search(value):
                raise ConfigError(
                    f"{flag} must not contain tabs, newlines or double spaces: {value!r}"
                )
        if self.begin is not None and not isinstance(self.begin, date):
            raise ConfigError(f"begin must be a date, got {self.begin!r}")
        return self


def get_settings(**overrides: Any) -> Settings:
    """Resolve settings from ``ALPACA_LEDGER_*`` variables, then ``overrides``.

    ``None`` overrides are ignored so argparse namespaces can be passed through.
    """
    values: dict[str, Any] = {}
    for item in fields(Settings):
        env_name = ENV_PREFIX + item.name.upper()
        if item.name == "force_separate_fees":
            values[item.name] = _env_bool(env_name, False)
            continue
        raw = os.getenv(env_name)
        if raw is None:
            continue
        if item.name == "begin":
            try:
                values[item.name] = parse_date(raw) if raw.strip() else None
            except ValueError as exc:
                raise ConfigError(f"{env_name}: {exc}") from exc
            continue
        values[item.name] = raw

    settings = Settings(**values)
    cleaned = {key: value for key, value in overrides.items() if value is not None}
    if cleaned:
        settings = replace(settings, **cleaned)
    return settings.validate()
