from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from fractions import Fraction

from alpaca_ledger.core.errors import LedgerBalanceError
from alpaca_ledger.utils.dates import parse_date
from alpaca_ledger.utils.money import ZERO


class ActivityKind(str, Enum):
    TRADE = "TRADE"
    DIVIDEND = "DIVIDEND"
    REGULATORY_FEE = "REGULATORY_FEE"
    ADR_FEE = "ADR_FEE"
    TRANSFER = "TRANSFER"
    SPLIT = "SPLIT"


class TradeSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    SELL_SHORT = "SELL_SHORT"


class Regulator(str, Enum):
    SEC = "SEC"
    FINRA_TAF = "FINRA_TAF"


FEE_KINDS = frozenset({ActivityKind.REGULATORY_FEE, ActivityKind.ADR_FEE})


@dataclass(frozen=True, slots=True)
class SplitEvent:
    symbol: str
    effective_date: date
    numerator: int
    denominator: int

    def __post_init__(self) -> None:
        if not self.symbol:
            raise ValueError("Split requires a symbol")
        for name in ("numerator", "denominator"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValueError(f"Split {name} must be a positive integer, got {value!r}")

    @property
    def ratio(self) -> Fraction:
        return Fraction(self.numerator, self.denominator)

    @classmethod
    def parse(cls, text: str) -> SplitEvent:
        """Parse ``SYMBOL:YYYY-MM-DD:N/D``, e.g. ``AAPL:2020-08-31:4/1``."""
        parts = str(text).strip().split(":")
        if len(parts) != 3:
            raise ValueError(f"Expected SYMBOL:YYYY-MM-DD:N/D, got {text!r}")
        symbol, effective, ratio = parts
        numerator, sep, denominator = ratio.partition("/")
        if not sep:
            raise ValueError(f"Split ratio must look like N/D, got {ratio!r}")
        try:
            num, den = int(numerator), int(denominator)
        except ValueError as exc:
            raise ValueError(f"Split ratio must be integral, got {ratio!r}") from exc
        return cls(
            symbol=symbol.strip().upper(),
            effective_date=parse_date(effective),
            numerator=num,
            denominator=den,
        )


@dataclass(frozen=True, slots=True)
class Activity:
    """Canonical form of one brokerage activity.

    ``amount`` is always the signed cash impact on the brokerage account and
    ``sequence`` the record's position in the original source order.
    """

    kind: ActivityKind
    activity_id: str
    timestamp: datetime
    sequence: int
    amount: Decimal
    symbol: str | None = None
    quantity: Decimal = ZERO
    price: Decimal = ZERO
    side: TradeSide | None = None
    order_id: str | None = None
    description: str = ""
    regulator: Regulator | None = None
    split: SplitEvent | None = None

    def __post_init__(self) -> None:
        if self.timestamp.tzinfo is None:
            raise ValueError(f"Activity {self.activity_id} has a naive timestamp")
        if self.kind == ActivityKind.TRADE and self.quantity == 0 and self.price == 0:
            raise ValueError(f"Trade {self.activity_id} has neither quantity nor price")

    @property
    def trade_date(self) -> date:
        return self.timestamp.date()

    @property
    def is_fee(self) -> bool:
        return self.kind in FEE_KINDS


@dataclass(frozen=True, slots=True)
class MergedFill:
    """One or more fills of the same order executed at the same price."""

    fills: tuple[Activity, ...]

    def __post_init__(self) -> None:
        if not self.fills:
            raise ValueError("MergedFill requires at least one fill")

    @property
    def first(self) -> Activity:
        return self.fills[0]

    @property
    def order_id(self) -> str | None:
        return self.first.order_id

    @property
    def symbol(self) -> str:
        return self.first.symbol or ""

    @property
    def side(self) -> TradeSide | None:
        return self.first.side

    @property
    def price(self) -> Decimal:
        return self.first.price

    @property
    def timestamp(self) -> datetime:
        return self.first.timestamp

    @property
    def trade_date(self) -> date:
        return self.first.trade_date

    @property
    def sequence(self) -> int:
        return self.first.sequence

    @property
    def quantity(self) -> Decimal:
        return sum((fill.quantity for fill in self.fills), ZERO)

    @property
    def amount(self) -> Decimal:
        return sum((fill.amount for fill in self.fills), ZERO)

    @property
    def key(self) -> str:
        return self.first.activity_id


@dataclass(frozen=True, slots=True)
class Posting:
    account: str
    amount: Decimal
    quantity: Decimal | None = None
    commodity: str | None = None
    price: Decimal | None = None


@dataclass(frozen=True, slots=True)
class LedgerEntry:
    entry_date: date
    description: str
    postings: tuple[Posting, ...]
    symbol: str = ""
    sequence: int = 0
    notes: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if len(self.postings) < 2:
            raise LedgerBalanceError(
                f"Entry {self.entry_date} {self.description!r} needs at least two postings"
            )
        total = sum((posting.amount for posting in self.postings), ZERO)
        if total != 0:
            raise LedgerBalanceError(
                f"Entry {self.entry_date} {self.description!r} is off balance by {total}"
            )

    @property
    def sort_key(self) -> tuple[date, str, int]:
        return (self.entry_date, self.symbol, self.sequence)
