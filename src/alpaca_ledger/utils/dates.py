"""Date parsing helpers; every timestamp leaving this module is timezone-aware."""

from __future__ import annotations

from datetime import date, datetime, timezone

from dateutil import parser as date_parser


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(raw: str | datetime | date) -> datetime:
    if isinstance(raw, datetime):
        return as_utc(raw)
    if isinstance(raw, date):
        return datetime(raw.year, raw.month, raw.day, tzinfo=timezone.utc)
    text = str(raw).strip()
    if not text:
        raise ValueError("Empty timestamp")
    try:
        parsed = date_parser.isoparse(text)
    except (ValueError, OverflowError) as exc:
        raise ValueError(f"Unable to parse timestamp: {raw!r}") from exc
    return as_utc(parsed)


def parse_date(raw: str | datetime | date) -> date:
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    text = str(raw).strip()
    try:
        return datetime.strptime(text, "%Y-%m-%d").date()
    except ValueError as exc:
        raise ValueError(f"Expected a date formatted as yyyy-mm-dd, got {raw!r}") from exc
