"""Error taxonomy.

Fatal data problems abort the run before any ledger text is printed;
recoverable conditions are collected as warnings on the reconciliation report.
"""

from __future__ import annotations


class ActivityParseError(ValueError):
    """A raw activity record is malformed and cannot be trusted."""

    def __init__(self, message: str, *, activity_id: str | None = None, field: str | None = None) -> None:
        self.activity_id = activity_id
        self.field = field
        prefix = f"activity {activity_id}" if activity_id else "activity <unknown id>"
        if field:
            prefix = f"{prefix}, field {field!r}"
        super().__init__(f"{prefix}: {message}")


class ConfigError(ValueError):
    """Invalid caller-supplied configuration (account name, date, split)."""


class RegistryError(ValueError):
    """The symbol registry is unreadable or lacks a symbol."""


class LedgerBalanceError(ValueError):
    """Postings of a ledger entry do not sum to zero."""
