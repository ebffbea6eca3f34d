"""Paged retrieval of account activities from ``/v2/account/activities``."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import date, timedelta
from typing import Any

from alpaca_ledger.core.errors import ActivityParseError
from alpaca_ledger.providers.alpaca import AlpacaClient
from alpaca_ledger.utils.logging import get_logger

LOGGER = get_logger(__name__)

ACTIVITIES_PATH = "/v2/account/activities"
PAGE_SIZE = 100


class ActivitySource:
    """Yields raw activity records oldest first, starting at ``begin``."""

    def __init__(self, client: AlpacaClient, *, page_size: int = PAGE_SIZE) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self.client = client
        self.page_size = page_size

    def _params(self, begin: date | None, page_token: str | None) -> dict[str, Any]:
        params: dict[str, Any] = {"direction": "asc", "page_size": self.page_size}
        if begin is not None:
            params["after"] = (begin - timedelta(days=1)).isoformat()
        if page_token:
            params["page_token"] = page_token
        return params

    def iter_pages(self, begin: date | None = None) -> Iterator[list[dict[str, Any]]]:
        url = self.client.trading_url(ACTIVITIES_PATH)
        page_token: str | None = None
        page = 0
        while True:
            chunk = self.client.get_json(url, self._params(begin, page_token))
            if not isinstance(chunk, list):
                raise ActivityParseError(
                    f"expected a JSON array from {ACTIVITIES_PATH}, got {type(chunk).__name__}"
                )
            page += 1
            LOGGER.info("activities page %d: %d records", page, len(chunk))
            if not chunk:
                return
            yield chunk
            if len(chunk) < self.page_size:
                return
            last = chunk[-1]
            page_token = str(last.get("id") or "") if isinstance(last, dict) else ""
            if not page_token:
                return

    def fetch_all(self, begin: date | None = None) -> list[dict[str, Any]]:
        records: list[dict[str, Any]] = []
        for chunk in self.iter_pages(begin):
            records.extend(chunk)
        return records
