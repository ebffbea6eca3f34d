"""Thin HTTP client for the Alpaca REST API with retries on transient failures."""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

import requests
from tenacity import (
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from alpaca_ledger.core.errors import ConfigError
from alpaca_ledger.utils.logging import get_logger

LOGGER = get_logger(__name__)

PAPER_API_URL = "https://paper-api.alpaca.markets"
DATA_API_URL = "https://data.alpaca.markets"
USER_AGENT = "alpaca-ledger/0.1 (+https://alpaca.markets)"


@dataclass(frozen=True)
class AlpacaCredentials:
    key_id: str
    secret_key: str
    base_url: str = PAPER_API_URL
    data_url: str = DATA_API_URL

    @classmethod
    def from_env(cls) -> AlpacaCredentials:
        key_id = os.getenv("APCA_API_KEY_ID", "").strip()
        secret_key = os.getenv("APCA_API_SECRET_KEY", "").strip()
        missing = [
            name
            for name, value in (("APCA_API_KEY_ID", key_id), ("APCA_API_SECRET_KEY", secret_key))
            if not value
        ]
        if missing:
            raise ConfigError(f"missing Alpaca credentials: {', '.join(missing)} not set")
        return cls(
            key_id=key_id,
            secret_key=secret_key,
            base_url=os.getenv("APCA_API_BASE_URL", PAPER_API_URL).rstrip("/"),
            data_url=os.getenv("APCA_API_DATA_URL", DATA_API_URL).rstrip("/"),
        )

    def headers(self) -> dict[str, str]:
        return {
            "accept": "application/json",
            "APCA-API-KEY-ID": self.key_id,
            "APCA-API-SECRET-KEY": self.secret_key,
            "User-Agent": USER_AGENT,
        }


def is_transient(exc: BaseException) -> bool:
    if isinstance(exc, (requests.ConnectionError, requests.Timeout)):
        return True
    if isinstance(exc, requests.HTTPError) and exc.response is not None:
        status = exc.response.status_code
        return status == 429 or status >= 500
    return False


def _log_retry(retry_state: Any) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    LOGGER.info("retrying Alpaca request (attempt %d): %s", retry_state.attempt_number, exc)


class AlpacaClient:
    def __init__(
        self,
        credentials: AlpacaCredentials,
        *,
        session: requests.Session | None = None,
        timeout_seconds: float = 30.0,
        max_attempts: int = 5,
        wait: wait_base | None = None,
    ) -> None:
        self.credentials = credentials
        self.session = session or requests.Session()
        self.timeout_seconds = timeout_seconds
        self._retrying = Retrying(
            retry=retry_if_exception(is_transient),
            stop=stop_after_attempt(max_attempts),
            wait=wait or wait_exponential(multiplier=1, min=1, max=10),
            before_sleep=_log_retry,
            reraise=True,
        )

    def _get_once(self, url: str, params: dict[str, Any] | None) -> Any:
        response = self.session.get(
            url,
            headers=self.credentials.headers(),
            params=params,
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()
        return response.json(parse_float=Decimal)

    def get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        LOGGER.debug("GET %s params=%s", url, params)
        return self._retrying(self._get_once, url, params)

    def trading_url(self, path: str) -> str:
        return f"{self.credentials.base_url}/{path.lstrip('/')}"

    def data_url(self, path: str) -> str:
        return f"{self.credentials.data_url}/{path.lstrip('/')}"

    def account_currency(self) -> str:
        payload = self.get_json(self.trading_url("/v2/account"))
        currency = str((payload or {}).get("currency") or "").strip().upper()
        if not currency:
            raise ValueError("failed to retrieve account information: no currency reported")
        return currency
