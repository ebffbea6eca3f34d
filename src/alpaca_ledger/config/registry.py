"""Symbol registry: maps ticker symbols to human readable payee names."""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path

from alpaca_ledger.core.errors import RegistryError


class SymbolRegistry:
    def __init__(self, names: Mapping[str, str] | None = None, *, strict: bool = True) -> None:
        self._names = {str(key).strip().upper(): str(value) for key, value in (names or {}).items()}
        self.strict = strict

    @classmethod
    def from_file(cls, path: str | Path) -> SymbolRegistry:
        registry_path = Path(path)
        try:
            with registry_path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except OSError as exc:
            raise RegistryError(f"failed to open registry file {registry_path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise RegistryError(f"failed to read registry {registry_path}: {exc}") from exc
        if not isinstance(payload, dict) or not all(
            isinstance(value, str) for value in payload.values()
        ):
            raise RegistryError(
                f"registry {registry_path} must be a JSON object mapping symbols to names"
            )
        return cls(payload)

    @classmethod
    def passthrough(cls) -> SymbolRegistry:
        return cls({}, strict=False)

    def name_for(self, symbol: str) -> str:
        token = str(symbol or "").strip().upper()
        name = self._names.get(token)
        if name is not None:
            return name
        if self.strict:
            raise RegistryError(f"symbol {token} not present in registry")
        return token

    def __contains__(self, symbol: object) -> bool:
        return str(symbol or "").strip().upper() in self._names

    def __len__(self) -> int:
        return len(self._names)
