"""Drop re-delivered activity records before normalization."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from hashlib import sha256
from typing import Any

from alpaca_ledger.ingest.validators import record_id
from alpaca_ledger.utils.logging import get_logger

LOGGER = get_logger(__name__)


def raw_record_hash(record: Mapping[str, Any]) -> str:
    canonical = json.dumps(dict(record), sort_keys=True, separators=(",", ":"), default=str)
    return sha256(canonical.encode("utf-8")).hexdigest()


def activity_dedupe_key(record: Mapping[str, Any]) -> str:
    """Alpaca activity ids are unique per account; records without one fall back to content."""
    activity_id = record_id(record)
    if activity_id:
        return f"ID:{activity_id}"
    return f"SIG:{raw_record_hash(record)}"


@dataclass(slots=True)
class DedupeResult:
    records: list[tuple[int, Mapping[str, Any]]] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    duplicate_count: int = 0


def dedupe_records(records: Iterable[Mapping[str, Any]]) -> DedupeResult:
    """Keep the first occurrence of every record, paired with its source index."""
    result = DedupeResult()
    seen: set[str] = set()
    for index, record in enumerate(records):
        if not isinstance(record, Mapping):
            result.records.append((index, record))
            continue
        key = activity_dedupe_key(record)
        if key in seen:
            message = f"duplicate activity record {record_id(record) or f'#{index}'} skipped"
            LOGGER.warning(message)
            result.warnings.append(message)
            result.duplicate_count += 1
            continue
        seen.add(key)
        result.records.append((index, record))
    return result
