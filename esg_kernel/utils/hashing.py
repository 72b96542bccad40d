"""
Canonical JSON and SHA-256 helpers.

Every hash the kernel stores (audit payloads, audit links, period
integrity seals) is computed here, over the same canonical JSON form:
sorted keys, no whitespace, enums by value, UUIDs and dates as strings.
"""

import hashlib
import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

GENESIS = "GENESIS"


def _encode(obj: Any) -> Any:
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (UUID, Decimal)):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    raise TypeError(f"cannot canonicalize {type(obj).__name__}")


def canonicalize_json(data: Any) -> str:
    """Deterministic JSON text for ``data``."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"), default=_encode)


def _sha256(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def hash_payload(payload: dict) -> str:
    """64-char hex SHA-256 of the canonical form of ``payload``."""
    return _sha256(canonicalize_json(payload))


def hash_audit_event(
    entity_type: str,
    entity_id: str,
    action: str,
    payload_hash: str,
    prev_hash: str | None,
) -> str:
    """Link hash of one audit event; the first event chains from GENESIS."""
    return _sha256(
        "|".join((entity_type, str(entity_id), action, payload_hash, prev_hash or GENESIS))
    )


def hash_period_content(period_id: str, data_points: list[dict]) -> str:
    """
    Integrity seal of a period at lock time.

    Each dict describes one data point (id, value, content, gap_status).
    They are sorted by id first so the seal does not depend on query order.
    """
    ordered = sorted(data_points, key=lambda point: str(point.get("id", "")))
    return hash_payload({"period_id": str(period_id), "data_points": ordered})
