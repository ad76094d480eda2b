"""
Stable fingerprints for engine inputs and negotiation terms.

Two processes fed the same values must produce the same digest, so every
value is first rendered as canonical JSON: sorted keys, no whitespace,
Decimals normalized, timestamps in ISO form.
"""

import dataclasses
import hashlib
import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


def _to_json(obj: Any) -> Any:
    # 100 and 100.00 are the same price
    if isinstance(obj, Decimal):
        return str(obj.normalize())
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, (set, frozenset)):
        return sorted(obj)
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    raise TypeError(f"cannot fingerprint a {type(obj).__name__}")


def canonicalize_json(data: Any) -> str:
    return json.dumps(data, sort_keys=True, separators=(",", ":"), default=_to_json)


def hash_payload(payload: Any) -> str:
    """SHA-256 hex digest (64 characters) of the canonical JSON of ``payload``."""
    return hashlib.sha256(canonicalize_json(payload).encode("utf-8")).hexdigest()


def short_fingerprint(payload: Any, length: int = 16) -> str:
    """Leading ``length`` hex characters of ``hash_payload``, for log fields."""
    return hash_payload(payload)[:length]
