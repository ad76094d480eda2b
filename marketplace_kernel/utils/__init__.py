"""Utility functions for the marketplace kernel."""

from marketplace_kernel.utils.hashing import canonicalize_json, hash_payload
from marketplace_kernel.utils.idempotency import (
    settlement_idempotency_key,
    withdrawal_idempotency_key,
)

__all__ = [
    "canonicalize_json",
    "hash_payload",
    "settlement_idempotency_key",
    "withdrawal_idempotency_key",
]
