"""
Idempotency key generation utilities.

Keys are stored on BalanceEntry rows under a unique constraint, so the same
business fact can move a balance at most once.

Format: producer:subject_type:subject_id
"""

from uuid import UUID


def generate_idempotency_key(
    producer: str,
    subject_type: str,
    subject_id: UUID | str,
) -> str:
    """
    Generate an idempotency key.

    Example:
        >>> generate_idempotency_key("settlement", "engagement", uuid)
        "settlement:engagement:550e8400-e29b-41d4-a716-446655440000"
    """
    return f"{producer}:{subject_type}:{subject_id}"


def parse_idempotency_key(key: str) -> tuple[str, str, str]:
    """
    Parse an idempotency key into its components.

    Raises:
        ValueError: If key format is invalid.
    """
    parts = key.split(":", 2)
    if len(parts) != 3:
        raise ValueError(f"Invalid idempotency key format: {key}")
    return parts[0], parts[1], parts[2]


def settlement_idempotency_key(engagement_id: UUID | str) -> str:
    return generate_idempotency_key("settlement", "engagement", engagement_id)


def withdrawal_idempotency_key(withdrawal_id: UUID | str) -> str:
    return generate_idempotency_key("withdrawal", "request", withdrawal_id)
