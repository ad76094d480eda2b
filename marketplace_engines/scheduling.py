"""
marketplace_engines.scheduling -- Timezone policy and future-date checks.

Every timestamp is handled as aware UTC.  Naive input is either read as UTC
or rejected, depending on configuration.  "In the future" means strictly
after the ``now`` passed in by the caller.
"""

from __future__ import annotations

from datetime import UTC, datetime

from marketplace_kernel.exceptions import DateNotInFutureError, NaiveDatetimeError

ASSUME_UTC = "assume_utc"
REJECT = "reject"
NAIVE_POLICIES = (ASSUME_UTC, REJECT)


def normalize_utc(
    value: datetime,
    field: str = "scheduled_date",
    naive_policy: str = ASSUME_UTC,
) -> datetime:
    """Return ``value`` as an aware UTC datetime."""
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        if naive_policy == REJECT:
            raise NaiveDatetimeError(field)
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def ensure_future(value: datetime, now: datetime, field: str = "scheduled_date") -> datetime:
    """
    Raise DateNotInFutureError unless ``value`` is strictly after ``now``.

    Both arguments must already be aware.
    """
    if value <= now:
        raise DateNotInFutureError(field, value.isoformat(), now.isoformat())
    return value


def normalize_future(
    value: datetime,
    now: datetime,
    field: str = "scheduled_date",
    naive_policy: str = ASSUME_UTC,
) -> datetime:
    return ensure_future(normalize_utc(value, field, naive_policy), now, field)
