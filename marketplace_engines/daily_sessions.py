"""
marketplace_engines.daily_sessions -- Daily-session schedule and completion gate.

Responsibility:
    Build the per-day schedule of a daily-priced engagement and decide
    whether every day has been confirmed by both parties.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Day indexes are 0-based and contiguous; one session per calendar day
      starting at the engagement's scheduled date.
    - Each session's scheduled_time is the start's HH:MM in UTC.
    - The completion gate fails on an empty schedule: a daily engagement
      with no sessions can never auto-complete.

Failure modes:
    - InvalidQuantityError for a non-positive day count.
    - InvalidScheduledTimeError for a time not in HH:MM form.
    - NoDailySessionsError / DailySessionsIncompleteError from the gate.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol

from marketplace_kernel.exceptions import (
    DailySessionsIncompleteError,
    InvalidQuantityError,
    InvalidScheduledTimeError,
    NoDailySessionsError,
)

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


@dataclass(frozen=True)
class ScheduledDay:
    day_index: int
    scheduled_date: datetime
    scheduled_time: str


class SessionState(Protocol):
    @property
    def day_index(self) -> int: ...

    @property
    def client_completed(self) -> bool: ...

    @property
    def provider_completed(self) -> bool: ...


def build_schedule(start: datetime, days: int) -> tuple[ScheduledDay, ...]:
    """One session per calendar day from ``start``, day indexes 0..days-1."""
    if isinstance(days, bool) or not isinstance(days, int) or days < 1:
        raise InvalidQuantityError("proposed_days", days)
    time_of_day = start.strftime("%H:%M")
    return tuple(
        ScheduledDay(
            day_index=i,
            scheduled_date=start + timedelta(days=i),
            scheduled_time=time_of_day,
        )
        for i in range(days)
    )


def parse_scheduled_time(value: str) -> tuple[int, int]:
    match = _TIME_PATTERN.match(value or "")
    if match is None:
        raise InvalidScheduledTimeError(value)
    return int(match.group(1)), int(match.group(2))


def combine_date_and_time(scheduled_date: datetime, scheduled_time: str) -> datetime:
    """The instant a session starts: ``scheduled_date``'s day at ``scheduled_time``."""
    hour, minute = parse_scheduled_time(scheduled_time)
    return scheduled_date.replace(hour=hour, minute=minute, second=0, microsecond=0)


def pending_days(sessions: Sequence[SessionState]) -> tuple[int, ...]:
    return tuple(
        s.day_index
        for s in sorted(sessions, key=lambda s: s.day_index)
        if not (s.client_completed and s.provider_completed)
    )


def all_sessions_confirmed(sessions: Sequence[SessionState]) -> bool:
    """True only for a non-empty schedule with both flags set on every day."""
    return bool(sessions) and not pending_days(sessions)


def ensure_completion_gate(engagement_id: object, sessions: Sequence[SessionState]) -> None:
    """
    Raises:
        NoDailySessionsError: the schedule is empty.
        DailySessionsIncompleteError: some day lacks a confirmation.
    """
    if not sessions:
        raise NoDailySessionsError(str(engagement_id))
    missing = pending_days(sessions)
    if missing:
        raise DailySessionsIncompleteError(str(engagement_id), missing)
