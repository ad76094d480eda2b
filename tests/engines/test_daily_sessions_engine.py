"""
Tests for daily schedule generation and the completion gate.
"""

from dataclasses import dataclass
from datetime import datetime, timezone

import pytest

from marketplace_engines.daily_sessions import (
    all_sessions_confirmed,
    build_schedule,
    combine_date_and_time,
    ensure_completion_gate,
    parse_scheduled_time,
    pending_days,
)
from marketplace_kernel.exceptions import (
    DailySessionsIncompleteError,
    InvalidQuantityError,
    InvalidScheduledTimeError,
    NoDailySessionsError,
)


@dataclass
class Day:
    day_index: int
    client_completed: bool = False
    provider_completed: bool = False


START = datetime(2024, 2, 1, 9, 30, tzinfo=timezone.utc)


class TestBuildSchedule:

    def test_one_session_per_day(self):
        schedule = build_schedule(START, 3)

        assert [d.day_index for d in schedule] == [0, 1, 2]
        assert [d.scheduled_date.day for d in schedule] == [1, 2, 3]
        assert {d.scheduled_time for d in schedule} == {"09:30"}

    @pytest.mark.parametrize("days", [0, -2, True])
    def test_invalid_day_count(self, days):
        with pytest.raises(InvalidQuantityError):
            build_schedule(START, days)


class TestTimes:

    def test_parse(self):
        assert parse_scheduled_time("07:05") == (7, 5)

    @pytest.mark.parametrize("value", ["24:00", "7:5", "noon", "", "12:60"])
    def test_rejects_malformed(self, value):
        with pytest.raises(InvalidScheduledTimeError):
            parse_scheduled_time(value)

    def test_combine(self):
        assert combine_date_and_time(START, "14:15") == datetime(
            2024, 2, 1, 14, 15, tzinfo=timezone.utc
        )


class TestGate:

    def test_pending_days_lists_unconfirmed(self):
        sessions = [Day(0, True, True), Day(1, True, True), Day(2, True, False)]
        assert pending_days(sessions) == (2,)
        assert all_sessions_confirmed(sessions) is False

    def test_all_confirmed(self):
        sessions = [Day(0, True, True), Day(1, True, True)]
        assert all_sessions_confirmed(sessions) is True
        ensure_completion_gate("e-1", sessions)

    def test_empty_schedule_is_never_confirmed(self):
        assert all_sessions_confirmed([]) is False
        with pytest.raises(NoDailySessionsError):
            ensure_completion_gate("e-1", [])

    def test_incomplete_gate_names_the_days(self):
        sessions = [Day(0, True, True), Day(1), Day(2, False, True)]
        with pytest.raises(DailySessionsIncompleteError) as exc_info:
            ensure_completion_gate("e-1", sessions)
        assert exc_info.value.pending_days == (1, 2)
