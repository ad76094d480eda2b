"""
Tests for DailySessionService and the daily completion gate.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from marketplace_kernel.domain.values import EngagementStatus, PricingMode
from marketplace_kernel.exceptions import (
    DailySessionsIncompleteError,
    DateNotInFutureError,
    InvalidDayIndexError,
    InvalidScheduledTimeError,
    InvalidTransitionError,
    OptimisticLockError,
    UnauthorizedError,
)
from marketplace_kernel.models.engagement import Engagement
from tests.factories import FUTURE


@pytest.fixture
def daily(create_engagement, drive_to_paid):
    info = create_engagement(
        PricingMode.DAILY, "Harvest help", proposed_days=3, scheduled_date=FUTURE,
    )
    return drive_to_paid(info.id)


def confirm(kernel, engagement_id, actor, *days):
    info = None
    for day in days:
        info = kernel.daily_sessions.update_session(engagement_id, actor, day, completed=True)
    return info


class TestConfirmations:

    def test_party_sets_only_their_own_flag(self, kernel, parties, daily):
        info = confirm(kernel, daily.id, parties.client, 0)

        day = info.daily_sessions[0]
        assert day.client_completed is True
        assert day.provider_completed is False
        assert info.status is EngagementStatus.ACCEPTED

    def test_flag_can_be_withdrawn(self, kernel, parties, daily):
        confirm(kernel, daily.id, parties.client, 0)
        info = kernel.daily_sessions.update_session(daily.id, parties.client, 0, completed=False)

        assert info.daily_sessions[0].client_completed is False

    def test_gate_blocks_completion_until_every_day_is_confirmed(self, kernel, parties, daily):
        confirm(kernel, daily.id, parties.client, 0, 1, 2)
        confirm(kernel, daily.id, parties.provider_actor, 0, 1)

        with pytest.raises(DailySessionsIncompleteError) as exc_info:
            kernel.engagements.request_completion(daily.id, parties.client)
        assert exc_info.value.pending_days == (2,)

        info = confirm(kernel, daily.id, parties.provider_actor, 2)

        assert info.status is EngagementStatus.COMPLETED
        assert info.client_completed_at == info.provider_completed_at
        assert info.is_settled
        # 300 minus the 5% platform fee
        assert kernel.balances.get_balance(parties.provider_user.id) == Decimal("285.00")

    def test_non_party_rejected(self, kernel, parties, daily):
        with pytest.raises(UnauthorizedError):
            kernel.daily_sessions.update_session(daily.id, parties.outsider, 0, completed=True)

    @pytest.mark.parametrize("day_index", [-1, 3, 10])
    def test_day_index_out_of_range(self, kernel, parties, daily, day_index):
        with pytest.raises(InvalidDayIndexError) as exc_info:
            kernel.daily_sessions.update_session(daily.id, parties.client, day_index, completed=True)
        assert exc_info.value.session_count == 3


    def test_flag_edits_on_a_stale_engagement_conflict(self, orchestrator, session, parties, daily):
        session.commit()

        with pytest.raises(OptimisticLockError):
            with orchestrator.unit_of_work(
                "update_daily_session", parties.client, engagement_id=daily.id
            ) as k:
                stale = k.session.get(Engagement, daily.id)
                assert len(stale.daily_sessions) == 3
                # the other party's edit touches a different column of the same day
                orchestrator.update_daily_session(daily.id, parties.provider_actor, 0, completed=True)
                k.daily_sessions.update_session(daily.id, parties.client, 0, completed=True)

        day = orchestrator.get_engagement(daily.id).engagement.daily_sessions[0]
        assert (day.client_completed, day.provider_completed) == (False, True)


class TestPreconditions:

    def test_only_daily_engagements_have_sessions(self, kernel, parties, create_engagement, drive_to_paid):
        info = create_engagement(PricingMode.FIXED, proposed_price=Decimal("150"))
        drive_to_paid(info.id)

        with pytest.raises(InvalidTransitionError):
            kernel.daily_sessions.update_session(info.id, parties.client, 0, completed=True)

    def test_sessions_locked_before_payment(self, kernel, parties, create_engagement):
        info = create_engagement(
            PricingMode.DAILY, "Harvest help", proposed_days=3, scheduled_date=FUTURE,
        )

        with pytest.raises(InvalidTransitionError):
            kernel.daily_sessions.update_session(info.id, parties.client, 0, completed=True)


class TestReschedule:

    def test_move_time(self, kernel, parties, daily):
        info = kernel.daily_sessions.update_session(
            daily.id, parties.provider_actor, 1, scheduled_time="14:30"
        )

        day = info.daily_sessions[1]
        assert day.scheduled_time == "14:30"
        assert day.scheduled_date == datetime(2024, 2, 2, 14, 30, tzinfo=timezone.utc)

    def test_move_date_keeps_time(self, kernel, parties, daily):
        info = kernel.daily_sessions.update_session(
            daily.id, parties.client, 0, scheduled_date=FUTURE + timedelta(days=10)
        )

        assert info.daily_sessions[0].scheduled_date == datetime(2024, 2, 11, 9, 0, tzinfo=timezone.utc)

    def test_past_date_rejected(self, kernel, parties, daily, clock):
        with pytest.raises(DateNotInFutureError):
            kernel.daily_sessions.update_session(
                daily.id, parties.client, 0, scheduled_date=clock.now_utc() - timedelta(hours=1)
            )

    def test_malformed_time_rejected(self, kernel, parties, daily):
        with pytest.raises(InvalidScheduledTimeError):
            kernel.daily_sessions.update_session(daily.id, parties.client, 0, scheduled_time="25:00")
