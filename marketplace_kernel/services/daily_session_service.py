"""
DailySessionService -- per-day confirmations and rescheduling.

Responsibility:
    Let each party confirm (or un-confirm) their side of a daily session and
    move a session's date/time.  When the last missing confirmation arrives
    the engagement is completed on the spot and the Settlement Guard runs.

Architecture position:
    Kernel > Services.  Gate logic comes from
    marketplace_engines.daily_sessions.

Invariants enforced:
    - Only daily-priced engagements in ``accepted`` or
      ``pending_completion`` with confirmed payment accept session updates.
    - A party only changes its own flag.
    - Rescheduled sessions start strictly in the future.
    - Session edits bump the engagement version, so two edits racing on the
      same engagement serialize; the loser gets OptimisticLockError.

Failure modes:
    - EngagementNotFoundError, InvalidTransitionError,
      PaymentNotConfirmedError, UnauthorizedError, InvalidDayIndexError,
      InvalidScheduledTimeError, DateNotInFutureError, OptimisticLockError.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from marketplace_engines.daily_sessions import (
    all_sessions_confirmed,
    combine_date_and_time,
    parse_scheduled_time,
)
from marketplace_engines.scheduling import ASSUME_UTC, ensure_future, normalize_utc
from marketplace_kernel.domain import lifecycle
from marketplace_kernel.domain.clock import Clock
from marketplace_kernel.domain.dtos import EngagementInfo
from marketplace_kernel.domain.parties import PartyRole
from marketplace_kernel.domain.values import Actor, EngagementStatus, PricingMode
from marketplace_kernel.exceptions import (
    InvalidDayIndexError,
    InvalidTransitionError,
    PaymentNotConfirmedError,
)
from marketplace_kernel.logging_config import get_logger
from marketplace_kernel.models.engagement import DailySession, Engagement
from marketplace_kernel.services.access import load_engagement, require_party
from marketplace_kernel.services.base import BaseService
from marketplace_kernel.services.settlement_service import SettlementService

logger = get_logger("services.daily_session")


class DailySessionService(BaseService[DailySession]):

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        settlement: SettlementService | None = None,
        naive_datetime_policy: str = ASSUME_UTC,
    ):
        super().__init__(session, clock)
        self.settlement = settlement or SettlementService(session, self.clock)
        self.naive_datetime_policy = naive_datetime_policy

    def update_session(
        self,
        engagement_id: UUID,
        actor: Actor,
        day_index: int,
        completed: bool | None = None,
        scheduled_date: datetime | None = None,
        scheduled_time: str | None = None,
    ) -> EngagementInfo:
        """
        Update one daily session.

        ``completed`` sets the caller's own flag; ``scheduled_date`` and
        ``scheduled_time`` move the session (either may be given alone).
        """
        engagement = load_engagement(self.session, engagement_id)
        if PricingMode(engagement.pricing_mode) is not PricingMode.DAILY:
            raise InvalidTransitionError(
                str(engagement.id), engagement.status, lifecycle.UPDATE_DAILY_SESSION
            )
        status = EngagementStatus(engagement.status)
        lifecycle.ensure_transition(engagement.id, status, lifecycle.UPDATE_DAILY_SESSION)
        if engagement.payment_completed_at is None:
            raise PaymentNotConfirmedError(str(engagement.id))
        role = require_party(engagement, actor, lifecycle.UPDATE_DAILY_SESSION)

        day = self._find_day(engagement, day_index)
        now = self._now()

        if completed is not None:
            if role is PartyRole.CLIENT:
                day.client_completed = completed
            else:
                day.provider_completed = completed

        if scheduled_date is not None or scheduled_time is not None:
            self._reschedule(day, scheduled_date, scheduled_time, now)

        self._touch(engagement, now)

        promoted = False
        if all_sessions_confirmed(engagement.daily_sessions):
            lifecycle.ensure_transition(
                engagement.id, status, lifecycle.UPDATE_DAILY_SESSION, EngagementStatus.COMPLETED
            )
            engagement.status = EngagementStatus.COMPLETED.value
            engagement.client_completed_at = now
            engagement.provider_completed_at = now
            promoted = True

        self._flush("Engagement", engagement.id)

        logger.info(
            "daily_session_updated",
            extra={
                "engagement_id": str(engagement.id),
                "day_index": day_index,
                "party": role.value,
                "client_completed": day.client_completed,
                "provider_completed": day.provider_completed,
                "engagement_completed": promoted,
            },
        )

        if promoted:
            self.settlement.settle_if_eligible(engagement)
        return EngagementInfo.from_model(engagement)

    def _find_day(self, engagement: Engagement, day_index: int) -> DailySession:
        sessions = engagement.daily_sessions
        if isinstance(day_index, bool) or not isinstance(day_index, int):
            raise InvalidDayIndexError(day_index, len(sessions))
        for day in sessions:
            if day.day_index == day_index:
                return day
        raise InvalidDayIndexError(day_index, len(sessions))

    def _reschedule(
        self,
        day: DailySession,
        scheduled_date: datetime | None,
        scheduled_time: str | None,
        now: datetime,
    ) -> None:
        base = day.scheduled_date
        if scheduled_date is not None:
            base = normalize_utc(scheduled_date, "scheduled_date", self.naive_datetime_policy)
        time_of_day = scheduled_time if scheduled_time is not None else day.scheduled_time
        parse_scheduled_time(time_of_day)
        starts_at = combine_date_and_time(base, time_of_day)
        ensure_future(starts_at, now, "scheduled_date")
        day.scheduled_date = starts_at
        day.scheduled_time = time_of_day
