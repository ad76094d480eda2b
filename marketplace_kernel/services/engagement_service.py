"""
EngagementService -- engagement creation and lifecycle transitions.

Responsibility:
    Create engagements with a resolved price, record completion
    confirmations, cancel, and dispatch the generic "update engagement
    status" request to the right transition.

Architecture position:
    Kernel > Services.  Uses marketplace_engines for pricing, scheduling and
    the daily-session gate; calls SettlementService after every
    completion-affecting write.

Invariants enforced:
    - Every status change is validated against ENGAGEMENT_WORKFLOW.
    - A party only ever sets its own completion timestamp, and a repeated
      confirmation keeps the original timestamp.
    - Completion requires confirmed payment; daily-priced engagements also
      require every daily session confirmed by both parties.
    - Every engagement UPDATE carries the version predicate; a lost race
      raises OptimisticLockError and nothing is written.

Failure modes:
    - ProviderNotFoundError, UserAccountNotFoundError, SelfEngagementError,
      MissingRateError, PriceBelowFloorError, InvalidPriceError,
      InvalidQuantityError, DateNotInFutureError on creation.
    - EngagementNotFoundError, UnauthorizedError, InvalidTransitionError,
      PaymentNotConfirmedError, NoDailySessionsError,
      DailySessionsIncompleteError, OptimisticLockError on transitions.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from marketplace_engines.daily_sessions import build_schedule, ensure_completion_gate
from marketplace_engines.pricing import RateCard, quantity_for, resolve_price
from marketplace_engines.scheduling import ASSUME_UTC, normalize_future
from marketplace_kernel.domain import lifecycle
from marketplace_kernel.domain.clock import Clock
from marketplace_kernel.domain.dtos import EngagementInfo
from marketplace_kernel.domain.parties import PartyRole
from marketplace_kernel.domain.values import Actor, EngagementStatus, PricingMode
from marketplace_kernel.exceptions import (
    InvalidQuantityError,
    InvalidTermsError,
    InvalidTransitionError,
    PaymentNotConfirmedError,
    ProviderNotFoundError,
    SelfEngagementError,
    UserAccountNotFoundError,
)
from marketplace_kernel.logging_config import get_logger
from marketplace_kernel.models.engagement import DailySession, Engagement
from marketplace_kernel.models.provider import ProviderProfile
from marketplace_kernel.models.user_account import UserAccount
from marketplace_kernel.services.access import (
    load_engagement,
    require_party,
    require_party_or_admin,
)
from marketplace_kernel.services.base import BaseService
from marketplace_kernel.services.settlement_service import SettlementService

logger = get_logger("services.engagement")


def parse_pricing_mode(value: PricingMode | str) -> PricingMode:
    try:
        return PricingMode(value)
    except ValueError as exc:
        raise InvalidTermsError("pricing_mode", f"unknown mode {value!r}") from exc


def validate_quantity(field: str, value: int | None) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise InvalidQuantityError(field, value)
    return value


def rate_card_for(provider: ProviderProfile) -> RateCard:
    return RateCard(
        min_hourly_rate=provider.min_hourly_rate,
        min_daily_rate=provider.min_daily_rate,
        min_fixed_rate=provider.min_fixed_rate,
        provider_id=provider.id,
    )


def replace_daily_sessions(
    session: Session,
    engagement: Engagement,
    start: datetime,
    days: int,
) -> None:
    """Regenerate the schedule; the old rows are deleted before new ones go in."""
    if engagement.daily_sessions:
        engagement.daily_sessions.clear()
        session.flush()
    for day in build_schedule(start, days):
        engagement.daily_sessions.append(
            DailySession(
                day_index=day.day_index,
                scheduled_date=day.scheduled_date,
                scheduled_time=day.scheduled_time,
                client_completed=False,
                provider_completed=False,
            )
        )


class EngagementService(BaseService[Engagement]):
    """
    Write side of the engagement lifecycle.

    All public methods return EngagementInfo DTOs, not ORM entities.
    """

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

    def create_engagement(
        self,
        actor: Actor,
        provider_id: UUID,
        pricing_mode: PricingMode | str,
        title: str,
        description: str | None = None,
        proposed_price: Decimal | None = None,
        proposed_hours: int | None = None,
        proposed_days: int | None = None,
        scheduled_date: datetime | None = None,
    ) -> EngagementInfo:
        """
        Create an engagement in status ``pending``.

        The stored price is the explicit price when given (after the floor
        check), else the auto price for a known quantity, else None.  Daily
        engagements with both a day count and a start date get their
        session schedule immediately.
        """
        provider = self.session.get(ProviderProfile, provider_id)
        if provider is None:
            raise ProviderNotFoundError(str(provider_id))
        if provider.user_id == actor.user_id:
            raise SelfEngagementError(str(actor.user_id), str(provider_id))
        if self.session.get(UserAccount, actor.user_id) is None:
            raise UserAccountNotFoundError(str(actor.user_id))

        if not title or not title.strip():
            raise InvalidTermsError("title", "must not be empty")
        mode = parse_pricing_mode(pricing_mode)
        hours = validate_quantity("proposed_hours", proposed_hours)
        days = validate_quantity("proposed_days", proposed_days)

        now = self._now()
        start = None
        if scheduled_date is not None:
            start = normalize_future(
                scheduled_date, now, "scheduled_date", self.naive_datetime_policy
            )

        resolution = resolve_price(
            pricing_mode=mode,
            rates=rate_card_for(provider),
            quantity=quantity_for(mode, hours, days),
            explicit_price=proposed_price,
        )

        engagement = Engagement(
            client_id=actor.user_id,
            provider_id=provider.id,
            title=title.strip(),
            description=description,
            pricing_mode=mode.value,
            proposed_price=resolution.price,
            proposed_hours=hours,
            proposed_days=days,
            scheduled_date=start,
            status=EngagementStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        self.session.add(engagement)

        if mode is PricingMode.DAILY and days is not None and start is not None:
            replace_daily_sessions(self.session, engagement, start, days)

        self._flush("Engagement", engagement.id)

        logger.info(
            "engagement_created",
            extra={
                "engagement_id": str(engagement.id),
                "client_id": str(actor.user_id),
                "provider_id": str(provider.id),
                "pricing_mode": mode.value,
                "proposed_price": str(resolution.price) if resolution.price is not None else None,
                "auto_priced": resolution.auto_priced,
                "daily_sessions": len(engagement.daily_sessions),
            },
        )
        return EngagementInfo.from_model(engagement)

    def request_completion(self, engagement_id: UUID, actor: Actor) -> EngagementInfo:
        """
        Record the caller's completion confirmation.

        One side confirmed -> ``pending_completion``; both -> ``completed``,
        after which the Settlement Guard runs.  Calling this on an already
        completed engagement changes nothing but still runs the guard, so a
        retry after a crash between completion and settlement settles once.
        """
        engagement = load_engagement(self.session, engagement_id)
        role = require_party(engagement, actor, lifecycle.REQUEST_COMPLETION)
        status = EngagementStatus(engagement.status)

        if status is EngagementStatus.COMPLETED:
            self.settlement.settle_if_eligible(engagement)
            return EngagementInfo.from_model(engagement)

        lifecycle.ensure_transition(engagement.id, status, lifecycle.REQUEST_COMPLETION)
        if engagement.payment_completed_at is None:
            raise PaymentNotConfirmedError(str(engagement.id))
        if PricingMode(engagement.pricing_mode) is PricingMode.DAILY:
            ensure_completion_gate(engagement.id, engagement.daily_sessions)

        now = self._now()
        if role is PartyRole.CLIENT and engagement.client_completed_at is None:
            engagement.client_completed_at = now
        elif role is PartyRole.PROVIDER and engagement.provider_completed_at is None:
            engagement.provider_completed_at = now

        both = (
            engagement.client_completed_at is not None
            and engagement.provider_completed_at is not None
        )
        target = EngagementStatus.COMPLETED if both else EngagementStatus.PENDING_COMPLETION
        lifecycle.ensure_transition(engagement.id, status, lifecycle.REQUEST_COMPLETION, target)
        engagement.status = target.value
        self._touch(engagement, now)
        self._flush("Engagement", engagement.id)

        logger.info(
            "engagement_completion_recorded",
            extra={
                "engagement_id": str(engagement.id),
                "party": role.value,
                "status": target.value,
            },
        )

        self.settlement.settle_if_eligible(engagement)
        return EngagementInfo.from_model(engagement)

    def cancel(self, engagement_id: UUID, actor: Actor) -> EngagementInfo:
        """Cancel from any non-terminal status.  Parties and admins only."""
        engagement = load_engagement(self.session, engagement_id)
        require_party_or_admin(engagement, actor, lifecycle.CANCEL)
        lifecycle.ensure_transition(
            engagement.id, engagement.status, lifecycle.CANCEL, EngagementStatus.CANCELLED
        )
        previous = engagement.status
        engagement.status = EngagementStatus.CANCELLED.value
        self._touch(engagement)
        self._flush("Engagement", engagement.id)

        logger.info(
            "engagement_cancelled",
            extra={"engagement_id": str(engagement.id), "previous_status": previous},
        )
        return EngagementInfo.from_model(engagement)

    def update_status(
        self,
        engagement_id: UUID,
        actor: Actor,
        status: EngagementStatus | str,
    ) -> EngagementInfo:
        """
        Generic status update as exposed to callers.

        Only completion and cancellation can be requested this way; every
        other status is reached through its own operation.
        """
        try:
            requested = EngagementStatus(status)
        except ValueError as exc:
            raise InvalidTermsError("status", f"unknown status {status!r}") from exc

        if requested is EngagementStatus.COMPLETED:
            return self.request_completion(engagement_id, actor)
        if requested is EngagementStatus.CANCELLED:
            return self.cancel(engagement_id, actor)

        engagement = load_engagement(self.session, engagement_id)
        require_party_or_admin(engagement, actor, f"set_status:{requested.value}")
        raise InvalidTransitionError(
            str(engagement.id), engagement.status, f"set_status:{requested.value}"
        )
