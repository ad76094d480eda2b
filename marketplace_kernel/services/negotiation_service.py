"""
NegotiationService -- the write side of the negotiation ledger.

Responsibility:
    Open proposals, accept or reject them, and counter-propose.  Accepting
    copies the proposal's terms onto the engagement and moves it to
    ``payment_pending``.

Architecture position:
    Kernel > Services.  Chain resolution (which proposal is live) comes from
    marketplace_engines.negotiation_chain; auto pricing on accept from
    marketplace_engines.pricing.

Invariants enforced:
    - Only the client and the provider's owning user may propose or
      respond, and never to their own proposal.
    - Only the chain's live (newest, pending) proposal is actionable.
    - A proposal leaves ``pending`` at most once: the response is written
      with ``UPDATE negotiations ... WHERE id = :id AND status = 'pending'``
      so of two racing responders exactly one matches a row.
    - Every proposal bumps the engagement's version, so two concurrent
      proposals on one engagement cannot both commit.
    - Proposed dates are strictly in the future.

Failure modes:
    - EngagementNotFoundError, NegotiationNotFoundError, UnauthorizedError,
      SelfResponseError, NegotiationAlreadyResolvedError,
      NegotiationSupersededError, InvalidTransitionError,
      InvalidTermsError, InvalidPriceError, InvalidQuantityError,
      DateNotInFutureError, OptimisticLockError.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from marketplace_engines.negotiation_chain import ensure_actionable, next_sequence
from marketplace_engines.pricing import compute_auto_price, quantity_for
from marketplace_engines.scheduling import ASSUME_UTC, normalize_future
from marketplace_kernel.domain import lifecycle
from marketplace_kernel.domain.clock import Clock
from marketplace_kernel.domain.dtos import NegotiationInfo
from marketplace_kernel.domain.values import (
    Actor,
    EngagementStatus,
    NegotiationDecision,
    NegotiationStatus,
    NegotiationTerms,
    PricingMode,
)
from marketplace_kernel.exceptions import (
    InvalidPriceError,
    InvalidTermsError,
    NegotiationAlreadyResolvedError,
    NegotiationNotFoundError,
    SelfResponseError,
)
from marketplace_kernel.logging_config import get_logger
from marketplace_kernel.models.engagement import Engagement
from marketplace_kernel.models.negotiation import Negotiation
from marketplace_kernel.services.access import load_engagement, require_party
from marketplace_kernel.services.base import BaseService
from marketplace_kernel.services.engagement_service import (
    parse_pricing_mode,
    rate_card_for,
    replace_daily_sessions,
    validate_quantity,
)

logger = get_logger("services.negotiation")

_negotiations = Negotiation.__table__


@dataclass(frozen=True)
class _ValidTerms:
    message: str
    pricing_mode: PricingMode | None
    proposed_price: Decimal | None
    proposed_hours: int | None
    proposed_days: int | None
    proposed_date: datetime | None


class NegotiationService(BaseService[Negotiation]):

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        naive_datetime_policy: str = ASSUME_UTC,
    ):
        super().__init__(session, clock)
        self.naive_datetime_policy = naive_datetime_policy

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def open(
        self,
        engagement_id: UUID,
        actor: Actor,
        terms: NegotiationTerms,
    ) -> NegotiationInfo:
        """
        Append a new proposal and move the engagement to ``negotiating``.

        Allowed while the engagement is ``pending`` or ``negotiating``.
        Opening on a negotiating engagement supersedes the current live
        proposal.

        Raises:
            InvalidTransitionError: the engagement is ``payment_pending``,
                ``accepted``, ``pending_completion``, ``completed`` or
                ``cancelled``.  Agreed terms are not reopened; cancel and
                create a new engagement instead.
            UnauthorizedError: the actor is not a party.
            InvalidTermsError, InvalidPriceError, InvalidQuantityError,
            DateNotInFutureError: the proposed terms are malformed.
        """
        engagement = load_engagement(self.session, engagement_id)
        require_party(engagement, actor, lifecycle.OPEN_NEGOTIATION)
        lifecycle.ensure_transition(
            engagement.id, engagement.status, lifecycle.OPEN_NEGOTIATION
        )
        valid = self._validate_terms(terms)

        now = self._now()
        negotiation = self._append(engagement, actor, valid, now)
        engagement.status = EngagementStatus.NEGOTIATING.value
        self._touch(engagement, now)
        self._flush("Engagement", engagement.id)

        logger.info(
            "negotiation_opened",
            extra={
                "engagement_id": str(engagement.id),
                "negotiation_id": str(negotiation.id),
                "sequence": negotiation.sequence,
                "proposer_id": str(actor.user_id),
            },
        )
        return NegotiationInfo.from_model(negotiation)

    def respond(
        self,
        negotiation_id: UUID,
        actor: Actor,
        decision: NegotiationDecision | str,
    ) -> NegotiationInfo:
        """
        Accept or reject the live proposal.

        Accept copies the terms onto the engagement (price auto-filled from
        the provider's rates when only a quantity was proposed, falling back
        to the engagement's price), regenerates the daily schedule when the
        daily terms are known, and moves the engagement to
        ``payment_pending``.  Reject touches only the proposal.
        """
        decision = NegotiationDecision(decision)
        negotiation, engagement = self._load_actionable(negotiation_id, actor, "respond")

        now = self._now()
        if decision is NegotiationDecision.ACCEPT:
            lifecycle.ensure_transition(
                engagement.id,
                engagement.status,
                lifecycle.ACCEPT_NEGOTIATION,
                EngagementStatus.PAYMENT_PENDING,
            )
            self._resolve(negotiation, actor, NegotiationStatus.ACCEPTED, now)
            self._apply_terms(engagement, negotiation)
            engagement.status = EngagementStatus.PAYMENT_PENDING.value
            self._touch(engagement, now)
            self._flush("Engagement", engagement.id)
        else:
            self._resolve(negotiation, actor, NegotiationStatus.REJECTED, now)

        logger.info(
            "negotiation_responded",
            extra={
                "engagement_id": str(engagement.id),
                "negotiation_id": str(negotiation.id),
                "decision": decision.value,
                "engagement_status": engagement.status,
                "proposed_price": (
                    str(engagement.proposed_price)
                    if engagement.proposed_price is not None else None
                ),
            },
        )
        return NegotiationInfo.from_model(negotiation)

    def counter_propose(
        self,
        negotiation_id: UUID,
        actor: Actor,
        terms: NegotiationTerms,
    ) -> NegotiationInfo:
        """
        Answer the live proposal with new terms.

        The original becomes ``counter_proposed``; the returned proposal is
        owned by the responder and is the chain's new live entry.
        """
        negotiation, engagement = self._load_actionable(
            negotiation_id, actor, lifecycle.COUNTER_PROPOSE
        )
        lifecycle.ensure_transition(
            engagement.id, engagement.status, lifecycle.COUNTER_PROPOSE
        )
        valid = self._validate_terms(terms)

        now = self._now()
        self._resolve(negotiation, actor, NegotiationStatus.COUNTER_PROPOSED, now)
        counter = self._append(engagement, actor, valid, now)
        self._touch(engagement, now)
        self._flush("Engagement", engagement.id)

        logger.info(
            "negotiation_counter_proposed",
            extra={
                "engagement_id": str(engagement.id),
                "negotiation_id": str(counter.id),
                "replaces_negotiation_id": str(negotiation.id),
                "sequence": counter.sequence,
            },
        )
        return NegotiationInfo.from_model(counter)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _chain(self, engagement_id: UUID) -> list[Negotiation]:
        stmt = select(Negotiation).where(Negotiation.engagement_id == engagement_id)
        return list(self.session.execute(stmt).scalars())

    def _load_actionable(
        self,
        negotiation_id: UUID,
        actor: Actor,
        action: str,
    ) -> tuple[Negotiation, Engagement]:
        negotiation = self.session.get(Negotiation, negotiation_id)
        if negotiation is None:
            raise NegotiationNotFoundError(str(negotiation_id))
        engagement = load_engagement(self.session, negotiation.engagement_id)
        require_party(engagement, actor, action)
        if negotiation.proposer_id == actor.user_id:
            raise SelfResponseError(str(negotiation.id), str(actor.user_id))
        ensure_actionable(negotiation, self._chain(engagement.id))
        return negotiation, engagement

    def _resolve(
        self,
        negotiation: Negotiation,
        actor: Actor,
        status: NegotiationStatus,
        now: datetime,
    ) -> None:
        """Move a proposal out of ``pending``; exactly one caller can win."""
        result = self.session.execute(
            update(_negotiations)
            .where(
                _negotiations.c.id == negotiation.id,
                _negotiations.c.status == NegotiationStatus.PENDING.value,
            )
            .values(
                status=status.value,
                responded_at=now,
                responder_id=actor.user_id,
                updated_at=now,
            )
        )
        self.session.refresh(negotiation)
        if result.rowcount != 1:
            raise NegotiationAlreadyResolvedError(str(negotiation.id), negotiation.status)

    def _append(
        self,
        engagement: Engagement,
        actor: Actor,
        terms: _ValidTerms,
        now: datetime,
    ) -> Negotiation:
        negotiation = Negotiation(
            engagement_id=engagement.id,
            sequence=next_sequence(self._chain(engagement.id)),
            proposer_id=actor.user_id,
            pricing_mode=terms.pricing_mode.value if terms.pricing_mode else None,
            proposed_price=terms.proposed_price,
            proposed_hours=terms.proposed_hours,
            proposed_days=terms.proposed_days,
            proposed_date=terms.proposed_date,
            message=terms.message,
            status=NegotiationStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        self.session.add(negotiation)
        return negotiation

    def _apply_terms(self, engagement: Engagement, negotiation: Negotiation) -> None:
        mode = PricingMode(negotiation.pricing_mode or engagement.pricing_mode)
        hours = negotiation.proposed_hours or engagement.proposed_hours
        # a day count only means something for daily engagements
        days = (
            negotiation.proposed_days or engagement.proposed_days
            if mode is PricingMode.DAILY else None
        )
        start = negotiation.proposed_date or engagement.scheduled_date

        price = negotiation.proposed_price
        if price is None and mode is PricingMode.FIXED and negotiation.pricing_mode is None:
            # terms that leave a fixed engagement's mode alone keep its flat price
            price = engagement.proposed_price
        if price is None:
            auto = compute_auto_price(
                mode,
                rate_card_for(engagement.provider),
                quantity_for(mode, negotiation.proposed_hours, negotiation.proposed_days)
                or quantity_for(mode, engagement.proposed_hours, engagement.proposed_days),
            )
            price = auto if auto is not None else engagement.proposed_price

        engagement.pricing_mode = mode.value
        engagement.proposed_price = price
        engagement.proposed_hours = hours
        engagement.proposed_days = days
        engagement.scheduled_date = start

        if mode is not PricingMode.DAILY:
            if engagement.daily_sessions:
                engagement.daily_sessions.clear()
        elif days and start is not None:
            replace_daily_sessions(self.session, engagement, start, days)

    def _validate_terms(self, terms: NegotiationTerms) -> _ValidTerms:
        message = (terms.message or "").strip()
        if not message:
            raise InvalidTermsError("message", "must not be empty")
        mode = parse_pricing_mode(terms.pricing_mode) if terms.pricing_mode else None
        if terms.proposed_price is not None and terms.proposed_price <= 0:
            raise InvalidPriceError(terms.proposed_price)
        proposed_date = None
        if terms.proposed_date is not None:
            proposed_date = normalize_future(
                terms.proposed_date,
                self._now(),
                "proposed_date",
                self.naive_datetime_policy,
            )
        return _ValidTerms(
            message=message,
            pricing_mode=mode,
            proposed_price=terms.proposed_price,
            proposed_hours=validate_quantity("proposed_hours", terms.proposed_hours),
            proposed_days=validate_quantity("proposed_days", terms.proposed_days),
            proposed_date=proposed_date,
        )
