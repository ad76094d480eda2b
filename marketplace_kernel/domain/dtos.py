"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable structures returned by services and selectors:
    EngagementInfo, DailySessionInfo, NegotiationInfo, the resolved
    EngagementView (engagement + chain + effective statuses), settlement
    outcomes, balance entries and withdrawals.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    ``from_model()`` class methods are boundary converters invoked only from
    the service and selector layers.

Invariants enforced:
    - Services and selectors never hand ORM entities to callers.  A DTO is a
      snapshot taken inside the transaction that produced it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from marketplace_kernel.domain.values import (
    BalanceEntryKind,
    EngagementStatus,
    NegotiationStatus,
    PaymentMethod,
    PricingMode,
    WithdrawalStatus,
)

if TYPE_CHECKING:
    from marketplace_kernel.models.balance_entry import BalanceEntry as BalanceEntryModel
    from marketplace_kernel.models.engagement import DailySession as DailySessionModel
    from marketplace_kernel.models.engagement import Engagement as EngagementModel
    from marketplace_kernel.models.negotiation import Negotiation as NegotiationModel
    from marketplace_kernel.models.withdrawal import Withdrawal as WithdrawalModel


@dataclass(frozen=True)
class DailySessionInfo:
    day_index: int
    scheduled_date: datetime
    scheduled_time: str
    client_completed: bool
    provider_completed: bool

    @property
    def is_confirmed(self) -> bool:
        return self.client_completed and self.provider_completed

    @classmethod
    def from_model(cls, model: DailySessionModel) -> DailySessionInfo:
        return cls(
            day_index=model.day_index,
            scheduled_date=model.scheduled_date,
            scheduled_time=model.scheduled_time,
            client_completed=model.client_completed,
            provider_completed=model.provider_completed,
        )


@dataclass(frozen=True)
class EngagementInfo:
    """Snapshot of an engagement row with its daily sessions."""

    id: UUID
    client_id: UUID
    provider_id: UUID
    title: str
    description: str | None
    pricing_mode: PricingMode
    proposed_price: Decimal | None
    proposed_hours: int | None
    proposed_days: int | None
    scheduled_date: datetime | None
    status: EngagementStatus
    payment_method: PaymentMethod | None
    payment_completed_at: datetime | None
    client_completed_at: datetime | None
    provider_completed_at: datetime | None
    balance_added_at: datetime | None
    version: int
    created_at: datetime
    updated_at: datetime
    daily_sessions: tuple[DailySessionInfo, ...] = ()

    @property
    def is_settled(self) -> bool:
        return self.balance_added_at is not None

    @classmethod
    def from_model(cls, model: EngagementModel) -> EngagementInfo:
        return cls(
            id=model.id,
            client_id=model.client_id,
            provider_id=model.provider_id,
            title=model.title,
            description=model.description,
            pricing_mode=PricingMode(model.pricing_mode),
            proposed_price=model.proposed_price,
            proposed_hours=model.proposed_hours,
            proposed_days=model.proposed_days,
            scheduled_date=model.scheduled_date,
            status=EngagementStatus(model.status),
            payment_method=(
                PaymentMethod(model.payment_method) if model.payment_method else None
            ),
            payment_completed_at=model.payment_completed_at,
            client_completed_at=model.client_completed_at,
            provider_completed_at=model.provider_completed_at,
            balance_added_at=model.balance_added_at,
            version=model.version,
            created_at=model.created_at,
            updated_at=model.updated_at,
            daily_sessions=tuple(
                DailySessionInfo.from_model(s) for s in model.daily_sessions
            ),
        )


@dataclass(frozen=True)
class NegotiationInfo:
    id: UUID
    engagement_id: UUID
    sequence: int
    proposer_id: UUID
    pricing_mode: PricingMode | None
    proposed_price: Decimal | None
    proposed_hours: int | None
    proposed_days: int | None
    proposed_date: datetime | None
    message: str
    status: NegotiationStatus
    created_at: datetime
    responded_at: datetime | None = None
    responder_id: UUID | None = None

    @classmethod
    def from_model(cls, model: NegotiationModel) -> NegotiationInfo:
        return cls(
            id=model.id,
            engagement_id=model.engagement_id,
            sequence=model.sequence,
            proposer_id=model.proposer_id,
            pricing_mode=PricingMode(model.pricing_mode) if model.pricing_mode else None,
            proposed_price=model.proposed_price,
            proposed_hours=model.proposed_hours,
            proposed_days=model.proposed_days,
            proposed_date=model.proposed_date,
            message=model.message,
            status=NegotiationStatus(model.status),
            created_at=model.created_at,
            responded_at=model.responded_at,
            responder_id=model.responder_id,
        )


@dataclass(frozen=True)
class ResolvedNegotiation:
    """A chain entry paired with the status a client should see."""

    negotiation: NegotiationInfo
    effective_status: NegotiationStatus
    is_live: bool


@dataclass(frozen=True)
class EngagementView:
    """
    Read model of an engagement: stored row, ordered chain, and the
    effective statuses derived from it at read time.
    """

    engagement: EngagementInfo
    effective_status: EngagementStatus
    negotiations: tuple[ResolvedNegotiation, ...] = ()
    live_negotiation_id: UUID | None = None


@dataclass(frozen=True)
class SettlementOutcome:
    """
    Result of one Settlement Guard evaluation.

    ``settled`` is True only for the single call that credited the balance.
    """

    engagement_id: UUID
    settled: bool
    provider_user_id: UUID | None = None
    gross_amount: Decimal | None = None
    provider_amount: Decimal | None = None
    platform_fee: Decimal | None = None
    reasons: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class BalanceEntryInfo:
    id: UUID
    user_id: UUID
    kind: BalanceEntryKind
    amount: Decimal
    idempotency_key: str
    engagement_id: UUID | None
    withdrawal_id: UUID | None
    created_at: datetime

    @classmethod
    def from_model(cls, model: BalanceEntryModel) -> BalanceEntryInfo:
        return cls(
            id=model.id,
            user_id=model.user_id,
            kind=BalanceEntryKind(model.kind),
            amount=model.amount,
            idempotency_key=model.idempotency_key,
            engagement_id=model.engagement_id,
            withdrawal_id=model.withdrawal_id,
            created_at=model.created_at,
        )


@dataclass(frozen=True)
class WithdrawalInfo:
    id: UUID
    user_id: UUID
    amount: Decimal
    status: WithdrawalStatus
    created_at: datetime

    @classmethod
    def from_model(cls, model: WithdrawalModel) -> WithdrawalInfo:
        return cls(
            id=model.id,
            user_id=model.user_id,
            amount=model.amount,
            status=WithdrawalStatus(model.status),
            created_at=model.created_at,
        )
