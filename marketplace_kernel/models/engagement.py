"""
Module: marketplace_kernel.models.engagement
Responsibility: ORM persistence for engagements (a client hiring a provider)
    and their per-day sessions.
Architecture position: Kernel > Models.  May import from db/ and domain/values only.

Invariants enforced:
    - Optimistic concurrency: ``version`` is the mapper's version_id_col, so
      every ORM UPDATE of an engagement carries ``WHERE version = :seen`` and
      raises StaleDataError when another transaction got there first.
      Services translate that into OptimisticLockError.
    - balance_added_at is written only by the settlement guard's conditional
      UPDATE; the ORM never assigns it.
    - Daily sessions have contiguous 0-based day indexes, unique per
      engagement (uq_daily_session_day).
    - proposed_price is positive when present.

Failure modes:
    - StaleDataError on a lost concurrent update.
    - IntegrityError on duplicate (engagement_id, day_index).
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace_kernel.db.base import Base, TimestampedBase
from marketplace_kernel.domain.values import EngagementStatus
from marketplace_kernel.models.provider import ProviderProfile


class DailySession(Base):
    """One scheduled day of a daily-priced engagement."""

    __tablename__ = "daily_sessions"

    __table_args__ = (
        UniqueConstraint("engagement_id", "day_index", name="uq_daily_session_day"),
        CheckConstraint("day_index >= 0", name="ck_daily_session_day_index"),
    )

    engagement_id: Mapped[UUID] = mapped_column(
        ForeignKey("engagements.id", ondelete="CASCADE"),
        nullable=False,
    )

    # 0-based position in the schedule
    day_index: Mapped[int] = mapped_column(Integer, nullable=False)

    scheduled_date: Mapped[datetime] = mapped_column(nullable=False)

    # "HH:MM", UTC wall clock
    scheduled_time: Mapped[str] = mapped_column(String(5), nullable=False)

    client_completed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    provider_completed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    def __repr__(self) -> str:
        return f"<DailySession {self.engagement_id} day={self.day_index}>"


class Engagement(TimestampedBase):
    """
    A client's request for a provider's service, from first proposal to
    settlement.

    Status changes are validated against ENGAGEMENT_WORKFLOW by the
    services; the model only stores the current status.
    """

    __tablename__ = "engagements"

    __table_args__ = (
        CheckConstraint(
            "proposed_price IS NULL OR proposed_price > 0",
            name="ck_engagement_price_positive",
        ),
        Index("idx_engagement_client", "client_id"),
        Index("idx_engagement_provider", "provider_id"),
        Index("idx_engagement_status", "status"),
    )

    client_id: Mapped[UUID] = mapped_column(
        ForeignKey("user_accounts.id"),
        nullable=False,
    )

    provider_id: Mapped[UUID] = mapped_column(
        ForeignKey("provider_profiles.id"),
        nullable=False,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    pricing_mode: Mapped[str] = mapped_column(String(20), nullable=False)

    proposed_price: Mapped[Decimal | None] = mapped_column(nullable=True)

    proposed_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)

    proposed_days: Mapped[int | None] = mapped_column(Integer, nullable=True)

    scheduled_date: Mapped[datetime | None] = mapped_column(nullable=True)

    status: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default=EngagementStatus.PENDING.value,
    )

    payment_method: Mapped[str | None] = mapped_column(String(20), nullable=True)

    payment_completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    client_completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    provider_completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Settlement marker, set once by the guard's conditional UPDATE
    balance_added_at: Mapped[datetime | None] = mapped_column(nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    provider: Mapped[ProviderProfile] = relationship()

    daily_sessions: Mapped[list[DailySession]] = relationship(
        order_by=DailySession.day_index,
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def provider_user_id(self) -> UUID:
        return self.provider.user_id

    def __repr__(self) -> str:
        return f"<Engagement {self.id} {self.status}>"
