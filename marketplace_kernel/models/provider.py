"""
Module: marketplace_kernel.models.provider
Responsibility: ORM persistence for provider profiles and their minimum
    rates per pricing mode (the rate card the price resolver reads).
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - One profile per user (uq_provider_user).
    - Minimum rates are positive when present.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import JSON, CheckConstraint, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace_kernel.db.base import TimestampedBase
from marketplace_kernel.models.user_account import UserAccount


class ProviderProfile(TimestampedBase):
    """
    A user's service offering.

    ``pricing_modes`` lists the modes the provider advertises; the price
    resolver only relies on the minimum rates, so a missing rate is what
    makes a mode unusable.
    """

    __tablename__ = "provider_profiles"

    __table_args__ = (
        UniqueConstraint("user_id", name="uq_provider_user"),
        CheckConstraint(
            "min_hourly_rate IS NULL OR min_hourly_rate > 0",
            name="ck_provider_hourly_rate_positive",
        ),
        CheckConstraint(
            "min_daily_rate IS NULL OR min_daily_rate > 0",
            name="ck_provider_daily_rate_positive",
        ),
        CheckConstraint(
            "min_fixed_rate IS NULL OR min_fixed_rate > 0",
            name="ck_provider_fixed_rate_positive",
        ),
    )

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("user_accounts.id"),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    pricing_modes: Mapped[list[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )

    min_hourly_rate: Mapped[Decimal | None] = mapped_column(nullable=True)
    min_daily_rate: Mapped[Decimal | None] = mapped_column(nullable=True)
    min_fixed_rate: Mapped[Decimal | None] = mapped_column(nullable=True)

    user: Mapped[UserAccount] = relationship()

    def __repr__(self) -> str:
        return f"<ProviderProfile {self.id} user={self.user_id}>"
