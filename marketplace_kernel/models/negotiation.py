"""
Module: marketplace_kernel.models.negotiation
Responsibility: ORM persistence for negotiation proposals.  The rows for one
    engagement form an append-only chain ordered by (created_at, sequence).
Architecture position: Kernel > Models.  May import from db/ and domain/values only.

Invariants enforced:
    - A proposal is mutated at most once: pending -> accepted | rejected |
      counter_proposed.  NegotiationService enforces this with
      ``UPDATE ... WHERE status = 'pending'``.
    - Chain positions are unique per engagement (uq_negotiation_sequence), so
      two concurrent proposals cannot claim the same slot.
    - message is non-empty (ck_negotiation_message_present).
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from marketplace_kernel.db.base import TimestampedBase
from marketplace_kernel.domain.values import NegotiationStatus


class Negotiation(TimestampedBase):
    """A price/schedule proposal within an engagement's chain."""

    __tablename__ = "negotiations"

    __table_args__ = (
        UniqueConstraint("engagement_id", "sequence", name="uq_negotiation_sequence"),
        CheckConstraint("length(message) > 0", name="ck_negotiation_message_present"),
        Index("idx_negotiation_chain", "engagement_id", "created_at", "sequence"),
    )

    engagement_id: Mapped[UUID] = mapped_column(
        ForeignKey("engagements.id"),
        nullable=False,
    )

    # 1-based position in the chain
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)

    proposer_id: Mapped[UUID] = mapped_column(
        ForeignKey("user_accounts.id"),
        nullable=False,
    )

    pricing_mode: Mapped[str | None] = mapped_column(String(20), nullable=True)

    proposed_price: Mapped[Decimal | None] = mapped_column(nullable=True)
    proposed_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)
    proposed_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    proposed_date: Mapped[datetime | None] = mapped_column(nullable=True)

    message: Mapped[str] = mapped_column(String(4000), nullable=False)

    status: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default=NegotiationStatus.PENDING.value,
    )

    responded_at: Mapped[datetime | None] = mapped_column(nullable=True)

    responder_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("user_accounts.id"),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Negotiation {self.engagement_id}#{self.sequence} {self.status}>"
