"""
Module: marketplace_kernel.models.balance_entry
Responsibility: Append-only record of every provider balance mutation.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - idempotency_key is unique (uq_balance_entry_idempotency).  Settlement
      credits use ``settlement:engagement:<id>``, so a second credit for the
      same engagement fails at the database even if the guard were bypassed.
    - amount is positive; kind says which direction it moved the balance.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from marketplace_kernel.db.base import Base, utc_now


class BalanceEntry(Base):
    __tablename__ = "balance_entries"

    __table_args__ = (
        UniqueConstraint("idempotency_key", name="uq_balance_entry_idempotency"),
        CheckConstraint("amount > 0", name="ck_balance_entry_amount_positive"),
        Index("idx_balance_entry_user", "user_id"),
    )

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("user_accounts.id"),
        nullable=False,
    )

    kind: Mapped[str] = mapped_column(String(30), nullable=False)

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    idempotency_key: Mapped[str] = mapped_column(String(255), nullable=False)

    engagement_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("engagements.id"),
        nullable=True,
    )

    # Plain reference: the debit is recorded before the withdrawal row exists
    withdrawal_id: Mapped[UUID | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utc_now)

    def __repr__(self) -> str:
        return f"<BalanceEntry {self.kind} {self.amount} {self.idempotency_key}>"
