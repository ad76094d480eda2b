"""
Module: marketplace_kernel.models.withdrawal
Responsibility: ORM persistence for provider withdrawal requests.
Architecture position: Kernel > Models.  May import from db/ and domain/values only.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from marketplace_kernel.db.base import TimestampedBase
from marketplace_kernel.domain.values import WithdrawalStatus


class Withdrawal(TimestampedBase):
    __tablename__ = "withdrawals"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_withdrawal_amount_positive"),
        Index("idx_withdrawal_user", "user_id"),
    )

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("user_accounts.id"),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=WithdrawalStatus.PENDING.value,
    )

    def __repr__(self) -> str:
        return f"<Withdrawal {self.user_id} {self.amount} {self.status}>"
