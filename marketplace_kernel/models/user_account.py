"""
Module: marketplace_kernel.models.user_account
Responsibility: ORM persistence for marketplace users as seen by the
    negotiation and settlement engine: identity, admin flag, provider flag and
    the provider balance that settlements credit and withdrawals debit.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - balance is never negative (ck_user_balance_non_negative).  Mutations go
      through BalanceService's conditional UPDATEs, never read-modify-write.

Failure modes:
    - IntegrityError on duplicate email (uq_user_email).
"""

from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from marketplace_kernel.db.base import TimestampedBase


class UserAccount(TimestampedBase):
    """
    A marketplace user.

    Registration, credentials and sessions live outside this system; the
    engine only needs who the user is and how much the platform owes them.
    """

    __tablename__ = "user_accounts"

    __table_args__ = (
        UniqueConstraint("email", name="uq_user_email"),
        CheckConstraint("balance >= 0", name="ck_user_balance_non_negative"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    email: Mapped[str] = mapped_column(String(255), nullable=False)

    is_provider_enabled: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    is_admin: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    # Provider earnings, credited only by the settlement guard
    balance: Mapped[Decimal] = mapped_column(
        nullable=False,
        default=Decimal("0"),
    )

    def __repr__(self) -> str:
        return f"<UserAccount {self.email}>"
