"""
BalanceService -- atomic provider balance mutations.

Responsibility:
    Credit and debit ``UserAccount.balance`` and append the matching
    BalanceEntry.  This is the implementation of the persistence
    contract's addToBalance / subtractFromBalance.

Architecture position:
    Kernel > Services.  Called by SettlementService (credits) and
    WithdrawalService (debits).  Never called by the API layer directly.

Invariants enforced:
    - Atomicity: a credit is ``UPDATE ... SET balance = balance + :amount``
      and a debit is ``UPDATE ... SET balance = balance - :amount WHERE
      balance >= :amount``.  Neither reads the balance into Python first,
      so concurrent mutations cannot lose updates.
    - No negative balances: the debit predicate and the table's CHECK
      constraint both enforce it.
    - At most one entry per idempotency key (unique constraint).

Failure modes:
    - InvalidAmountError for a zero or negative amount.
    - UserAccountNotFoundError when the user does not exist.
    - InsufficientBalanceError when a debit exceeds the balance.
    - IntegrityError when an idempotency key is reused.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session
from sqlalchemy.orm.util import identity_key

from marketplace_kernel.domain.clock import Clock
from marketplace_kernel.domain.dtos import BalanceEntryInfo
from marketplace_kernel.domain.values import BalanceEntryKind
from marketplace_kernel.exceptions import (
    InsufficientBalanceError,
    InvalidAmountError,
    UserAccountNotFoundError,
)
from marketplace_kernel.logging_config import get_logger
from marketplace_kernel.models.balance_entry import BalanceEntry
from marketplace_kernel.models.user_account import UserAccount
from marketplace_kernel.services.base import BaseService

logger = get_logger("services.balance")

_accounts = UserAccount.__table__


class BalanceService(BaseService[UserAccount]):
    """Conditional balance updates plus an append-only entry per mutation."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)

    def credit(
        self,
        user_id: UUID,
        amount: Decimal,
        idempotency_key: str,
        kind: BalanceEntryKind = BalanceEntryKind.SETTLEMENT_CREDIT,
        engagement_id: UUID | None = None,
    ) -> BalanceEntryInfo:
        """
        Add ``amount`` to the user's balance.

        Postconditions:
            balance increased by exactly ``amount``; one BalanceEntry with
            ``idempotency_key`` exists.
        """
        self._require_positive(amount)
        result = self.session.execute(
            update(_accounts)
            .where(_accounts.c.id == user_id)
            .values(
                balance=_accounts.c.balance + amount,
                updated_at=self._now(),
            )
        )
        if result.rowcount != 1:
            raise UserAccountNotFoundError(str(user_id))
        self._expire_cached_balance(user_id)

        entry = self._record(user_id, kind, amount, idempotency_key, engagement_id=engagement_id)
        logger.info(
            "balance_credited",
            extra={
                "user_id": str(user_id),
                "amount": str(amount),
                "idempotency_key": idempotency_key,
            },
        )
        return entry

    def debit(
        self,
        user_id: UUID,
        amount: Decimal,
        idempotency_key: str,
        kind: BalanceEntryKind = BalanceEntryKind.WITHDRAWAL_DEBIT,
        withdrawal_id: UUID | None = None,
    ) -> BalanceEntryInfo:
        """
        Subtract ``amount`` from the user's balance if it is covered.

        Raises:
            InsufficientBalanceError: the balance is lower than ``amount``.
        """
        self._require_positive(amount)
        result = self.session.execute(
            update(_accounts)
            .where(_accounts.c.id == user_id, _accounts.c.balance >= amount)
            .values(
                balance=_accounts.c.balance - amount,
                updated_at=self._now(),
            )
        )
        if result.rowcount != 1:
            exists = self.session.execute(
                select(_accounts.c.id).where(_accounts.c.id == user_id)
            ).first()
            if exists is None:
                raise UserAccountNotFoundError(str(user_id))
            logger.info(
                "balance_debit_rejected",
                extra={"user_id": str(user_id), "amount": str(amount)},
            )
            raise InsufficientBalanceError(str(user_id), amount)
        self._expire_cached_balance(user_id)

        entry = self._record(user_id, kind, amount, idempotency_key, withdrawal_id=withdrawal_id)
        logger.info(
            "balance_debited",
            extra={
                "user_id": str(user_id),
                "amount": str(amount),
                "idempotency_key": idempotency_key,
            },
        )
        return entry

    def get_balance(self, user_id: UUID) -> Decimal:
        balance = self.session.execute(
            select(_accounts.c.balance).where(_accounts.c.id == user_id)
        ).scalar_one_or_none()
        if balance is None:
            raise UserAccountNotFoundError(str(user_id))
        return balance

    def list_entries(self, user_id: UUID) -> list[BalanceEntryInfo]:
        stmt = (
            select(BalanceEntry)
            .where(BalanceEntry.user_id == user_id)
            .order_by(BalanceEntry.created_at, BalanceEntry.id)
        )
        return [BalanceEntryInfo.from_model(e) for e in self.session.execute(stmt).scalars()]

    def _require_positive(self, amount: Decimal) -> None:
        if amount is None or amount <= 0:
            raise InvalidAmountError(amount)

    def _record(
        self,
        user_id: UUID,
        kind: BalanceEntryKind,
        amount: Decimal,
        idempotency_key: str,
        engagement_id: UUID | None = None,
        withdrawal_id: UUID | None = None,
    ) -> BalanceEntryInfo:
        entry = BalanceEntry(
            user_id=user_id,
            kind=kind.value,
            amount=amount,
            idempotency_key=idempotency_key,
            engagement_id=engagement_id,
            withdrawal_id=withdrawal_id,
            created_at=self._now(),
        )
        self.session.add(entry)
        self.session.flush()
        return BalanceEntryInfo.from_model(entry)

    def _expire_cached_balance(self, user_id: UUID) -> None:
        # The UPDATE bypassed the ORM; drop any stale in-session copy.
        cached = self.session.identity_map.get(identity_key(UserAccount, user_id))
        if cached is not None:
            self.session.expire(cached, ["balance", "updated_at"])
