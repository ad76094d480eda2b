"""
WithdrawalService -- providers moving settled earnings out.

A withdrawal is created ``pending`` and debits the balance in the same
transaction.  Paying it out is an external concern.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from marketplace_kernel.domain.clock import Clock
from marketplace_kernel.domain.dtos import WithdrawalInfo
from marketplace_kernel.domain.values import Actor, BalanceEntryKind, WithdrawalStatus
from marketplace_kernel.exceptions import InvalidAmountError
from marketplace_kernel.logging_config import get_logger
from marketplace_kernel.models.withdrawal import Withdrawal
from marketplace_kernel.services.balance_service import BalanceService
from marketplace_kernel.services.base import BaseService
from marketplace_kernel.utils.idempotency import withdrawal_idempotency_key

logger = get_logger("services.withdrawal")


class WithdrawalService(BaseService[Withdrawal]):

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        balances: BalanceService | None = None,
    ):
        super().__init__(session, clock)
        self.balances = balances or BalanceService(session, self.clock)

    def request_withdrawal(self, actor: Actor, amount: Decimal) -> WithdrawalInfo:
        """
        Debit ``amount`` from the caller's balance and record a pending
        withdrawal.

        Raises:
            InvalidAmountError: amount is zero or negative.
            InsufficientBalanceError: the balance does not cover it.
        """
        if amount is None or amount <= 0:
            raise InvalidAmountError(amount)

        withdrawal_id = uuid4()
        # Debit first: a rejected debit leaves nothing behind in the session.
        self.balances.debit(
            actor.user_id,
            amount,
            withdrawal_idempotency_key(withdrawal_id),
            kind=BalanceEntryKind.WITHDRAWAL_DEBIT,
            withdrawal_id=withdrawal_id,
        )

        now = self._now()
        withdrawal = Withdrawal(
            id=withdrawal_id,
            user_id=actor.user_id,
            amount=amount,
            status=WithdrawalStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        self.session.add(withdrawal)
        self.session.flush()

        logger.info(
            "withdrawal_requested",
            extra={
                "withdrawal_id": str(withdrawal_id),
                "user_id": str(actor.user_id),
                "amount": str(amount),
            },
        )
        return WithdrawalInfo.from_model(withdrawal)

    def list_withdrawals(self, user_id: UUID) -> list[WithdrawalInfo]:
        stmt = (
            select(Withdrawal)
            .where(Withdrawal.user_id == user_id)
            .order_by(Withdrawal.created_at.desc(), Withdrawal.id)
        )
        return [WithdrawalInfo.from_model(w) for w in self.session.execute(stmt).scalars()]
