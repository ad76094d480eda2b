"""
SettlementService -- the exactly-once Settlement Guard.

Responsibility:
    Credit the provider's balance for a completed engagement exactly once,
    no matter how many completion updates, retries or concurrent requests
    reach it.

Architecture position:
    Kernel > Services.  Invoked at the end of every completion-affecting
    write (EngagementService.request_completion,
    DailySessionService.update_session); never exposed on its own to end
    users.

Invariants enforced:
    - Single conditional write: the guard issues ONE
      ``UPDATE engagements SET balance_added_at = :now, version = version + 1
      WHERE id = :id AND status = 'completed' AND payment_completed_at IS NOT
      NULL AND client_completed_at IS NOT NULL AND provider_completed_at IS
      NOT NULL AND balance_added_at IS NULL AND proposed_price > 0``.
      Only the statement that matches a row credits the balance.  A racing
      transaction blocks on the row lock and then matches nothing.
    - The credit and the marker commit together: both run in the caller's
      transaction.
    - Belt and braces: the BalanceEntry carries
      ``settlement:engagement:<id>`` under a unique constraint.

Failure modes:
    - None of its own on an ineligible engagement: the outcome reports
      ``settled=False`` with the reasons.
    - Propagates UserAccountNotFoundError / IntegrityError from the credit,
      which aborts the caller's transaction including the marker.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import update
from sqlalchemy.orm import Session

from marketplace_engines.settlement import (
    SettlementSnapshot,
    ineligibility_reasons,
    quote_settlement,
)
from marketplace_kernel.db.types import MONEY_DECIMAL_PLACES
from marketplace_kernel.domain.clock import Clock
from marketplace_kernel.domain.dtos import SettlementOutcome
from marketplace_kernel.domain.values import BalanceEntryKind, EngagementStatus
from marketplace_kernel.logging_config import get_logger
from marketplace_kernel.models.engagement import Engagement
from marketplace_kernel.services.balance_service import BalanceService
from marketplace_kernel.services.base import BaseService
from marketplace_kernel.utils.idempotency import settlement_idempotency_key

logger = get_logger("services.settlement")

_engagements = Engagement.__table__

DEFAULT_PLATFORM_FEE_RATE = Decimal("0.05")


class SettlementService(BaseService[Engagement]):

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        platform_fee_rate: Decimal = DEFAULT_PLATFORM_FEE_RATE,
        decimal_places: int = MONEY_DECIMAL_PLACES,
        balances: BalanceService | None = None,
    ):
        super().__init__(session, clock)
        self.platform_fee_rate = platform_fee_rate
        self.decimal_places = decimal_places
        self.balances = balances or BalanceService(session, self.clock)

    def settle_if_eligible(self, engagement: Engagement) -> SettlementOutcome:
        """
        Run the guard for ``engagement``.

        Preconditions:
            ``engagement`` is attached to this service's session.  Pending
            changes to it are flushed first so the conditional UPDATE sees
            them.

        Postconditions:
            When ``settled`` is True, balance_added_at is set, the provider
            balance grew by ``provider_amount``, and ``engagement`` has been
            refreshed from the database.
        """
        self._flush("Engagement", engagement.id)

        reasons = ineligibility_reasons(SettlementSnapshot.of(engagement))
        if reasons:
            logger.debug(
                "settlement_not_eligible",
                extra={"engagement_id": str(engagement.id), "reasons": list(reasons)},
            )
            return SettlementOutcome(engagement_id=engagement.id, settled=False, reasons=reasons)

        quote = quote_settlement(
            gross_amount=engagement.proposed_price,
            fee_rate=self.platform_fee_rate,
            decimal_places=self.decimal_places,
        )
        now = self._now()

        result = self.session.execute(
            update(_engagements)
            .where(
                _engagements.c.id == engagement.id,
                _engagements.c.status == EngagementStatus.COMPLETED.value,
                _engagements.c.payment_completed_at.is_not(None),
                _engagements.c.client_completed_at.is_not(None),
                _engagements.c.provider_completed_at.is_not(None),
                _engagements.c.balance_added_at.is_(None),
                _engagements.c.proposed_price > 0,
            )
            .values(
                balance_added_at=now,
                updated_at=now,
                version=_engagements.c.version + 1,
            )
        )

        if result.rowcount != 1:
            self.session.refresh(engagement)
            logger.info(
                "settlement_skipped_already_settled",
                extra={"engagement_id": str(engagement.id)},
            )
            return SettlementOutcome(
                engagement_id=engagement.id,
                settled=False,
                reasons=("already_settled",),
            )

        provider_user_id = engagement.provider_user_id
        if quote.provider_amount > 0:
            self.balances.credit(
                provider_user_id,
                quote.provider_amount,
                settlement_idempotency_key(engagement.id),
                kind=BalanceEntryKind.SETTLEMENT_CREDIT,
                engagement_id=engagement.id,
            )
        self.session.refresh(engagement)

        logger.info(
            "settlement_credited",
            extra={
                "engagement_id": str(engagement.id),
                "provider_user_id": str(provider_user_id),
                "gross_amount": str(quote.gross_amount),
                "provider_amount": str(quote.provider_amount),
                "platform_fee": str(quote.platform_fee),
            },
        )
        return SettlementOutcome(
            engagement_id=engagement.id,
            settled=True,
            provider_user_id=provider_user_id,
            gross_amount=quote.gross_amount,
            provider_amount=quote.provider_amount,
            platform_fee=quote.platform_fee,
        )
