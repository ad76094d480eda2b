"""
marketplace_engines.settlement -- Settlement eligibility and payout quote.

Responsibility:
    Decide whether an engagement is ready to be settled and split its price
    into the provider's credit and the platform fee.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The exactly-once write is
    SettlementService's conditional UPDATE; this module only states the
    predicate that UPDATE encodes and computes the amounts.

Invariants enforced:
    - Eligible iff status is completed, payment and both completion
      timestamps are set, balance_added_at is unset and the price is
      positive.
    - provider_amount = round(price * (1 - fee_rate), 2), half-up.
    - platform_fee = price - provider_amount, so the two always sum to the
      price exactly.

Failure modes:
    - ValueError for a fee rate outside [0, 1) or a non-positive price.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from marketplace_engines.tracer import traced_engine
from marketplace_kernel.db.types import round_money
from marketplace_kernel.domain.values import EngagementStatus


@dataclass(frozen=True)
class SettlementSnapshot:
    status: EngagementStatus | str
    payment_completed_at: datetime | None
    client_completed_at: datetime | None
    provider_completed_at: datetime | None
    balance_added_at: datetime | None
    proposed_price: Decimal | None

    @classmethod
    def of(cls, engagement) -> SettlementSnapshot:
        """Snapshot any engagement-shaped object (ORM row or EngagementInfo)."""
        return cls(
            status=engagement.status,
            payment_completed_at=engagement.payment_completed_at,
            client_completed_at=engagement.client_completed_at,
            provider_completed_at=engagement.provider_completed_at,
            balance_added_at=engagement.balance_added_at,
            proposed_price=engagement.proposed_price,
        )


def ineligibility_reasons(snapshot: SettlementSnapshot) -> tuple[str, ...]:
    reasons: list[str] = []
    if EngagementStatus(snapshot.status) is not EngagementStatus.COMPLETED:
        reasons.append("status_not_completed")
    if snapshot.payment_completed_at is None:
        reasons.append("payment_not_completed")
    if snapshot.client_completed_at is None:
        reasons.append("client_not_confirmed")
    if snapshot.provider_completed_at is None:
        reasons.append("provider_not_confirmed")
    if snapshot.balance_added_at is not None:
        reasons.append("already_settled")
    if snapshot.proposed_price is None or snapshot.proposed_price <= 0:
        reasons.append("no_positive_price")
    return tuple(reasons)


def is_eligible(snapshot: SettlementSnapshot) -> bool:
    return not ineligibility_reasons(snapshot)


@dataclass(frozen=True)
class SettlementQuote:
    gross_amount: Decimal
    fee_rate: Decimal
    provider_amount: Decimal
    platform_fee: Decimal


@traced_engine(
    "settlement", "1.0",
    fingerprint_fields=("gross_amount", "fee_rate", "decimal_places"),
)
def quote_settlement(
    *,
    gross_amount: Decimal,
    fee_rate: Decimal,
    decimal_places: int = 2,
) -> SettlementQuote:
    if gross_amount <= 0:
        raise ValueError(f"Settlement amount must be positive, got {gross_amount}")
    if not (Decimal("0") <= fee_rate < Decimal("1")):
        raise ValueError(f"Fee rate must be in [0, 1), got {fee_rate}")
    provider_amount = round_money(gross_amount * (Decimal("1") - fee_rate), decimal_places)
    return SettlementQuote(
        gross_amount=gross_amount,
        fee_rate=fee_rate,
        provider_amount=provider_amount,
        platform_fee=gross_amount - provider_amount,
    )
