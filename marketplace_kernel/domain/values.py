"""
Value objects and enumerations for the marketplace domain.

All enums are ``str`` subclasses so they compare equal to the raw strings
stored in the database and serialize to JSON without adapters.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class PricingMode(str, Enum):
    HOURLY = "hourly"
    DAILY = "daily"
    FIXED = "fixed"


class EngagementStatus(str, Enum):
    PENDING = "pending"
    NEGOTIATING = "negotiating"
    PAYMENT_PENDING = "payment_pending"
    ACCEPTED = "accepted"
    PENDING_COMPLETION = "pending_completion"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class NegotiationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COUNTER_PROPOSED = "counter_proposed"


class NegotiationDecision(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"


class PaymentMethod(str, Enum):
    BOLETO = "boleto"
    PIX = "pix"
    CREDIT_CARD = "credit_card"


class WithdrawalStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class BalanceEntryKind(str, Enum):
    SETTLEMENT_CREDIT = "settlement_credit"
    WITHDRAWAL_DEBIT = "withdrawal_debit"


@dataclass(frozen=True)
class Actor:
    """The authenticated caller, as vouched for by the auth collaborator."""

    user_id: UUID
    is_admin: bool = False


@dataclass(frozen=True)
class NegotiationTerms:
    """
    A proposal's terms.  Any subset of price/hours/days/date may be present;
    the message is required.
    """

    message: str
    pricing_mode: PricingMode | None = None
    proposed_price: Decimal | None = None
    proposed_hours: int | None = None
    proposed_days: int | None = None
    proposed_date: datetime | None = None
