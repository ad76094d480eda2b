"""ORM models for the marketplace kernel."""

from marketplace_kernel.models.balance_entry import BalanceEntry
from marketplace_kernel.models.engagement import DailySession, Engagement
from marketplace_kernel.models.negotiation import Negotiation
from marketplace_kernel.models.provider import ProviderProfile
from marketplace_kernel.models.user_account import UserAccount
from marketplace_kernel.models.withdrawal import Withdrawal

__all__ = [
    "BalanceEntry",
    "DailySession",
    "Engagement",
    "Negotiation",
    "ProviderProfile",
    "UserAccount",
    "Withdrawal",
]
