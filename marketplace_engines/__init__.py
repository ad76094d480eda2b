"""
Pure calculation engines for the marketplace.

Engines take plain values (or any object exposing the attributes they read),
never touch the database and never read the wall clock.  Services call them
with data they loaded and a ``now`` taken from the injected Clock.
"""

from marketplace_engines.daily_sessions import (
    ScheduledDay,
    all_sessions_confirmed,
    build_schedule,
    ensure_completion_gate,
)
from marketplace_engines.negotiation_chain import (
    ChainResolution,
    effective_engagement_status,
    effective_negotiation_status,
    resolve_chain,
)
from marketplace_engines.pricing import (
    PriceResolution,
    RateCard,
    compute_auto_price,
    resolve_price,
)
from marketplace_engines.settlement import (
    SettlementQuote,
    SettlementSnapshot,
    is_eligible,
    quote_settlement,
)

__all__ = [
    "ChainResolution",
    "PriceResolution",
    "RateCard",
    "ScheduledDay",
    "SettlementQuote",
    "SettlementSnapshot",
    "all_sessions_confirmed",
    "build_schedule",
    "compute_auto_price",
    "effective_engagement_status",
    "effective_negotiation_status",
    "ensure_completion_gate",
    "is_eligible",
    "quote_settlement",
    "resolve_chain",
    "resolve_price",
]
