"""Read-only query selectors for the marketplace kernel."""

from marketplace_kernel.selectors.engagement_selector import EngagementSelector
from marketplace_kernel.selectors.negotiation_selector import NegotiationSelector
from marketplace_kernel.selectors.provider_selector import ProviderSelector

__all__ = [
    "EngagementSelector",
    "NegotiationSelector",
    "ProviderSelector",
]
