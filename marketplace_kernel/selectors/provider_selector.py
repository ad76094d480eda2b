"""
Module: marketplace_kernel.selectors.provider_selector
Responsibility: Read access to provider profiles and their minimum rates.
Architecture position: Kernel > Selectors.
"""

from uuid import UUID

from marketplace_engines.pricing import RateCard
from marketplace_kernel.exceptions import ProviderNotFoundError
from marketplace_kernel.models.provider import ProviderProfile
from marketplace_kernel.selectors.base import BaseSelector


class ProviderSelector(BaseSelector[ProviderProfile]):

    def get_rate_card(self, provider_id: UUID) -> RateCard:
        """Minimum rates for a provider.  Missing modes come back as None."""
        provider = self.session.get(ProviderProfile, provider_id)
        if provider is None:
            raise ProviderNotFoundError(str(provider_id))
        return RateCard(
            min_hourly_rate=provider.min_hourly_rate,
            min_daily_rate=provider.min_daily_rate,
            min_fixed_rate=provider.min_fixed_rate,
            provider_id=provider.id,
        )
