"""
Tests for the engagement and provider read side.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from marketplace_kernel.domain.values import (
    EngagementStatus,
    NegotiationStatus,
    NegotiationTerms,
    PricingMode,
)
from marketplace_kernel.exceptions import (
    EngagementNotFoundError,
    ProviderNotFoundError,
    UnauthorizedError,
)
from marketplace_kernel.selectors import EngagementSelector, ProviderSelector
from tests.factories import make_provider, make_user


class TestGetView:

    def test_view_carries_resolved_chain(self, kernel, parties, create_engagement):
        info = create_engagement(PricingMode.HOURLY, proposed_hours=2)
        n1 = kernel.negotiations.open(info.id, parties.client, NegotiationTerms(message="One"))
        n2 = kernel.negotiations.open(info.id, parties.provider_actor, NegotiationTerms(message="Two"))

        view = kernel.engagement_reads.get_view(info.id, parties.client)

        assert [r.negotiation.id for r in view.negotiations] == [n1.id, n2.id]
        assert [r.effective_status for r in view.negotiations] == [
            NegotiationStatus.REJECTED,
            NegotiationStatus.PENDING,
        ]
        assert [r.is_live for r in view.negotiations] == [False, True]
        assert view.effective_status is EngagementStatus.NEGOTIATING

    def test_outsider_cannot_read(self, kernel, parties, create_engagement):
        info = create_engagement(PricingMode.HOURLY, proposed_hours=2)

        with pytest.raises(UnauthorizedError):
            kernel.engagement_reads.get_view(info.id, parties.outsider)

    def test_admin_can_read(self, kernel, parties, create_engagement):
        info = create_engagement(PricingMode.HOURLY, proposed_hours=2)

        assert kernel.engagement_reads.get_view(info.id, parties.admin).engagement.id == info.id

    def test_unknown_engagement(self, session):
        with pytest.raises(EngagementNotFoundError):
            EngagementSelector(session).get(uuid4())


class TestListings:

    def test_client_and_provider_listings(self, kernel, session, parties, create_engagement):
        mine = create_engagement(PricingMode.HOURLY, proposed_hours=2)
        other_provider = make_provider(session, make_user(session, "Other Provider"))
        kernel.engagements.create_engagement(
            parties.client, other_provider.id, PricingMode.FIXED, "Elsewhere",
            proposed_price=Decimal("120"),
        )

        client_ids = {v.engagement.id for v in kernel.engagement_reads.list_for_client(parties.client_user.id)}
        provider_ids = {
            v.engagement.id
            for v in kernel.engagement_reads.list_for_provider_user(parties.provider_user.id)
        }

        assert len(client_ids) == 2
        assert provider_ids == {mine.id}

    def test_outsider_has_no_engagements(self, kernel, parties, create_engagement):
        create_engagement(PricingMode.HOURLY, proposed_hours=2)

        assert kernel.engagement_reads.list_for_client(parties.outsider_user.id) == []


class TestProviderSelector:

    def test_rate_card(self, session, parties):
        card = ProviderSelector(session).get_rate_card(parties.provider.id)

        assert card.min_hourly_rate == Decimal("50")
        assert card.rate_for(PricingMode.FIXED) == Decimal("100")
        assert card.provider_id == parties.provider.id

    def test_unknown_provider(self, session):
        with pytest.raises(ProviderNotFoundError):
            ProviderSelector(session).get_rate_card(uuid4())
