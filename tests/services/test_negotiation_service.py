"""
Tests for NegotiationService: proposals, responses and counter-proposals.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from marketplace_kernel.domain.values import (
    EngagementStatus,
    NegotiationDecision,
    NegotiationStatus,
    NegotiationTerms,
    PricingMode,
)
from marketplace_kernel.exceptions import (
    DateNotInFutureError,
    InvalidTermsError,
    InvalidTransitionError,
    NegotiationAlreadyResolvedError,
    NegotiationNotFoundError,
    NegotiationSupersededError,
    SelfResponseError,
    UnauthorizedError,
)
from tests.factories import FUTURE

ACCEPT = NegotiationDecision.ACCEPT
REJECT = NegotiationDecision.REJECT


@pytest.fixture
def hourly(create_engagement):
    return create_engagement(PricingMode.HOURLY, "Paint the porch", proposed_hours=4)


class TestOpen:

    def test_first_proposal_moves_engagement_to_negotiating(self, kernel, parties, hourly):
        proposal = kernel.negotiations.open(
            hourly.id, parties.client, NegotiationTerms(message="Can you do Saturday?")
        )

        assert proposal.sequence == 1
        assert proposal.status is NegotiationStatus.PENDING
        assert proposal.proposer_id == parties.client_user.id
        assert kernel.engagement_reads.get(hourly.id).status is EngagementStatus.NEGOTIATING

    def test_message_is_required(self, kernel, parties, hourly):
        with pytest.raises(InvalidTermsError):
            kernel.negotiations.open(hourly.id, parties.client, NegotiationTerms(message="  "))

    def test_outsider_cannot_propose(self, kernel, parties, hourly):
        with pytest.raises(UnauthorizedError):
            kernel.negotiations.open(hourly.id, parties.outsider, NegotiationTerms(message="Hi"))

    def test_proposed_date_must_be_future(self, kernel, parties, hourly, clock):
        with pytest.raises(DateNotInFutureError):
            kernel.negotiations.open(
                hourly.id,
                parties.client,
                NegotiationTerms(message="Yesterday?", proposed_date=clock.now_utc() - timedelta(days=1)),
            )

    def test_cannot_negotiate_after_acceptance(self, kernel, parties, hourly, drive_to_paid):
        drive_to_paid(hourly.id)

        with pytest.raises(InvalidTransitionError):
            kernel.negotiations.open(hourly.id, parties.client, NegotiationTerms(message="More?"))


class TestChain:

    def test_newer_proposal_supersedes_older(self, kernel, parties, hourly):
        n1 = kernel.negotiations.open(hourly.id, parties.client, NegotiationTerms(message="First"))
        n2 = kernel.negotiations.open(hourly.id, parties.client, NegotiationTerms(message="Second"))

        view = kernel.engagement_reads.get_view(hourly.id)
        statuses = {r.negotiation.id: r.effective_status for r in view.negotiations}

        assert statuses[n1.id] is NegotiationStatus.REJECTED
        assert statuses[n2.id] is NegotiationStatus.PENDING
        assert view.live_negotiation_id == n2.id

        with pytest.raises(NegotiationSupersededError):
            kernel.negotiations.respond(n1.id, parties.provider_actor, ACCEPT)

        accepted = kernel.negotiations.respond(n2.id, parties.provider_actor, ACCEPT)
        assert accepted.status is NegotiationStatus.ACCEPTED

    def test_superseded_proposal_is_left_pending_in_storage(self, kernel, parties, hourly):
        n1 = kernel.negotiations.open(hourly.id, parties.client, NegotiationTerms(message="First"))
        kernel.negotiations.open(hourly.id, parties.client, NegotiationTerms(message="Second"))

        assert kernel.negotiation_reads.get(n1.id).status is NegotiationStatus.PENDING

    def test_sequences_increase(self, kernel, parties, hourly):
        for text in ("a", "b", "c"):
            kernel.negotiations.open(hourly.id, parties.client, NegotiationTerms(message=text))

        chain = kernel.negotiation_reads.list_chain(hourly.id)
        assert [n.sequence for n in chain] == [1, 2, 3]


class TestRespond:

    def test_cannot_respond_to_own_proposal(self, kernel, parties, hourly):
        proposal = kernel.negotiations.open(hourly.id, parties.client, NegotiationTerms(message="Hi"))

        with pytest.raises(SelfResponseError):
            kernel.negotiations.respond(proposal.id, parties.client, ACCEPT)

    def test_accept_applies_terms_and_auto_prices(self, kernel, parties, hourly):
        proposal = kernel.negotiations.open(
            hourly.id, parties.client, NegotiationTerms(message="Six hours", proposed_hours=6)
        )

        kernel.negotiations.respond(proposal.id, parties.provider_actor, ACCEPT)
        engagement = kernel.engagement_reads.get(hourly.id)

        assert engagement.status is EngagementStatus.PAYMENT_PENDING
        assert engagement.proposed_hours == 6
        assert engagement.proposed_price == Decimal("300")

    def test_accept_copies_explicit_price(self, kernel, parties, hourly):
        proposal = kernel.negotiations.open(
            hourly.id,
            parties.provider_actor,
            NegotiationTerms(message="Flat rate", proposed_price=Decimal("275")),
        )

        kernel.negotiations.respond(proposal.id, parties.client, ACCEPT)

        assert kernel.engagement_reads.get(hourly.id).proposed_price == Decimal("275")

    def test_accept_without_terms_keeps_engagement_price(self, kernel, parties, hourly):
        proposal = kernel.negotiations.open(hourly.id, parties.client, NegotiationTerms(message="OK?"))

        kernel.negotiations.respond(proposal.id, parties.provider_actor, ACCEPT)

        assert kernel.engagement_reads.get(hourly.id).proposed_price == Decimal("200")

    def test_accept_regenerates_daily_schedule(self, kernel, parties, create_engagement):
        daily = create_engagement(PricingMode.DAILY, "Harvest", proposed_days=2, scheduled_date=FUTURE)
        proposal = kernel.negotiations.open(
            daily.id,
            parties.provider_actor,
            NegotiationTerms(message="Three days works better", proposed_days=3),
        )

        kernel.negotiations.respond(proposal.id, parties.client, ACCEPT)
        engagement = kernel.engagement_reads.get(daily.id)

        assert [d.day_index for d in engagement.daily_sessions] == [0, 1, 2]
        assert engagement.proposed_price == Decimal("300")

    def test_switch_to_fixed_without_price_takes_minimum_fixed_rate(
        self, kernel, parties, create_engagement, drive_to_paid
    ):
        unpriced = create_engagement(PricingMode.HOURLY, "Odd jobs")
        assert unpriced.proposed_price is None

        drive_to_paid(
            unpriced.id,
            NegotiationTerms(message="Flat fee instead", pricing_mode=PricingMode.FIXED),
        )
        engagement = kernel.engagement_reads.get(unpriced.id)
        assert engagement.pricing_mode is PricingMode.FIXED
        assert engagement.proposed_price == Decimal("100")

        kernel.engagements.request_completion(unpriced.id, parties.client)
        done = kernel.engagements.request_completion(unpriced.id, parties.provider_actor)

        assert done.status is EngagementStatus.COMPLETED
        assert done.balance_added_at is not None
        assert kernel.balances.get_balance(parties.provider_user.id) == Decimal("95.00")

    def test_fixed_engagement_keeps_its_price_when_mode_is_not_proposed(
        self, kernel, parties, create_engagement
    ):
        fixed = create_engagement(PricingMode.FIXED, proposed_price=Decimal("150"))
        proposal = kernel.negotiations.open(
            fixed.id, parties.client, NegotiationTerms(message="Any chance next week?")
        )

        kernel.negotiations.respond(proposal.id, parties.provider_actor, ACCEPT)

        assert kernel.engagement_reads.get(fixed.id).proposed_price == Decimal("150")

    @pytest.mark.parametrize(
        "terms",
        [
            NegotiationTerms(message="Hourly please", pricing_mode=PricingMode.HOURLY, proposed_hours=4),
            NegotiationTerms(message="Flat fee", pricing_mode=PricingMode.FIXED),
        ],
    )
    def test_leaving_daily_mode_drops_the_schedule(self, kernel, parties, create_engagement, terms):
        daily = create_engagement(PricingMode.DAILY, "Harvest", proposed_days=3, scheduled_date=FUTURE)
        assert len(daily.daily_sessions) == 3
        proposal = kernel.negotiations.open(daily.id, parties.client, terms)

        kernel.negotiations.respond(proposal.id, parties.provider_actor, ACCEPT)
        engagement = kernel.engagement_reads.get(daily.id)

        assert engagement.pricing_mode is terms.pricing_mode
        assert engagement.daily_sessions == ()
        assert engagement.proposed_days is None

    def test_reject_reads_as_cancelled_engagement(self, kernel, parties, hourly):
        proposal = kernel.negotiations.open(hourly.id, parties.client, NegotiationTerms(message="Hi"))

        kernel.negotiations.respond(proposal.id, parties.provider_actor, REJECT)
        view = kernel.engagement_reads.get_view(hourly.id)

        assert view.engagement.status is EngagementStatus.NEGOTIATING
        assert view.effective_status is EngagementStatus.CANCELLED
        assert view.live_negotiation_id is None

    def test_second_response_is_rejected(self, kernel, parties, hourly):
        proposal = kernel.negotiations.open(hourly.id, parties.client, NegotiationTerms(message="Hi"))
        kernel.negotiations.respond(proposal.id, parties.provider_actor, REJECT)

        with pytest.raises(NegotiationAlreadyResolvedError) as exc_info:
            kernel.negotiations.respond(proposal.id, parties.provider_actor, ACCEPT)
        assert exc_info.value.status == "rejected"

    def test_unknown_negotiation(self, kernel, parties):
        from uuid import uuid4

        with pytest.raises(NegotiationNotFoundError):
            kernel.negotiations.respond(uuid4(), parties.client, ACCEPT)


class TestCounterPropose:

    def test_counter_replaces_live_proposal(self, kernel, parties, hourly):
        n1 = kernel.negotiations.open(hourly.id, parties.client, NegotiationTerms(message="4h?"))

        n2 = kernel.negotiations.counter_propose(
            n1.id,
            parties.provider_actor,
            NegotiationTerms(message="Make it 5h", proposed_hours=5),
        )

        assert n2.sequence == 2
        assert n2.proposer_id == parties.provider_user.id
        assert kernel.negotiation_reads.get(n1.id).status is NegotiationStatus.COUNTER_PROPOSED

        kernel.negotiations.respond(n2.id, parties.client, ACCEPT)
        assert kernel.engagement_reads.get(hourly.id).proposed_price == Decimal("250")

    def test_cannot_counter_own_proposal(self, kernel, parties, hourly):
        n1 = kernel.negotiations.open(hourly.id, parties.client, NegotiationTerms(message="4h?"))

        with pytest.raises(SelfResponseError):
            kernel.negotiations.counter_propose(n1.id, parties.client, NegotiationTerms(message="5h?"))
