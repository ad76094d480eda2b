"""
Tests for payment method selection and payment confirmation.
"""

from decimal import Decimal

import pytest

from marketplace_kernel.domain.values import (
    EngagementStatus,
    NegotiationDecision,
    NegotiationTerms,
    PaymentMethod,
    PricingMode,
)
from marketplace_kernel.exceptions import (
    InvalidPaymentMethodError,
    InvalidTransitionError,
    PaymentMethodNotSetError,
    UnauthorizedError,
)


@pytest.fixture
def awaiting_payment(kernel, parties, create_engagement):
    info = create_engagement(PricingMode.FIXED, proposed_price=Decimal("150"))
    proposal = kernel.negotiations.open(info.id, parties.client, NegotiationTerms(message="Deal?"))
    kernel.negotiations.respond(proposal.id, parties.provider_actor, NegotiationDecision.ACCEPT)
    return info


def test_client_selects_method(kernel, parties, awaiting_payment):
    info = kernel.payments.select_payment_method(awaiting_payment.id, parties.client, "boleto")

    assert info.payment_method is PaymentMethod.BOLETO
    assert info.status is EngagementStatus.PAYMENT_PENDING


def test_provider_cannot_select_method(kernel, parties, awaiting_payment):
    with pytest.raises(UnauthorizedError):
        kernel.payments.select_payment_method(awaiting_payment.id, parties.provider_actor, "pix")


def test_unknown_method_rejected(kernel, parties, awaiting_payment):
    with pytest.raises(InvalidPaymentMethodError) as exc_info:
        kernel.payments.select_payment_method(awaiting_payment.id, parties.client, "cash")
    assert "pix" in exc_info.value.allowed


def test_method_only_selectable_while_payment_pending(kernel, parties, create_engagement):
    info = create_engagement(PricingMode.FIXED, proposed_price=Decimal("150"))

    with pytest.raises(InvalidTransitionError):
        kernel.payments.select_payment_method(info.id, parties.client, "pix")


def test_confirm_requires_method(kernel, parties, awaiting_payment):
    with pytest.raises(PaymentMethodNotSetError):
        kernel.payments.confirm_payment(awaiting_payment.id, parties.client)


def test_confirm_moves_to_accepted(kernel, parties, awaiting_payment, clock):
    kernel.payments.select_payment_method(awaiting_payment.id, parties.client, PaymentMethod.CREDIT_CARD)
    info = kernel.payments.confirm_payment(awaiting_payment.id, parties.client)

    assert info.status is EngagementStatus.ACCEPTED
    assert info.payment_completed_at == clock.now_utc()


def test_admin_confirms_on_behalf_of_gateway(kernel, parties, awaiting_payment):
    kernel.payments.select_payment_method(awaiting_payment.id, parties.client, "pix")

    info = kernel.payments.confirm_payment(awaiting_payment.id, parties.admin)

    assert info.status is EngagementStatus.ACCEPTED


def test_provider_cannot_confirm_payment(kernel, parties, awaiting_payment):
    kernel.payments.select_payment_method(awaiting_payment.id, parties.client, "pix")

    with pytest.raises(UnauthorizedError):
        kernel.payments.confirm_payment(awaiting_payment.id, parties.provider_actor)
