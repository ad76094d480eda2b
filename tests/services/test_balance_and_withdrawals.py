"""
Tests for BalanceService and WithdrawalService.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from marketplace_kernel.domain.values import (
    BalanceEntryKind,
    PricingMode,
    WithdrawalStatus,
)
from marketplace_kernel.exceptions import (
    InsufficientBalanceError,
    InvalidAmountError,
    UserAccountNotFoundError,
)


@pytest.fixture
def earned(kernel, parties, create_engagement, drive_to_paid):
    """Provider with 142.50 settled from a 150.00 fixed engagement."""
    info = create_engagement(PricingMode.FIXED, proposed_price=Decimal("150"))
    drive_to_paid(info.id)
    kernel.engagements.request_completion(info.id, parties.client)
    kernel.engagements.request_completion(info.id, parties.provider_actor)
    return parties.provider_actor


def test_withdrawal_debits_balance(kernel, earned):
    withdrawal = kernel.withdrawals.request_withdrawal(earned, Decimal("100.00"))

    assert withdrawal.status is WithdrawalStatus.PENDING
    assert withdrawal.amount == Decimal("100.00")
    assert kernel.balances.get_balance(earned.user_id) == Decimal("42.50")

    kinds = sorted(e.kind.value for e in kernel.balances.list_entries(earned.user_id))
    assert kinds == [
        BalanceEntryKind.SETTLEMENT_CREDIT.value,
        BalanceEntryKind.WITHDRAWAL_DEBIT.value,
    ]


def test_withdrawal_cannot_overdraw(kernel, earned):
    with pytest.raises(InsufficientBalanceError) as exc_info:
        kernel.withdrawals.request_withdrawal(earned, Decimal("500"))

    assert exc_info.value.requested == Decimal("500")
    assert kernel.balances.get_balance(earned.user_id) == Decimal("142.50")
    assert kernel.withdrawals.list_withdrawals(earned.user_id) == []


def test_whole_balance_can_be_withdrawn(kernel, earned):
    kernel.withdrawals.request_withdrawal(earned, Decimal("142.50"))

    assert kernel.balances.get_balance(earned.user_id) == Decimal("0")


@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-10")])
def test_non_positive_withdrawal(kernel, earned, amount):
    with pytest.raises(InvalidAmountError):
        kernel.withdrawals.request_withdrawal(earned, amount)


def test_withdrawals_are_listed(kernel, earned):
    kernel.withdrawals.request_withdrawal(earned, Decimal("10"))
    kernel.withdrawals.request_withdrawal(earned, Decimal("20"))

    amounts = sorted(w.amount for w in kernel.withdrawals.list_withdrawals(earned.user_id))
    assert amounts == [Decimal("10"), Decimal("20")]


def test_credit_unknown_account(kernel):
    with pytest.raises(UserAccountNotFoundError):
        kernel.balances.credit(uuid4(), Decimal("5"), "manual:test")


def test_balance_of_unknown_account(kernel):
    with pytest.raises(UserAccountNotFoundError):
        kernel.balances.get_balance(uuid4())
