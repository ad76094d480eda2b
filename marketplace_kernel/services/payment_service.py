"""
PaymentService -- the payment collaborator's two entry points.

Payment gateways are out of scope: selecting a method records the client's
choice and confirming payment flips ``payment_completed_at``.  Confirmation
is what moves an engagement from ``payment_pending`` to ``accepted``.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from marketplace_kernel.domain import lifecycle
from marketplace_kernel.domain.clock import Clock
from marketplace_kernel.domain.dtos import EngagementInfo
from marketplace_kernel.domain.parties import PartyRole
from marketplace_kernel.domain.values import Actor, EngagementStatus, PaymentMethod
from marketplace_kernel.exceptions import (
    InvalidPaymentMethodError,
    PaymentMethodNotSetError,
    UnauthorizedError,
)
from marketplace_kernel.logging_config import get_logger
from marketplace_kernel.models.engagement import Engagement
from marketplace_kernel.services.access import load_engagement, require_party_or_admin
from marketplace_kernel.services.base import BaseService

logger = get_logger("services.payment")

DEFAULT_PAYMENT_METHODS: tuple[str, ...] = tuple(m.value for m in PaymentMethod)


class PaymentService(BaseService[Engagement]):

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        allowed_methods: tuple[str, ...] = DEFAULT_PAYMENT_METHODS,
    ):
        super().__init__(session, clock)
        self.allowed_methods = tuple(allowed_methods)

    def select_payment_method(
        self,
        engagement_id: UUID,
        actor: Actor,
        method: PaymentMethod | str,
    ) -> EngagementInfo:
        """Record the client's payment method.  Client only, ``payment_pending`` only."""
        engagement = load_engagement(self.session, engagement_id)
        if actor.user_id != engagement.client_id:
            raise UnauthorizedError(
                str(actor.user_id), str(engagement.id), lifecycle.SELECT_PAYMENT_METHOD
            )
        value = method.value if isinstance(method, PaymentMethod) else str(method)
        if value not in self.allowed_methods:
            raise InvalidPaymentMethodError(value, self.allowed_methods)
        lifecycle.ensure_transition(
            engagement.id, engagement.status, lifecycle.SELECT_PAYMENT_METHOD
        )

        engagement.payment_method = value
        self._touch(engagement)
        self._flush("Engagement", engagement.id)

        logger.info(
            "payment_method_selected",
            extra={"engagement_id": str(engagement.id), "payment_method": value},
        )
        return EngagementInfo.from_model(engagement)

    def confirm_payment(self, engagement_id: UUID, actor: Actor) -> EngagementInfo:
        """
        Mark the engagement paid and move it to ``accepted``.

        The client confirms after paying; admins confirm on behalf of the
        payment collaborator.  The provider cannot confirm.
        """
        engagement = load_engagement(self.session, engagement_id)
        role = require_party_or_admin(engagement, actor, lifecycle.CONFIRM_PAYMENT)
        if role is PartyRole.PROVIDER and not actor.is_admin:
            raise UnauthorizedError(
                str(actor.user_id), str(engagement.id), lifecycle.CONFIRM_PAYMENT
            )
        lifecycle.ensure_transition(
            engagement.id,
            engagement.status,
            lifecycle.CONFIRM_PAYMENT,
            EngagementStatus.ACCEPTED,
        )
        if not engagement.payment_method:
            raise PaymentMethodNotSetError(str(engagement.id))

        now = self._now()
        engagement.payment_completed_at = now
        engagement.status = EngagementStatus.ACCEPTED.value
        self._touch(engagement, now)
        self._flush("Engagement", engagement.id)

        logger.info(
            "payment_confirmed",
            extra={
                "engagement_id": str(engagement.id),
                "payment_method": engagement.payment_method,
            },
        )
        return EngagementInfo.from_model(engagement)
