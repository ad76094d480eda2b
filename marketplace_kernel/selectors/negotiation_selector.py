"""
Module: marketplace_kernel.selectors.negotiation_selector
Responsibility: Read access to negotiation chains.
Architecture position: Kernel > Selectors.

Chains come back in chain order (creation time, then sequence), the order
every effective-status rule is defined over.
"""

from uuid import UUID

from sqlalchemy import select

from marketplace_kernel.domain.dtos import NegotiationInfo
from marketplace_kernel.exceptions import NegotiationNotFoundError
from marketplace_kernel.models.negotiation import Negotiation
from marketplace_kernel.selectors.base import BaseSelector


class NegotiationSelector(BaseSelector[Negotiation]):

    def list_chain(self, engagement_id: UUID) -> list[NegotiationInfo]:
        return [NegotiationInfo.from_model(n) for n in self.load_chain(engagement_id)]

    def load_chain(self, engagement_id: UUID) -> list[Negotiation]:
        stmt = (
            select(Negotiation)
            .where(Negotiation.engagement_id == engagement_id)
            .order_by(Negotiation.created_at, Negotiation.sequence)
        )
        return list(self.session.execute(stmt).scalars())

    def get(self, negotiation_id: UUID) -> NegotiationInfo:
        negotiation = self.session.get(Negotiation, negotiation_id)
        if negotiation is None:
            raise NegotiationNotFoundError(str(negotiation_id))
        return NegotiationInfo.from_model(negotiation)
