"""
Module: marketplace_kernel.selectors.engagement_selector
Responsibility: Read access to engagements, including the resolved
    negotiation chain and the engagement's effective status.
Architecture position: Kernel > Selectors.  Uses
    marketplace_engines.negotiation_chain for chain resolution.

Invariants enforced:
    - Effective statuses are computed on read and never written back.
    - When an actor is given, only the two parties or an admin may read.

Failure modes:
    - EngagementNotFoundError for unknown ids.
    - UnauthorizedError for outsiders when an actor is given.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from marketplace_engines.negotiation_chain import resolve_chain
from marketplace_kernel.domain.dtos import (
    EngagementInfo,
    EngagementView,
    NegotiationInfo,
    ResolvedNegotiation,
)
from marketplace_kernel.domain.parties import resolve_party_role
from marketplace_kernel.domain.values import Actor
from marketplace_kernel.exceptions import EngagementNotFoundError, UnauthorizedError
from marketplace_kernel.models.engagement import Engagement
from marketplace_kernel.models.provider import ProviderProfile
from marketplace_kernel.selectors.base import BaseSelector
from marketplace_kernel.selectors.negotiation_selector import NegotiationSelector


class EngagementSelector(BaseSelector[Engagement]):

    def __init__(self, session):
        super().__init__(session)
        self.negotiations = NegotiationSelector(session)

    def get(self, engagement_id: UUID) -> EngagementInfo:
        return EngagementInfo.from_model(self._load(engagement_id))

    def get_view(self, engagement_id: UUID, actor: Actor | None = None) -> EngagementView:
        """
        The engagement with its ordered chain and derived statuses.

        Args:
            engagement_id: Engagement to read.
            actor: When given, the read is restricted to the parties and admins.
        """
        engagement = self._load(engagement_id)
        if actor is not None and not actor.is_admin:
            role = resolve_party_role(actor, engagement.client_id, engagement.provider_user_id)
            if role is None:
                raise UnauthorizedError(str(actor.user_id), str(engagement.id), "view")
        return self._view(engagement)

    def list_for_client(self, client_id: UUID) -> list[EngagementView]:
        stmt = (
            select(Engagement)
            .where(Engagement.client_id == client_id)
            .options(selectinload(Engagement.daily_sessions))
            .order_by(Engagement.created_at.desc(), Engagement.id)
        )
        return [self._view(e) for e in self.session.execute(stmt).scalars()]

    def list_for_provider_user(self, user_id: UUID) -> list[EngagementView]:
        stmt = (
            select(Engagement)
            .join(ProviderProfile, Engagement.provider_id == ProviderProfile.id)
            .where(ProviderProfile.user_id == user_id)
            .options(selectinload(Engagement.daily_sessions))
            .order_by(Engagement.created_at.desc(), Engagement.id)
        )
        return [self._view(e) for e in self.session.execute(stmt).scalars()]

    def _load(self, engagement_id: UUID) -> Engagement:
        engagement = self.session.get(Engagement, engagement_id)
        if engagement is None:
            raise EngagementNotFoundError(str(engagement_id))
        return engagement

    def _view(self, engagement: Engagement) -> EngagementView:
        chain = self.negotiations.load_chain(engagement.id)
        resolution = resolve_chain(engagement.status, chain)
        return EngagementView(
            engagement=EngagementInfo.from_model(engagement),
            effective_status=resolution.engagement_status,
            negotiations=tuple(
                ResolvedNegotiation(
                    negotiation=NegotiationInfo.from_model(n),
                    effective_status=status,
                    is_live=n.id == resolution.live_id,
                )
                for n, status in zip(resolution.ordered, resolution.effective_statuses)
            ),
            live_negotiation_id=resolution.live_id,
        )
