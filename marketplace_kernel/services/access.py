"""
Engagement loading and party checks shared by the engagement services.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from marketplace_kernel.domain.parties import PartyRole, resolve_party_role
from marketplace_kernel.domain.values import Actor
from marketplace_kernel.exceptions import EngagementNotFoundError, UnauthorizedError
from marketplace_kernel.models.engagement import Engagement


def load_engagement(session: Session, engagement_id: UUID) -> Engagement:
    engagement = session.get(Engagement, engagement_id)
    if engagement is None:
        raise EngagementNotFoundError(str(engagement_id))
    return engagement


def require_party(engagement: Engagement, actor: Actor, action: str) -> PartyRole:
    """The actor's role, or UnauthorizedError for anyone outside the engagement."""
    role = resolve_party_role(actor, engagement.client_id, engagement.provider_user_id)
    if role is None:
        raise UnauthorizedError(str(actor.user_id), str(engagement.id), action)
    return role


def require_party_or_admin(
    engagement: Engagement,
    actor: Actor,
    action: str,
) -> PartyRole | None:
    """Like require_party, but admins pass with no role."""
    role = resolve_party_role(actor, engagement.client_id, engagement.provider_user_id)
    if role is None and not actor.is_admin:
        raise UnauthorizedError(str(actor.user_id), str(engagement.id), action)
    return role
