"""Party resolution: who is the actor relative to an engagement."""

from enum import Enum
from uuid import UUID

from marketplace_kernel.domain.values import Actor


class PartyRole(str, Enum):
    CLIENT = "client"
    PROVIDER = "provider"


def resolve_party_role(
    actor: Actor,
    client_id: UUID,
    provider_user_id: UUID,
) -> PartyRole | None:
    """
    Return the actor's role on an engagement, or None for a non-party.

    The client check wins when one user is on both sides; engagement
    creation rejects that case, so it only matters for legacy rows.
    """
    if actor.user_id == client_id:
        return PartyRole.CLIENT
    if actor.user_id == provider_user_id:
        return PartyRole.PROVIDER
    return None
