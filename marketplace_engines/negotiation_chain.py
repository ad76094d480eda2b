"""
marketplace_engines.negotiation_chain -- Read-time resolution of a
negotiation chain.

Responsibility:
    Order an engagement's proposals, decide which one is live, and derive
    the effective statuses a client sees.  Nothing here is persisted: a
    superseded pending proposal stays ``pending`` in storage and reads as
    ``rejected``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Chain order is (created_at, sequence) ascending.
    - Only the newest proposal can be live, and only while it is pending.
    - A non-pending proposal's effective status is its stored status.
    - Engagement effective status: stored ``negotiating`` with a newest
      ``rejected`` proposal reads ``cancelled``; with a newest ``accepted``
      proposal reads ``accepted``; every other case is the stored status.

Failure modes:
    - ensure_actionable raises NegotiationAlreadyResolvedError or
      NegotiationSupersededError.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from uuid import UUID

from marketplace_kernel.domain.values import EngagementStatus, NegotiationStatus
from marketplace_kernel.exceptions import (
    NegotiationAlreadyResolvedError,
    NegotiationSupersededError,
)


class ChainEntry(Protocol):
    """Anything shaped like a negotiation: ORM row or NegotiationInfo."""

    @property
    def id(self) -> UUID: ...

    @property
    def sequence(self) -> int: ...

    @property
    def status(self) -> str: ...

    @property
    def created_at(self) -> datetime: ...


def order_chain(entries: Iterable[ChainEntry]) -> list[ChainEntry]:
    return sorted(entries, key=lambda n: (n.created_at, n.sequence))


def latest(entries: Sequence[ChainEntry]) -> ChainEntry | None:
    ordered = order_chain(entries)
    return ordered[-1] if ordered else None


def live_negotiation(entries: Sequence[ChainEntry]) -> ChainEntry | None:
    """The newest proposal if it is still pending, else None."""
    newest = latest(entries)
    if newest is None or NegotiationStatus(newest.status) is not NegotiationStatus.PENDING:
        return None
    return newest


def effective_negotiation_status(
    entry: ChainEntry,
    entries: Sequence[ChainEntry],
) -> NegotiationStatus:
    stored = NegotiationStatus(entry.status)
    if stored is not NegotiationStatus.PENDING:
        return stored
    newest = latest(entries)
    if newest is not None and newest.id == entry.id:
        return NegotiationStatus.PENDING
    return NegotiationStatus.REJECTED


def effective_engagement_status(
    stored_status: EngagementStatus | str,
    entries: Sequence[ChainEntry],
) -> EngagementStatus:
    stored = EngagementStatus(stored_status)
    if stored is not EngagementStatus.NEGOTIATING:
        return stored
    newest = latest(entries)
    if newest is None:
        return stored
    newest_status = NegotiationStatus(newest.status)
    if newest_status is NegotiationStatus.REJECTED:
        return EngagementStatus.CANCELLED
    if newest_status is NegotiationStatus.ACCEPTED:
        return EngagementStatus.ACCEPTED
    return stored


@dataclass(frozen=True)
class ChainResolution:
    ordered: tuple[ChainEntry, ...]
    effective_statuses: tuple[NegotiationStatus, ...]
    live_id: UUID | None
    engagement_status: EngagementStatus


def resolve_chain(
    stored_status: EngagementStatus | str,
    entries: Iterable[ChainEntry],
) -> ChainResolution:
    """Resolve a whole chain at once for read models."""
    ordered = tuple(order_chain(entries))
    live = live_negotiation(ordered)
    return ChainResolution(
        ordered=ordered,
        effective_statuses=tuple(
            effective_negotiation_status(n, ordered) for n in ordered
        ),
        live_id=live.id if live is not None else None,
        engagement_status=effective_engagement_status(stored_status, ordered),
    )


def ensure_actionable(entry: ChainEntry, entries: Sequence[ChainEntry]) -> None:
    """
    Raise unless ``entry`` is the chain's live proposal.

    Raises:
        NegotiationAlreadyResolvedError: stored status is not pending.
        NegotiationSupersededError: a newer proposal exists.
    """
    stored = NegotiationStatus(entry.status)
    if stored is not NegotiationStatus.PENDING:
        raise NegotiationAlreadyResolvedError(str(entry.id), stored.value)
    live = live_negotiation(entries)
    if live is None or live.id != entry.id:
        raise NegotiationSupersededError(
            str(entry.id),
            str(live.id) if live is not None else None,
        )


def next_sequence(entries: Sequence[ChainEntry]) -> int:
    return max((n.sequence for n in entries), default=0) + 1
