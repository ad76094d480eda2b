"""
Engagement lifecycle (``marketplace_kernel.domain.lifecycle``).

Responsibility
--------------
Declares the engagement status state machine as a ``Workflow`` and exposes
the derived ``ENGAGEMENT_TRANSITIONS`` map plus ``ensure_transition()``,
which every status-changing service calls before writing.

Architecture position
---------------------
**Kernel domain layer** -- pure.  ZERO I/O.

Invariants enforced
-------------------
* ``ENGAGEMENT_TRANSITIONS`` defines the only valid status transitions.
  ``completed`` and ``cancelled`` are terminal and have no outgoing edges.
* Payment confirmation is the only way into ``accepted``.
* Completion is only reachable after ``accepted``; the guards that check
  payment and daily sessions live in the services that fire the transition.
"""

from __future__ import annotations

from marketplace_kernel.domain.values import EngagementStatus
from marketplace_kernel.domain.workflow import Guard, Transition, Workflow
from marketplace_kernel.exceptions import InvalidTransitionError

S = EngagementStatus

OPEN_NEGOTIATION = "open_negotiation"
COUNTER_PROPOSE = "counter_propose"
ACCEPT_NEGOTIATION = "accept_negotiation"
SELECT_PAYMENT_METHOD = "select_payment_method"
CONFIRM_PAYMENT = "confirm_payment"
REQUEST_COMPLETION = "request_completion"
UPDATE_DAILY_SESSION = "update_daily_session"
CANCEL = "cancel"

PAYMENT_CONFIRMED = Guard(
    name="payment_confirmed",
    description="payment_completed_at is set",
)
DAILY_SESSIONS_CONFIRMED = Guard(
    name="daily_sessions_confirmed",
    description="daily-priced engagements need every session confirmed by both parties",
)
BOTH_PARTIES_CONFIRMED = Guard(
    name="both_parties_confirmed",
    description="client_completed_at and provider_completed_at are both set",
)

_NON_TERMINAL = (
    S.PENDING,
    S.NEGOTIATING,
    S.PAYMENT_PENDING,
    S.ACCEPTED,
    S.PENDING_COMPLETION,
)

ENGAGEMENT_WORKFLOW = Workflow(
    name="engagement",
    description="Service engagement from request to settlement",
    initial_state=S.PENDING.value,
    states=tuple(s.value for s in S),
    transitions=(
        Transition(S.PENDING.value, S.NEGOTIATING.value, OPEN_NEGOTIATION),
        Transition(S.NEGOTIATING.value, S.NEGOTIATING.value, OPEN_NEGOTIATION),
        Transition(S.NEGOTIATING.value, S.NEGOTIATING.value, COUNTER_PROPOSE),
        Transition(S.NEGOTIATING.value, S.PAYMENT_PENDING.value, ACCEPT_NEGOTIATION),
        Transition(S.PAYMENT_PENDING.value, S.PAYMENT_PENDING.value, SELECT_PAYMENT_METHOD),
        Transition(S.PAYMENT_PENDING.value, S.ACCEPTED.value, CONFIRM_PAYMENT),
        Transition(
            S.ACCEPTED.value, S.PENDING_COMPLETION.value, REQUEST_COMPLETION,
            guard=PAYMENT_CONFIRMED,
        ),
        Transition(
            S.ACCEPTED.value, S.COMPLETED.value, REQUEST_COMPLETION,
            guard=BOTH_PARTIES_CONFIRMED,
        ),
        Transition(
            S.PENDING_COMPLETION.value, S.PENDING_COMPLETION.value, REQUEST_COMPLETION,
            guard=PAYMENT_CONFIRMED,
        ),
        Transition(
            S.PENDING_COMPLETION.value, S.COMPLETED.value, REQUEST_COMPLETION,
            guard=BOTH_PARTIES_CONFIRMED,
        ),
        Transition(
            S.ACCEPTED.value, S.ACCEPTED.value, UPDATE_DAILY_SESSION,
            guard=PAYMENT_CONFIRMED,
        ),
        Transition(
            S.ACCEPTED.value, S.COMPLETED.value, UPDATE_DAILY_SESSION,
            guard=DAILY_SESSIONS_CONFIRMED,
        ),
        Transition(
            S.PENDING_COMPLETION.value, S.PENDING_COMPLETION.value, UPDATE_DAILY_SESSION,
            guard=PAYMENT_CONFIRMED,
        ),
        Transition(
            S.PENDING_COMPLETION.value, S.COMPLETED.value, UPDATE_DAILY_SESSION,
            guard=DAILY_SESSIONS_CONFIRMED,
        ),
    ) + tuple(
        Transition(s.value, S.CANCELLED.value, CANCEL) for s in _NON_TERMINAL
    ),
    terminal_states=(S.COMPLETED.value, S.CANCELLED.value),
)


def _build_transition_map(workflow: Workflow) -> dict[EngagementStatus, frozenset[EngagementStatus]]:
    edges: dict[EngagementStatus, set[EngagementStatus]] = {s: set() for s in S}
    for t in workflow.transitions:
        edges[S(t.from_state)].add(S(t.to_state))
    return {k: frozenset(v) for k, v in edges.items()}


ENGAGEMENT_TRANSITIONS: dict[EngagementStatus, frozenset[EngagementStatus]] = (
    _build_transition_map(ENGAGEMENT_WORKFLOW)
)

TERMINAL_ENGAGEMENT_STATUSES: frozenset[EngagementStatus] = frozenset({
    S.COMPLETED,
    S.CANCELLED,
})


def can_transition(
    current: EngagementStatus | str,
    action: str,
    to_state: EngagementStatus | str | None = None,
) -> bool:
    target = None if to_state is None else S(to_state).value
    return ENGAGEMENT_WORKFLOW.find(S(current).value, action, target) is not None


def ensure_transition(
    engagement_id: object,
    current: EngagementStatus | str,
    action: str,
    to_state: EngagementStatus | str | None = None,
) -> Transition:
    """
    Return the workflow transition for ``action`` from ``current``.

    Raises:
        InvalidTransitionError: If the workflow has no such edge.
    """
    target = None if to_state is None else S(to_state).value
    transition = ENGAGEMENT_WORKFLOW.find(S(current).value, action, target)
    if transition is None:
        raise InvalidTransitionError(str(engagement_id), S(current).value, action)
    return transition
