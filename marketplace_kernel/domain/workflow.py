"""
Declarative state machines.

A Workflow lists its states and the actions that move between them.  The
engagement lifecycle is declared once with these types (see
``lifecycle.py``) and every status change is looked up in it before a
service writes anything.  A Workflow that names an unknown state, or lets a
terminal state move on, fails at construction.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Guard:
    """Named precondition attached to a transition.  Checked by the owning service."""
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None


@dataclass(frozen=True)
class Workflow:
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"Workflow {self.name}: initial state {self.initial_state} "
                "is not a declared state"
            )
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"Workflow {self.name}: transition {t.action} "
                    f"{t.from_state}->{t.to_state} references an unknown state"
                )
            if t.from_state in self.terminal_states:
                raise ValueError(
                    f"Workflow {self.name}: terminal state {t.from_state} "
                    f"has outgoing transition {t.action}"
                )

    def find(self, from_state: str, action: str, to_state: str | None = None) -> Transition | None:
        """Return the transition matching ``from_state`` and ``action``, if any."""
        for t in self.transitions:
            if t.from_state != from_state or t.action != action:
                continue
            if to_state is None or t.to_state == to_state:
                return t
        return None

    def actions_from(self, state: str) -> tuple[str, ...]:
        return tuple(sorted({t.action for t in self.transitions if t.from_state == state}))
