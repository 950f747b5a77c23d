"""
Canonical workflow types (``dealflow_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for entity state machines.  Every module declares its
transition table with these types so that Guard, Transition and Workflow
are defined once.  Role gating is declared per transition
(``required_roles``) rather than embedded in the executor.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/`` or outer layers.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* Terminal states have no outgoing transitions.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Guard:
    """A condition that must be satisfied before a transition fires.

    Contract: frozen, descriptive only.
    Non-goals: does not evaluate the condition -- the workflow executor does.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition.

    ``required_roles`` empty means any role may fire the transition.
    ``requires_reason`` rejects the transition when no reason is supplied.
    """
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None
    required_roles: tuple[str, ...] = ()
    requires_reason: bool = False

    def permits(self, actor_role: str) -> bool:
        return not self.required_roles or actor_role in self.required_roles


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for an entity lifecycle.

    Contract: frozen; ``transitions`` reference only states in ``states``.
    """
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"Workflow {self.name}: initial state {self.initial_state!r} not in states"
            )
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"Workflow {self.name}: transition {t.action!r} "
                    f"{t.from_state!r} -> {t.to_state!r} references unknown state"
                )
            if t.from_state in self.terminal_states:
                raise ValueError(
                    f"Workflow {self.name}: terminal state {t.from_state!r} "
                    f"has outgoing transition {t.action!r}"
                )

    def find_transition(self, current_state: str, action: str) -> Transition | None:
        for t in self.transitions:
            if t.from_state == current_state and t.action == action:
                return t
        return None

    def available_actions(self, current_state: str) -> tuple[str, ...]:
        return tuple(t.action for t in self.transitions if t.from_state == current_state)

    def is_terminal(self, state: str) -> bool:
        return state in self.terminal_states


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a workflow transition attempt.

    ``outcome`` is a machine-readable code (see
    ``dealflow_services.workflow_executor``); ``reason`` is human readable.
    """
    success: bool
    outcome: str
    new_state: str | None = None
    reason: str | None = None
    required_roles: tuple[str, ...] = ()
