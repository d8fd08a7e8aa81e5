"""
Canonical workflow types (``payroll_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for lifecycle state machines.  Modules declare their
workflows once (see ``payroll_modules.payroll.workflows``) and services ask
the workflow whether an action is legal from the current state.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* At most one transition per (from_state, action).
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow.

    ``to_state=None`` marks a removing transition (the record is deleted).
    """
    from_state: str
    to_state: str | None
    action: str


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a record lifecycle."""
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
        seen: set[tuple[str, str]] = set()
        for t in self.transitions:
            if t.from_state not in self.states:
                raise ValueError(
                    f"Workflow {self.name}: unknown from_state {t.from_state!r}"
                )
            if t.to_state is not None and t.to_state not in self.states:
                raise ValueError(
                    f"Workflow {self.name}: unknown to_state {t.to_state!r}"
                )
            key = (t.from_state, t.action)
            if key in seen:
                raise ValueError(
                    f"Workflow {self.name}: duplicate transition {key}"
                )
            seen.add(key)

    def find_transition(self, from_state: str, action: str) -> Transition | None:
        """Transition for ``action`` out of ``from_state``, or None if illegal."""
        for t in self.transitions:
            if t.from_state == from_state and t.action == action:
                return t
        return None

    def states_allowing(self, action: str) -> tuple[str, ...]:
        """States from which ``action`` is legal."""
        return tuple(t.from_state for t in self.transitions if t.action == action)
