"""
Canonical workflow types (``membership_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for workflow state machines.  A ``Workflow`` declares
its states and the ``Transition`` records between them; lookup tables are
derived from the declaration rather than written out by hand.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* ``terminal_states`` have no outgoing transitions.
* Each action leads to exactly one resulting state.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow.

    Contract: frozen.  ``action`` is the verb an actor invokes;
    the transition fires only from ``from_state``.
    """
    from_state: str
    to_state: str
    action: str


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a document lifecycle.

    Contract: frozen; validated at construction (see module invariants).
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
                f"Workflow {self.name}: initial state {self.initial_state!r} "
                "is not a declared state"
            )
        for state in self.terminal_states:
            if state not in self.states:
                raise ValueError(
                    f"Workflow {self.name}: terminal state {state!r} "
                    "is not a declared state"
                )

        targets: dict[str, str] = {}
        for t in self.transitions:
            for state in (t.from_state, t.to_state):
                if state not in self.states:
                    raise ValueError(
                        f"Workflow {self.name}: transition {t.action!r} "
                        f"references undeclared state {state!r}"
                    )
            if t.from_state in self.terminal_states:
                raise ValueError(
                    f"Workflow {self.name}: terminal state {t.from_state!r} "
                    f"has outgoing transition {t.action!r}"
                )
            previous = targets.setdefault(t.action, t.to_state)
            if previous != t.to_state:
                raise ValueError(
                    f"Workflow {self.name}: action {t.action!r} leads to both "
                    f"{previous!r} and {t.to_state!r}"
                )

    def actions_from(self, state: str) -> frozenset[str]:
        """Actions with a transition leaving ``state``."""
        return frozenset(
            t.action for t in self.transitions if t.from_state == state
        )

    def target_of(self, action: str) -> str | None:
        """Resulting state of ``action``, or None if no transition uses it."""
        for t in self.transitions:
            if t.action == action:
                return t.to_state
        return None
