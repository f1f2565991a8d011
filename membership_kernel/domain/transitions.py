"""
Membership application transition table (``membership_kernel.domain.transitions``).

Responsibility
--------------
The legal (state, action) pairs and the state each action leads to.
Pure decision functions: no I/O, no mutable state, no exceptions for
known enum members.  The caller decides how to report an illegal action.

Architecture position
---------------------
**Kernel domain layer**.  Imports only ``domain/workflow`` and
``domain/application``.

Invariants enforced
-------------------
* APPROVED and REJECTED are terminal: no action is legal from them.
* Every action maps to exactly one resulting state (``next_state`` is
  total over ``TransitionAction``).
* SUBMITTED and REGION_REVIEW accept the same actions.  No transition
  enters REGION_REVIEW; it is treated as another name for "awaiting
  regional decision".
"""

from __future__ import annotations

from membership_kernel.domain.application import (
    ApplicationState,
    TransitionAction,
)
from membership_kernel.domain.workflow import Transition, Workflow

_S = ApplicationState
_A = TransitionAction


def _awaiting_regional_decision(state: ApplicationState) -> tuple[Transition, ...]:
    return (
        Transition(state.value, _S.REQUESTED_CHANGES.value, _A.REQUEST_INFO.value),
        Transition(state.value, _S.NATIONAL_REVIEW.value, _A.REGION_APPROVE.value),
        Transition(state.value, _S.REJECTED.value, _A.REJECT.value),
    )


MEMBERSHIP_WORKFLOW = Workflow(
    name="membership_application",
    description="Membership application lifecycle",
    initial_state=_S.DRAFT.value,
    states=tuple(s.value for s in ApplicationState),
    transitions=(
        Transition(_S.DRAFT.value, _S.SUBMITTED.value, _A.SUBMIT.value),
        *_awaiting_regional_decision(_S.SUBMITTED),
        *_awaiting_regional_decision(_S.REGION_REVIEW),
        Transition(_S.REQUESTED_CHANGES.value, _S.SUBMITTED.value, _A.SUBMIT.value),
        Transition(_S.NATIONAL_REVIEW.value, _S.APPROVED.value, _A.NATIONAL_APPROVE.value),
        Transition(_S.NATIONAL_REVIEW.value, _S.REJECTED.value, _A.REJECT.value),
    ),
    terminal_states=(_S.APPROVED.value, _S.REJECTED.value),
)


ALLOWED_ACTIONS: dict[ApplicationState, frozenset[TransitionAction]] = {
    state: frozenset(
        TransitionAction(a) for a in MEMBERSHIP_WORKFLOW.actions_from(state.value)
    )
    for state in ApplicationState
}

NEXT_STATE: dict[TransitionAction, ApplicationState] = {
    action: ApplicationState(MEMBERSHIP_WORKFLOW.target_of(action.value))
    for action in TransitionAction
}

TERMINAL_STATES: frozenset[ApplicationState] = frozenset(
    ApplicationState(s) for s in MEMBERSHIP_WORKFLOW.terminal_states
)


def is_legal(state: ApplicationState, action: TransitionAction) -> bool:
    """True iff ``action`` may be applied to an application in ``state``."""
    return action in ALLOWED_ACTIONS[state]


def next_state(action: TransitionAction) -> ApplicationState:
    """State an application is in after ``action`` succeeds."""
    return NEXT_STATE[action]


def legal_actions(state: ApplicationState) -> frozenset[TransitionAction]:
    """All actions legal from ``state`` (empty for terminal states)."""
    return ALLOWED_ACTIONS[state]


def is_terminal(state: ApplicationState) -> bool:
    return state in TERMINAL_STATES
