"""
Pure domain layer.

This module contains pure data transfer objects and domain logic
with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

All domain objects are immutable and deterministic.
"""

from membership_kernel.domain.application import (
    DECISION_STATES,
    Actor,
    ApplicationEvent,
    ApplicationState,
    MembershipApplication,
    Role,
    TransitionAction,
)
from membership_kernel.domain.authorization import (
    AuthorizationDecision,
    authorize_creation,
    authorize_transition,
    can_view_application,
    can_view_events,
)
from membership_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from membership_kernel.domain.transitions import (
    MEMBERSHIP_WORKFLOW,
    TERMINAL_STATES,
    is_legal,
    is_terminal,
    legal_actions,
    next_state,
)
from membership_kernel.domain.workflow import Transition, Workflow

__all__ = [
    "Actor",
    "ApplicationEvent",
    "ApplicationState",
    "AuthorizationDecision",
    "Clock",
    "DECISION_STATES",
    "DeterministicClock",
    "MEMBERSHIP_WORKFLOW",
    "MembershipApplication",
    "Role",
    "SystemClock",
    "TERMINAL_STATES",
    "Transition",
    "TransitionAction",
    "Workflow",
    "authorize_creation",
    "authorize_transition",
    "can_view_application",
    "can_view_events",
    "is_legal",
    "is_terminal",
    "legal_actions",
    "next_state",
]
