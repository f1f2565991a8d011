"""
Membership application domain types (``membership_kernel.domain.application``).

Responsibility
--------------
Pure value objects for the application workflow: lifecycle states,
workflow actions, principal roles, the acting principal, and the frozen
DTOs returned by the engine and the event log.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* ``reason_rejected`` is non-empty iff ``state`` is REJECTED.
* ``decided_at`` is set iff ``state`` is APPROVED or REJECTED.
* ``submitted_at`` is set iff the application has left DRAFT.

The DTOs do not re-check these at construction; the ORM model's check
constraints and the engine's write path keep them true.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID


class ApplicationState(str, Enum):
    """Membership application lifecycle states."""

    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    REGION_REVIEW = "REGION_REVIEW"
    REQUESTED_CHANGES = "REQUESTED_CHANGES"
    NATIONAL_REVIEW = "NATIONAL_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class TransitionAction(str, Enum):
    """Actions an actor can invoke on an application."""

    SUBMIT = "submit"
    REQUEST_INFO = "request_info"
    REGION_APPROVE = "region_approve"
    NATIONAL_APPROVE = "national_approve"
    REJECT = "reject"


class Role(str, Enum):
    """Closed set of principal roles supplied by the identity provider."""

    ADMIN = "ADMIN"
    NATIONAL_SECRETARIAT = "NATIONAL_SECRETARIAT"
    REGIONAL_SECRETARIAT = "REGIONAL_SECRETARIAT"
    COMPANY_REP = "COMPANY_REP"
    MEMBER = "MEMBER"


DECISION_STATES: frozenset[ApplicationState] = frozenset({
    ApplicationState.APPROVED,
    ApplicationState.REJECTED,
})


@dataclass(frozen=True)
class Actor:
    """The authenticated principal performing an operation.

    ``region_id`` is the principal's home region; only meaningful for
    regional secretariat members.
    """

    id: UUID
    role: Role
    region_id: UUID | None = None


@dataclass(frozen=True)
class MembershipApplication:
    """Immutable snapshot of a membership application."""

    id: UUID
    company_id: UUID
    submitted_by_id: UUID
    region_id: UUID
    state: ApplicationState
    form: dict[str, Any]
    created_at: datetime
    version: int
    reason_rejected: str | None = None
    submitted_at: datetime | None = None
    decided_at: datetime | None = None


@dataclass(frozen=True)
class ApplicationEvent:
    """Immutable record of one executed transition."""

    id: UUID
    application_id: UUID
    seq: int
    action: TransitionAction
    actor_id: UUID
    at: datetime
    meta: dict[str, Any] = field(default_factory=dict)
