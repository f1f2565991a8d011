"""
Module: membership_kernel.models.application_event
Responsibility: ORM persistence for the per-application transition log.

Architecture position: Kernel > Models.  May import from db/base.py and
    the exception hierarchy only.

Invariants enforced:
    - Append-only: no UPDATE, no DELETE (ORM listeners).
    - Ordering: UNIQUE(application_id, seq).  ``seq`` is the application's
      version after the transition, so two transitions racing from the same
      version cannot both record an event.

Failure modes:
    - ImmutabilityViolationError on any UPDATE/DELETE attempt.
    - IntegrityError on a duplicate (application_id, seq).

Audit relevance:
    These rows ARE the application's audit trail and UI timeline.  Each is
    written in the same transaction as the state change it records.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import (
    JSON,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column

from membership_kernel.db.base import Base, UUIDString
from membership_kernel.exceptions import ImmutabilityViolationError

if TYPE_CHECKING:
    from membership_kernel.domain.application import ApplicationEvent


class ApplicationEventModel(Base):
    """Persistent record of one executed transition. Append-only."""

    __tablename__ = "application_events"

    __table_args__ = (
        UniqueConstraint(
            "application_id", "seq",
            name="uq_application_events_application_seq",
        ),
        Index("ix_application_events_application_at", "application_id", "at"),
    )

    application_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("membership_applications.id"),
        nullable=False,
    )
    seq: Mapped[int] = mapped_column(Integer, nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    at: Mapped[datetime] = mapped_column(nullable=False)
    meta: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<ApplicationEvent {self.id} "
            f"application={self.application_id} seq={self.seq} "
            f"action={self.action}>"
        )

    def to_dto(self) -> ApplicationEvent:
        """Convert ORM model to frozen domain DTO."""
        from membership_kernel.domain.application import (
            ApplicationEvent as ApplicationEventDTO,
            TransitionAction,
        )

        return ApplicationEventDTO(
            id=self.id,
            application_id=self.application_id,
            seq=self.seq,
            action=TransitionAction(self.action),
            actor_id=self.actor_id,
            at=self.at,
            meta=dict(self.meta or {}),
        )


# =============================================================================
# ORM-Level Immutability (Append-Only)
# =============================================================================


@event.listens_for(ApplicationEventModel, "before_update")
def prevent_event_update(mapper, connection, target):
    """Prevent updates to application event records."""
    raise ImmutabilityViolationError(
        entity_type="ApplicationEvent",
        entity_id=str(target.id),
        reason="Application events are immutable -- cannot modify",
    )


@event.listens_for(ApplicationEventModel, "before_delete")
def prevent_event_delete(mapper, connection, target):
    """Prevent deletion of application event records."""
    raise ImmutabilityViolationError(
        entity_type="ApplicationEvent",
        entity_id=str(target.id),
        reason="Application events are immutable -- cannot delete",
    )
