"""
EventLog -- append-only transition history per application.

Responsibility:
    Records one ApplicationEvent per executed transition and lists an
    application's events oldest first for audit and timeline display.

Architecture position:
    Kernel > Services.  Called only by the WorkflowEngine, inside the
    same transaction as the application state update.

Invariants enforced:
    - Append-only: there is no update or delete operation here, and the
      ORM model rejects both.
    - Flush-only: ``append`` never commits.  If the caller's transaction
      rolls back, the event disappears with the state change.
    - Order: ``list_events`` returns events by ``seq`` ascending.  ``seq``
      is the application version written by the same commit, so it is the
      commit order; the engine keeps ``at`` non-decreasing along it.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, select

from membership_kernel.domain.application import ApplicationEvent, TransitionAction
from membership_kernel.logging_config import get_logger
from membership_kernel.models.application_event import ApplicationEventModel
from membership_kernel.services.base import BaseService

logger = get_logger("services.event_log")


class EventLog(BaseService[ApplicationEventModel]):
    """Per-application transition log."""

    def append(
        self,
        application_id: UUID,
        action: TransitionAction,
        actor_id: UUID,
        metadata: dict[str, Any],
        at: datetime,
        seq: int,
    ) -> ApplicationEvent:
        """Append one event inside the caller's transaction.

        Args:
            application_id: Application the transition was applied to.
            action: Executed action.
            actor_id: Principal who performed it.
            metadata: Free-form payload (note, rejection reason).
            at: Transition timestamp.
            seq: Application version after the transition.
        """
        model = ApplicationEventModel(
            application_id=application_id,
            seq=seq,
            action=action.value,
            actor_id=actor_id,
            at=at,
            meta=dict(metadata),
        )
        self.session.add(model)
        self.session.flush()

        logger.debug(
            "application_event_appended",
            extra={
                "event_id": str(model.id),
                "seq": seq,
                "action": action.value,
            },
        )
        return model.to_dto()

    def list_events(self, application_id: UUID) -> list[ApplicationEvent]:
        """All events for ``application_id``, oldest first."""
        models = self.session.execute(
            select(ApplicationEventModel)
            .where(ApplicationEventModel.application_id == application_id)
            .order_by(ApplicationEventModel.seq)
        ).scalars().all()
        return [m.to_dto() for m in models]

    def last_event_at(self, application_id: UUID) -> datetime | None:
        """Timestamp of the newest event, or None before the first transition."""
        return self.session.execute(
            select(func.max(ApplicationEventModel.at))
            .where(ApplicationEventModel.application_id == application_id)
        ).scalar_one()
