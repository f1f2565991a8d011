"""
Append-only persistence tests for the application audit trail.

Verifies:
- ApplicationEvent rows cannot be updated or deleted through the ORM
- Applications cannot be deleted
- Database constraints reject inconsistent rejection/decision data
- Duplicate (application_id, seq) events are refused
"""

from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from membership_kernel.db.engine import session_scope
from membership_kernel.domain.application import ApplicationState, TransitionAction
from membership_kernel.exceptions import ImmutabilityViolationError
from membership_kernel.models.application import MembershipApplicationModel
from membership_kernel.models.application_event import ApplicationEventModel
from membership_kernel.services.event_log import EventLog


def _first_event(session, application_id):
    return session.execute(
        select(ApplicationEventModel)
        .where(ApplicationEventModel.application_id == application_id)
        .order_by(ApplicationEventModel.seq)
    ).scalars().first()


class TestEventImmutability:

    def test_event_update_refused(
        self, session_factory, submitted_application, workflow_engine, admin,
    ):
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            with session_scope(session_factory) as session:
                event = _first_event(session, submitted_application.id)
                event.meta = {"tampered": True}
                session.flush()
        assert exc_info.value.entity_type == "ApplicationEvent"

        events = workflow_engine.list_events(submitted_application.id, admin)
        assert events[0].meta == {}

    def test_event_delete_refused(
        self, session_factory, submitted_application, count_events,
    ):
        with pytest.raises(ImmutabilityViolationError):
            with session_scope(session_factory) as session:
                session.delete(_first_event(session, submitted_application.id))
                session.flush()
        assert count_events(submitted_application.id) == 1

    def test_application_delete_refused(self, session_factory, draft_application):
        with pytest.raises(ImmutabilityViolationError):
            with session_scope(session_factory) as session:
                session.delete(session.get(MembershipApplicationModel, draft_application.id))
                session.flush()


class TestStoredInvariants:

    def test_duplicate_seq_refused(
        self, session_factory, submitted_application, deterministic_clock,
    ):
        with pytest.raises(IntegrityError):
            with session_scope(session_factory) as session:
                EventLog(session).append(
                    application_id=submitted_application.id,
                    action=TransitionAction.SUBMIT,
                    actor_id=uuid4(),
                    metadata={},
                    at=deterministic_clock.now(),
                    seq=submitted_application.version,
                )

    def test_rejected_requires_reason(self, session_factory, submitted_application):
        with pytest.raises(IntegrityError):
            with session_scope(session_factory) as session:
                model = session.get(MembershipApplicationModel, submitted_application.id)
                model.state = ApplicationState.REJECTED.value
                model.decided_at = submitted_application.submitted_at
                session.flush()

    def test_reason_outside_rejected_refused(self, session_factory, submitted_application):
        with pytest.raises(IntegrityError):
            with session_scope(session_factory) as session:
                model = session.get(MembershipApplicationModel, submitted_application.id)
                model.reason_rejected = "premature"
                session.flush()

    def test_approved_requires_decided_at(self, session_factory, submitted_application):
        with pytest.raises(IntegrityError):
            with session_scope(session_factory) as session:
                model = session.get(MembershipApplicationModel, submitted_application.id)
                model.state = ApplicationState.APPROVED.value
                session.flush()

    def test_unknown_state_refused(self, session_factory, draft_application):
        with pytest.raises(IntegrityError):
            with session_scope(session_factory) as session:
                model = session.get(MembershipApplicationModel, draft_application.id)
                model.state = "ARCHIVED"
                session.flush()
