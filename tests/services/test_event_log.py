"""
Tests for EventLog (``membership_kernel.services.event_log``).

EventLog is flush-only: the caller's transaction decides whether an
appended event survives.
"""

from datetime import timedelta
from uuid import uuid4

import pytest

from membership_kernel.db.engine import session_scope
from membership_kernel.domain.application import TransitionAction
from membership_kernel.services.event_log import EventLog


class TestEventLog:

    def test_append_and_list_oldest_first(
        self, session_factory, draft_application, deterministic_clock,
    ):
        at = deterministic_clock.now()
        actor_id = uuid4()
        with session_scope(session_factory) as session:
            log = EventLog(session)
            log.append(
                application_id=draft_application.id,
                action=TransitionAction.SUBMIT,
                actor_id=actor_id,
                metadata={},
                at=at + timedelta(minutes=5),
                seq=3,
            )
            log.append(
                application_id=draft_application.id,
                action=TransitionAction.REQUEST_INFO,
                actor_id=actor_id,
                metadata={"note": "more detail"},
                at=at,
                seq=2,
            )

        with session_scope(session_factory) as session:
            events = EventLog(session).list_events(draft_application.id)

        assert [e.seq for e in events] == [2, 3]
        assert events[0].action is TransitionAction.REQUEST_INFO
        assert events[0].meta == {"note": "more detail"}
        assert events[0].at == at
        assert events[1].actor_id == actor_id

    def test_rollback_discards_append(
        self, session_factory, draft_application, deterministic_clock,
    ):
        with pytest.raises(RuntimeError):
            with session_scope(session_factory) as session:
                EventLog(session).append(
                    application_id=draft_application.id,
                    action=TransitionAction.SUBMIT,
                    actor_id=uuid4(),
                    metadata={},
                    at=deterministic_clock.now(),
                    seq=2,
                )
                raise RuntimeError("abort")

        with session_scope(session_factory) as session:
            assert EventLog(session).list_events(draft_application.id) == []

    def test_other_applications_not_listed(
        self, session_factory, submitted_application, workflow_engine, company_rep, directory,
    ):
        other = workflow_engine.create_application(
            company_rep, directory.company_id, directory.region_id, {},
        )
        with session_scope(session_factory) as session:
            assert EventLog(session).list_events(other.id) == []
            assert len(EventLog(session).list_events(submitted_application.id)) == 1

    def test_listed_in_seq_order_regardless_of_timestamp(
        self, session_factory, draft_application, deterministic_clock,
    ):
        at = deterministic_clock.now()
        with session_scope(session_factory) as session:
            log = EventLog(session)
            log.append(
                application_id=draft_application.id,
                action=TransitionAction.SUBMIT,
                actor_id=uuid4(),
                metadata={},
                at=at,
                seq=2,
            )
            log.append(
                application_id=draft_application.id,
                action=TransitionAction.REGION_APPROVE,
                actor_id=uuid4(),
                metadata={},
                at=at - timedelta(minutes=2),
                seq=3,
            )

        with session_scope(session_factory) as session:
            events = EventLog(session).list_events(draft_application.id)
        assert [e.seq for e in events] == [2, 3]

    def test_last_event_at(self, session_factory, draft_application, deterministic_clock):
        at = deterministic_clock.now()
        with session_scope(session_factory) as session:
            log = EventLog(session)
            assert log.last_event_at(draft_application.id) is None
            for seq, offset in ((2, 0), (3, 30)):
                log.append(
                    application_id=draft_application.id,
                    action=TransitionAction.SUBMIT,
                    actor_id=uuid4(),
                    metadata={},
                    at=at + timedelta(seconds=offset),
                    seq=seq,
                )
            assert log.last_event_at(draft_application.id) == at + timedelta(seconds=30)
