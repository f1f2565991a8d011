"""
Pytest fixtures for the membership kernel test suite.

Provides:
- A fresh database per test (SQLite file under tmp_path by default)
- Seeded regions and companies
- Actors for every role
- Applications driven into any lifecycle state

Environment Variables:
- DATABASE_URL: run against this database instead (e.g. PostgreSQL).
  Tables are dropped and recreated around every test.
"""

import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from io import StringIO
from typing import Callable
from uuid import UUID, uuid4

import pytest
from sqlalchemy import func, select

from membership_kernel.db.engine import (
    create_engine_from_url,
    create_session_factory,
    create_tables,
    drop_tables,
    session_scope,
)
from membership_kernel.domain.application import (
    Actor,
    ApplicationState,
    MembershipApplication,
    Role,
    TransitionAction,
)
from membership_kernel.domain.clock import DeterministicClock
from membership_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from membership_kernel.models.application import MembershipApplicationModel
from membership_kernel.models.application_event import ApplicationEventModel
from membership_kernel.models.directory import CompanyModel, RegionModel
from membership_kernel.services.workflow_engine import WorkflowEngine


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture membership_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, workflow_engine):
            workflow_engine.apply_transition(...)
            logs = captured_logs()
            assert any(r["message"] == "workflow_transition" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("membership_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow_locks: mark test as potentially waiting for DB locks"
    )


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def database_url(tmp_path) -> str:
    """DATABASE_URL if set, otherwise a throwaway SQLite file."""
    return os.environ.get("DATABASE_URL") or f"sqlite:///{tmp_path / 'membership.db'}"


@pytest.fixture
def db_engine(database_url):
    eng = create_engine_from_url(database_url, pool_size=10, max_overflow=10)
    drop_tables(eng)
    create_tables(eng)
    yield eng
    drop_tables(eng)
    eng.dispose()


@pytest.fixture
def session_factory(db_engine):
    return create_session_factory(db_engine)


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(datetime(2025, 3, 1, 9, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def workflow_engine(session_factory, deterministic_clock) -> WorkflowEngine:
    return WorkflowEngine(session_factory, clock=deterministic_clock)


# =============================================================================
# Directory data
# =============================================================================


@dataclass(frozen=True)
class Directory:
    """IDs of the seeded regions, companies and company owners."""

    region_id: UUID
    other_region_id: UUID
    rep_user_id: UUID
    other_rep_user_id: UUID
    company_id: UUID
    other_company_id: UUID
    unowned_company_id: UUID


@pytest.fixture
def directory(session_factory) -> Directory:
    """Two regions; a company owned by a rep in each, plus an unowned one."""
    rep_user_id = uuid4()
    other_rep_user_id = uuid4()
    with session_scope(session_factory) as session:
        north = RegionModel(name="North")
        south = RegionModel(name="South")
        session.add_all([north, south])
        session.flush()

        acme = CompanyModel(name="Acme Ltd", owner_user_id=rep_user_id)
        globex = CompanyModel(name="Globex GmbH", owner_user_id=other_rep_user_id)
        orphan = CompanyModel(name="Initech", owner_user_id=None)
        session.add_all([acme, globex, orphan])
        session.flush()

        return Directory(
            region_id=north.id,
            other_region_id=south.id,
            rep_user_id=rep_user_id,
            other_rep_user_id=other_rep_user_id,
            company_id=acme.id,
            other_company_id=globex.id,
            unowned_company_id=orphan.id,
        )


# =============================================================================
# Actors
# =============================================================================


@pytest.fixture
def admin() -> Actor:
    return Actor(id=uuid4(), role=Role.ADMIN)


@pytest.fixture
def national_secretary() -> Actor:
    return Actor(id=uuid4(), role=Role.NATIONAL_SECRETARIAT)


@pytest.fixture
def regional_secretary(directory) -> Actor:
    """Regional secretary of the application's region."""
    return Actor(id=uuid4(), role=Role.REGIONAL_SECRETARIAT, region_id=directory.region_id)


@pytest.fixture
def foreign_regional_secretary(directory) -> Actor:
    """Regional secretary of a different region."""
    return Actor(
        id=uuid4(), role=Role.REGIONAL_SECRETARIAT, region_id=directory.other_region_id,
    )


@pytest.fixture
def company_rep(directory) -> Actor:
    """Owner of the application's company."""
    return Actor(id=directory.rep_user_id, role=Role.COMPANY_REP)


@pytest.fixture
def other_company_rep(directory) -> Actor:
    return Actor(id=directory.other_rep_user_id, role=Role.COMPANY_REP)


@pytest.fixture
def member() -> Actor:
    return Actor(id=uuid4(), role=Role.MEMBER)


# =============================================================================
# Applications
# =============================================================================

SAMPLE_FORM = {"companyName": "Acme Ltd", "employees": 42, "sector": "manufacturing"}


@pytest.fixture
def draft_application(workflow_engine, company_rep, directory) -> MembershipApplication:
    return workflow_engine.create_application(
        company_rep, directory.company_id, directory.region_id, SAMPLE_FORM,
    )


@pytest.fixture
def submitted_application(
    workflow_engine, draft_application, company_rep,
) -> MembershipApplication:
    return workflow_engine.apply_transition(
        draft_application.id, TransitionAction.SUBMIT, company_rep,
    )


@pytest.fixture
def application_in_state(
    workflow_engine,
    session_factory,
    deterministic_clock,
    directory,
    company_rep,
    national_secretary,
) -> Callable[[ApplicationState], MembershipApplication]:
    """
    Factory: a new application driven into the requested state.

    Every state except REGION_REVIEW is reached through real transitions.
    No transition enters REGION_REVIEW, so that state is written directly.
    """
    paths: dict[ApplicationState, tuple[TransitionAction, ...]] = {
        ApplicationState.DRAFT: (),
        ApplicationState.SUBMITTED: (TransitionAction.SUBMIT,),
        ApplicationState.REQUESTED_CHANGES: (
            TransitionAction.SUBMIT, TransitionAction.REQUEST_INFO,
        ),
        ApplicationState.NATIONAL_REVIEW: (
            TransitionAction.SUBMIT, TransitionAction.REGION_APPROVE,
        ),
        ApplicationState.APPROVED: (
            TransitionAction.SUBMIT,
            TransitionAction.REGION_APPROVE,
            TransitionAction.NATIONAL_APPROVE,
        ),
        ApplicationState.REJECTED: (TransitionAction.SUBMIT, TransitionAction.REJECT),
    }

    def _make(state: ApplicationState) -> MembershipApplication:
        application = workflow_engine.create_application(
            company_rep, directory.company_id, directory.region_id, SAMPLE_FORM,
        )
        if state is ApplicationState.REGION_REVIEW:
            with session_scope(session_factory) as session:
                model = session.get(MembershipApplicationModel, application.id)
                model.state = ApplicationState.REGION_REVIEW.value
                model.submitted_at = deterministic_clock.now()
            return workflow_engine.get_application(application.id, national_secretary)

        for action in paths[state]:
            deterministic_clock.advance(60)
            actor = company_rep if action is TransitionAction.SUBMIT else national_secretary
            application = workflow_engine.apply_transition(application.id, action, actor)
        assert application.state is state
        return application

    return _make


@pytest.fixture
def count_events(session_factory) -> Callable[[UUID], int]:
    """Number of stored events for an application."""

    def _count(application_id: UUID) -> int:
        with session_scope(session_factory) as session:
            return session.execute(
                select(func.count())
                .select_from(ApplicationEventModel)
                .where(ApplicationEventModel.application_id == application_id)
            ).scalar_one()

    return _count
