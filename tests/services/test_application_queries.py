"""
Tests for application creation and the scoped read operations of WorkflowEngine.

Covers:
- create_application: roles, ownership, reference checks, no event on creation
- get_application / list_applications / list_events read scopes
"""

from uuid import uuid4

import pytest

from membership_kernel.domain.application import (
    Actor,
    ApplicationState,
    Role,
    TransitionAction,
)
from membership_kernel.exceptions import (
    ApplicationNotFoundError,
    CompanyNotFoundError,
    ForbiddenActionError,
    InvalidApplicationError,
    RegionNotFoundError,
)

S = ApplicationState


# =========================================================================
# Creation
# =========================================================================


class TestCreateApplication:

    def test_owner_creates_draft(
        self, workflow_engine, company_rep, directory, deterministic_clock, count_events,
    ):
        app = workflow_engine.create_application(
            company_rep, directory.company_id, directory.region_id, {"employees": 12},
        )
        assert app.state is S.DRAFT
        assert app.company_id == directory.company_id
        assert app.region_id == directory.region_id
        assert app.submitted_by_id == company_rep.id
        assert app.form == {"employees": 12}
        assert app.created_at == deterministic_clock.now()
        assert app.version == 1
        assert app.submitted_at is None
        assert app.decided_at is None
        assert app.reason_rejected is None
        assert count_events(app.id) == 0

    def test_admin_creates_for_unowned_company(self, workflow_engine, admin, directory):
        app = workflow_engine.create_application(
            admin, directory.unowned_company_id, directory.region_id, {},
        )
        assert app.state is S.DRAFT

    def test_non_owner_rep_forbidden(self, workflow_engine, other_company_rep, directory):
        with pytest.raises(ForbiddenActionError):
            workflow_engine.create_application(
                other_company_rep, directory.company_id, directory.region_id, {},
            )

    @pytest.mark.parametrize(
        "role", [Role.NATIONAL_SECRETARIAT, Role.REGIONAL_SECRETARIAT, Role.MEMBER]
    )
    def test_other_roles_forbidden(self, workflow_engine, directory, role):
        actor = Actor(id=uuid4(), role=role, region_id=directory.region_id)
        with pytest.raises(ForbiddenActionError):
            workflow_engine.create_application(
                actor, directory.company_id, directory.region_id, {},
            )

    def test_unknown_company(self, workflow_engine, admin, directory):
        with pytest.raises(CompanyNotFoundError):
            workflow_engine.create_application(admin, uuid4(), directory.region_id, {})

    def test_unknown_region(self, workflow_engine, admin, directory):
        with pytest.raises(RegionNotFoundError):
            workflow_engine.create_application(admin, directory.company_id, uuid4(), {})

    def test_form_must_be_mapping(self, workflow_engine, admin, directory):
        with pytest.raises(InvalidApplicationError) as exc_info:
            workflow_engine.create_application(
                admin, directory.company_id, directory.region_id, ["not", "a", "form"],
            )
        assert exc_info.value.field == "form"


# =========================================================================
# Single read
# =========================================================================


class TestGetApplication:

    def test_unknown_id(self, workflow_engine, admin):
        with pytest.raises(ApplicationNotFoundError):
            workflow_engine.get_application(uuid4(), admin)

    def test_scopes(
        self, workflow_engine, draft_application, admin, national_secretary,
        regional_secretary, foreign_regional_secretary, company_rep,
        other_company_rep, member,
    ):
        for actor in (admin, national_secretary, regional_secretary, company_rep):
            assert workflow_engine.get_application(draft_application.id, actor).id == (
                draft_application.id
            )
        for actor in (foreign_regional_secretary, other_company_rep, member):
            with pytest.raises(ForbiddenActionError):
                workflow_engine.get_application(draft_application.id, actor)


# =========================================================================
# Listing
# =========================================================================


class TestListApplications:

    @pytest.fixture
    def spread(self, workflow_engine, admin, directory, deterministic_clock, other_company_rep):
        """Two applications in the north region, one in the south."""
        north_draft = workflow_engine.create_application(
            admin, directory.company_id, directory.region_id, {},
        )
        deterministic_clock.advance(60)
        north_submitted = workflow_engine.create_application(
            admin, directory.company_id, directory.region_id, {},
        )
        workflow_engine.apply_transition(north_submitted.id, TransitionAction.SUBMIT, admin)
        deterministic_clock.advance(60)
        south = workflow_engine.create_application(
            other_company_rep, directory.other_company_id, directory.other_region_id, {},
        )
        return north_draft, north_submitted, south

    def test_national_sees_all_newest_first(self, workflow_engine, national_secretary, spread):
        north_draft, north_submitted, south = spread
        ids = [a.id for a in workflow_engine.list_applications(national_secretary)]
        assert ids == [south.id, north_submitted.id, north_draft.id]

    def test_state_filter(self, workflow_engine, admin, spread):
        _, north_submitted, _ = spread
        result = workflow_engine.list_applications(admin, state=S.SUBMITTED)
        assert [a.id for a in result] == [north_submitted.id]

    def test_region_filter_for_admin(self, workflow_engine, admin, directory, spread):
        _, _, south = spread
        result = workflow_engine.list_applications(admin, region_id=directory.other_region_id)
        assert [a.id for a in result] == [south.id]

    def test_regional_pinned_to_own_region(self, workflow_engine, regional_secretary, spread):
        north_draft, north_submitted, _ = spread
        ids = {a.id for a in workflow_engine.list_applications(regional_secretary)}
        assert ids == {north_draft.id, north_submitted.id}

    def test_regional_cannot_ask_for_other_region(
        self, workflow_engine, regional_secretary, directory, spread,
    ):
        with pytest.raises(ForbiddenActionError):
            workflow_engine.list_applications(
                regional_secretary, region_id=directory.other_region_id,
            )

    def test_unaffiliated_regional_forbidden(self, workflow_engine, spread):
        with pytest.raises(ForbiddenActionError):
            workflow_engine.list_applications(
                Actor(id=uuid4(), role=Role.REGIONAL_SECRETARIAT),
            )

    def test_company_rep_sees_own_companies(
        self, workflow_engine, company_rep, other_company_rep, spread,
    ):
        north_draft, north_submitted, south = spread
        own = {a.id for a in workflow_engine.list_applications(company_rep)}
        assert own == {north_draft.id, north_submitted.id}
        other = [a.id for a in workflow_engine.list_applications(other_company_rep)]
        assert other == [south.id]

    def test_member_forbidden(self, workflow_engine, member):
        with pytest.raises(ForbiddenActionError):
            workflow_engine.list_applications(member)


# =========================================================================
# Event timeline
# =========================================================================


class TestListEvents:

    def test_secretariat_reads_timeline(
        self, workflow_engine, submitted_application, regional_secretary,
    ):
        events = workflow_engine.list_events(submitted_application.id, regional_secretary)
        assert [e.action for e in events] == [TransitionAction.SUBMIT]

    @pytest.mark.parametrize(
        "who", ["foreign_regional_secretary", "company_rep", "member"],
    )
    def test_timeline_scope(self, request, workflow_engine, submitted_application, who):
        actor = request.getfixturevalue(who)
        with pytest.raises(ForbiddenActionError):
            workflow_engine.list_events(submitted_application.id, actor)

    def test_unknown_application(self, workflow_engine, admin):
        with pytest.raises(ApplicationNotFoundError):
            workflow_engine.list_events(uuid4(), admin)
