"""
membership_kernel.services.workflow_engine -- Application workflow execution.

Responsibility:
    Executes one transition request end to end: load the application,
    authorize the actor, check legality against the transition table,
    then update state and append the event as one atomic unit.  Also
    opens draft applications and serves the scoped read operations.

Architecture position:
    Kernel > Services.  Owns transaction boundaries (``session_scope``)
    over a session factory supplied by the process entry point.  Delegates
    legality to ``domain.transitions``, authorization to
    ``domain.authorization``, history to ``EventLog``, reads to
    ``ApplicationSelector``.

Invariants enforced:
    - Check order: NotFound, then Forbidden, then InvalidTransition.
    - Atomicity: state update and event append commit together or not at
      all.  No event is written for a failed attempt.
    - Write-once timestamps: ``submitted_at`` on the first submit,
      ``decided_at`` on entry to APPROVED/REJECTED; never overwritten.
    - Rejection reason: set only by ``reject``, from ``reason_rejected`` or
      its alias ``reasonRejected``; a missing or blank reason becomes the
      configured placeholder.
    - Event timestamps never go backwards: a clock reading earlier than
      the application's newest timestamp is raised to that timestamp.
    - Per-application serialization: the application's version counter is
      checked by the UPDATE.  A transition that lost a race raises
      ConcurrentTransitionError and writes nothing.  No automatic retry.

Failure modes:
    - ApplicationNotFoundError, ForbiddenActionError, InvalidTransitionError
      (incl. ConcurrentTransitionError, UnknownActionError).
    - CompanyNotFoundError, RegionNotFoundError, InvalidApplicationError on
      creation.
    - StoreFailureError wrapping any other SQLAlchemyError; logged at ERROR
      with application id, action and actor.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from membership_kernel.db.engine import session_scope
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
    CREATOR_ROLES,
    UNSCOPED_ROLES,
    authorize_creation,
    authorize_transition,
    can_view_application,
    can_view_events,
)
from membership_kernel.domain.clock import Clock, SystemClock
from membership_kernel.domain.transitions import is_legal, next_state
from membership_kernel.exceptions import (
    ApplicationNotFoundError,
    CompanyNotFoundError,
    ConcurrentTransitionError,
    ForbiddenActionError,
    InvalidApplicationError,
    InvalidTransitionError,
    RegionNotFoundError,
    StoreFailureError,
    UnknownActionError,
)
from membership_kernel.logging_config import LogContext, get_logger
from membership_kernel.models.application import MembershipApplicationModel
from membership_kernel.selectors.application_selector import ApplicationSelector
from membership_kernel.services.event_log import EventLog

logger = get_logger("services.workflow_engine")

DEFAULT_REJECTION_PLACEHOLDER = "Not specified"

PAYLOAD_NOTE = "note"
PAYLOAD_REASON_REJECTED = "reason_rejected"
# camelCase spelling used by HTTP and JSON callers; folded into reason_rejected
PAYLOAD_REASON_REJECTED_ALIAS = "reasonRejected"

# Outcome codes for the workflow_transition log record
OUTCOME_SUCCESS = "success"
OUTCOME_NOT_FOUND = "not_found"
OUTCOME_FORBIDDEN = "forbidden"
OUTCOME_INVALID_TRANSITION = "invalid_transition"
OUTCOME_CONCURRENT_TRANSITION = "concurrent_transition"
OUTCOME_STORE_FAILURE = "store_failure"

# Pseudo-actions used for read/creation authorization failures
ACTION_CREATE = "create"
ACTION_READ = "read"
ACTION_LIST = "list"
ACTION_READ_EVENTS = "read_events"


@dataclass
class _TransitionTrace:
    """Mutable facts gathered during one attempt, for the outcome record."""

    application_id: str
    action: str
    actor: Actor
    from_state: str | None = None
    to_state: str | None = None


def _as_uuid(value: UUID | str) -> UUID | None:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


def _coerce_action(application_id: str, action: TransitionAction | str) -> TransitionAction:
    if isinstance(action, TransitionAction):
        return action
    try:
        return TransitionAction(action)
    except ValueError:
        raise UnknownActionError(application_id, str(action)) from None


class WorkflowEngine:
    """Executes membership application transitions atomically."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        rejection_placeholder: str = DEFAULT_REJECTION_PLACEHOLDER,
    ) -> None:
        if not rejection_placeholder or not rejection_placeholder.strip():
            raise ValueError("rejection_placeholder must be a non-empty string")
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._rejection_placeholder = rejection_placeholder

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def apply_transition(
        self,
        application_id: UUID | str,
        action: TransitionAction | str,
        actor: Actor,
        payload: Mapping[str, Any] | None = None,
    ) -> MembershipApplication:
        """Apply ``action`` to an application on behalf of ``actor``.

        Args:
            application_id: Target application.
            action: Workflow action (enum member or its string value).
            actor: Authenticated principal.
            payload: Optional data recorded with the event.  ``reason_rejected``
                (or ``reasonRejected``) is used by ``reject``; ``note`` by
                ``request_info``.

        Returns:
            The updated application.

        Raises:
            ApplicationNotFoundError: Unknown application id.
            ForbiddenActionError: Actor may not perform the action here.
            InvalidTransitionError: Action illegal for the current state,
                unknown, or lost a race with a concurrent transition.
            StoreFailureError: The store failed; nothing was written.
        """
        started = time.monotonic()
        trace = _TransitionTrace(
            application_id=str(application_id),
            action=str(getattr(action, "value", action)),
            actor=actor,
        )

        with LogContext.bind(
            actor_id=str(actor.id), application_id=str(application_id),
        ):
            try:
                app_uuid = _as_uuid(application_id)
                if app_uuid is None:
                    raise ApplicationNotFoundError(trace.application_id)
                with session_scope(self._session_factory) as session:
                    updated = self._transition_in_session(
                        session, app_uuid, action, actor, dict(payload or {}), trace,
                    )
            except ApplicationNotFoundError:
                self._emit_outcome(trace, OUTCOME_NOT_FOUND, started)
                raise
            except ForbiddenActionError as exc:
                self._emit_outcome(trace, OUTCOME_FORBIDDEN, started, reason=exc.reason)
                raise
            except InvalidTransitionError as exc:
                self._emit_outcome(trace, OUTCOME_INVALID_TRANSITION, started, reason=str(exc))
                raise
            except StaleDataError as exc:
                conflict = ConcurrentTransitionError(
                    trace.application_id, trace.from_state or "UNKNOWN", trace.action,
                )
                self._emit_outcome(
                    trace, OUTCOME_CONCURRENT_TRANSITION, started, reason=str(conflict),
                )
                raise conflict from exc
            except SQLAlchemyError as exc:
                self._emit_outcome(trace, OUTCOME_STORE_FAILURE, started, reason=str(exc))
                raise self._store_failure(
                    "apply_transition", exc,
                    application_id=trace.application_id,
                    action=trace.action,
                    actor=actor,
                ) from exc

            self._emit_outcome(trace, OUTCOME_SUCCESS, started)
            return updated

    def _transition_in_session(
        self,
        session: Session,
        application_id: UUID,
        requested_action: TransitionAction | str,
        actor: Actor,
        payload: dict[str, Any],
        trace: _TransitionTrace,
    ) -> MembershipApplication:
        model = self._load_application_model(session, application_id)
        action = _coerce_action(str(application_id), requested_action)
        current = ApplicationState(model.state)
        trace.from_state = current.value

        owner_id = ApplicationSelector(session).company_owner(model.company_id)
        decision = authorize_transition(actor, action, model.region_id, owner_id)
        if not decision.allowed:
            raise ForbiddenActionError(
                str(actor.id), actor.role.value, action.value, decision.reason,
            )

        if not is_legal(current, action):
            raise InvalidTransitionError(str(application_id), current.value, action.value)

        now = self._not_before_history(session, model, self._clock.now())
        target = next_state(action)
        metadata = self._event_metadata(action, payload)

        model.state = target.value
        if action is TransitionAction.REJECT:
            model.reason_rejected = metadata[PAYLOAD_REASON_REJECTED]
        if target in DECISION_STATES and model.decided_at is None:
            model.decided_at = now
        if action is TransitionAction.SUBMIT and model.submitted_at is None:
            model.submitted_at = now

        # UPDATE ... WHERE version = :seen; StaleDataError if another commit won
        session.flush()
        trace.to_state = target.value

        EventLog(session).append(
            application_id=model.id,
            action=action,
            actor_id=actor.id,
            metadata=metadata,
            at=now,
            seq=model.version,
        )
        return model.to_dto()

    def _event_metadata(
        self, action: TransitionAction, payload: dict[str, Any],
    ) -> dict[str, Any]:
        metadata = {k: v for k, v in payload.items() if v is not None}
        if action is TransitionAction.REJECT:
            candidates = (
                metadata.pop(PAYLOAD_REASON_REJECTED, None),
                metadata.pop(PAYLOAD_REASON_REJECTED_ALIAS, None),
            )
            reason = next(
                (c.strip() for c in candidates if isinstance(c, str) and c.strip()),
                self._rejection_placeholder,
            )
            metadata[PAYLOAD_REASON_REJECTED] = reason
        return metadata

    def _not_before_history(
        self, session: Session, model: MembershipApplicationModel, now: datetime,
    ) -> datetime:
        """Raise ``now`` to the application's newest recorded timestamp."""
        floor = EventLog(session).last_event_at(model.id) or model.created_at
        return max(now, floor)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_application(
        self,
        actor: Actor,
        company_id: UUID | str,
        region_id: UUID | str,
        form: Mapping[str, Any],
    ) -> MembershipApplication:
        """Open a DRAFT application for a company.

        Creation is not a transition: no event is appended.

        Raises:
            ForbiddenActionError: Role may not create, or a company
                representative does not own the company.
            CompanyNotFoundError / RegionNotFoundError: Unknown reference.
            InvalidApplicationError: ``form`` is not a mapping.
            StoreFailureError: The store failed; nothing was written.
        """
        if actor.role not in CREATOR_ROLES:
            raise ForbiddenActionError(
                str(actor.id), actor.role.value, ACTION_CREATE,
                f"role {actor.role.value} may not create applications",
            )
        if not isinstance(form, Mapping):
            raise InvalidApplicationError("form", "must be a JSON object")
        company_uuid = _as_uuid(company_id)
        if company_uuid is None:
            raise CompanyNotFoundError(str(company_id))
        region_uuid = _as_uuid(region_id)
        if region_uuid is None:
            raise RegionNotFoundError(str(region_id))

        with LogContext.bind(actor_id=str(actor.id)):
            try:
                with session_scope(self._session_factory) as session:
                    selector = ApplicationSelector(session)
                    if not selector.company_exists(company_uuid):
                        raise CompanyNotFoundError(str(company_uuid))
                    if not selector.region_exists(region_uuid):
                        raise RegionNotFoundError(str(region_uuid))

                    decision = authorize_creation(
                        actor, selector.company_owner(company_uuid),
                    )
                    if not decision.allowed:
                        raise ForbiddenActionError(
                            str(actor.id), actor.role.value, ACTION_CREATE,
                            decision.reason,
                        )

                    model = MembershipApplicationModel(
                        company_id=company_uuid,
                        submitted_by_id=actor.id,
                        region_id=region_uuid,
                        state=ApplicationState.DRAFT.value,
                        form=dict(form),
                        created_at=self._clock.now(),
                    )
                    session.add(model)
                    session.flush()
                    created = model.to_dto()
            except SQLAlchemyError as exc:
                raise self._store_failure(
                    "create_application", exc, action=ACTION_CREATE, actor=actor,
                ) from exc

            logger.info(
                "application_created",
                extra={
                    "application_id": str(created.id),
                    "company_id": str(created.company_id),
                    "region_id": str(created.region_id),
                },
            )
            return created

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_application(
        self, application_id: UUID | str, actor: Actor,
    ) -> MembershipApplication:
        """Load one application within the actor's read scope."""
        app_uuid = _as_uuid(application_id)
        if app_uuid is None:
            raise ApplicationNotFoundError(str(application_id))

        try:
            with session_scope(self._session_factory) as session:
                selector = ApplicationSelector(session)
                application = selector.get(app_uuid)
                if application is None:
                    raise ApplicationNotFoundError(str(app_uuid))
                owner_id = selector.company_owner(application.company_id)
        except SQLAlchemyError as exc:
            raise self._store_failure(
                "get_application", exc,
                application_id=str(app_uuid), action=ACTION_READ, actor=actor,
            ) from exc

        if not can_view_application(actor, application.region_id, owner_id):
            raise ForbiddenActionError(
                str(actor.id), actor.role.value, ACTION_READ,
                "application is outside the actor's scope",
            )
        return application

    def list_applications(
        self,
        actor: Actor,
        state: ApplicationState | str | None = None,
        region_id: UUID | str | None = None,
    ) -> list[MembershipApplication]:
        """Applications visible to ``actor``, newest first.

        ADMIN and NATIONAL_SECRETARIAT see everything (optionally filtered by
        region); REGIONAL_SECRETARIAT is pinned to their own region;
        COMPANY_REP sees applications of companies they own.
        """
        state_filter = ApplicationState(state) if state is not None else None
        region_filter = _as_uuid(region_id) if region_id is not None else None
        if region_id is not None and region_filter is None:
            raise RegionNotFoundError(str(region_id))

        owner_filter: UUID | None = None
        if actor.role in UNSCOPED_ROLES:
            pass
        elif actor.role is Role.REGIONAL_SECRETARIAT:
            if actor.region_id is None:
                raise ForbiddenActionError(
                    str(actor.id), actor.role.value, ACTION_LIST,
                    "regional secretariat actor has no region affiliation",
                )
            if region_filter is not None and region_filter != actor.region_id:
                raise ForbiddenActionError(
                    str(actor.id), actor.role.value, ACTION_LIST,
                    "access denied for this region",
                )
            region_filter = actor.region_id
        elif actor.role is Role.COMPANY_REP:
            owner_filter = actor.id
        else:
            raise ForbiddenActionError(
                str(actor.id), actor.role.value, ACTION_LIST,
                f"role {actor.role.value} may not list applications",
            )

        try:
            with session_scope(self._session_factory) as session:
                return ApplicationSelector(session).list_applications(
                    state=state_filter,
                    region_id=region_filter,
                    owner_user_id=owner_filter,
                )
        except SQLAlchemyError as exc:
            raise self._store_failure(
                "list_applications", exc, action=ACTION_LIST, actor=actor,
            ) from exc

    def list_events(
        self, application_id: UUID | str, actor: Actor,
    ) -> list[ApplicationEvent]:
        """The application's transition history, oldest first."""
        app_uuid = _as_uuid(application_id)
        if app_uuid is None:
            raise ApplicationNotFoundError(str(application_id))

        try:
            with session_scope(self._session_factory) as session:
                application = ApplicationSelector(session).get(app_uuid)
                if application is None:
                    raise ApplicationNotFoundError(str(app_uuid))
                if not can_view_events(actor, application.region_id):
                    raise ForbiddenActionError(
                        str(actor.id), actor.role.value, ACTION_READ_EVENTS,
                        "event history is outside the actor's scope",
                    )
                return EventLog(session).list_events(app_uuid)
        except SQLAlchemyError as exc:
            raise self._store_failure(
                "list_events", exc,
                application_id=str(app_uuid), action=ACTION_READ_EVENTS, actor=actor,
            ) from exc

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load_application_model(
        self, session: Session, application_id: UUID,
    ) -> MembershipApplicationModel:
        """Load application model by id, raise if not found."""
        model = session.get(MembershipApplicationModel, application_id)
        if model is None:
            raise ApplicationNotFoundError(str(application_id))
        return model

    def _store_failure(
        self,
        operation: str,
        exc: SQLAlchemyError,
        *,
        action: str,
        actor: Actor,
        application_id: str | None = None,
    ) -> StoreFailureError:
        logger.error(
            "store_failure",
            exc_info=exc,
            extra={
                "operation": operation,
                "application_id": application_id,
                "action": action,
                "actor_id": str(actor.id),
                "actor_role": actor.role.value,
            },
        )
        return StoreFailureError(operation, str(exc))

    def _emit_outcome(
        self,
        trace: _TransitionTrace,
        outcome: str,
        started: float,
        reason: str = "",
    ) -> None:
        """Emit one structured workflow_transition record per attempt."""
        record: dict[str, Any] = {
            "action": trace.action,
            "actor_role": trace.actor.role.value,
            "outcome": outcome,
            "reason": reason,
            "duration_ms": round((time.monotonic() - started) * 1000, 3),
        }
        if trace.from_state is not None:
            record["from_state"] = trace.from_state
        if trace.to_state is not None and outcome == OUTCOME_SUCCESS:
            record["to_state"] = trace.to_state
        logger.info("workflow_transition", extra=record)
