"""
membership_kernel.domain.authorization -- Role and region gating.

Responsibility:
    Decide whether an actor may perform a workflow action on an
    application, and whether an actor may read an application or its
    event timeline.  Pure predicates over (role, region affiliation,
    action, application region, company owner); no HTTP, no database.

Architecture position:
    Kernel domain layer.  Called by the WorkflowEngine before the
    legality check, and by the engine's read operations.

Invariants:
    - The kernel does not resolve identity; the caller supplies the Actor.
    - REGIONAL_SECRETARIAT is always scoped to its own region.  A regional
      secretary with no region affiliation is denied every scoped action.
    - ADMIN and NATIONAL_SECRETARIAT are never region-scoped.
    - COMPANY_REP acts only on applications of companies they own.
"""

from __future__ import annotations

from typing import NamedTuple
from uuid import UUID

from membership_kernel.domain.application import Actor, Role, TransitionAction

# action -> roles that may perform it (region/ownership checks applied after)
ACTION_ROLES: dict[TransitionAction, frozenset[Role]] = {
    TransitionAction.SUBMIT: frozenset({Role.ADMIN, Role.COMPANY_REP}),
    TransitionAction.REQUEST_INFO: frozenset({
        Role.ADMIN, Role.NATIONAL_SECRETARIAT, Role.REGIONAL_SECRETARIAT,
    }),
    TransitionAction.REGION_APPROVE: frozenset({
        Role.ADMIN, Role.NATIONAL_SECRETARIAT, Role.REGIONAL_SECRETARIAT,
    }),
    TransitionAction.REJECT: frozenset({
        Role.ADMIN, Role.NATIONAL_SECRETARIAT, Role.REGIONAL_SECRETARIAT,
    }),
    TransitionAction.NATIONAL_APPROVE: frozenset({
        Role.ADMIN, Role.NATIONAL_SECRETARIAT,
    }),
}

UNSCOPED_ROLES: frozenset[Role] = frozenset({Role.ADMIN, Role.NATIONAL_SECRETARIAT})

CREATOR_ROLES: frozenset[Role] = frozenset({Role.ADMIN, Role.COMPANY_REP})


class AuthorizationDecision(NamedTuple):
    """Outcome of an authorization check.  ``reason`` is empty when allowed."""

    allowed: bool
    reason: str = ""


ALLOW = AuthorizationDecision(True)


def _deny(reason: str) -> AuthorizationDecision:
    return AuthorizationDecision(False, reason)


def _in_region(actor: Actor, application_region_id: UUID) -> bool:
    return actor.region_id is not None and actor.region_id == application_region_id


def authorize_transition(
    actor: Actor,
    action: TransitionAction,
    application_region_id: UUID,
    company_owner_id: UUID | None,
) -> AuthorizationDecision:
    """Check whether ``actor`` may perform ``action`` on an application.

    Args:
        actor: The acting principal.
        action: Requested workflow action.
        application_region_id: Region the application belongs to.
        company_owner_id: Owner user id of the application's company
            (None when the company has no owner on record).

    Returns:
        AuthorizationDecision; ``allowed`` is False with a short reason
        when the actor's role, region or ownership does not permit it.
    """
    allowed_roles = ACTION_ROLES.get(action, frozenset())
    if actor.role not in allowed_roles:
        return _deny(f"role {actor.role.value} may not {action.value}")

    if actor.role is Role.COMPANY_REP:
        if company_owner_id is None or company_owner_id != actor.id:
            return _deny("company representative does not own the company")
        return ALLOW

    if actor.role is Role.REGIONAL_SECRETARIAT:
        if actor.region_id is None:
            return _deny("regional secretariat actor has no region affiliation")
        if not _in_region(actor, application_region_id):
            return _deny("application belongs to another region")

    return ALLOW


def authorize_creation(
    actor: Actor,
    company_owner_id: UUID | None,
) -> AuthorizationDecision:
    """Check whether ``actor`` may open a draft application for a company."""
    if actor.role not in CREATOR_ROLES:
        return _deny(f"role {actor.role.value} may not create applications")
    if actor.role is Role.COMPANY_REP and (
        company_owner_id is None or company_owner_id != actor.id
    ):
        return _deny("company representative does not own the company")
    return ALLOW


def can_view_application(
    actor: Actor,
    application_region_id: UUID,
    company_owner_id: UUID | None,
) -> bool:
    """Read scope for a single application."""
    if actor.role in UNSCOPED_ROLES:
        return True
    if actor.role is Role.REGIONAL_SECRETARIAT:
        return _in_region(actor, application_region_id)
    if actor.role is Role.COMPANY_REP:
        return company_owner_id is not None and company_owner_id == actor.id
    return False


def can_view_events(actor: Actor, application_region_id: UUID) -> bool:
    """Read scope for an application's event timeline (secretariat view)."""
    if actor.role in UNSCOPED_ROLES:
        return True
    if actor.role is Role.REGIONAL_SECRETARIAT:
        return _in_region(actor, application_region_id)
    return False
