"""
Typed Exception Hierarchy for the Membership Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (the HTTP boundary, batch tools, tests) must react to workflow
failures by TYPE, never by parsing message strings:

  1. Every error has a typed exception class (catch by type, not message)
  2. Every exception has a ``code`` class attribute (machine-readable, API-safe)
  3. Exceptions carry structured data as attributes

Example - WRONG way to handle errors:
    try:
        engine.apply_transition(app_id, "reject", actor)
    except Exception as e:
        if "Invalid transition" in str(e):
            ...

Example - RIGHT way:
    try:
        engine.apply_transition(app_id, "reject", actor)
    except InvalidTransitionError as e:
        return {"code": e.code, "current_state": e.current_state}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    MembershipKernelError (base)
    |
    +-- ApplicationError
    |   +-- ApplicationNotFoundError
    |   +-- InvalidApplicationError
    |
    +-- TransitionError
    |   +-- InvalidTransitionError
    |       +-- ConcurrentTransitionError
    |       +-- UnknownActionError
    |
    +-- AuthorizationError
    |   +-- ForbiddenActionError
    |
    +-- DirectoryError
    |   +-- CompanyNotFoundError
    |   +-- RegionNotFoundError
    |
    +-- StoreError
    |   +-- StoreFailureError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                    | When Raised
--------------|-------------------------|------------------------------------------
Application   | APPLICATION_NOT_FOUND   | Application id doesn't exist
              | INVALID_APPLICATION     | Creation input is malformed
--------------|-------------------------|------------------------------------------
Transition    | INVALID_TRANSITION      | Action not legal for current state
              | CONCURRENT_TRANSITION   | Row changed between check and commit
              | UNKNOWN_ACTION          | Action name is not a workflow action
--------------|-------------------------|------------------------------------------
Authorization | FORBIDDEN_ACTION        | Role/region/ownership check denied
--------------|-------------------------|------------------------------------------
Directory     | COMPANY_NOT_FOUND       | Referenced company doesn't exist
              | REGION_NOT_FOUND        | Referenced region doesn't exist
--------------|-------------------------|------------------------------------------
Store         | STORE_FAILURE           | Database unavailable or write failed
--------------|-------------------------|------------------------------------------
Immutability  | IMMUTABILITY_VIOLATION  | UPDATE/DELETE of an application event

===============================================================================
HANDLING PATTERNS
===============================================================================

1. InvalidTransitionError covers races lost at commit time.  Catching the
   base class handles both; catch ConcurrentTransitionError first when the
   caller wants to reload and retry.

2. Only StoreFailureError signals an unexpected condition.  The engine logs
   it with full context before raising; callers should not log it again.

3. No exception is ever raised after a partial write: the engine's atomic
   unit rolls back before any of these propagate.
"""


class MembershipKernelError(Exception):
    """
    Base exception for all membership kernel errors.

    All subclasses must have a ``code`` class attribute for
    machine-readable error identification.
    """

    code: str = "MEMBERSHIP_KERNEL_ERROR"


# Application-related exceptions


class ApplicationError(MembershipKernelError):
    """Base exception for application-related errors."""

    code: str = "APPLICATION_ERROR"


class ApplicationNotFoundError(ApplicationError):
    """Membership application with given ID was not found."""

    code: str = "APPLICATION_NOT_FOUND"

    def __init__(self, application_id: str):
        self.application_id = application_id
        super().__init__(f"Application not found: {application_id}")


class InvalidApplicationError(ApplicationError):
    """Application creation input failed validation."""

    code: str = "INVALID_APPLICATION"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid application field '{field}': {reason}")


# Transition-related exceptions


class TransitionError(MembershipKernelError):
    """Base exception for workflow transition errors."""

    code: str = "TRANSITION_ERROR"


class InvalidTransitionError(TransitionError):
    """
    Action is not legal for the application's current state.

    Carries the state that was observed and the attempted action so the
    caller can report a diagnostic without re-reading the application.
    """

    code: str = "INVALID_TRANSITION"

    def __init__(
        self,
        application_id: str,
        current_state: str,
        action: str,
        message: str | None = None,
    ):
        self.application_id = application_id
        self.current_state = current_state
        self.action = action
        super().__init__(
            message
            or f"Invalid transition: cannot '{action}' application "
            f"{application_id} in state {current_state}"
        )


class ConcurrentTransitionError(InvalidTransitionError):
    """
    Another transition committed between the legality check and the write.

    ``current_state`` is the state observed at legality-check time; the
    application has since moved on.  The losing attempt wrote nothing.
    """

    code: str = "CONCURRENT_TRANSITION"

    def __init__(self, application_id: str, observed_state: str, action: str):
        super().__init__(
            application_id,
            observed_state,
            action,
            message=(
                f"Concurrent transition on application {application_id}: "
                f"state changed from {observed_state} before '{action}' "
                "could commit"
            ),
        )


class UnknownActionError(InvalidTransitionError):
    """Action name is not one of the workflow's actions."""

    code: str = "UNKNOWN_ACTION"

    def __init__(self, application_id: str, action: str):
        super().__init__(
            application_id,
            "UNKNOWN",
            action,
            message=f"Unknown workflow action: {action!r}",
        )


# Authorization-related exceptions


class AuthorizationError(MembershipKernelError):
    """Base exception for authorization errors."""

    code: str = "AUTHORIZATION_ERROR"


class ForbiddenActionError(AuthorizationError):
    """Actor's role, region, or company ownership does not permit the action."""

    code: str = "FORBIDDEN_ACTION"

    def __init__(self, actor_id: str, role: str, action: str, reason: str):
        self.actor_id = actor_id
        self.role = role
        self.action = action
        self.reason = reason
        super().__init__(
            f"Actor {actor_id} ({role}) may not perform '{action}': {reason}"
        )


# Directory (reference data) exceptions


class DirectoryError(MembershipKernelError):
    """Base exception for company/region reference errors."""

    code: str = "DIRECTORY_ERROR"


class CompanyNotFoundError(DirectoryError):
    """Referenced company does not exist."""

    code: str = "COMPANY_NOT_FOUND"

    def __init__(self, company_id: str):
        self.company_id = company_id
        super().__init__(f"Company not found: {company_id}")


class RegionNotFoundError(DirectoryError):
    """Referenced region does not exist."""

    code: str = "REGION_NOT_FOUND"

    def __init__(self, region_id: str):
        self.region_id = region_id
        super().__init__(f"Region not found: {region_id}")


# Store-related exceptions


class StoreError(MembershipKernelError):
    """Base exception for persistence errors."""

    code: str = "STORE_ERROR"


class StoreFailureError(StoreError):
    """
    The transactional store was unavailable or a write failed.

    The underlying driver exception is chained as ``__cause__``.
    """

    code: str = "STORE_FAILURE"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Store failure during {operation}: {detail}")


# Immutability-related exceptions


class ImmutabilityError(MembershipKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
