"""
BaseService -- abstract base for kernel services that write.

Responsibility:
    Provides the common constructor and session-handling contract for
    services that run inside a caller-owned transaction.  Subclasses
    receive a SQLAlchemy ``Session`` and use ``session.flush()`` --
    never ``session.commit()``.

Invariants enforced:
    Transaction boundaries: services flush within the caller's
    transaction and never commit or rollback themselves.  The
    WorkflowEngine owns commit/rollback through ``session_scope``.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from membership_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for flush-only kernel services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
    """

    def __init__(self, session: Session):
        self.session = session
