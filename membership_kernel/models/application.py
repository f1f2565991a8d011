"""
Module: membership_kernel.models.application
Responsibility: ORM persistence for membership applications.

Architecture position: Kernel > Models.  May import from db/base.py and
    the exception hierarchy only.

Invariants enforced:
    - State values: DB check constraint limits ``state`` to the seven
      lifecycle states.
    - Rejection reason: check constraint -- present iff state is REJECTED.
    - Decision timestamp: check constraint -- present iff state is APPROVED
      or REJECTED.
    - Optimistic concurrency: ``version`` is the mapper's version_id_col.
      Every UPDATE is issued as ``WHERE id = :id AND version = :seen`` and
      increments the counter; a concurrent commit makes the flush raise
      StaleDataError.
    - Retention: applications are never deleted (ORM listener).

Failure modes:
    - IntegrityError on a check constraint violation.
    - sqlalchemy.orm.exc.StaleDataError when another transaction changed
      the row after it was loaded.
    - ImmutabilityViolationError on DELETE.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import (
    JSON,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column

from membership_kernel.db.base import Base, UUIDString
from membership_kernel.exceptions import ImmutabilityViolationError

if TYPE_CHECKING:
    from membership_kernel.domain.application import MembershipApplication


class MembershipApplicationModel(Base):
    """Persistent membership application.

    Contract:
        Mutated only by the WorkflowEngine's transition unit.  ``form`` is
        carried, never interpreted.

    Guarantees:
        - ``version`` starts at 1 and increases by one per committed update.
        - ``created_at`` is written once at INSERT.
    """

    __tablename__ = "membership_applications"

    __table_args__ = (
        CheckConstraint(
            "state IN ('DRAFT', 'SUBMITTED', 'REGION_REVIEW', "
            "'REQUESTED_CHANGES', 'NATIONAL_REVIEW', 'APPROVED', 'REJECTED')",
            name="ck_membership_applications_valid_state",
        ),
        CheckConstraint(
            "(state = 'REJECTED' AND reason_rejected IS NOT NULL) OR "
            "(state <> 'REJECTED' AND reason_rejected IS NULL)",
            name="ck_membership_applications_reason_iff_rejected",
        ),
        CheckConstraint(
            "(state IN ('APPROVED', 'REJECTED') AND decided_at IS NOT NULL) OR "
            "(state NOT IN ('APPROVED', 'REJECTED') AND decided_at IS NULL)",
            name="ck_membership_applications_decided_iff_terminal",
        ),
        Index("ix_membership_applications_region_state", "region_id", "state"),
        Index("ix_membership_applications_company", "company_id"),
        Index("ix_membership_applications_created", "created_at"),
    )

    company_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("companies.id"), nullable=False,
    )
    submitted_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    region_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("regions.id"), nullable=False,
    )
    state: Mapped[str] = mapped_column(String(30), nullable=False, default="DRAFT")
    reason_rejected: Mapped[str | None] = mapped_column(Text, nullable=True)
    form: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    submitted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    decided_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return (
            f"<MembershipApplication {self.id} "
            f"state={self.state} version={self.version}>"
        )

    def to_dto(self) -> MembershipApplication:
        """Convert ORM model to frozen domain DTO."""
        from membership_kernel.domain.application import (
            ApplicationState,
            MembershipApplication as MembershipApplicationDTO,
        )

        return MembershipApplicationDTO(
            id=self.id,
            company_id=self.company_id,
            submitted_by_id=self.submitted_by_id,
            region_id=self.region_id,
            state=ApplicationState(self.state),
            form=dict(self.form or {}),
            created_at=self.created_at,
            version=self.version,
            reason_rejected=self.reason_rejected,
            submitted_at=self.submitted_at,
            decided_at=self.decided_at,
        )


@event.listens_for(MembershipApplicationModel, "before_delete")
def prevent_application_delete(mapper, connection, target):
    """Applications are retained for audit and never deleted."""
    raise ImmutabilityViolationError(
        entity_type="MembershipApplication",
        entity_id=str(target.id),
        reason="Applications are retained for audit -- cannot delete",
    )
