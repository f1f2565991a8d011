"""
ApplicationSelector -- read-side queries for membership applications.

Responsibility:
    Loads application snapshots, company ownership, and filtered
    application lists for the engine's read operations.  Scoping by
    actor is decided by the caller; this selector only applies the
    filters it is given.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from membership_kernel.domain.application import (
    ApplicationState,
    MembershipApplication,
)
from membership_kernel.models.application import MembershipApplicationModel
from membership_kernel.models.directory import CompanyModel, RegionModel
from membership_kernel.selectors.base import BaseSelector


class ApplicationSelector(BaseSelector[MembershipApplicationModel]):
    """Read-only access to applications and their reference data."""

    def get(self, application_id: UUID) -> MembershipApplication | None:
        model = self.session.get(MembershipApplicationModel, application_id)
        return model.to_dto() if model is not None else None

    def company_exists(self, company_id: UUID) -> bool:
        return self.session.get(CompanyModel, company_id) is not None

    def region_exists(self, region_id: UUID) -> bool:
        return self.session.get(RegionModel, region_id) is not None

    def company_owner(self, company_id: UUID) -> UUID | None:
        """Owner user id of ``company_id`` (None if unowned or missing)."""
        return self.session.execute(
            select(CompanyModel.owner_user_id).where(CompanyModel.id == company_id)
        ).scalar_one_or_none()

    def list_applications(
        self,
        state: ApplicationState | None = None,
        region_id: UUID | None = None,
        owner_user_id: UUID | None = None,
    ) -> list[MembershipApplication]:
        """Applications matching every given filter, newest first.

        Args:
            state: Only applications currently in this state.
            region_id: Only applications of this region.
            owner_user_id: Only applications of companies owned by this user.
        """
        stmt = select(MembershipApplicationModel)
        if state is not None:
            stmt = stmt.where(MembershipApplicationModel.state == state.value)
        if region_id is not None:
            stmt = stmt.where(MembershipApplicationModel.region_id == region_id)
        if owner_user_id is not None:
            stmt = stmt.join(
                CompanyModel, CompanyModel.id == MembershipApplicationModel.company_id
            ).where(CompanyModel.owner_user_id == owner_user_id)
        stmt = stmt.order_by(
            MembershipApplicationModel.created_at.desc(),
            MembershipApplicationModel.id,
        )
        return [m.to_dto() for m in self.session.execute(stmt).scalars().all()]
