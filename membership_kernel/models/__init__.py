"""ORM models for the membership kernel."""

from membership_kernel.models.application import MembershipApplicationModel
from membership_kernel.models.application_event import ApplicationEventModel
from membership_kernel.models.directory import CompanyModel, RegionModel

__all__ = [
    "ApplicationEventModel",
    "CompanyModel",
    "MembershipApplicationModel",
    "RegionModel",
]
