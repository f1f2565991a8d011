"""
Module: membership_kernel.models.directory
Responsibility: Reference tables for regions and companies.

The kernel reads these rows to validate references and company ownership;
it never writes them.  Region and company maintenance belong to the
directory component.
"""

from uuid import UUID

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from membership_kernel.db.base import Base, UUIDString


class RegionModel(Base):
    """An association region."""

    __tablename__ = "regions"

    name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)

    def __repr__(self) -> str:
        return f"<Region {self.id} {self.name}>"


class CompanyModel(Base):
    """A member or prospective member company.

    ``owner_user_id`` is the company representative who may open and
    submit applications on the company's behalf.
    """

    __tablename__ = "companies"

    name: Mapped[str] = mapped_column(String(300), nullable=False)
    owner_user_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    def __repr__(self) -> str:
        return f"<Company {self.id} {self.name}>"
