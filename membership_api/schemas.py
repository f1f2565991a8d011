"""
Request and response models for the membership API.

Wire format is camelCase JSON; models accept snake_case names as well.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from membership_kernel.domain.application import (
    ApplicationEvent,
    ApplicationState,
    MembershipApplication,
    TransitionAction,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class CreateApplicationRequest(CamelModel):
    company_id: UUID
    region_id: UUID
    form: Dict[str, Any] = Field(default_factory=dict)


class RequestInfoRequest(CamelModel):
    note: Optional[str] = None


class RejectRequest(CamelModel):
    reason_rejected: Optional[str] = None

    @field_validator('reason_rejected')
    @classmethod
    def strip_reason(cls, v):
        if v is None:
            return v
        return v.strip() or None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class ApplicationResponse(CamelModel):
    id: UUID
    company_id: UUID
    submitted_by_id: UUID
    region_id: UUID
    state: ApplicationState
    form: Dict[str, Any]
    reason_rejected: Optional[str] = None
    submitted_at: Optional[datetime] = None
    decided_at: Optional[datetime] = None
    created_at: datetime
    version: int

    @classmethod
    def from_domain(cls, application: MembershipApplication) -> "ApplicationResponse":
        return cls(
            id=application.id,
            company_id=application.company_id,
            submitted_by_id=application.submitted_by_id,
            region_id=application.region_id,
            state=application.state,
            form=application.form,
            reason_rejected=application.reason_rejected,
            submitted_at=application.submitted_at,
            decided_at=application.decided_at,
            created_at=application.created_at,
            version=application.version,
        )


class ApplicationListResponse(CamelModel):
    items: List[ApplicationResponse]
    count: int


class EventResponse(CamelModel):
    id: UUID
    application_id: UUID
    seq: int
    action: TransitionAction
    actor_id: UUID
    at: datetime
    meta: Dict[str, Any]

    @classmethod
    def from_domain(cls, event: ApplicationEvent) -> "EventResponse":
        return cls(
            id=event.id,
            application_id=event.application_id,
            seq=event.seq,
            action=event.action,
            actor_id=event.actor_id,
            at=event.at,
            meta=event.meta,
        )


class EventListResponse(CamelModel):
    items: List[EventResponse]
    count: int
