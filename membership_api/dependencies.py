"""
FastAPI dependencies: acting principal and workflow engine.

``get_actor`` reads the principal forwarded by the identity gateway in the
``X-Actor-*`` headers.  Deployments with a different identity provider
override it with ``app.dependency_overrides[get_actor]``.
"""

from typing import Optional
from uuid import UUID

from fastapi import Header, HTTPException, Request

from membership_kernel.domain.application import Actor, Role
from membership_kernel.services.workflow_engine import WorkflowEngine


def get_actor(
    x_actor_id: Optional[str] = Header(default=None),
    x_actor_role: Optional[str] = Header(default=None),
    x_actor_region: Optional[str] = Header(default=None),
) -> Actor:
    """Resolve the authenticated principal, 401 if absent or malformed."""
    if not x_actor_id or not x_actor_role:
        raise HTTPException(status_code=401, detail="Authentication required")
    try:
        actor_id = UUID(x_actor_id)
        role = Role(x_actor_role)
        region_id = UUID(x_actor_region) if x_actor_region else None
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid actor credentials")
    return Actor(id=actor_id, role=role, region_id=region_id)


def get_engine(request: Request) -> WorkflowEngine:
    return request.app.state.workflow_engine
