"""
Membership application API.

Thin HTTP layer over ``WorkflowEngine``: resolves the actor, calls one
engine operation, and renders the result.  All workflow rules live in the
kernel; kernel exceptions are mapped to status codes in ``errors``.
"""

from typing import AsyncContextManager, Callable, Optional
from uuid import UUID, uuid4

from fastapi import Body, Depends, FastAPI, Query, Request

from membership_api.dependencies import get_actor, get_engine
from membership_api.errors import register_error_handlers
from membership_api.schemas import (
    ApplicationListResponse,
    ApplicationResponse,
    CreateApplicationRequest,
    EventListResponse,
    EventResponse,
    RejectRequest,
    RequestInfoRequest,
)
from membership_kernel import __version__
from membership_kernel.domain.application import (
    Actor,
    ApplicationState,
    TransitionAction,
)
from membership_kernel.logging_config import LogContext, get_logger
from membership_kernel.services.workflow_engine import (
    PAYLOAD_NOTE,
    PAYLOAD_REASON_REJECTED,
    WorkflowEngine,
)

logger = get_logger("api")

REQUEST_ID_HEADER = "X-Request-ID"

Lifespan = Callable[[FastAPI], AsyncContextManager[None]]


def create_app(engine: WorkflowEngine, lifespan: Optional[Lifespan] = None) -> FastAPI:
    """Build the API around an already-wired workflow engine.

    ``lifespan`` is handed to FastAPI unchanged; the process entry point
    uses it to own the database engine.
    """
    app = FastAPI(
        title="Membership Application API",
        version=__version__,
        description="Membership application workflow: drafts, review and decisions",
        lifespan=lifespan,
    )
    app.state.workflow_engine = engine
    register_error_handlers(app)

    @app.middleware("http")
    async def bind_request_id(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
        with LogContext.bind(request_id=request_id):
            response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    # ------------------------------------------------------------------
    # Applications
    # ------------------------------------------------------------------

    @app.post("/applications", response_model=ApplicationResponse, status_code=201)
    def create_application(
        req: CreateApplicationRequest,
        actor: Actor = Depends(get_actor),
        wf: WorkflowEngine = Depends(get_engine),
    ):
        application = wf.create_application(actor, req.company_id, req.region_id, req.form)
        return ApplicationResponse.from_domain(application)

    @app.get("/applications", response_model=ApplicationListResponse)
    def list_applications(
        state: Optional[ApplicationState] = None,
        region_id: Optional[UUID] = Query(default=None, alias="regionId"),
        actor: Actor = Depends(get_actor),
        wf: WorkflowEngine = Depends(get_engine),
    ):
        applications = wf.list_applications(actor, state=state, region_id=region_id)
        items = [ApplicationResponse.from_domain(a) for a in applications]
        return ApplicationListResponse(items=items, count=len(items))

    @app.get("/applications/{application_id}", response_model=ApplicationResponse)
    def get_application(
        application_id: str,
        actor: Actor = Depends(get_actor),
        wf: WorkflowEngine = Depends(get_engine),
    ):
        return ApplicationResponse.from_domain(wf.get_application(application_id, actor))

    @app.get("/applications/{application_id}/events", response_model=EventListResponse)
    def list_events(
        application_id: str,
        actor: Actor = Depends(get_actor),
        wf: WorkflowEngine = Depends(get_engine),
    ):
        events = [EventResponse.from_domain(e) for e in wf.list_events(application_id, actor)]
        return EventListResponse(items=events, count=len(events))

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    @app.post("/applications/{application_id}/submit", response_model=ApplicationResponse)
    def submit(
        application_id: str,
        actor: Actor = Depends(get_actor),
        wf: WorkflowEngine = Depends(get_engine),
    ):
        return ApplicationResponse.from_domain(
            wf.apply_transition(application_id, TransitionAction.SUBMIT, actor, {})
        )

    @app.post("/applications/{application_id}/request-info", response_model=ApplicationResponse)
    def request_info(
        application_id: str,
        req: Optional[RequestInfoRequest] = Body(default=None),
        actor: Actor = Depends(get_actor),
        wf: WorkflowEngine = Depends(get_engine),
    ):
        payload = {PAYLOAD_NOTE: req.note} if req is not None and req.note else {}
        return ApplicationResponse.from_domain(
            wf.apply_transition(application_id, TransitionAction.REQUEST_INFO, actor, payload)
        )

    @app.post("/applications/{application_id}/region-approve", response_model=ApplicationResponse)
    def region_approve(
        application_id: str,
        actor: Actor = Depends(get_actor),
        wf: WorkflowEngine = Depends(get_engine),
    ):
        return ApplicationResponse.from_domain(
            wf.apply_transition(application_id, TransitionAction.REGION_APPROVE, actor, {})
        )

    @app.post("/applications/{application_id}/national-approve", response_model=ApplicationResponse)
    def national_approve(
        application_id: str,
        actor: Actor = Depends(get_actor),
        wf: WorkflowEngine = Depends(get_engine),
    ):
        return ApplicationResponse.from_domain(
            wf.apply_transition(application_id, TransitionAction.NATIONAL_APPROVE, actor, {})
        )

    @app.post("/applications/{application_id}/reject", response_model=ApplicationResponse)
    def reject(
        application_id: str,
        req: Optional[RejectRequest] = Body(default=None),
        actor: Actor = Depends(get_actor),
        wf: WorkflowEngine = Depends(get_engine),
    ):
        payload = {PAYLOAD_REASON_REJECTED: req.reason_rejected} if req is not None else {}
        return ApplicationResponse.from_domain(
            wf.apply_transition(application_id, TransitionAction.REJECT, actor, payload)
        )

    logger.info("api_initialized", extra={"version": __version__})
    return app
