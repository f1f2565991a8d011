"""
Mapping of errors onto HTTP responses.

Every error body has the same envelope: ``{"success": false, "code": ...,
"message": ...}`` plus detail fields.  Kernel exceptions choose their status
by ``code``; framework errors (401 from actor resolution, unknown routes,
request schema violations) get a code derived from the status.
"""

from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from membership_kernel.exceptions import MembershipKernelError, StoreFailureError

STATUS_BY_CODE: Dict[str, int] = {
    "APPLICATION_NOT_FOUND": 404,
    "COMPANY_NOT_FOUND": 404,
    "REGION_NOT_FOUND": 404,
    "FORBIDDEN_ACTION": 403,
    "INVALID_TRANSITION": 409,
    "CONCURRENT_TRANSITION": 409,
    "UNKNOWN_ACTION": 409,
    "INVALID_APPLICATION": 400,
    "STORE_FAILURE": 503,
}

CODE_BY_HTTP_STATUS: Dict[int, str] = {
    401: "UNAUTHENTICATED",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}

INVALID_REQUEST = "INVALID_REQUEST"


def envelope(code: str, message: str, **detail: Any) -> Dict[str, Any]:
    return {"success": False, "code": code, "message": message, **detail}


def error_body(exc: MembershipKernelError) -> Dict[str, Any]:
    if isinstance(exc, StoreFailureError):
        # driver detail stays in the server log
        return envelope(exc.code, "Application store unavailable", operation=exc.operation)
    body = envelope(exc.code, str(exc))
    for key, value in vars(exc).items():
        if not key.startswith("_") and key not in body:
            body[key] = value
    return body


async def kernel_error_handler(request: Request, exc: MembershipKernelError) -> JSONResponse:
    status = STATUS_BY_CODE.get(exc.code, 500)
    return JSONResponse(status_code=status, content=error_body(exc))


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = CODE_BY_HTTP_STATUS.get(exc.status_code, "HTTP_ERROR")
    return JSONResponse(
        status_code=exc.status_code,
        content=envelope(code, str(exc.detail)),
        headers=exc.headers,
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content=envelope(
            INVALID_REQUEST, "Request failed validation",
            errors=jsonable_encoder(exc.errors()),
        ),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MembershipKernelError, kernel_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
