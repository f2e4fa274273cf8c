"""
Custom exception handlers for FastAPI.
Provides clear, actionable error messages for validation, persistence and server errors.
"""

import logging
from http import HTTPStatus

from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exception_handlers import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_409_CONFLICT,
    HTTP_422_UNPROCESSABLE_ENTITY,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from receipt_enrichment.core.exceptions import (
    InputError,
    PersistenceConflictError,
    PersistenceUnavailableError,
)
from receipt_enrichment.core.observability import sentry_capture_exception
from receipt_enrichment.utils.helpers import utc_now_iso

logger = logging.getLogger(__name__)


def _error_body(request: Request, status_code: int, error: str, message: str) -> dict:
    return {
        "error": error,
        "message": message,
        "timestamp": utc_now_iso(),
        "path": request.url.path,
        "status": status_code,
    }


def input_error_handler(request: Request, exc: InputError):
    return JSONResponse(
        status_code=HTTP_400_BAD_REQUEST,
        content={
            "error": "Validation failed",
            "message": exc.message,
            "details": [d.as_dict() for d in exc.details],
            "timestamp": utc_now_iso(),
        },
    )


def conflict_exception_handler(request: Request, exc: PersistenceConflictError):
    return JSONResponse(
        status_code=HTTP_409_CONFLICT,
        content=_error_body(request, HTTP_409_CONFLICT, "Duplicate Entry", str(exc)),
    )


def unavailable_exception_handler(request: Request, exc: PersistenceUnavailableError):
    return JSONResponse(
        status_code=HTTP_503_SERVICE_UNAVAILABLE,
        content=_error_body(
            request,
            HTTP_503_SERVICE_UNAVAILABLE,
            "Service Unavailable",
            "The receipt store is temporarily unavailable, please retry later",
        ),
    )


def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # Routes may pass {"error", "message"} as detail to control both fields
    if isinstance(exc.detail, dict):
        error = str(exc.detail.get("error") or HTTPStatus(exc.status_code).phrase)
        message = str(exc.detail.get("message") or error)
    else:
        error = HTTPStatus(exc.status_code).phrase
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.status_code, error, message),
        headers=getattr(exc, "headers", None),
    )


def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "Validation error",
            "details": [
                {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg"), "code": err.get("type")}
                for err in exc.errors()
            ],
            "timestamp": utc_now_iso(),
        },
    )


def generic_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    # Best-effort capture to Sentry if configured
    sentry_capture_exception(exc)
    return JSONResponse(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(request, HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", str(exc)),
    )
