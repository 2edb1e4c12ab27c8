"""
Exception handlers.

Every error leaves the API as ``{"success": false, "message": ..., "error": {...}}``;
unexpected exceptions are logged and reduced to a generic 500.
"""

from typing import Dict, List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from review_dashboard.core.exceptions import (
    BaseAppException,
    ErrorCode,
    RateLimitExceededError,
)
from review_dashboard.core.logging import get_logger
from review_dashboard.core.middleware import get_request_id

logger = get_logger(__name__)


async def app_exception_handler(request: Request, exc: BaseAppException) -> JSONResponse:
    headers = {}
    if isinstance(exc, RateLimitExceededError) and exc.retry_after:
        headers["Retry-After"] = str(exc.retry_after)

    if exc.status_code >= 500:
        logger.error("Request failed", extra={
            'path': request.url.path,
            'request_id': get_request_id(request),
            'error_code': exc.error_code.value,
            'error': exc.message,
        })
    else:
        logger.info("Request rejected", extra={
            'path': request.url.path,
            'error_code': exc.error_code.value,
            'status_code': exc.status_code,
        })

    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers or None)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    field_errors: Dict[str, List[str]] = {}
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        field_errors.setdefault(location or "request", []).append(error.get("msg", "Invalid value"))

    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "message": "Request validation failed",
            "error": {
                "code": ErrorCode.VALIDATION_ERROR.value,
                "details": {"field_errors": field_errors},
            },
        },
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "message": str(exc.detail),
            "error": {"code": ErrorCode.INVALID_REQUEST.value, "details": {}},
        },
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", extra={
        'path': request.url.path,
        'request_id': get_request_id(request),
        'error_type': type(exc).__name__,
    })
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "message": "Internal server error",
            "error": {"code": ErrorCode.INTERNAL_ERROR.value, "details": {}},
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BaseAppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
