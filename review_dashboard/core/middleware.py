"""
Core middleware registration for the FastAPI application.

Request ids, timing logs, security headers and path-scoped CORS.
"""

from __future__ import annotations

import time
import uuid
from typing import Callable, Sequence

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send

from review_dashboard.core.logging import get_logger, request_id as request_id_var

logger = get_logger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Adds a unique request ID to each request.

    The id is taken from the incoming header when an upstream proxy set one,
    stored on ``request.state``, bound to the logging context and echoed in
    the response headers.
    """

    def __init__(self, app: ASGIApp, header_name: str = "X-Request-ID"):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(self.header_name) or str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers[self.header_name] = request_id
        return response


class TimingMiddleware(BaseHTTPMiddleware):
    """Adds X-Process-Time and logs every completed request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        response = await call_next(request)
        process_time = time.perf_counter() - start_time

        response.headers["X-Process-Time"] = f"{process_time:.4f}"

        log = logger.warning if response.status_code >= 500 else logger.info
        log(
            "Request completed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "process_time": round(process_time, 4),
                "client_host": request.client.host if request.client else None,
            }
        )
        return response


class ScopedCORSMiddleware(CORSMiddleware):
    """
    CORSMiddleware that leaves some path prefixes alone.

    Exempt paths (the public review widget endpoints) answer their own
    preflights and send ``Access-Control-Allow-Origin: *`` from the route,
    so the dashboard origin allow-list never rejects a third-party site.
    """

    def __init__(self, app: ASGIApp, exempt_prefixes: Sequence[str] = (), **kwargs):
        super().__init__(app, **kwargs)
        self.exempt_prefixes = tuple(exempt_prefixes)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and self.exempt_prefixes and scope["path"].startswith(self.exempt_prefixes):
            await self.app(scope, receive, send)
            return
        await super().__call__(scope, receive, send)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds common security headers to all responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


def register_middlewares(app: FastAPI, include_security: bool = True) -> None:
    """
    Register core middlewares.

    Starlette runs the last-added middleware first, so RequestIDMiddleware
    is added last to bind the request id before timing logs are written.
    """
    if include_security:
        app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(TimingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    logger.debug("Core middlewares registered", extra={"security_headers": include_security})


def get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")
