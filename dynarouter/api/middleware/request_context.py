from __future__ import annotations

import logging
import time
import uuid
from typing import Any, Callable, Dict

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from dynarouter.api.observability.metrics import (
    HTTP_REQUESTS_TOTAL,
    HTTP_REQUEST_DURATION_SECONDS,
    route_operation,
    route_path,
)

log = logging.getLogger("dynarouter.request")

REQUEST_ID_HEADER = "X-Request-Id"

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cache-Control": "no-store",
}


def _subject(request: Request) -> Any:
    claims = getattr(request.state, "user", None)
    if isinstance(claims, dict):
        return claims.get("sub")
    return None


def _access_record(request: Request, response: Response, rid: str, elapsed: float) -> Dict[str, Any]:
    # Only the subject is taken from the claims; tokens never reach the log.
    return {
        "event": "request",
        "request_id": rid,
        "method": request.method,
        "path": request.url.path,
        "route": route_path(request),
        "operation": route_operation(request),
        "status_code": response.status_code,
        "duration_ms": int(elapsed * 1000),
        "sub": _subject(request),
    }


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with an id (client-supplied `X-Request-Id` or a fresh
    uuid4), echoes it on the response, records the HTTP metrics under the
    matched route template and writes one access-log line.

    Sets `request.state.request_id` for the error handlers.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = rid

        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started
        response.headers[REQUEST_ID_HEADER] = rid

        path = route_path(request)
        HTTP_REQUESTS_TOTAL.labels(method=request.method, path=path, status=str(response.status_code)).inc()
        HTTP_REQUEST_DURATION_SECONDS.labels(method=request.method, path=path).observe(elapsed)

        log.info("%s", _access_record(request, response, rid, elapsed))
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Hardening headers for JSON APIs; on by default in prod."""

    def __init__(self, app, enabled: bool = True):
        super().__init__(app)
        self.enabled = enabled

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        if self.enabled:
            for name, value in SECURITY_HEADERS.items():
                response.headers.setdefault(name, value)
        return response
