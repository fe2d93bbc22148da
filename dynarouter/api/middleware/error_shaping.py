from __future__ import annotations

import logging
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from dynarouter.api.middleware.request_context import REQUEST_ID_HEADER
from dynarouter.core.errors import InternalServerError, RouterError

log = logging.getLogger("dynarouter.errors")


def router_error_response(request: Request, exc: RouterError) -> JSONResponse:
    """
    Render a pipeline error as the failure envelope.

    `exc.extra` holds the cause and stays server-side.
    """
    rid = getattr(request.state, "request_id", None)
    if exc.status >= 500:
        log.error(
            "%s: %s rid=%s path=%s cause=%r",
            exc.name,
            exc.message,
            rid,
            request.url.path,
            exc.extra,
        )
    else:
        log.info("%s rid=%s path=%s status=%s", exc.name, rid, request.url.path, exc.status)
    headers = {"WWW-Authenticate": "Bearer"} if exc.status == 401 else None
    return JSONResponse(
        status_code=exc.status,
        content={"success": False, "error": exc.to_dict()},
        headers=headers,
    )


async def router_error_handler(request: Request, exc: RouterError) -> JSONResponse:
    return router_error_response(request, exc)


class SafeErrorMiddleware(BaseHTTPMiddleware):
    """
    Last line of defence for exceptions outside the RouterError taxonomy,
    typically a user hook that raised. The client gets the same failure
    envelope as any other 500 and the request id; the traceback only goes
    to the `dynarouter.errors` log.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception:
            rid = getattr(request.state, "request_id", None) or request.headers.get(REQUEST_ID_HEADER)
            log.exception("unhandled error rid=%s method=%s path=%s", rid, request.method, request.url.path)
            content = {"success": False, "error": InternalServerError().to_dict()}
            headers = None
            if rid:
                content["request_id"] = rid
                headers = {REQUEST_ID_HEADER: rid}
            return JSONResponse(status_code=500, content=content, headers=headers)
