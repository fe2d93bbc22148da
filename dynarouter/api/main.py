from __future__ import annotations

import logging
from typing import Iterable, Optional

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from dynarouter.api.middleware.error_shaping import SafeErrorMiddleware, router_error_handler
from dynarouter.api.middleware.request_context import RequestContextMiddleware, SecurityHeadersMiddleware
from dynarouter.core.errors import RouterError
from dynarouter.core.settings import Settings, load_settings


def configure_logging(settings: Settings) -> None:
    logging.getLogger("dynarouter").setLevel(settings.log_level)


def create_app(
    routers: Iterable = (),
    *,
    settings: Optional[Settings] = None,
    title: str = "dynarouter",
) -> FastAPI:
    """
    FastAPI application hosting entity routers behind the standard
    middleware stack, plus `/health` and `/metrics`.
    """
    settings = settings or load_settings()
    configure_logging(settings)

    app = FastAPI(title=title, version="0.1.0")

    # ------------------------------------------------------------
    # Middleware stack (ORDER MATTERS)
    # Starlette reverses add_middleware order: the LAST call = OUTERMOST wrapper.
    # Runtime order (outermost -> innermost):
    #   SafeErrorMiddleware -> CORSMiddleware -> SecurityHeaders -> RequestContext -> routes
    # ------------------------------------------------------------
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(SecurityHeadersMiddleware, enabled=settings.security_headers_enabled)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SafeErrorMiddleware)

    app.add_exception_handler(RouterError, router_error_handler)

    for router in routers:
        app.include_router(router)

    @app.get("/health")
    def health_check():
        return {"status": "healthy"}

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app
