from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple

from fastapi import APIRouter, Request

from dynarouter.api.handlers import (
    handle_create,
    handle_delete,
    handle_get,
    handle_patch,
    handle_query,
    handle_replace,
)
from dynarouter.api.handlers.common import Pipeline, gate_pre
from dynarouter.api.middleware.auth import BearerGate
from dynarouter.api.middleware.error_shaping import router_error_response
from dynarouter.core.context import RequestContext, query_from_items
from dynarouter.core.errors import BadRequestError, ConfigurationError, RouterError
from dynarouter.core.options import merge_options, parse_globals, parse_operation
from dynarouter.core.schema import resolve_keys
from dynarouter.core.store.base import EntityStore

log = logging.getLogger("dynarouter.engine")

Handler = Callable[[Pipeline, RequestContext], Awaitable[Dict[str, Any]]]


@dataclass(frozen=True)
class RouteSpec:
    handler: Handler
    method: str
    detail: bool = False
    status_code: int = 200


# Registration order: detail GET before the collection GET.
ROUTES: Dict[str, RouteSpec] = {
    "get": RouteSpec(handle_get, "GET", detail=True),
    "query": RouteSpec(handle_query, "GET"),
    "del": RouteSpec(handle_delete, "DELETE", detail=True),
    "post": RouteSpec(handle_create, "POST", status_code=201),
    "put": RouteSpec(handle_replace, "PUT", detail=True, status_code=201),
    "patch": RouteSpec(handle_patch, "PATCH", detail=True),
}


async def build_context(request: Request) -> RequestContext:
    body = None
    if request.method in ("POST", "PUT", "PATCH"):
        raw = await request.body()
        if raw:
            try:
                body = json.loads(raw)
            except ValueError as e:
                raise BadRequestError("Malformed JSON body", e) from e
    return RequestContext(
        params=dict(request.path_params),
        query=query_from_items(request.query_params),
        body=body,
        request=request,
    )


def detail_path(p: Pipeline) -> str:
    path = "" if p.opts.hash_key is not None else "/{" + p.hash_param + "}"
    if p.keys.range_key:
        path += "/{" + p.range_param + "}"
    return path


def make_endpoint(p: Pipeline, spec: RouteSpec):
    """
    Request state machine: authenticate, authorize, then hand over to the
    operation handler. Pipeline errors render as the failure envelope.
    """
    gate = BearerGate(p.opts.auth, p.operation)

    async def endpoint(request: Request):
        try:
            ctx = await build_context(request)
            ctx.state.claims = gate.authenticate(request)
            await gate_pre(p, ctx)
            return await spec.handler(p, ctx)
        except RouterError as e:
            return router_error_response(request, e)

    endpoint.__name__ = f"{p.name}_{p.operation}"
    return endpoint


def create_router(
    store: EntityStore,
    options: Mapping[str, Any],
    *,
    prefix: Optional[str] = None,
) -> APIRouter:
    """
    Build one router for the store's entity.

    `options` maps operation names (`get`, `query`, `del`, `post`, `put`,
    `patch`) to their options; `globals` holds defaults for all of them.
    Operations that are absent, None or False get no route; `True` or `{}`
    enables one with defaults.

    Raises ConfigurationError when two operations resolve to the same method
    and path, e.g. a `get` whose `hashKey` option removes every path segment
    next to an enabled `query`.
    """
    schema = store.schema
    name = schema.route_name
    if prefix is None:
        prefix = f"/{name}"
    router = APIRouter(prefix=prefix, tags=[name])
    global_opts = parse_globals(options.get("globals"))
    taken: Dict[Tuple[str, str], str] = {}

    for operation, spec in ROUTES.items():
        raw = options.get(operation)
        if raw is None or raw is False:
            continue
        opts = merge_options(parse_operation(raw), global_opts)
        p = Pipeline(
            operation=operation,
            name=name,
            store=store,
            keys=resolve_keys(schema, opts.gsi),
            opts=opts,
        )
        path = detail_path(p) if spec.detail else ""
        if not path and not prefix:
            path = "/"
        # A detail route without path segments lands on the collection path.
        clash = taken.get((spec.method, path))
        if clash is not None:
            raise ConfigurationError(
                f"Operations '{clash}' and '{operation}' of entity '{name}' both map to "
                f"{spec.method} {prefix}{path}"
            )
        taken[(spec.method, path)] = operation
        router.add_api_route(
            path,
            make_endpoint(p, spec),
            methods=[spec.method],
            status_code=spec.status_code,
        )
        log.info("registered %s %s%s operation=%s", spec.method, prefix, path, operation)

    return router
