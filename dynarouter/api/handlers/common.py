from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Dict, Optional

from dynarouter.api.observability.metrics import AUTHZ_DECISIONS_TOTAL, STORE_CALLS_TOTAL
from dynarouter.core.authz import authorize, post_authorize
from dynarouter.core.context import RequestContext
from dynarouter.core.errors import (
    AccessDeniedError,
    BadRequestError,
    InternalServerError,
    ItemExistsError,
    RouterError,
)
from dynarouter.core.options import OperationConfig, call_hook, resolve_value
from dynarouter.core.parallel import exec_parallel
from dynarouter.core.schema import KeySet
from dynarouter.core.store.base import EntityStore, StoreError

log = logging.getLogger("dynarouter.engine")

_MISSING = object()


@dataclass(frozen=True)
class Pipeline:
    """One operation bound to one entity: built once, shared by all requests."""

    operation: str
    name: str
    store: EntityStore
    keys: KeySet
    opts: OperationConfig

    @property
    def hash_param(self) -> str:
        return f"{self.name}_hash"

    @property
    def range_param(self) -> str:
        return f"{self.name}_range"


def envelope(data: Any, last_key: Any = _MISSING) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True}
    if last_key is not _MISSING and last_key is not None:
        body["lastKey"] = last_key
    body["data"] = data
    return body


async def resolve_item_key(p: Pipeline, ctx: RequestContext) -> Dict[str, Any]:
    """
    Key of the addressed item. A configured `hashKey` wins over the path;
    the key is also published in the request state.
    """
    if p.opts.hash_key is not None:
        hash_value = await resolve_value(p.opts.hash_key, ctx)
    else:
        hash_value = ctx.params.get(p.hash_param)
    key = p.keys.build(hash_value, ctx.params.get(p.range_param))
    ctx.state.keys[p.name] = key
    return key


async def gate_pre(p: Pipeline, ctx: RequestContext) -> None:
    if p.opts.authorize is None:
        return
    try:
        await authorize(ctx, p.opts.authorize)
    except AccessDeniedError:
        AUTHZ_DECISIONS_TOTAL.labels(phase="pre", decision="deny", operation=p.operation).inc()
        raise
    AUTHZ_DECISIONS_TOTAL.labels(phase="pre", decision="allow", operation=p.operation).inc()


async def gate_post(p: Pipeline, ctx: RequestContext, data: Any) -> None:
    if p.opts.post_authorize is None:
        return
    try:
        await post_authorize(ctx, data, p.opts.post_authorize)
    except AccessDeniedError:
        AUTHZ_DECISIONS_TOTAL.labels(phase="post", decision="deny", operation=p.operation).inc()
        raise
    AUTHZ_DECISIONS_TOTAL.labels(phase="post", decision="allow", operation=p.operation).inc()


async def call_store(
    p: Pipeline,
    ctx: RequestContext,
    primary: Awaitable[Any],
    message: str,
    *,
    conflict: bool = False,
) -> Any:
    """
    Run the store call (with side actions) and map failures.

    A conditional-check failure becomes ItemExistsError when `conflict` is
    set; anything else becomes InternalServerError with the cause attached.
    """
    try:
        result = await exec_parallel(ctx, primary, p.opts.parallel)
    except RouterError:
        STORE_CALLS_TOTAL.labels(operation=p.operation, outcome="error").inc()
        raise
    except StoreError as e:
        STORE_CALLS_TOTAL.labels(operation=p.operation, outcome=e.name).inc()
        log.warning("store call failed operation=%s entity=%s name=%s", p.operation, p.name, e.name)
        if conflict and e.conditional_check_failed:
            raise ItemExistsError(extra=e) from e
        raise InternalServerError(message, e) from e
    except Exception as e:
        STORE_CALLS_TOTAL.labels(operation=p.operation, outcome="error").inc()
        raise InternalServerError(message, e) from e
    STORE_CALLS_TOTAL.labels(operation=p.operation, outcome="ok").inc()
    return result


async def run_after(p: Pipeline, ctx: RequestContext, result: Any) -> Any:
    """`after(ctx, result)`; a None return keeps the previous result."""
    if p.opts.after is None:
        return result
    after = await call_hook(p.opts.after, ctx, result)
    return result if after is None else after


async def resolve_optional(slot: Any, ctx: RequestContext) -> Optional[Any]:
    if slot is None:
        return None
    return await resolve_value(slot, ctx)


def require_object(data: Any) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise BadRequestError("Request body must be a JSON object")
    return data
