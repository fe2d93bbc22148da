from __future__ import annotations

from typing import Any, Dict

from dynarouter.api.handlers.common import (
    Pipeline,
    call_store,
    envelope,
    gate_post,
    resolve_item_key,
    resolve_optional,
    run_after,
)
from dynarouter.core.context import RequestContext
from dynarouter.core.errors import NotFoundError


async def handle_get(p: Pipeline, ctx: RequestContext) -> Dict[str, Any]:
    """Retrieve one item by key."""
    key = await resolve_item_key(p, ctx)
    attributes = await resolve_optional(p.opts.attributes, ctx)

    result = await call_store(p, ctx, p.store.get(key, attributes), "Resource could not be retrieved")
    if not result:
        raise NotFoundError()

    await gate_post(p, ctx, result)
    result = await run_after(p, ctx, result)
    return envelope(result)
