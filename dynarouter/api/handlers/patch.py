from __future__ import annotations

from typing import Any, Dict

from dynarouter.api.handlers.common import (
    Pipeline,
    call_store,
    envelope,
    require_object,
    resolve_item_key,
    run_after,
)
from dynarouter.core.context import RequestContext
from dynarouter.core.options import call_hook, resolve_value
from dynarouter.core.updates import apply_props, omit, pick


async def handle_patch(p: Pipeline, ctx: RequestContext) -> Dict[str, Any]:
    """
    Partially update an item. The payload may be flat or a `$PUT` / `$ADD` /
    `$DELETE` envelope; allow/deny lists apply to each sub-map on its own.
    """
    key = await resolve_item_key(p, ctx)

    data = ctx.body if ctx.body is not None else {}
    if p.opts.transform is not None:
        data = await call_hook(p.opts.transform, ctx, data)
    data = require_object(data)

    if p.opts.allowed_properties is not None:
        allowed = await resolve_value(p.opts.allowed_properties, ctx)
        data = apply_props(data, pick(allowed))
    if p.opts.forbidden_properties is not None:
        forbidden = await resolve_value(p.opts.forbidden_properties, ctx)
        data = apply_props(data, omit(forbidden))

    result = await call_store(p, ctx, p.store.update(key, data), "Resource could not be updated")
    result = await run_after(p, ctx, result)
    return envelope(result)
