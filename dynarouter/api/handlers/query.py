from __future__ import annotations

from typing import Any, Dict

from dynarouter.api.handlers.common import Pipeline, call_store, envelope, gate_post, resolve_optional
from dynarouter.core.context import RequestContext
from dynarouter.core.options import call_hook
from dynarouter.core.query_strategy import BatchPlan, primary_call, select_strategy


async def handle_query(p: Pipeline, ctx: RequestContext) -> Dict[str, Any]:
    """
    List items: custom query, full scan, or batch-get of explicit keys.

    `postAuthorize` sees the whole list once, then `filter` and `map` run
    per item with `(item, index, ctx)`.
    """
    plan = await select_strategy(ctx, p.store, p.keys, p.opts)
    attributes = None
    if isinstance(plan, BatchPlan):
        attributes = await resolve_optional(p.opts.attributes, ctx)

    result = await call_store(
        p,
        ctx,
        primary_call(p.store, plan, attributes),
        "Resources could not be retrieved",
    )

    await gate_post(p, ctx, result)

    items = list(result or [])
    if p.opts.filter is not None:
        kept = []
        for idx, item in enumerate(items):
            if await call_hook(p.opts.filter, item, idx, ctx):
                kept.append(item)
        items = kept
    if p.opts.map is not None:
        items = [await call_hook(p.opts.map, item, idx, ctx) for idx, item in enumerate(items)]

    if isinstance(plan, BatchPlan):
        return envelope(items)
    return envelope(items, last_key=getattr(result, "last_key", None))
