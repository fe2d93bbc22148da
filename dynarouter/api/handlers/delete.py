from __future__ import annotations

from typing import Any, Dict

from dynarouter.api.handlers.common import (
    Pipeline,
    call_store,
    envelope,
    resolve_item_key,
    resolve_optional,
    run_after,
)
from dynarouter.core.context import RequestContext


async def handle_delete(p: Pipeline, ctx: RequestContext) -> Dict[str, Any]:
    """
    Delete one item by key.

    With a truthy `update` option the item must exist and its previous
    attributes are returned; otherwise only the key comes back.
    """
    key = await resolve_item_key(p, ctx)
    return_old = bool(await resolve_optional(p.opts.update, ctx))

    result = await call_store(
        p, ctx, p.store.delete(key, return_old=return_old), "Resource could not be deleted"
    )
    result = await run_after(p, ctx, result)
    return envelope(result)
