from __future__ import annotations

from typing import Any, Dict

from dynarouter.api.handlers.common import Pipeline, call_store, envelope, require_object, run_after
from dynarouter.core.context import RequestContext
from dynarouter.core.options import call_hook


async def handle_create(p: Pipeline, ctx: RequestContext) -> Dict[str, Any]:
    """Insert a new item; an existing key is a conflict unless `overwrite` is set."""
    data = ctx.body
    if p.opts.transform is not None:
        data = await call_hook(p.opts.transform, ctx, data)
    data = require_object(data)

    result = await call_store(
        p,
        ctx,
        p.store.create(data, overwrite=bool(p.opts.overwrite)),
        "Resource could not be created",
        conflict=True,
    )
    result = await run_after(p, ctx, result)
    return envelope(result)
