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
from dynarouter.core.options import call_hook


async def handle_replace(p: Pipeline, ctx: RequestContext) -> Dict[str, Any]:
    """
    Put an item at its key. Upserts unless `overwrite` is explicitly false,
    in which case an existing item is a conflict.
    """
    key = await resolve_item_key(p, ctx)
    data = ctx.body
    if p.opts.transform is not None:
        data = await call_hook(p.opts.transform, ctx, data)
    data = require_object(data)

    overwrite = p.opts.overwrite is not False
    # The addressed key wins over whatever key the body carries.
    data = {**data, **key}

    result = await call_store(
        p,
        ctx,
        p.store.create(data, overwrite=overwrite),
        "Resource could not be created",
        conflict=not overwrite,
    )
    result = await run_after(p, ctx, result)
    return envelope(result)
