"""Primary store call plus optional side actions, joined fail-fast."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, List, Optional

from dynarouter.core.options import ParallelSpec, call_hook

log = logging.getLogger("dynarouter.engine")


async def _run_action(action, ctx) -> Any:
    return await call_hook(action, ctx)


def _observe(task: asyncio.Future) -> None:
    # Results of siblings are discarded after a failure; make sure their
    # exceptions are still retrieved instead of surfacing as "never retrieved".
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        log.debug("parallel action failed: %r", exc)


async def exec_parallel(ctx, primary: Awaitable[Any], parallel: Optional[ParallelSpec] = None) -> Any:
    """
    Await `primary`; with side actions, run everything concurrently and hand
    `[primary, *actions]` results to `parallel.merge`.

    The first failure propagates immediately. In-flight siblings are not
    cancelled.
    """
    if parallel is None:
        return await primary

    tasks: List[asyncio.Future] = [asyncio.ensure_future(primary)]
    for action in parallel.actions:
        tasks.append(asyncio.ensure_future(_run_action(action, ctx)))
    for t in tasks:
        t.add_done_callback(_observe)

    results = await asyncio.gather(*tasks)
    return await call_hook(parallel.merge, ctx, list(results))
