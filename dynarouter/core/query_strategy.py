from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Dict, List, Optional, Union

from dynarouter.core.errors import BadRequestError
from dynarouter.core.options import OperationConfig, resolve_value
from dynarouter.core.schema import KeySet

log = logging.getLogger("dynarouter.engine")

MAX_BATCH_KEYS = 100


@dataclass
class ReadPlan:
    """A scan or query builder; its result carries a continuation cursor."""

    request: Any


@dataclass
class BatchPlan:
    keys: List[Dict[str, Any]]


Plan = Union[ReadPlan, BatchPlan]


async def select_strategy(ctx, store, keys: KeySet, opts: OperationConfig) -> Plan:
    """
    Pick a custom query, a full scan or a bounded batch-get from the
    request's `hashKeys` / `rangeKeys` arrays.
    """
    hash_keys = ctx.query_list("hashKeys")
    range_keys = ctx.query_list("rangeKeys")

    if hash_keys is None and range_keys is None:
        if opts.query is not None:
            return ReadPlan(await resolve_value(opts.query, store, ctx))
        return ReadPlan(store.scan())

    if range_keys is not None and keys.range_key is None:
        raise BadRequestError("Range keys were given but the entity has no range key")

    if hash_keys is None:
        if opts.hash_key is None:
            raise BadRequestError("An array of hash keys must be given")
        hash_value = await resolve_value(opts.hash_key, ctx)
        hash_keys = [hash_value for _ in range_keys]

    if range_keys is not None and len(range_keys) != len(hash_keys):
        raise BadRequestError("hashKeys and rangeKeys must have the same length")

    if len(hash_keys) > MAX_BATCH_KEYS:
        raise BadRequestError(f"The number of keys to retrieve is limited to {MAX_BATCH_KEYS}")

    if range_keys is not None:
        batch = [keys.build(h, r) for h, r in zip(hash_keys, range_keys)]
    else:
        batch = [keys.hash_only(h) for h in hash_keys]
    return BatchPlan(batch)


def primary_call(store, plan: Plan, attributes: Optional[List[str]] = None) -> Awaitable[Any]:
    """The store awaitable a plan stands for."""
    if isinstance(plan, ReadPlan):
        return plan.request.exec()
    log.debug("batch get keys=%d", len(plan.keys))
    return store.batch_get(plan.keys, attributes)
