import asyncio

import pytest

from dynarouter.api.handlers import handle_query
from dynarouter.core.errors import AccessDeniedError, BadRequestError, InternalServerError
from dynarouter.core.store.memory import MemoryStore


class CountingStore(MemoryStore):
    def __init__(self, *a, **kw):
        super().__init__(*a, **kw)
        self.calls = 0

    async def batch_get(self, keys, attributes=None):
        self.calls += 1
        return await super().batch_get(keys, attributes)

    async def read(self, request):
        self.calls += 1
        return await super().read(request)


def test_scan_returns_all_items(make_pipeline, make_context, store):
    body = asyncio.run(handle_query(make_pipeline("query"), make_context()))
    assert body["success"] is True
    assert len(body["data"]) == 4
    assert "lastKey" not in body


def test_custom_query_with_paging_returns_last_key(make_pipeline, make_context):
    p = make_pipeline("query", query=lambda s, ctx: s.scan().limit(2))
    body = asyncio.run(handle_query(p, make_context()))
    assert len(body["data"]) == 2
    assert body["lastKey"] == {"hash": "test0", "range": 0}


def test_batch_get_pairs_keys_and_omits_last_key(make_pipeline, make_context):
    ctx = make_context(query={"hashKeys": ["test0", "test1", "test2"], "rangeKeys": ["0", "1", "2"]})
    body = asyncio.run(handle_query(make_pipeline("query"), ctx))
    assert [i["hash"] for i in body["data"]] == ["test0", "test1", "test2"]
    assert "lastKey" not in body


def test_batch_get_with_projection(make_pipeline, make_context):
    ctx = make_context(query={"hashKeys": ["test1"], "rangeKeys": ["1"]})
    body = asyncio.run(handle_query(make_pipeline("query", attributes=lambda ctx: ["nProperty"]), ctx))
    assert body["data"] == [{"nProperty": 1}]


def test_too_many_keys_rejected_before_store_call(make_pipeline, make_context, store):
    counting = CountingStore(store.schema, store.all())
    ctx = make_context(query={"hashKeys": [f"h{i}" for i in range(101)]})
    with pytest.raises(BadRequestError):
        asyncio.run(handle_query(make_pipeline("query", target=counting), ctx))
    assert counting.calls == 0


def test_range_keys_without_resolver_rejected(make_pipeline, make_context):
    with pytest.raises(BadRequestError):
        asyncio.run(handle_query(make_pipeline("query"), make_context(query={"rangeKeys": ["1"]})))


def test_post_authorize_runs_once_over_whole_list(make_pipeline, make_context):
    seen = []

    def gate(ctx, items):
        seen.append(len(items))
        return True

    asyncio.run(handle_query(make_pipeline("query", postAuthorize=gate), make_context()))
    assert seen == [4]


def test_post_authorize_denial(make_pipeline, make_context):
    with pytest.raises(AccessDeniedError):
        asyncio.run(handle_query(make_pipeline("query", postAuthorize=lambda ctx, items: {"pass": False}), make_context()))


def test_filter_then_map_preserve_order(make_pipeline, make_context):
    calls = []

    def keep(item, idx, ctx):
        calls.append(("filter", idx))
        return item["hash"] != "test1"

    async def shape(item, idx, ctx):
        calls.append(("map", idx))
        return f"{idx}:{item['hash']}"

    body = asyncio.run(handle_query(make_pipeline("query", filter=keep, map=shape), make_context()))
    assert body["data"] == ["0:myid", "1:test0", "2:test2"]
    assert [c for c in calls if c[0] == "map"] == [("map", 0), ("map", 1), ("map", 2)]
    assert calls.index(("filter", 3)) < calls.index(("map", 0))


def test_store_failure_is_internal_error(make_pipeline, make_context, store):
    class Broken(MemoryStore):
        async def read(self, request):
            raise RuntimeError("throughput exceeded")

    with pytest.raises(InternalServerError, match="Resources could not be retrieved"):
        asyncio.run(handle_query(make_pipeline("query", target=Broken(store.schema)), make_context()))
