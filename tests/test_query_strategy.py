import asyncio

import pytest

from dynarouter.core.errors import BadRequestError
from dynarouter.core.options import parse_operation
from dynarouter.core.query_strategy import MAX_BATCH_KEYS, BatchPlan, ReadPlan, primary_call, select_strategy
from dynarouter.core.schema import resolve_keys
from dynarouter.core.store.base import ReadRequest

from conftest import SCHEMA

KEYS = resolve_keys(SCHEMA)


def _select(store, make_context, qs=None, **opts):
    ctx = make_context(query=qs)
    return asyncio.run(select_strategy(ctx, store, KEYS, parse_operation(opts)))


def test_no_arrays_means_full_scan(store, make_context):
    plan = _select(store, make_context)
    assert isinstance(plan, ReadPlan)
    assert isinstance(plan.request, ReadRequest)
    assert not plan.request.is_query


def test_custom_query_builder_gets_store_and_context(store, make_context):
    seen = []

    def build(s, ctx):
        seen.append((s, ctx))
        return s.query("myid")

    plan = _select(store, make_context, query=build)
    assert isinstance(plan, ReadPlan)
    assert plan.request.hash_value == "myid"
    assert seen[0][0] is store


def test_hash_and_range_keys_pair_positionally(store, make_context):
    plan = _select(store, make_context, qs={"hashKeys": ["h1", "h2", "h3"], "rangeKeys": ["1", "2", "3"]})
    assert isinstance(plan, BatchPlan)
    assert plan.keys == [
        {"hash": "h1", "range": 1},
        {"hash": "h2", "range": 2},
        {"hash": "h3", "range": 3},
    ]


def test_bracket_form_is_accepted(store, make_context):
    plan = _select(store, make_context, qs={"hashKeys[]": ["h1"], "rangeKeys[]": ["7"]})
    assert plan.keys == [{"hash": "h1", "range": 7}]


def test_hash_keys_only(store, make_context):
    plan = _select(store, make_context, qs={"hashKeys": ["a", "b"]})
    assert plan.keys == [{"hash": "a"}, {"hash": "b"}]


def test_range_keys_replicate_resolved_hash(store, make_context):
    plan = _select(store, make_context, qs={"rangeKeys": ["1", "2"]}, hashKey=lambda ctx: "mine")
    assert plan.keys == [{"hash": "mine", "range": 1}, {"hash": "mine", "range": 2}]


def test_range_keys_without_hash_resolver_is_bad_request(store, make_context):
    with pytest.raises(BadRequestError, match="hash keys must be given"):
        _select(store, make_context, qs={"rangeKeys": ["1"]})


def test_more_than_limit_is_bad_request(store, make_context):
    hashes = [f"h{i}" for i in range(MAX_BATCH_KEYS + 1)]
    with pytest.raises(BadRequestError, match="limited to 100"):
        _select(store, make_context, qs={"hashKeys": hashes})


def test_exactly_limit_is_allowed(store, make_context):
    hashes = [f"h{i}" for i in range(MAX_BATCH_KEYS)]
    plan = _select(store, make_context, qs={"hashKeys": hashes})
    assert len(plan.keys) == MAX_BATCH_KEYS


def test_mismatched_lengths_are_rejected(store, make_context):
    with pytest.raises(BadRequestError, match="same length"):
        _select(store, make_context, qs={"hashKeys": ["a", "b"], "rangeKeys": ["1"]})


def test_primary_call_batch_uses_projection(store, make_context):
    plan = BatchPlan([{"hash": "myid", "range": 3}])
    items = asyncio.run(primary_call(store, plan, ["sProperty"]))
    assert items == [{"sProperty": "test"}]
