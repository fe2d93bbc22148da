import os

import jwt
import pytest
from fastapi.testclient import TestClient

from dynarouter.api.handlers.common import Pipeline
from dynarouter.api.main import create_app
from dynarouter.api.router import create_router
from dynarouter.core.context import RequestContext
from dynarouter.core.options import GlobalConfig, merge_options, parse_operation
from dynarouter.core.schema import EntitySchema, KeyDefinition, resolve_keys
from dynarouter.core.store.memory import MemoryStore

SECRET = "test-secret"

SCHEMA = EntitySchema(
    name="Test",
    key=KeyDefinition("hash", "range", range_type=int),
    indexes={"index": KeyDefinition("sProperty", "nProperty", range_type=int)},
)

OBJECT = {"hash": "myid", "range": 3, "sProperty": "test", "nProperty": 1337}


def seed_items():
    items = [dict(OBJECT)]
    for i in range(3):
        items.append({"hash": f"test{i}", "range": i, "sProperty": "test", "nProperty": i})
    return items


@pytest.fixture(scope="session", autouse=True)
def _force_test_env():
    os.environ.setdefault("DYNAROUTER_ENV", "dev")


@pytest.fixture()
def store():
    return MemoryStore(SCHEMA, seed_items())


@pytest.fixture()
def make_pipeline(store):
    def _make(operation="get", target=None, **opts):
        merged = merge_options(parse_operation(opts), GlobalConfig())
        return Pipeline(
            operation=operation,
            name=SCHEMA.route_name,
            store=target or store,
            keys=resolve_keys(SCHEMA, merged.gsi),
            opts=merged,
        )

    return _make


@pytest.fixture()
def make_context():
    def _make(params=None, query=None, body=None):
        return RequestContext(params=dict(params or {}), query=dict(query or {}), body=body)

    return _make


@pytest.fixture()
def detail_params():
    return {"test_hash": OBJECT["hash"], "test_range": str(OBJECT["range"])}


@pytest.fixture()
def make_token():
    def _make(claims=None, key=SECRET):
        return jwt.encode(claims or {"sub": "user-1"}, key, algorithm="HS256")

    return _make


@pytest.fixture()
def make_client(store):
    def _make(options, target=None):
        app = create_app([create_router(target or store, options)])
        return TestClient(app)

    return _make
