from moto import mock_aws

from dynarouter.core.schema import EntitySchema, KeyDefinition
from dynarouter.core.settings import load_settings
from dynarouter.core.store.dynamodb import DynamoDBStore


def test_defaults(monkeypatch):
    for name in ("DYNAROUTER_ENV", "DYNAROUTER_JWT_ALGORITHMS", "DYNAROUTER_SECURITY_HEADERS_ENABLED"):
        monkeypatch.delenv(name, raising=False)
    s = load_settings()
    assert s.env == "dev"
    assert s.jwt_algorithms == ["HS256"]
    assert s.security_headers_enabled is False
    assert s.cors_origins == ["*"]


def test_prod_turns_security_headers_on(monkeypatch):
    monkeypatch.setenv("DYNAROUTER_ENV", "prod")
    monkeypatch.delenv("DYNAROUTER_SECURITY_HEADERS_ENABLED", raising=False)
    assert load_settings().security_headers_enabled is True


def test_csv_and_numbers(monkeypatch):
    monkeypatch.setenv("DYNAROUTER_JWT_ALGORITHMS", "HS256, HS512")
    monkeypatch.setenv("DYNAROUTER_JWT_LEEWAY_SECONDS", "5")
    monkeypatch.setenv("DYNAROUTER_LOG_LEVEL", "debug")
    s = load_settings()
    assert s.jwt_algorithms == ["HS256", "HS512"]
    assert s.jwt_leeway_seconds == 5
    assert s.log_level == "DEBUG"


def test_dynamodb_store_region_from_settings(monkeypatch):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("DYNAROUTER_DYNAMODB_REGION", "eu-west-1")
    with mock_aws():
        store = DynamoDBStore(EntitySchema("Plain", KeyDefinition("id")))
        assert store.dynamodb.meta.client.meta.region_name == "eu-west-1"
        assert store.table_name == "Plain"
