import pytest

from dynarouter.core.errors import BadRequestError, ConfigurationError
from dynarouter.core.schema import EntitySchema, KeyDefinition, KeySet, resolve_keys

from conftest import SCHEMA


def test_primary_keys():
    keys = resolve_keys(SCHEMA)
    assert keys.hash_key == "hash"
    assert keys.range_key == "range"
    assert keys.composite


def test_index_keys():
    keys = resolve_keys(SCHEMA, "index")
    assert keys.hash_key == "sProperty"
    assert keys.range_key == "nProperty"


def test_unknown_index_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        resolve_keys(SCHEMA, "nope")


def test_hash_only_schema_builds_hash_only_key():
    schema = EntitySchema(name="Plain", key=KeyDefinition("id"))
    keys = resolve_keys(schema)
    assert not keys.composite
    assert keys.build("abc", "ignored") == {"id": "abc"}


def test_composite_key_includes_both_fields_and_coerces_strings():
    keys = resolve_keys(SCHEMA)
    assert keys.build("myid", "3") == {"hash": "myid", "range": 3}


def test_uncoercible_key_value_is_a_bad_request():
    keys = resolve_keys(SCHEMA)
    with pytest.raises(BadRequestError):
        keys.build("myid", "three")


def test_keyset_requires_hash_field():
    with pytest.raises(ConfigurationError):
        KeySet(hash_key="")
