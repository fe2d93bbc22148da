from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from dynarouter.core.errors import BadRequestError, ConfigurationError


@dataclass(frozen=True)
class KeyDefinition:
    """
    Key attributes of a table or index. The `*_type` callables convert the
    string values that arrive in paths and query strings.
    """

    hash_field: str
    range_field: Optional[str] = None
    hash_type: Callable[[str], Any] = str
    range_type: Callable[[str], Any] = str


@dataclass(frozen=True)
class EntitySchema:
    """
    Read-only description of a backing-store entity.

    `indexes` maps a secondary index name to its own key definition.
    """

    name: str
    key: KeyDefinition
    indexes: Dict[str, KeyDefinition] = field(default_factory=dict)

    @property
    def route_name(self) -> str:
        return self.name.lower()


def _coerce(value: Any, to: Callable[[str], Any], field_name: str) -> Any:
    if not isinstance(value, str) or to is str:
        return value
    try:
        return to(value)
    except (TypeError, ValueError) as e:
        raise BadRequestError(f"Invalid value for key '{field_name}'", e) from e


@dataclass(frozen=True)
class KeySet:
    hash_key: str
    range_key: Optional[str] = None
    hash_type: Callable[[str], Any] = str
    range_type: Callable[[str], Any] = str

    def __post_init__(self):
        if not self.hash_key:
            raise ConfigurationError("KeySet requires a hash key field")

    @property
    def composite(self) -> bool:
        return self.range_key is not None

    def build(self, hash_value: Any, range_value: Any = None) -> Dict[str, Any]:
        """Key object for the store; the range field appears only on composite keys."""
        key = {self.hash_key: _coerce(hash_value, self.hash_type, self.hash_key)}
        if self.range_key is not None:
            key[self.range_key] = _coerce(range_value, self.range_type, self.range_key)
        return key

    def hash_only(self, hash_value: Any) -> Dict[str, Any]:
        return {self.hash_key: _coerce(hash_value, self.hash_type, self.hash_key)}


def resolve_keys(schema: EntitySchema, index: Optional[str] = None) -> KeySet:
    """Key field names of the schema, or of one of its secondary indexes."""
    if index:
        definition = schema.indexes.get(index)
        if definition is None:
            raise ConfigurationError(f"Unknown index '{index}' on entity '{schema.name}'")
    else:
        definition = schema.key
    return KeySet(
        hash_key=definition.hash_field,
        range_key=definition.range_field,
        hash_type=definition.hash_type,
        range_type=definition.range_type,
    )
