from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from dynarouter.core.schema import EntitySchema

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"

# Envelope sub-maps of a partial update.
UPDATE_PUT = "$PUT"
UPDATE_ADD = "$ADD"
UPDATE_DELETE = "$DELETE"
UPDATE_ENVELOPE = (UPDATE_PUT, UPDATE_ADD, UPDATE_DELETE)

RANGE_OPERATORS = ("eq", "lt", "le", "gt", "ge", "begins_with", "between")


class StoreError(Exception):
    """A failure reported by the backing store, identified by `name`."""

    def __init__(self, name: str, message: str = ""):
        self.name = name
        self.message = message or name
        super().__init__(f"{name}: {self.message}")

    @property
    def conditional_check_failed(self) -> bool:
        return self.name == CONDITIONAL_CHECK_FAILED


class ItemList(list):
    """A page of items; `last_key` is set when more items can be read."""

    def __init__(self, items=(), last_key: Optional[Dict[str, Any]] = None):
        super().__init__(items)
        self.last_key = last_key


@dataclass
class ReadRequest:
    """
    Chainable scan/query description. `exec()` hands it back to the store
    that created it.
    """

    store: "EntityStore"
    hash_value: Any = None
    index: Optional[str] = None
    range_condition: Optional[Tuple[str, Tuple[Any, ...]]] = None
    filters: Dict[str, Any] = field(default_factory=dict)
    projection: Optional[List[str]] = None
    max_items: Optional[int] = None
    start_key: Optional[Dict[str, Any]] = None

    @property
    def is_query(self) -> bool:
        return self.hash_value is not None

    def where(self, **equals: Any) -> "ReadRequest":
        self.filters.update(equals)
        return self

    def range(self, op: str, *values: Any) -> "ReadRequest":
        if op not in RANGE_OPERATORS:
            raise ValueError(f"Unsupported range operator: {op}")
        expected = 2 if op == "between" else 1
        if len(values) != expected:
            raise ValueError(f"Range operator '{op}' takes {expected} value(s)")
        self.range_condition = (op, tuple(values))
        return self

    def attributes(self, names: Sequence[str]) -> "ReadRequest":
        self.projection = list(names)
        return self

    def limit(self, n: int) -> "ReadRequest":
        self.max_items = int(n)
        return self

    def start_at(self, key: Optional[Dict[str, Any]]) -> "ReadRequest":
        self.start_key = key
        return self

    async def exec(self) -> ItemList:
        return await self.store.read(self)


class EntityStore(Protocol):
    """The backing-store handle a router is built around."""

    schema: EntitySchema

    async def get(self, key: Dict[str, Any], attributes: Optional[List[str]] = None) -> Optional[Dict[str, Any]]:
        ...

    async def batch_get(
        self, keys: List[Dict[str, Any]], attributes: Optional[List[str]] = None
    ) -> ItemList:
        ...

    def scan(self) -> ReadRequest:
        ...

    def query(self, hash_value: Any, index: Optional[str] = None) -> ReadRequest:
        ...

    async def read(self, request: ReadRequest) -> ItemList:
        ...

    async def delete(self, key: Dict[str, Any], return_old: bool = False) -> Dict[str, Any]:
        ...

    async def create(self, item: Dict[str, Any], overwrite: bool = False) -> Dict[str, Any]:
        ...

    async def update(self, key: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
        ...


def is_envelope(update: Dict[str, Any]) -> bool:
    return any(isinstance(update.get(k), dict) for k in UPDATE_ENVELOPE)


def project(item: Dict[str, Any], attributes: Optional[List[str]]) -> Dict[str, Any]:
    if not attributes:
        return dict(item)
    return {k: v for k, v in item.items() if k in attributes}
