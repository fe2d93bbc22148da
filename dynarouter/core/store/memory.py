from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from dynarouter.core.schema import EntitySchema, resolve_keys
from dynarouter.core.store.base import (
    CONDITIONAL_CHECK_FAILED,
    UPDATE_ADD,
    UPDATE_DELETE,
    UPDATE_PUT,
    ItemList,
    ReadRequest,
    StoreError,
    is_envelope,
    project,
)

log = logging.getLogger("dynarouter.store")


def _matches_range(value: Any, op: str, args: Tuple[Any, ...]) -> bool:
    if value is None:
        return False
    if op == "eq":
        return value == args[0]
    if op == "lt":
        return value < args[0]
    if op == "le":
        return value <= args[0]
    if op == "gt":
        return value > args[0]
    if op == "ge":
        return value >= args[0]
    if op == "begins_with":
        return isinstance(value, str) and value.startswith(args[0])
    if op == "between":
        return args[0] <= value <= args[1]
    return False


def _add(current: Any, value: Any) -> Any:
    if current is None:
        return copy.deepcopy(value)
    if isinstance(current, set):
        return current | set(value)
    if isinstance(current, list):
        return current + list(value)
    return current + value


def _remove(current: Any, value: Any) -> Any:
    if isinstance(current, set):
        return current - set(value)
    if isinstance(current, list):
        drop = list(value)
        return [v for v in current if v not in drop]
    return current


class MemoryStore:
    """
    Dict-backed store for tests and local development.

    Items are kept in insertion order so scans page deterministically.
    """

    def __init__(self, schema: EntitySchema, items: Optional[Iterable[Dict[str, Any]]] = None):
        self.schema = schema
        self.keys = resolve_keys(schema)
        self._items: Dict[Tuple[Any, Any], Dict[str, Any]] = {}
        for item in items or []:
            self._items[self._pk(item)] = copy.deepcopy(item)

    def _pk(self, obj: Dict[str, Any]) -> Tuple[Any, Any]:
        if obj.get(self.keys.hash_key) is None:
            raise StoreError("ValidationException", f"Missing hash key '{self.keys.hash_key}'")
        range_value = obj.get(self.keys.range_key) if self.keys.range_key else None
        if self.keys.range_key and range_value is None:
            raise StoreError("ValidationException", f"Missing range key '{self.keys.range_key}'")
        return (obj[self.keys.hash_key], range_value)

    def _key_of(self, item: Dict[str, Any]) -> Dict[str, Any]:
        return self.keys.build(item.get(self.keys.hash_key), item.get(self.keys.range_key))

    def all(self) -> List[Dict[str, Any]]:
        return [copy.deepcopy(v) for v in self._items.values()]

    async def get(self, key: Dict[str, Any], attributes: Optional[List[str]] = None) -> Optional[Dict[str, Any]]:
        item = self._items.get(self._pk(key))
        if item is None:
            return None
        return project(copy.deepcopy(item), attributes)

    async def batch_get(self, keys: List[Dict[str, Any]], attributes: Optional[List[str]] = None) -> ItemList:
        found = []
        for key in keys:
            item = self._items.get(self._pk(key))
            if item is not None:
                found.append(project(copy.deepcopy(item), attributes))
        return ItemList(found)

    def scan(self) -> ReadRequest:
        return ReadRequest(store=self)

    def query(self, hash_value: Any, index: Optional[str] = None) -> ReadRequest:
        return ReadRequest(store=self, hash_value=hash_value, index=index)

    async def read(self, request: ReadRequest) -> ItemList:
        keys = resolve_keys(self.schema, request.index)
        rows = list(self._items.values())
        if request.is_query:
            rows = [r for r in rows if r.get(keys.hash_key) == request.hash_value]
            if request.range_condition is not None:
                op, args = request.range_condition
                rows = [r for r in rows if _matches_range(r.get(keys.range_key), op, args)]
            if keys.range_key:
                rows.sort(key=lambda r: r.get(keys.range_key))
        rows = [r for r in rows if all(r.get(k) == v for k, v in request.filters.items())]

        if request.start_key:
            start = self._pk(request.start_key)
            positions = [self._pk(r) for r in rows]
            if start in positions:
                rows = rows[positions.index(start) + 1:]

        last_key = None
        if request.max_items is not None and len(rows) > request.max_items:
            rows = rows[: request.max_items]
            last_key = self._key_of(rows[-1])

        return ItemList([project(copy.deepcopy(r), request.projection) for r in rows], last_key=last_key)

    async def delete(self, key: Dict[str, Any], return_old: bool = False) -> Dict[str, Any]:
        pk = self._pk(key)
        old = self._items.get(pk)
        if return_old:
            if old is None:
                raise StoreError(CONDITIONAL_CHECK_FAILED, "The conditional request failed")
            del self._items[pk]
            return copy.deepcopy(old)
        self._items.pop(pk, None)
        return dict(key)

    async def create(self, item: Dict[str, Any], overwrite: bool = False) -> Dict[str, Any]:
        pk = self._pk(item)
        if not overwrite and pk in self._items:
            raise StoreError(CONDITIONAL_CHECK_FAILED, "The conditional request failed")
        self._items[pk] = copy.deepcopy(item)
        log.debug("memory store put key=%s", pk)
        return copy.deepcopy(item)

    async def update(self, key: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
        pk = self._pk(key)
        item = copy.deepcopy(self._items.get(pk) or dict(key))

        if is_envelope(update):
            puts = update.get(UPDATE_PUT) or {}
            adds = update.get(UPDATE_ADD) or {}
            deletes = update.get(UPDATE_DELETE) or {}
        else:
            puts, adds, deletes = update, {}, {}

        for name in list(puts) + list(adds) + list(deletes):
            if name in key:
                raise StoreError("ValidationException", f"Cannot update key attribute '{name}'")

        for name, value in puts.items():
            item[name] = copy.deepcopy(value)
        for name, value in adds.items():
            try:
                item[name] = _add(item.get(name), value)
            except TypeError as e:
                raise StoreError("ValidationException", f"Cannot add to '{name}': {e}") from e
        for name, value in deletes.items():
            if value is None:
                item.pop(name, None)
            elif name in item:
                item[name] = _remove(item[name], value)

        self._items[pk] = item
        return copy.deepcopy(item)
