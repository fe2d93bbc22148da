from __future__ import annotations

import asyncio
import functools
import logging
from typing import Any, Callable, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from dynarouter.core.schema import EntitySchema, resolve_keys
from dynarouter.core.settings import load_settings
from dynarouter.core.store.base import (
    UPDATE_ADD,
    UPDATE_DELETE,
    UPDATE_PUT,
    ItemList,
    ReadRequest,
    StoreError,
    is_envelope,
)

log = logging.getLogger("dynarouter.store")


def _projection(attributes: Optional[List[str]]) -> Dict[str, Any]:
    if not attributes:
        return {}
    names = {f"#p{i}": a for i, a in enumerate(attributes)}
    return {
        "ProjectionExpression": ", ".join(names.keys()),
        "ExpressionAttributeNames": names,
    }


def _range_condition(field: str, op: str, args) -> Any:
    k = Key(field)
    if op == "between":
        return k.between(args[0], args[1])
    return getattr(k, op)(args[0])


def build_update_expression(update: Dict[str, Any]) -> Dict[str, Any]:
    """
    Translate a flat or enveloped update into UpdateItem arguments.

    Flat maps and `$PUT` become SET clauses, `$ADD` becomes ADD, and
    `$DELETE` becomes REMOVE for null values or DELETE for set members.
    """
    if is_envelope(update):
        puts = update.get(UPDATE_PUT) or {}
        adds = update.get(UPDATE_ADD) or {}
        deletes = update.get(UPDATE_DELETE) or {}
    else:
        puts, adds, deletes = update, {}, {}

    names: Dict[str, str] = {}
    values: Dict[str, Any] = {}
    clauses: Dict[str, List[str]] = {"SET": [], "ADD": [], "REMOVE": [], "DELETE": []}

    def ref(attr: str, value: Any = None, with_value: bool = True) -> tuple:
        i = len(names)
        names[f"#a{i}"] = attr
        if with_value:
            values[f":v{i}"] = value
        return f"#a{i}", f":v{i}"

    for attr, value in puts.items():
        n, v = ref(attr, value)
        clauses["SET"].append(f"{n} = {v}")
    for attr, value in adds.items():
        n, v = ref(attr, value)
        clauses["ADD"].append(f"{n} {v}")
    for attr, value in deletes.items():
        if value is None:
            n, _ = ref(attr, with_value=False)
            clauses["REMOVE"].append(n)
        else:
            n, v = ref(attr, value)
            clauses["DELETE"].append(f"{n} {v}")

    expression = " ".join(f"{verb} {', '.join(parts)}" for verb, parts in clauses.items() if parts)
    out: Dict[str, Any] = {"UpdateExpression": expression, "ExpressionAttributeNames": names}
    if values:
        out["ExpressionAttributeValues"] = values
    return out


class DynamoDBStore:
    """
    Store backed by a DynamoDB table through the boto3 resource API.

    boto3 is synchronous; every call runs in the loop's default executor.
    """

    def __init__(
        self,
        schema: EntitySchema,
        table_name: Optional[str] = None,
        *,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        resource: Any = None,
    ):
        self.schema = schema
        self.keys = resolve_keys(schema)
        self.table_name = table_name or schema.name
        if resource is None:
            settings = load_settings()
            region = region or settings.dynamodb_region
            endpoint_url = endpoint_url or settings.dynamodb_endpoint
            kwargs: Dict[str, Any] = {}
            if region:
                kwargs["region_name"] = region
            if endpoint_url:
                kwargs["endpoint_url"] = endpoint_url
            resource = boto3.resource("dynamodb", **kwargs)
        self.dynamodb = resource
        self.table = resource.Table(self.table_name)

    async def _call(self, fn: Callable[..., Any], **kwargs: Any) -> Any:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, functools.partial(fn, **kwargs))
        except ClientError as e:
            err = e.response.get("Error", {})
            code = err.get("Code") or "ClientError"
            log.debug("dynamodb %s failed code=%s table=%s", getattr(fn, "__name__", fn), code, self.table_name)
            raise StoreError(code, err.get("Message") or str(e)) from e

    async def get(self, key: Dict[str, Any], attributes: Optional[List[str]] = None) -> Optional[Dict[str, Any]]:
        resp = await self._call(self.table.get_item, Key=key, **_projection(attributes))
        return resp.get("Item")

    async def batch_get(self, keys: List[Dict[str, Any]], attributes: Optional[List[str]] = None) -> ItemList:
        if not keys:
            return ItemList()
        request = {self.table_name: {"Keys": keys, **_projection(attributes)}}
        resp = await self._call(self.dynamodb.batch_get_item, RequestItems=request)
        items = resp.get("Responses", {}).get(self.table_name, [])
        unprocessed = resp.get("UnprocessedKeys") or {}
        if unprocessed:
            log.warning("batch_get left %d key(s) unprocessed table=%s",
                        len(unprocessed.get(self.table_name, {}).get("Keys", [])), self.table_name)

        # DynamoDB returns batch results unordered; restore request order.
        order = {self._pk(k): i for i, k in enumerate(keys)}
        items.sort(key=lambda it: order.get(self._pk(it), len(order)))
        return ItemList(items)

    def _pk(self, obj: Dict[str, Any]) -> tuple:
        return (obj.get(self.keys.hash_key), obj.get(self.keys.range_key) if self.keys.range_key else None)

    def scan(self) -> ReadRequest:
        return ReadRequest(store=self)

    def query(self, hash_value: Any, index: Optional[str] = None) -> ReadRequest:
        return ReadRequest(store=self, hash_value=hash_value, index=index)

    async def read(self, request: ReadRequest) -> ItemList:
        kwargs: Dict[str, Any] = {}
        if request.index:
            kwargs["IndexName"] = request.index
        if request.filters:
            cond = None
            for name, value in request.filters.items():
                c = Attr(name).eq(value)
                cond = c if cond is None else cond & c
            kwargs["FilterExpression"] = cond
        if request.projection:
            kwargs.update(_projection(request.projection))
        if request.max_items is not None:
            kwargs["Limit"] = request.max_items
        if request.start_key:
            kwargs["ExclusiveStartKey"] = request.start_key

        if request.is_query:
            keys = resolve_keys(self.schema, request.index)
            cond = Key(keys.hash_key).eq(request.hash_value)
            if request.range_condition is not None and keys.range_key:
                op, args = request.range_condition
                cond = cond & _range_condition(keys.range_key, op, args)
            resp = await self._call(self.table.query, KeyConditionExpression=cond, **kwargs)
        else:
            resp = await self._call(self.table.scan, **kwargs)
        return ItemList(resp.get("Items", []), last_key=resp.get("LastEvaluatedKey"))

    async def delete(self, key: Dict[str, Any], return_old: bool = False) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"Key": key}
        if return_old:
            kwargs["ReturnValues"] = "ALL_OLD"
            kwargs["ConditionExpression"] = Attr(self.keys.hash_key).exists()
        resp = await self._call(self.table.delete_item, **kwargs)
        if return_old:
            return resp.get("Attributes") or {}
        return dict(key)

    async def create(self, item: Dict[str, Any], overwrite: bool = False) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"Item": item}
        if not overwrite:
            kwargs["ConditionExpression"] = Attr(self.keys.hash_key).not_exists()
        await self._call(self.table.put_item, **kwargs)
        return dict(item)

    async def update(self, key: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
        expr = build_update_expression(update)
        if not expr["UpdateExpression"]:
            return await self.get(key) or dict(key)
        resp = await self._call(self.table.update_item, Key=key, ReturnValues="ALL_NEW", **expr)
        return resp.get("Attributes") or {}
