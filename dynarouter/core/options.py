from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

# Operation names double as top-level keys of a router's options mapping.
OPERATIONS = ("get", "query", "del", "post", "put", "patch")


@dataclass(frozen=True)
class Fixed:
    value: Any


@dataclass(frozen=True)
class Computed:
    fn: Callable[..., Any]


def resolvable(value: Any) -> Any:
    """Tag a raw option value as a literal or as a computation over the context."""
    if value is None or isinstance(value, (Fixed, Computed)):
        return value
    if callable(value):
        return Computed(value)
    return Fixed(value)


async def resolve_value(slot: Any, *args: Any) -> Any:
    """
    Evaluate a value-or-function slot.

    Computations are called with `args` and awaited when they return an
    awaitable; literals come back unchanged.
    """
    if isinstance(slot, Fixed):
        return slot.value
    if isinstance(slot, Computed):
        fn = slot.fn
    elif callable(slot):
        fn = slot
    else:
        return slot
    out = fn(*args)
    if inspect.isawaitable(out):
        out = await out
    return out


async def call_hook(fn: Callable[..., Any], *args: Any) -> Any:
    out = fn(*args)
    if inspect.isawaitable(out):
        out = await out
    return out


class AuthDescriptor(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    key: Optional[str] = None
    optional: Optional[bool] = None

    @property
    def enabled(self) -> bool:
        return bool(self.key)

    @property
    def is_optional(self) -> bool:
        return bool(self.optional)


def normalize_auth(value: Any) -> AuthDescriptor:
    """
    A string is a required key, a mapping keeps only `key` and `optional`,
    anything falsy disables authentication.
    """
    if not value:
        return AuthDescriptor()
    if isinstance(value, AuthDescriptor):
        return value
    if isinstance(value, str):
        return AuthDescriptor(key=value)
    if isinstance(value, Mapping):
        return AuthDescriptor(key=value.get("key"), optional=value.get("optional"))
    raise TypeError(f"Unsupported authentication descriptor: {type(value).__name__}")


def merge_auth(local: AuthDescriptor, global_: AuthDescriptor) -> AuthDescriptor:
    return AuthDescriptor(
        key=local.key or global_.key,
        optional=global_.optional if local.optional is None else local.optional,
    )


class ParallelSpec(BaseModel):
    """Side actions started alongside the primary store call."""

    model_config = ConfigDict(extra="ignore", arbitrary_types_allowed=True)

    actions: List[Callable[..., Any]] = Field(default_factory=list)
    merge: Callable[..., Any]


_RESOLVABLE_FIELDS = (
    "hash_key",
    "attributes",
    "allowed_properties",
    "forbidden_properties",
    "query",
    "update",
)


class OperationConfig(BaseModel):
    """
    Options for one operation. Every field defaults to "disabled"; unknown
    keys are dropped.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True, arbitrary_types_allowed=True)

    hash_key: Any = Field(default=None, alias="hashKey")
    attributes: Any = None
    transform: Optional[Callable[..., Any]] = None
    allowed_properties: Any = Field(default=None, alias="allowedProperties")
    forbidden_properties: Any = Field(default=None, alias="forbiddenProperties")
    after: Optional[Callable[..., Any]] = None
    filter: Optional[Callable[..., Any]] = None
    map: Optional[Callable[..., Any]] = None
    query: Any = None
    parallel: Optional[ParallelSpec] = None
    overwrite: Optional[bool] = None
    update: Any = None
    authorize: Optional[Callable[..., Any]] = None
    post_authorize: Optional[Callable[..., Any]] = Field(default=None, alias="postAuthorize")
    auth: AuthDescriptor = Field(
        default_factory=AuthDescriptor,
        validation_alias=AliasChoices("auth", "jwt"),
    )
    gsi: Optional[str] = None

    @field_validator(*_RESOLVABLE_FIELDS, mode="before")
    @classmethod
    def _tag_resolvable(cls, v: Any) -> Any:
        return resolvable(v)

    @field_validator("auth", mode="before")
    @classmethod
    def _normalize_auth(cls, v: Any) -> AuthDescriptor:
        return normalize_auth(v)


class GlobalConfig(OperationConfig):
    """Defaults merged beneath every operation's own options."""


def parse_operation(raw: Any) -> OperationConfig:
    if isinstance(raw, OperationConfig):
        return raw
    if raw is True:
        raw = {}
    return OperationConfig.model_validate(dict(raw))


def parse_globals(raw: Any) -> GlobalConfig:
    if isinstance(raw, GlobalConfig):
        return raw
    data = {k: v for k, v in dict(raw or {}).items() if k not in OPERATIONS}
    return GlobalConfig.model_validate(data)


def merge_options(local: OperationConfig, global_: GlobalConfig) -> OperationConfig:
    """Field-by-field merge, local wins; the auth descriptor merges per key."""
    data: Dict[str, Any] = {}
    for name in global_.model_fields_set:
        data[name] = getattr(global_, name)
    for name in local.model_fields_set:
        data[name] = getattr(local, name)
    data["auth"] = merge_auth(local.auth, global_.auth)
    return OperationConfig().model_copy(update=data)
