from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Union

from dynarouter.core.errors import AccessDeniedError
from dynarouter.core.options import call_hook

log = logging.getLogger("dynarouter.engine")


@dataclass(frozen=True)
class Allowed:
    pass


@dataclass(frozen=True)
class Denied:
    message: Optional[str] = None
    cause: Any = None


Decision = Union[Allowed, Denied]

ALLOWED = Allowed()


def to_decision(result: Any) -> Decision:
    """
    Adapt whatever a gate function returned into a Decision.

    Falsy results, exceptions and objects with a falsy `pass` deny; anything
    else allows.
    """
    if isinstance(result, (Allowed, Denied)):
        return result
    if not result:
        return Denied()
    if isinstance(result, BaseException):
        return Denied(message=str(result) or None, cause=result)
    if isinstance(result, Mapping) and not result.get("pass"):
        return Denied(message=result.get("message"))
    return ALLOWED


def enforce(decision: Decision) -> None:
    if isinstance(decision, Denied):
        raise AccessDeniedError(decision.message, decision.cause)


async def authorize(ctx, gate: Optional[Callable[..., Any]]) -> Decision:
    """Pre-operation phase: runs before any store call."""
    if gate is None:
        return ALLOWED
    decision = to_decision(await call_hook(gate, ctx))
    if isinstance(decision, Denied):
        log.info("authorize deny message=%s", decision.message)
    enforce(decision)
    return decision


async def post_authorize(ctx, data: Any, gate: Optional[Callable[..., Any]]) -> Decision:
    """Post-operation phase: sees the store result, once per request."""
    if gate is None:
        return ALLOWED
    decision = to_decision(await call_hook(gate, ctx, data))
    if isinstance(decision, Denied):
        log.info("postAuthorize deny message=%s", decision.message)
    enforce(decision)
    return decision
