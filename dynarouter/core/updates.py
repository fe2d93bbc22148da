from __future__ import annotations

from typing import Any, Callable, Dict, Iterable

from dynarouter.core.store.base import UPDATE_ENVELOPE, is_envelope


def apply_props(update: Dict[str, Any], fn: Callable[[Dict[str, Any]], Dict[str, Any]]) -> Dict[str, Any]:
    """
    Apply `fn` to a flat update, or to each present sub-map of a
    `$PUT` / `$ADD` / `$DELETE` envelope. Other top-level keys of an envelope
    are dropped.
    """
    if is_envelope(update):
        return {k: fn(update[k]) for k in UPDATE_ENVELOPE if isinstance(update.get(k), dict)}
    return fn(update)


def pick(names: Iterable[str]) -> Callable[[Dict[str, Any]], Dict[str, Any]]:
    allowed = set(names)
    return lambda d: {k: v for k, v in d.items() if k in allowed}


def omit(names: Iterable[str]) -> Callable[[Dict[str, Any]], Dict[str, Any]]:
    forbidden = set(names)
    return lambda d: {k: v for k, v in d.items() if k not in forbidden}
