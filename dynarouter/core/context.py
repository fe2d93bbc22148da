from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional


@dataclass
class RequestState:
    keys: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    claims: Optional[Dict[str, Any]] = None
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RequestContext:
    """
    Everything a pipeline and the user hooks see of one inbound request.

    `query` keeps multi-valued parameters as lists so `hashKeys` and
    `rangeKeys` arrive positionally intact.
    """

    params: Dict[str, str] = field(default_factory=dict)
    query: Dict[str, List[str]] = field(default_factory=dict)
    body: Any = None
    state: RequestState = field(default_factory=RequestState)
    request: Any = None

    def query_list(self, name: str) -> Optional[List[str]]:
        values = self.query.get(name)
        if values is None:
            values = self.query.get(f"{name}[]")
        if values is None:
            return None
        if isinstance(values, (str, bytes)):
            return [values]
        return list(values)


def query_from_items(items: Mapping[str, Any] | Any) -> Dict[str, List[str]]:
    """Collapse starlette's multi-dict into name -> list of values."""
    out: Dict[str, List[str]] = {}
    pairs = items.multi_items() if hasattr(items, "multi_items") else list(dict(items).items())
    for k, v in pairs:
        out.setdefault(k, []).append(v)
    return out
