from __future__ import annotations

from prometheus_client import Counter, Histogram

UNMATCHED_PATH = "<unmatched>"


def route_path(request) -> str:
    """
    Label value for a request's path: the matched route template
    (`/user/{user_hash}`), never the raw URL. Anything that matched no
    route shares one label so probes for random URLs cannot blow up
    cardinality.
    """
    route = request.scope.get("route")
    return getattr(route, "path", None) or UNMATCHED_PATH


def route_operation(request) -> str:
    """`<entity>_<operation>` for pipeline endpoints, else the endpoint name."""
    endpoint = request.scope.get("endpoint")
    return getattr(endpoint, "__name__", None) or ""


HTTP_REQUESTS_TOTAL = Counter(
    "dynarouter_http_requests_total",
    "Requests served, by route template and status",
    ["method", "path", "status"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "dynarouter_http_request_duration_seconds",
    "Wall time from first middleware to response, by route template",
    ["method", "path"],
)

AUTHZ_DECISIONS_TOTAL = Counter(
    "dynarouter_authz_decisions_total",
    "Authorization gate decisions",
    ["phase", "decision", "operation"],
)

STORE_CALLS_TOTAL = Counter(
    "dynarouter_store_calls_total",
    "Backing-store calls by outcome",
    ["operation", "outcome"],
)
