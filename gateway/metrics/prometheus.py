"""Prometheus metrics for the gateway (default registry, exposed on /metrics)."""
from prometheus_client import Counter, Histogram

REQUESTS = Counter("gateway_requests_total", "Total proxied requests received")
INVALID_TARGETS = Counter("gateway_invalid_targets_total", "Requests rejected for a missing or malformed target URL")
UPSTREAM_REDIRECTS = Counter("gateway_upstream_redirects_total", "Upstream 3xx responses converted to gateway redirects")
UPSTREAM_FAILURES = Counter("gateway_upstream_failures_total", "Upstream fetches that ended in an error response")
REWRITTEN_ATTRIBUTES = Counter("gateway_rewritten_attributes_total", "HTML attributes rewritten into the gateway namespace")
REWRITE_FAILURES = Counter("gateway_rewrite_failures_total", "HTML attributes left untouched because they could not be resolved")
UPSTREAM_LATENCY = Histogram("gateway_upstream_latency_seconds", "Upstream fetch latency seconds")


def snapshot() -> dict[str, float]:
    """Current counter values, for the /traffic endpoint."""
    return {
        "requests_total": REQUESTS._value.get(),
        "invalid_targets_total": INVALID_TARGETS._value.get(),
        "upstream_redirects_total": UPSTREAM_REDIRECTS._value.get(),
        "upstream_failures_total": UPSTREAM_FAILURES._value.get(),
        "rewritten_attributes_total": REWRITTEN_ATTRIBUTES._value.get(),
        "rewrite_failures_total": REWRITE_FAILURES._value.get(),
    }
