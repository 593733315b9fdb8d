"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNTER = Counter(
	"netgraph_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"netgraph_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

CONNECTION_REQUESTS = Counter(
	"netgraph_connection_requests_total",
	"Connection requests by outcome",
	["result"],
)

CONNECTION_RESPONSES = Counter(
	"netgraph_connection_responses_total",
	"Connection responses by decision",
	["decision"],
)

CONNECTION_WITHDRAWALS = Counter(
	"netgraph_connection_withdrawals_total",
	"Pending connection requests withdrawn by the requester",
)

SUGGESTION_INVALIDATION_FAILURES = Counter(
	"netgraph_suggestion_invalidation_failures_total",
	"Suggestion cache invalidations that failed and were skipped",
)

NETWORK_QUERIES = Counter(
	"netgraph_network_queries_total",
	"Connection network builds",
	["include_pending"],
)

NETWORK_BUILD_LATENCY = Histogram(
	"netgraph_network_build_seconds",
	"Time spent assembling a connection network payload",
	buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)


def observe_request(route: str, method: str, status: int, seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(seconds)


def inc_connection_request(result: str) -> None:
	CONNECTION_REQUESTS.labels(result=result).inc()


def inc_connection_response(decision: str) -> None:
	CONNECTION_RESPONSES.labels(decision=decision).inc()


def inc_connection_withdrawal() -> None:
	CONNECTION_WITHDRAWALS.inc()


def inc_invalidation_failure() -> None:
	SUGGESTION_INVALIDATION_FAILURES.inc()


def observe_network_build(include_pending: bool, seconds: float) -> None:
	NETWORK_QUERIES.labels(include_pending=str(bool(include_pending)).lower()).inc()
	NETWORK_BUILD_LATENCY.observe(seconds)
