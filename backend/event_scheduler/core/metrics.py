"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Gauge, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Event store metrics
store_mutations = Counter(
    'event_store_mutations_total',
    'Event list mutations by operation and outcome',
    ['operation', 'outcome']  # create/update/delete/toggle_rsvp x ok/rejected/error
)

store_write_latency = Histogram(
    'event_store_write_latency_seconds',
    'Read-modify-write cycle latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 5.0]
)

version_conflicts = Counter(
    'event_store_version_conflicts_total',
    'Optimistic writes that lost the race and were retried'
)

# External collaborator metrics
backend_errors = Counter(
    'kv_backend_errors_total',
    'Key-value backend failures and timeouts',
    ['operation']  # get/set/compare_and_set
)

identity_errors = Counter(
    'identity_lookup_errors_total',
    'Identity provider failures and timeouts'
)

# Session metrics
open_sessions = Gauge(
    'scheduler_open_sessions',
    'Post views with an open protocol session'
)

protocol_messages = Counter(
    'protocol_messages_total',
    'Protocol requests handled per tag',
    ['tag']
)

deferred_requests = Counter(
    'protocol_deferred_requests_total',
    'Requests received before the session was ready',
    ['result']  # queued, dropped
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_mutation(operation: str, outcome: str):
    """Record a store mutation. Outcome: ok, rejected, error"""
    store_mutations.labels(operation=operation, outcome=outcome).inc()


def record_backend_error(operation: str):
    backend_errors.labels(operation=operation).inc()


def record_deferred(queued: bool):
    """Record what happened to a request that arrived while loading."""
    deferred_requests.labels(result="queued" if queued else "dropped").inc()
