"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking lifecycle
bookings_created = Counter(
    'bookings_created_total',
    'Bookings created in pending state',
    ['event']
)

payment_transitions = Counter(
    'payment_transitions_total',
    'Booking payment status transitions',
    ['status', 'source', 'result']  # completed/failed, webhook/poll, applied/noop/rejected
)

duplicate_redemptions = Counter(
    'duplicate_redemptions_total',
    'Completion attempts rejected because the invite code was already redeemed'
)

# Webhook ingestion
webhook_events = Counter(
    'webhook_events_total',
    'Webhook deliveries by outcome',
    ['outcome']  # processed, duplicate, ignored, invalid_signature
)

ledger_errors = Counter(
    'webhook_ledger_errors_total',
    'Idempotency ledger read/write failures',
    ['operation']  # check, record, prune
)

# Check-in
checkins = Counter(
    'checkins_total',
    'Check-in attempts by outcome',
    ['outcome']  # checked_in, already_checked_in, not_eligible
)

# Advisory collaborators
fanout_failures = Counter(
    'fanout_failures_total',
    'Best-effort notifier/mirror calls that failed',
    ['collaborator']  # notifier, mirror
)

gateway_latency = Histogram(
    'gateway_request_latency_seconds',
    'Payment gateway request latency',
    ['operation'],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# Roster cache
roster_cache = Counter(
    'roster_cache_operations_total',
    'Invite roster cache lookups',
    ['result']  # hit, miss, error
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_transition(status: str, source: str, result: str):
    """Record a payment transition. Result: applied, noop, rejected"""
    payment_transitions.labels(status=status, source=source, result=result).inc()


def record_webhook(outcome: str):
    webhook_events.labels(outcome=outcome).inc()


def record_checkin(outcome: str):
    checkins.labels(outcome=outcome).inc()


def record_fanout_failure(collaborator: str):
    fanout_failures.labels(collaborator=collaborator).inc()


def record_roster_cache(result: str):
    roster_cache.labels(result=result).inc()
