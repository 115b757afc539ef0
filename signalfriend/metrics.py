"""Prometheus collectors shared by the request hooks and the webhook pipeline."""

from prometheus_client import CollectorRegistry, Counter

registry = CollectorRegistry()

request_counter = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
    registry=registry,
)

webhook_events = Counter(
    "webhook_events_total",
    "Blockchain events received through webhooks",
    ["event_type", "outcome"],
    registry=registry,
)
