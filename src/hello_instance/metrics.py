"""Prometheus instruments describing the instance."""

from prometheus_client import Counter, Gauge, Histogram


REQUEST_LATENCY = Histogram(
    "hello_instance_request_latency_seconds",
    "Latency of hello requests including the artificial delay.",
    buckets=(0.05, 0.1, 0.5, 1, 2, 5, 10, 30),
)
REQUESTS_COMPLETED = Counter(
    "hello_instance_requests_completed_total",
    "Number of hello requests the coordinator recorded as finished.",
)
ACTIVE_REQUESTS = Gauge(
    "hello_instance_active_requests",
    "Requests currently in flight according to the coordinator.",
)
WORK_RATE = Gauge(
    "hello_instance_work_rate_hashes_per_ms",
    "Hashes per millisecond computed during the last load window.",
)
STATUS_MESSAGES = Counter(
    "hello_instance_status_messages_total",
    "Status messages delivered to the status topic.",
    labelnames=("status",),
)


__all__ = [
    "ACTIVE_REQUESTS",
    "REQUESTS_COMPLETED",
    "REQUEST_LATENCY",
    "STATUS_MESSAGES",
    "WORK_RATE",
]
