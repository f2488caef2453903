"""Prometheus metrics for resource requests."""

from prometheus_client import Counter, Histogram

crud_requests_total = Counter(
    "crud_requests_total",
    "Total resource requests by outcome status",
    ["resource", "operation", "status"],
)

crud_latency_ms = Histogram(
    "crud_latency_ms",
    "Resource request latency in milliseconds",
    ["resource", "operation"],
    buckets=[5, 10, 25, 50, 100, 250, 500, 1000, 2500],
)

access_denied_total = Counter(
    "access_denied_total",
    "Total requests denied by the access policy",
    ["resource", "operation"],
)


class PrometheusRequestMetrics:
    """Prometheus-based request metrics implementation."""

    def record_request(
        self, resource: str, operation: str, status: int, latency_ms: float
    ) -> None:
        """Record one completed request."""
        crud_requests_total.labels(resource=resource, operation=operation, status=str(status)).inc()
        crud_latency_ms.labels(resource=resource, operation=operation).observe(latency_ms)

    def inc_denied(self, resource: str, operation: str) -> None:
        """Increment access denied counter."""
        access_denied_total.labels(resource=resource, operation=operation).inc()
