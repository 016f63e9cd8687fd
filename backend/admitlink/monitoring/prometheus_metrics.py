"""
Prometheus metrics for the messaging core.

Service timings come from the @measure_operation decorator; realtime
counters are bumped by the fan-out and the socket gateway.
"""

from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# Custom registry so test processes can import the module repeatedly
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "admitlink_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "admitlink_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "admitlink_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

activity_events_total = Counter(
    "admitlink_activity_events_total",
    "Activity records written, by action",
    ["action"],
    registry=REGISTRY,
)

realtime_connections = Gauge(
    "admitlink_realtime_connections",
    "Authenticated realtime socket connections currently open",
    registry=REGISTRY,
)

realtime_events_published_total = Counter(
    "admitlink_realtime_events_published_total",
    "Realtime frames handed to the room transport, by event name",
    ["event"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Thin facade so callers never touch metric objects directly."""

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def inc_activity(action: str) -> None:
        activity_events_total.labels(action=action).inc()

    @staticmethod
    def inc_realtime_event(event: str) -> None:
        realtime_events_published_total.labels(event=event).inc()

    @staticmethod
    def connection_opened() -> None:
        realtime_connections.inc()

    @staticmethod
    def connection_closed() -> None:
        realtime_connections.dec()

    @staticmethod
    def get_metrics() -> bytes:
        """Metrics in the Prometheus text exposition format."""
        return cast(bytes, generate_latest(REGISTRY))

    @staticmethod
    def get_content_type() -> str:
        return cast(str, CONTENT_TYPE_LATEST)


prometheus_metrics = PrometheusMetrics()
