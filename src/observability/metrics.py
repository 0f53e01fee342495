"""Prometheus metrics definitions for the GitLab notifier.

Defines counters, gauges, and histograms for monitoring:
- GitLab API request outcomes
- Event throughput and notification decisions
- Unread badge count
- Scheduler and poll cycle status

Usage:
    from src.observability.metrics import (
        NOTIFICATIONS_TOTAL,
        POLL_CYCLE_DURATION,
    )

    # Increment counter
    NOTIFICATIONS_TOTAL.labels(outcome="notified").inc()

    # Track histogram
    with POLL_CYCLE_DURATION.time():
        await cycle.run(projects)

Metrics are exposed by `watch --metrics-port`.
"""

from typing import Any, Optional
from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    CollectorRegistry,
    generate_latest,
    start_http_server,
    CONTENT_TYPE_LATEST,
)

# Custom registry to avoid conflicts with default registry
REGISTRY = CollectorRegistry(auto_describe=True)

# =============================================================================
# COUNTERS - Monotonically increasing values
# =============================================================================

GITLAB_REQUESTS = Counter(
    name="gitlab_notifier_requests_total",
    documentation="Total GitLab API requests",
    labelnames=["endpoint", "status"],  # projects/events/..., 200/404/error
    registry=REGISTRY,
)

EVENTS_FETCHED = Counter(
    name="gitlab_notifier_events_fetched_total",
    documentation="Total project events fetched from GitLab",
    registry=REGISTRY,
)

NOTIFICATIONS_TOTAL = Counter(
    name="gitlab_notifier_notifications_total",
    documentation="Notification decisions per event",
    labelnames=["outcome"],  # notified, duplicate, own_event, filtered, error
    registry=REGISTRY,
)

POLL_CYCLES = Counter(
    name="gitlab_notifier_poll_cycles_total",
    documentation="Total poll cycles",
    labelnames=["status"],  # success, failure
    registry=REGISTRY,
)

# =============================================================================
# GAUGES - Values that can go up and down
# =============================================================================

UNREAD_NOTIFICATIONS = Gauge(
    name="gitlab_notifier_unread_notifications",
    documentation="Current unread badge count",
    registry=REGISTRY,
)

SCHEDULER_JOBS = Gauge(
    name="gitlab_notifier_scheduler_jobs",
    documentation="Number of scheduled jobs",
    labelnames=["status"],  # pending, running
    registry=REGISTRY,
)

# =============================================================================
# HISTOGRAMS - Distribution of values
# =============================================================================

POLL_CYCLE_DURATION = Histogram(
    name="gitlab_notifier_poll_cycle_duration_seconds",
    documentation="Poll cycle duration in seconds",
    buckets=(0.1, 0.5, 1, 2, 5, 10, 30, 60, 120, float("inf")),
    registry=REGISTRY,
)


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def get_metrics_text() -> bytes:
    """Generate Prometheus metrics in text format.

    Returns:
        UTF-8 encoded metrics in Prometheus exposition format.
    """
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    """Get the content type for Prometheus metrics response."""
    return CONTENT_TYPE_LATEST


def start_metrics_server(port: int, addr: str = "0.0.0.0") -> Any:
    """Serve the custom registry on ``http://addr:port/metrics``.

    Args:
        port: TCP port to listen on
        addr: Bind address
    """
    return start_http_server(port, addr=addr, registry=REGISTRY)


class MetricsContext:
    """Context manager for timing operations and updating metrics.

    Combines histogram timing with counter updates for common patterns.

    Example:
        with MetricsContext(
            histogram=POLL_CYCLE_DURATION,
            failure_counter=NOTIFICATIONS_TOTAL.labels(outcome="error"),
        ) as ctx:
            await cycle.run(projects)
            ctx.mark_success()
    """

    def __init__(
        self,
        histogram: Optional[Histogram] = None,
        success_counter: Optional[Counter] = None,
        failure_counter: Optional[Counter] = None,
    ):
        """Initialize metrics context.

        Args:
            histogram: Optional histogram to record duration
            success_counter: Counter to increment on success
            failure_counter: Counter to increment on failure
        """
        self._histogram = histogram
        self._success_counter = success_counter
        self._failure_counter = failure_counter
        self._timer: Any = None
        self._success = False

    def __enter__(self) -> "MetricsContext":
        """Start timing."""
        if self._histogram:
            self._timer = self._histogram.time()
            self._timer.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Stop timing and update counters."""
        if self._timer:
            self._timer.__exit__(exc_type, exc_val, exc_tb)

        if exc_type is not None:
            if self._failure_counter:
                self._failure_counter.inc()
        elif self._success:
            if self._success_counter:
                self._success_counter.inc()
        else:
            # No exception but not marked success - treat as failure
            if self._failure_counter:
                self._failure_counter.inc()

    def mark_success(self) -> None:
        """Mark the operation as successful."""
        self._success = True
