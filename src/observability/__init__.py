"""Observability module.

Provides:
- Correlation ID context management for poll tracing
- Structured logging with context propagation
- Prometheus metrics for monitoring

Usage:
    from src.observability import (
        set_correlation_id,
        configure_logging,
        NOTIFICATIONS_TOTAL,
    )

    configure_logging(level="INFO")
    corr_id = set_correlation_id()
    NOTIFICATIONS_TOTAL.labels(outcome="notified").inc()
"""

from src.observability.context import (
    set_correlation_id,
    get_correlation_id,
    clear_correlation_id,
)
from src.observability.logging import (
    configure_logging,
    add_correlation_id_processor,
    bind_context,
    clear_context,
)
from src.observability.metrics import (
    # Counters
    GITLAB_REQUESTS,
    EVENTS_FETCHED,
    NOTIFICATIONS_TOTAL,
    POLL_CYCLES,
    # Gauges
    UNREAD_NOTIFICATIONS,
    SCHEDULER_JOBS,
    # Histograms
    POLL_CYCLE_DURATION,
    # Registry and utilities
    MetricsContext,
    get_metrics_text,
    start_metrics_server,
)

__all__ = [
    # Context
    "set_correlation_id",
    "get_correlation_id",
    "clear_correlation_id",
    # Logging
    "configure_logging",
    "add_correlation_id_processor",
    "bind_context",
    "clear_context",
    # Counters
    "GITLAB_REQUESTS",
    "EVENTS_FETCHED",
    "NOTIFICATIONS_TOTAL",
    "POLL_CYCLES",
    # Gauges
    "UNREAD_NOTIFICATIONS",
    "SCHEDULER_JOBS",
    # Histograms
    "POLL_CYCLE_DURATION",
    # Utilities
    "MetricsContext",
    "get_metrics_text",
    "start_metrics_server",
]
