"""Structured logging with correlation ID propagation.

Configures structlog with:
- Automatic correlation ID injection into all log entries
- JSON or console output
- Configurable log level

Usage:
    from src.observability.logging import configure_logging

    # Configure at application startup
    configure_logging(level="INFO", json_output=False)

    logger = structlog.get_logger()
    logger.info("poll_cycle_completed", notified=3)

    # Output includes correlation_id automatically:
    # {"event": "poll_cycle_completed", "notified": 3,
    #  "correlation_id": "poll-20261017-101500", ...}
"""

import logging
import sys
from typing import Any

import structlog
from structlog.typing import EventDict, WrappedLogger

from src.observability.context import get_correlation_id


def add_correlation_id_processor(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor that adds correlation_id to log entries.

    If no correlation ID is set, uses "none".
    """
    corr_id = get_correlation_id()
    event_dict["correlation_id"] = corr_id if corr_id else "none"
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    add_timestamp: bool = True,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: If True, output JSON. If False, use console format.
        add_timestamp: If True, add ISO timestamp to each log entry.

    Example:
        # Daemon (JSON for log aggregation)
        configure_logging(level="INFO", json_output=True)

        # Interactive (readable console output)
        configure_logging(level="DEBUG", json_output=False)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        add_correlation_id_processor,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if add_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def bind_context(**context: Any) -> None:
    """Bind context to all subsequent log entries in the current context.

    Example:
        bind_context(job="poll")
        logger.info("processing")  # Includes job="poll"
    """
    structlog.contextvars.bind_contextvars(**context)


def clear_context() -> None:
    """Clear all bound context from structlog contextvars."""
    structlog.contextvars.clear_contextvars()
