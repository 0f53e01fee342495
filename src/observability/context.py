"""Correlation ID context management for poll tracing.

Provides ContextVar-based storage for correlation IDs that propagate
automatically across async boundaries, so every log entry of one poll cycle
carries the same ID.

Usage:
    from src.observability.context import set_correlation_id, get_correlation_id

    # At a cycle boundary (CLI command, scheduled job)
    corr_id = set_correlation_id("poll-20261017-101500")

    # Retrieve anywhere in the call stack
    current_id = get_correlation_id()
"""

import uuid
from contextvars import ContextVar
from typing import Optional

_correlation_id_var: ContextVar[Optional[str]] = ContextVar(
    "correlation_id", default=None
)


def set_correlation_id(corr_id: Optional[str] = None) -> str:
    """Set the correlation ID for the current context.

    If no ID is provided, generates a new UUID v4.

    Returns:
        The correlation ID that was set (generated or provided).
    """
    if corr_id is None:
        corr_id = str(uuid.uuid4())

    _correlation_id_var.set(corr_id)
    return corr_id


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID, or None if not set."""
    return _correlation_id_var.get()


def clear_correlation_id() -> None:
    """Reset the correlation ID to None.

    Use at cycle boundaries to prevent leakage between unrelated runs.
    """
    _correlation_id_var.set(None)
