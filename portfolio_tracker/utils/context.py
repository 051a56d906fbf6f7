# portfolio_tracker/utils/context.py
"""
Request-scoped context for log correlation.

Uses contextvars so the value follows the request through await points
and into worker threads started with asyncio.to_thread (which copies the
current context).

Usage:
    from portfolio_tracker.utils.context import get_correlation_id

    correlation_id = get_correlation_id()
"""

from contextvars import ContextVar

_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    """Return the current request's correlation ID, or None outside a request."""
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    """Bind a correlation ID to the current context (called by middleware)."""
    _correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    _correlation_id_var.set(None)
