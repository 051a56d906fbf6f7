# portfolio_tracker/utils/__init__.py
"""
Cross-cutting utilities: logging setup and request context.

Usage:
    from portfolio_tracker.utils import setup_logging
    from portfolio_tracker.utils import get_correlation_id, set_correlation_id
"""

from portfolio_tracker.utils.context import (
    get_correlation_id,
    set_correlation_id,
    clear_correlation_id,
)
from portfolio_tracker.utils.logging import setup_logging

__all__ = [
    "setup_logging",
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
]
