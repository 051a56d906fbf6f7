# portfolio_tracker/routers/__init__.py
"""
API routers for the Portfolio Tracker.

- holdings: Holding CRUD (writes validated and reconciled by the controller)
- market_data: Live quote, batch daily history, ticker search
- portfolio: Snapshot, value series, manual refresh
"""

from portfolio_tracker.routers.holdings import router as holdings_router
from portfolio_tracker.routers.market_data import router as market_data_router
from portfolio_tracker.routers.portfolio import router as portfolio_router

__all__ = [
    "holdings_router",
    "market_data_router",
    "portfolio_router",
]
