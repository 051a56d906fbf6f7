# portfolio_tracker/services/portfolio/__init__.py
"""
Portfolio Aggregator package.

Combines a holding set with quotes and daily closes into:
- a snapshot (per-holding valuation and totals)
- a value series (portfolio value per calendar date, with per-ticker split)

Usage:
    from portfolio_tracker.services.portfolio import PortfolioService

    service = PortfolioService(history_fetcher)
    snapshot = service.get_snapshot(holdings, quotes, owner_filter="All")
    series = await service.get_value_series(holdings, "30d", owner_filter="Asha")

Architecture:
    portfolio/
    ├── __init__.py            # This file - package exports
    ├── types.py               # Derived data classes
    ├── calculators.py         # Owner filter + snapshot calculator
    ├── series_calculator.py   # Value series calculator
    └── service.py             # PortfolioService (orchestrator)

Data Flow:
    Holdings → filter_holdings(owner) → active subset
    Active + Quotes → SnapshotCalculator → PortfolioSnapshot
    Active + History → ValueSeriesCalculator → ValueSeries
"""

from portfolio_tracker.services.portfolio.calculators import (
    SnapshotCalculator,
    filter_holdings,
    list_owners,
)
from portfolio_tracker.services.portfolio.series_calculator import ValueSeriesCalculator
from portfolio_tracker.services.portfolio.service import PortfolioService
from portfolio_tracker.services.portfolio.types import (
    HoldingValuation,
    PortfolioSnapshot,
    ValuePoint,
    ValueSeries,
)

__all__ = [
    "PortfolioService",
    "SnapshotCalculator",
    "ValueSeriesCalculator",
    "filter_holdings",
    "list_owners",
    "HoldingValuation",
    "PortfolioSnapshot",
    "ValuePoint",
    "ValueSeries",
]
