# portfolio_tracker/services/__init__.py
"""
Service layer for business logic.

This package contains the service layer which encapsulates business logic
separate from the API (router) layer. Services:
- Have NO knowledge of HTTP (no HTTPException, no status codes)
- Raise domain-specific exceptions
- Receive their collaborators as constructor arguments (not via Depends)
- Run blocking provider/store calls in worker threads

Usage:
    from portfolio_tracker.services import QuoteResolver, RefreshController
    from portfolio_tracker.services import (
        InvalidTickerError,
        QuoteUnavailableError,
    )

Architecture:
    services/
    ├── __init__.py              # This file - main exports
    ├── exceptions.py            # Domain exceptions
    ├── constants.py             # Business constants and limits
    ├── types.py                 # Holding / Quote / search candidate types
    ├── protocols.py             # HoldingStore interface
    ├── holdings_repository.py   # SQLAlchemy HoldingStore
    ├── quotes.py                # Quote Resolver (quote → summary → chart)
    ├── search.py                # Ticker Search Resolver
    ├── history.py               # Historical Series Fetcher + ranges
    ├── refresh.py               # Refresh/Sync Controller
    ├── market_data/             # Upstream provider package
    │   ├── base.py              # Abstract provider interface
    │   └── yahoo.py             # Yahoo Finance implementation
    └── portfolio/               # Portfolio Aggregator
        ├── service.py           # Snapshot / value series orchestrator
        ├── types.py             # Derived data types
        ├── calculators.py       # Snapshot calculations
        └── series_calculator.py # Value series calculations
"""

from portfolio_tracker.services.exceptions import (
    ServiceError,
    ValidationError,
    InvalidRangeError,
    InvalidTickerError,
    NotFoundError,
    HoldingNotFoundError,
    MarketDataError,
    ProviderUnavailableError,
    TickerNotFoundError,
    RateLimitError,
    QuoteUnavailableError,
)
from portfolio_tracker.services.history import HistoricalSeriesFetcher, HistoryRange
from portfolio_tracker.services.holdings_repository import HoldingRepository
from portfolio_tracker.services.portfolio import PortfolioService
from portfolio_tracker.services.quotes import QuoteBatch, QuoteResolver
from portfolio_tracker.services.refresh import (
    PortfolioState,
    RefreshController,
    RefreshState,
    RefreshTrigger,
)
from portfolio_tracker.services.search import TickerSearchResolver

__all__ = [
    # Exceptions
    "ServiceError",
    "ValidationError",
    "InvalidRangeError",
    "InvalidTickerError",
    "NotFoundError",
    "HoldingNotFoundError",
    "MarketDataError",
    "ProviderUnavailableError",
    "TickerNotFoundError",
    "RateLimitError",
    "QuoteUnavailableError",
    # Services
    "HistoricalSeriesFetcher",
    "HistoryRange",
    "HoldingRepository",
    "PortfolioService",
    "QuoteBatch",
    "QuoteResolver",
    "PortfolioState",
    "RefreshController",
    "RefreshState",
    "RefreshTrigger",
    "TickerSearchResolver",
]
