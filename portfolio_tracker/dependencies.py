# portfolio_tracker/dependencies.py
"""
Dependency injection module for FastAPI services.

Provides singleton service instances shared across all requests. The
RefreshController in particular must be a singleton: it owns the
in-memory holding set and the background refresh loop.

Services are lazily initialized on first use to avoid import-time side effects.

Order matters: define dependencies before dependents
1. get_market_data_provider (no deps)
2. get_holding_repository (no deps)
3. get_quote_resolver, get_ticker_search_resolver, get_history_fetcher (provider)
4. get_portfolio_service (history fetcher)
5. get_refresh_controller (repository, quote resolver, portfolio service)

Tests override these with app.dependency_overrides.
"""

import logging
from functools import lru_cache

from portfolio_tracker.config import settings
from portfolio_tracker.database import SessionLocal
from portfolio_tracker.services.history import HistoricalSeriesFetcher
from portfolio_tracker.services.holdings_repository import HoldingRepository
from portfolio_tracker.services.market_data import MarketDataProvider, YahooFinanceProvider
from portfolio_tracker.services.portfolio import PortfolioService
from portfolio_tracker.services.quotes import QuoteResolver
from portfolio_tracker.services.refresh import RefreshController
from portfolio_tracker.services.search import TickerSearchResolver

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_market_data_provider() -> MarketDataProvider:
    """Shared upstream provider (one place to respect upstream rate limits)."""
    return YahooFinanceProvider(timeout=settings.provider_timeout_seconds)


@lru_cache(maxsize=1)
def get_holding_repository() -> HoldingRepository:
    return HoldingRepository(SessionLocal)


@lru_cache(maxsize=1)
def get_quote_resolver() -> QuoteResolver:
    return QuoteResolver(get_market_data_provider())


@lru_cache(maxsize=1)
def get_ticker_search_resolver() -> TickerSearchResolver:
    return TickerSearchResolver(get_market_data_provider())


@lru_cache(maxsize=1)
def get_history_fetcher() -> HistoricalSeriesFetcher:
    return HistoricalSeriesFetcher(get_market_data_provider())


@lru_cache(maxsize=1)
def get_portfolio_service() -> PortfolioService:
    return PortfolioService(get_history_fetcher())


@lru_cache(maxsize=1)
def get_refresh_controller() -> RefreshController:
    """The single controller owning the in-memory portfolio state."""
    logger.debug("Creating RefreshController")
    return RefreshController(
        store=get_holding_repository(),
        quote_resolver=get_quote_resolver(),
        portfolio_service=get_portfolio_service(),
    )
