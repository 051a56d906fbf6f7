# tests/routers/conftest.py
"""
API test fixtures: the FastAPI app wired to the mock provider and an
in-memory holdings store through dependency overrides.
"""

import pytest
from fastapi.testclient import TestClient

from portfolio_tracker.dependencies import (
    get_history_fetcher,
    get_holding_repository,
    get_quote_resolver,
    get_refresh_controller,
    get_ticker_search_resolver,
)
from portfolio_tracker.main import app
from portfolio_tracker.services.history import HistoricalSeriesFetcher
from portfolio_tracker.services.holdings_repository import HoldingRepository
from portfolio_tracker.services.portfolio import PortfolioService
from portfolio_tracker.services.quotes import QuoteResolver
from portfolio_tracker.services.refresh import RefreshController
from portfolio_tracker.services.search import TickerSearchResolver


@pytest.fixture(scope="function")
def repository(session_factory) -> HoldingRepository:
    return HoldingRepository(session_factory)


@pytest.fixture(scope="function")
def controller(repository, mock_provider) -> RefreshController:
    fetcher = HistoricalSeriesFetcher(mock_provider, timeout_seconds=5)
    return RefreshController(
        store=repository,
        quote_resolver=QuoteResolver(mock_provider),
        portfolio_service=PortfolioService(fetcher),
    )


@pytest.fixture(scope="function")
def client(repository, controller, mock_provider) -> TestClient:
    """Create TestClient with service dependency overrides."""
    app.dependency_overrides[get_holding_repository] = lambda: repository
    app.dependency_overrides[get_refresh_controller] = lambda: controller
    app.dependency_overrides[get_quote_resolver] = lambda: QuoteResolver(mock_provider)
    app.dependency_overrides[get_ticker_search_resolver] = lambda: TickerSearchResolver(
        mock_provider, local_suffix=".NS"
    )
    app.dependency_overrides[get_history_fetcher] = lambda: HistoricalSeriesFetcher(
        mock_provider, timeout_seconds=5
    )

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
