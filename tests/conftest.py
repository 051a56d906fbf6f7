# tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- Test environment settings (must be set before any app import)
- In-memory holdings store (SQLite) and a dict-backed fake store
- Mock market data provider
- Sample data factories
"""

import os

# Set required environment variables BEFORE importing app modules
os.environ["ENVIRONMENT"] = "test"
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from portfolio_tracker.models import Base
from portfolio_tracker.services.exceptions import HoldingNotFoundError, TickerNotFoundError
from portfolio_tracker.services.market_data.base import ChartResult, MarketDataProvider, OHLCVData
from portfolio_tracker.services.types import Holding, HoldingChanges, HoldingInput, Quote


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def session_factory(db_engine) -> Iterator[sessionmaker[Session]]:
    """Session factory bound to the in-memory engine."""
    yield sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


# =============================================================================
# MOCK MARKET DATA PROVIDER
# =============================================================================

class MockMarketDataProvider(MarketDataProvider):
    """
    Mock implementation of MarketDataProvider for testing.

    Every endpoint is configured per symbol. Unconfigured symbols raise
    TickerNotFoundError, like an unknown symbol upstream. Calls are
    recorded in `calls` as (method, symbol_or_query) tuples.
    """

    def __init__(self):
        self._quotes: dict[str, dict[str, Any]] = {}
        self._summaries: dict[str, dict[str, dict[str, Any]]] = {}
        self._charts: dict[str, ChartResult] = {}
        self._historical: dict[str, list[OHLCVData]] = {}
        self._search_results: dict[str, list[dict[str, Any]]] = {}
        self._errors: dict[tuple[str, str], Exception] = {}
        self.calls: list[tuple[str, str]] = []

    @property
    def name(self) -> str:
        return "mock"

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    def set_quote(self, symbol: str, data: dict[str, Any]) -> None:
        self._quotes[symbol.upper()] = data

    def set_summary(self, symbol: str, data: dict[str, dict[str, Any]]) -> None:
        self._summaries[symbol.upper()] = data

    def set_chart(self, symbol: str, chart: ChartResult) -> None:
        self._charts[symbol.upper()] = chart

    def set_historical(self, symbol: str, bars: list[OHLCVData]) -> None:
        self._historical[symbol.upper()] = bars

    def set_search(self, query: str, results: list[dict[str, Any]]) -> None:
        self._search_results[query] = results

    def set_error(self, method: str, key: str, error: Exception) -> None:
        """Make `method` raise `error` for a symbol (or search query)."""
        self._errors[(method, key)] = error

    def calls_to(self, method: str) -> list[str]:
        return [key for m, key in self.calls if m == method]

    def _record(self, method: str, key: str) -> None:
        self.calls.append((method, key))
        if (method, key) in self._errors:
            raise self._errors[(method, key)]

    # -------------------------------------------------------------------------
    # Provider interface
    # -------------------------------------------------------------------------

    def get_quote(self, symbol: str) -> dict[str, Any]:
        self._record("quote", symbol)
        if symbol.upper() not in self._quotes:
            raise TickerNotFoundError(ticker=symbol, provider=self.name)
        return self._quotes[symbol.upper()]

    def get_quote_summary(self, symbol: str, modules: tuple[str, ...] = ("price",)) -> dict[str, dict[str, Any]]:
        self._record("summary", symbol)
        if symbol.upper() not in self._summaries:
            raise TickerNotFoundError(ticker=symbol, provider=self.name)
        return self._summaries[symbol.upper()]

    def get_chart(self, symbol: str, start_date: date, end_date: date, interval: str = "1d") -> ChartResult:
        self._record("chart", symbol)
        if symbol.upper() not in self._charts:
            raise TickerNotFoundError(ticker=symbol, provider=self.name)
        return self._charts[symbol.upper()]

    def get_historical(self, symbol: str, start_date: date, end_date: date, interval: str = "1d") -> list[OHLCVData]:
        self._record("historical", symbol)
        if symbol.upper() not in self._historical:
            raise TickerNotFoundError(ticker=symbol, provider=self.name)
        return [b for b in self._historical[symbol.upper()] if start_date <= b.date <= end_date]

    def search(self, query: str, quotes_count: int = 15, news_count: int = 0) -> list[dict[str, Any]]:
        self._record("search", query)
        return self._search_results.get(query, [])


@pytest.fixture
def mock_provider() -> MockMarketDataProvider:
    """Create a fresh mock provider for each test."""
    return MockMarketDataProvider()


# =============================================================================
# FAKE HOLDINGS STORE
# =============================================================================

class FakeHoldingStore:
    """Dict-backed HoldingStore; lists newest first like the real store."""

    def __init__(self, holdings: list[Holding] | None = None):
        self._holdings: dict[int, Holding] = {h.id: h for h in holdings or []}
        self._next_id = max(self._holdings, default=0) + 1
        self.list_calls = 0

    def list(self) -> list[Holding]:
        self.list_calls += 1
        return sorted(self._holdings.values(), key=lambda h: h.id, reverse=True)

    def get(self, holding_id: int) -> Holding:
        if holding_id not in self._holdings:
            raise HoldingNotFoundError(holding_id)
        return self._holdings[holding_id]

    def create(self, data: HoldingInput) -> Holding:
        holding = Holding(
            id=self._next_id,
            ticker=data.ticker,
            quantity=data.quantity,
            cost_basis_per_unit=data.cost_basis_per_unit,
            purchase_date=data.purchase_date,
            owner=data.owner,
            created_at=datetime.now(timezone.utc),
        )
        self._holdings[holding.id] = holding
        self._next_id += 1
        return holding

    def update(self, holding_id: int, changes: HoldingChanges) -> Holding:
        current = self.get(holding_id)
        fields = {**current.__dict__, **changes.as_dict()}
        self._holdings[holding_id] = Holding(**fields)
        return self._holdings[holding_id]

    def delete(self, holding_id: int) -> None:
        self._holdings.pop(holding_id, None)


@pytest.fixture
def fake_store() -> FakeHoldingStore:
    return FakeHoldingStore()


# =============================================================================
# SAMPLE DATA FACTORIES
# =============================================================================

def create_holding(
        id: int = 1,
        ticker: str = "RELIANCE.NS",
        quantity: int = 10,
        cost_basis_per_unit: Decimal | str = "100",
        purchase_date: date = date(2024, 1, 15),
        owner: str = "Default User",
) -> Holding:
    """Factory function for creating Holding test data."""
    return Holding(
        id=id,
        ticker=ticker,
        quantity=quantity,
        cost_basis_per_unit=Decimal(cost_basis_per_unit),
        purchase_date=purchase_date,
        owner=owner,
    )


def create_quote(
        ticker: str = "RELIANCE.NS",
        current_price: Decimal | str = "150",
        previous_close: Decimal | str | None = None,
        display_name: str = "",
        source: str = "quote",
) -> Quote:
    """Factory function for creating Quote test data."""
    return Quote(
        ticker=ticker,
        current_price=Decimal(current_price),
        previous_close=Decimal(previous_close) if previous_close is not None else None,
        display_name=display_name,
        source=source,
    )


def create_bars(
        closes: list[str],
        start: date = date(2024, 6, 3),
) -> list[OHLCVData]:
    """Consecutive daily bars with open == close (one per given close)."""
    bars = []
    for offset, close in enumerate(closes):
        price = Decimal(close)
        bars.append(OHLCVData(
            date=start + timedelta(days=offset),
            open=price,
            high=price,
            low=price,
            close=price,
        ))
    return bars
