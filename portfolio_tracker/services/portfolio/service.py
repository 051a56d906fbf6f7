# portfolio_tracker/services/portfolio/service.py
"""
PortfolioService - orchestrates the portfolio calculators.

The service holds no portfolio state: callers pass the holding set and
the owner filter on every call.
"""

from __future__ import annotations

import logging
from datetime import date

from portfolio_tracker.services.constants import ALL_OWNERS
from portfolio_tracker.services.history import (
    DEFAULT_HISTORY_RANGE,
    HistoricalSeriesFetcher,
    HistoryRange,
)
from portfolio_tracker.services.portfolio.calculators import (
    SnapshotCalculator,
    filter_holdings,
)
from portfolio_tracker.services.portfolio.series_calculator import (
    ValueSeriesCalculator,
    quantities_by_ticker,
)
from portfolio_tracker.services.portfolio.types import PortfolioSnapshot, ValueSeries
from portfolio_tracker.services.types import Holding, Quote

logger = logging.getLogger(__name__)


class PortfolioService:
    """
    Snapshot and value-series derivation over a caller-supplied holding set.

    Args:
        history_fetcher: Source of daily closes for the value series
        snapshot_calculator: Override for testing
        series_calculator: Override for testing
    """

    def __init__(
            self,
            history_fetcher: HistoricalSeriesFetcher,
            snapshot_calculator: SnapshotCalculator | None = None,
            series_calculator: ValueSeriesCalculator | None = None,
    ) -> None:
        self._history_fetcher = history_fetcher
        self._snapshot_calc = snapshot_calculator or SnapshotCalculator()
        self._series_calc = series_calculator or ValueSeriesCalculator()

    def get_snapshot(
            self,
            holdings: list[Holding],
            quotes: dict[str, Quote],
            owner_filter: str | None = ALL_OWNERS,
    ) -> PortfolioSnapshot:
        return self._snapshot_calc.calculate(holdings, quotes, owner_filter)

    async def get_value_series(
            self,
            holdings: list[Holding],
            history_range: str | HistoryRange = DEFAULT_HISTORY_RANGE,
            owner_filter: str | None = ALL_OWNERS,
            today: date | None = None,
    ) -> ValueSeries:
        """
        Fetch history for the held tickers and build the value series.

        Only tickers held within the owner filter are fetched; an empty
        subset returns an empty series without any upstream call.

        Raises:
            InvalidRangeError: Unknown range
        """
        history_range = HistoryRange.parse(history_range)
        active = filter_holdings(holdings, owner_filter)
        tickers = list(quantities_by_ticker(active))

        if not tickers:
            logger.debug(f"No holdings for owner filter '{owner_filter}', skipping history fetch")
            return ValueSeries(points=[], owner_filter=owner_filter or ALL_OWNERS)

        history = await self._history_fetcher.fetch_history(tickers, history_range, today=today)
        return self._series_calc.calculate(active, history, owner_filter)
