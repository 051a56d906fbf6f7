# portfolio_tracker/services/portfolio/series_calculator.py
"""
Portfolio value series from per-ticker daily closes.

For each held ticker the quantities of all its lots (within the owner
filter) are summed, then each of its closes contributes
close × summed_quantity to that date. Dates are the union of all series
dates: a ticker with no close on a date simply does not contribute to it,
with no interpolation and no forward fill.

Simplification: a lot bought mid-window is valued on every date of the
window, including dates before its purchase_date.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal

from portfolio_tracker.services.constants import ALL_OWNERS
from portfolio_tracker.services.portfolio.calculators import filter_holdings
from portfolio_tracker.services.portfolio.types import ValuePoint, ValueSeries
from portfolio_tracker.services.types import Holding, HistoricalPoint

logger = logging.getLogger(__name__)


def quantities_by_ticker(holdings: list[Holding]) -> dict[str, int]:
    """Summed quantity per ticker, in first-seen ticker order."""
    totals: dict[str, int] = {}
    for holding in holdings:
        totals[holding.ticker] = totals.get(holding.ticker, 0) + holding.quantity
    return totals


class ValueSeriesCalculator:
    """Stateless: builds a ValueSeries from holdings and history."""

    def calculate(
            self,
            holdings: list[Holding],
            history: dict[str, list[HistoricalPoint]],
            owner_filter: str | None = ALL_OWNERS,
    ) -> ValueSeries:
        """
        Args:
            holdings: Every known holding (filtering happens here)
            history: Daily closes keyed by ticker; tickers not held are ignored
            owner_filter: "All" or one owner label

        Returns:
            ValueSeries sorted by ascending date
        """
        quantities = quantities_by_ticker(filter_holdings(holdings, owner_filter))

        per_date: dict[date, dict[str, Decimal]] = defaultdict(dict)
        for ticker, quantity in quantities.items():
            for point in history.get(ticker, []):
                day_value = point.close * quantity
                # a duplicated date within one series keeps the last close
                per_date[point.date][ticker] = day_value

        points = [
            ValuePoint(
                date=day,
                total_value=sum(values.values(), Decimal("0")),
                per_ticker=dict(values),
            )
            for day, values in sorted(per_date.items())
        ]

        logger.debug(f"Value series: {len(points)} dates across {len(quantities)} tickers")
        return ValueSeries(points=points, owner_filter=owner_filter or ALL_OWNERS)
