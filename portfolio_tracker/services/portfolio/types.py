# portfolio_tracker/services/portfolio/types.py
"""
Derived data types for the Portfolio Aggregator.

Everything here is recomputed from {holdings, quotes, history, owner filter}
and never stored.

Type Hierarchy:
    HoldingValuation   - One holding priced with its quote
    PortfolioSnapshot  - Totals over the owner-filtered holding set
    ValuePoint         - Portfolio value on one calendar date
    ValueSeries        - Date-ordered ValuePoints
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from portfolio_tracker.services.types import Holding


# =============================================================================
# SNAPSHOT
# =============================================================================

@dataclass(frozen=True)
class HoldingValuation:
    """
    A holding priced at its current quote.

    Attributes:
        holding: The underlying purchase lot
        current_price: Quote price, or the cost basis when no quote exists
        previous_close: Prior close used for day change
        display_name: Instrument name (ticker when unknown)
        market_value: quantity × current_price
        invested_amount: quantity × cost_basis_per_unit
        pl: market_value − invested_amount
        pl_percent: pl / invested_amount × 100 (0 when nothing was invested)
        day_change: (current_price − previous_close) × quantity
        has_quote: False when the cost basis stood in for a missing quote
    """

    holding: Holding
    current_price: Decimal
    previous_close: Decimal
    display_name: str
    market_value: Decimal
    invested_amount: Decimal
    pl: Decimal
    pl_percent: Decimal
    day_change: Decimal
    has_quote: bool

    @property
    def ticker(self) -> str:
        return self.holding.ticker


@dataclass(frozen=True)
class PortfolioSnapshot:
    """
    Aggregate metrics over the active (owner-filtered) holding subset.

    Invariant: total_pl == total_value − total_cost, exactly.
    """

    holdings: list[HoldingValuation]
    total_cost: Decimal
    total_value: Decimal
    total_pl: Decimal
    total_pl_percent: Decimal
    todays_pl: Decimal
    owner_filter: str

    @property
    def holding_count(self) -> int:
        return len(self.holdings)

    @property
    def missing_quotes(self) -> list[str]:
        """Tickers valued at cost basis because no quote was available."""
        return sorted({v.ticker for v in self.holdings if not v.has_quote})


# =============================================================================
# VALUE SERIES
# =============================================================================

@dataclass(frozen=True)
class ValuePoint:
    """
    Portfolio value on one date.

    per_ticker only contains tickers that had a close on this date.
    """

    date: date
    total_value: Decimal
    per_ticker: dict[str, Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class ValueSeries:
    """Value points sorted by ascending date, no duplicate dates."""

    points: list[ValuePoint]
    owner_filter: str

    @property
    def dates(self) -> list[date]:
        return [p.date for p in self.points]

    @property
    def is_empty(self) -> bool:
        return not self.points
