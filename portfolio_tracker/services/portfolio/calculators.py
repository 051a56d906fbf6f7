# portfolio_tracker/services/portfolio/calculators.py
"""
Point-in-time portfolio calculators.

Design Principles:
- Stateless (no instance state, pure functions of their inputs)
- Owner filtering is applied first, as a projection, before any sum
- Decimal for ALL financial calculations

Usage:
    calc = SnapshotCalculator()
    snapshot = calc.calculate(holdings, quotes, owner_filter="Asha")
"""

from __future__ import annotations

import logging
from decimal import Decimal, ROUND_HALF_UP

from portfolio_tracker.services.constants import ALL_OWNERS, PERCENT_PRECISION
from portfolio_tracker.services.portfolio.types import HoldingValuation, PortfolioSnapshot
from portfolio_tracker.services.types import Holding, Quote

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")


# =============================================================================
# OWNER HELPERS
# =============================================================================

def filter_holdings(holdings: list[Holding], owner_filter: str | None = ALL_OWNERS) -> list[Holding]:
    """Holdings of one owner, or all of them for "All"/None. Order is kept."""
    if owner_filter is None or owner_filter == ALL_OWNERS:
        return list(holdings)
    return [h for h in holdings if h.owner == owner_filter]


def list_owners(holdings: list[Holding]) -> list[str]:
    """Distinct owners in first-seen order."""
    return list(dict.fromkeys(h.owner for h in holdings))


def percent(part: Decimal, whole: Decimal) -> Decimal:
    """part / whole × 100 rounded to 0.01; zero when whole is zero."""
    if whole == ZERO:
        return ZERO
    return (part / whole * HUNDRED).quantize(PERCENT_PRECISION, rounding=ROUND_HALF_UP)


# =============================================================================
# SNAPSHOT CALCULATOR
# =============================================================================

class SnapshotCalculator:
    """
    Values holdings at their current quotes and sums the totals.

    Missing quote:
        The holding's own cost basis stands in for both the current price
        and the previous close, so it contributes zero P/L and zero day
        change rather than disappearing from the totals.

    Missing previous close:
        The current price is used, so the holding contributes zero day
        change.
    """

    def calculate(
            self,
            holdings: list[Holding],
            quotes: dict[str, Quote],
            owner_filter: str | None = ALL_OWNERS,
    ) -> PortfolioSnapshot:
        """
        Derive a snapshot for the owner-filtered holding subset.

        Args:
            holdings: Every known holding (filtering happens here)
            quotes: Resolved quotes keyed by ticker (may be partial)
            owner_filter: "All" or one owner label
        """
        active = filter_holdings(holdings, owner_filter)
        valuations = [self._value_holding(h, quotes.get(h.ticker)) for h in active]

        total_cost = sum((v.invested_amount for v in valuations), ZERO)
        total_value = sum((v.market_value for v in valuations), ZERO)
        todays_pl = sum((v.day_change for v in valuations), ZERO)
        total_pl = total_value - total_cost

        return PortfolioSnapshot(
            holdings=valuations,
            total_cost=total_cost,
            total_value=total_value,
            total_pl=total_pl,
            total_pl_percent=percent(total_pl, total_cost),
            todays_pl=todays_pl,
            owner_filter=owner_filter or ALL_OWNERS,
        )

    def _value_holding(self, holding: Holding, quote: Quote | None) -> HoldingValuation:
        quantity = Decimal(holding.quantity)
        invested = quantity * holding.cost_basis_per_unit

        if quote is None:
            current_price = holding.cost_basis_per_unit
            previous_close = holding.cost_basis_per_unit
            display_name = holding.ticker
        else:
            current_price = quote.current_price
            previous_close = quote.previous_close if quote.previous_close is not None else current_price
            display_name = quote.display_name

        market_value = quantity * current_price
        pl = market_value - invested

        return HoldingValuation(
            holding=holding,
            current_price=current_price,
            previous_close=previous_close,
            display_name=display_name,
            market_value=market_value,
            invested_amount=invested,
            pl=pl,
            pl_percent=percent(pl, invested),
            day_change=(current_price - previous_close) * quantity,
            has_quote=quote is not None,
        )
