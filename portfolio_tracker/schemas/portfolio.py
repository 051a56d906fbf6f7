# portfolio_tracker/schemas/portfolio.py
"""
Pydantic schemas for portfolio snapshots and value series.

These mirror the dataclasses in services/portfolio/types.py, flattened
for JSON.
"""

import datetime as dt
from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from portfolio_tracker.services.portfolio import HoldingValuation, PortfolioSnapshot, ValueSeries
from portfolio_tracker.services.refresh import PortfolioState, RefreshState


# =============================================================================
# SNAPSHOT
# =============================================================================

class HoldingValuationResponse(BaseModel):
    """One holding priced at its current quote."""

    id: int
    ticker: str
    display_name: str
    owner: str
    quantity: int
    cost_basis_per_unit: Decimal
    purchase_date: date
    current_price: Decimal
    previous_close: Decimal
    market_value: Decimal
    invested_amount: Decimal
    pl: Decimal
    pl_percent: Decimal
    day_change: Decimal
    has_quote: bool = Field(
        ...,
        description="False when the cost basis stands in for a missing quote"
    )

    @classmethod
    def from_valuation(cls, v: HoldingValuation) -> "HoldingValuationResponse":
        return cls(
            id=v.holding.id,
            ticker=v.ticker,
            display_name=v.display_name,
            owner=v.holding.owner,
            quantity=v.holding.quantity,
            cost_basis_per_unit=v.holding.cost_basis_per_unit,
            purchase_date=v.holding.purchase_date,
            current_price=v.current_price,
            previous_close=v.previous_close,
            market_value=v.market_value,
            invested_amount=v.invested_amount,
            pl=v.pl,
            pl_percent=v.pl_percent,
            day_change=v.day_change,
            has_quote=v.has_quote,
        )


class RefreshStatusResponse(BaseModel):
    """Where the numbers came from."""

    state: RefreshState
    pass_id: int = Field(..., description="Sequence number of the applied refresh pass")
    trigger: str | None = None
    refreshed_at: dt.datetime | None = None
    failed_tickers: list[str] = Field(default_factory=list)


class PortfolioSnapshotResponse(BaseModel):
    """Portfolio totals for one owner filter."""

    owner_filter: str
    owners: list[str] = Field(..., description="Every owner with at least one holding")
    total_cost: Decimal
    total_value: Decimal
    total_pl: Decimal
    total_pl_percent: Decimal
    todays_pl: Decimal
    missing_quotes: list[str] = Field(
        default_factory=list,
        description="Tickers valued at cost basis because no quote was available"
    )
    holdings: list[HoldingValuationResponse]
    refresh: RefreshStatusResponse

    @classmethod
    def build(
            cls,
            snapshot: PortfolioSnapshot,
            state: PortfolioState,
            refresh_state: RefreshState,
    ) -> "PortfolioSnapshotResponse":
        return cls(
            owner_filter=snapshot.owner_filter,
            owners=state.owners,
            total_cost=snapshot.total_cost,
            total_value=snapshot.total_value,
            total_pl=snapshot.total_pl,
            total_pl_percent=snapshot.total_pl_percent,
            todays_pl=snapshot.todays_pl,
            missing_quotes=snapshot.missing_quotes,
            holdings=[HoldingValuationResponse.from_valuation(v) for v in snapshot.holdings],
            refresh=RefreshStatusResponse(
                state=refresh_state,
                pass_id=state.pass_id,
                trigger=state.trigger.value if state.trigger else None,
                refreshed_at=state.refreshed_at,
                failed_tickers=sorted(state.failed_tickers),
            ),
        )


# =============================================================================
# VALUE SERIES
# =============================================================================

class ValuePointResponse(BaseModel):
    date: dt.date
    total_value: Decimal
    per_ticker: dict[str, Decimal]


class ValueSeriesResponse(BaseModel):
    """Portfolio value per date, ascending."""

    owner_filter: str
    range: str
    points: list[ValuePointResponse]

    @classmethod
    def build(cls, series: ValueSeries, history_range: str) -> "ValueSeriesResponse":
        return cls(
            owner_filter=series.owner_filter,
            range=history_range,
            points=[
                ValuePointResponse(date=p.date, total_value=p.total_value, per_ticker=p.per_ticker)
                for p in series.points
            ],
        )
