# portfolio_tracker/schemas/market_data.py
"""
Pydantic schemas for quotes, daily history and ticker search.
"""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# QUOTE
# =============================================================================

class QuoteResponse(BaseModel):
    """A resolved current quote."""

    model_config = ConfigDict(from_attributes=True)

    ticker: str
    current_price: Decimal = Field(..., description="Latest price")
    previous_close: Decimal | None = Field(
        default=None,
        description="Prior session close (None when the upstream had none)"
    )
    display_name: str
    source: str = Field(
        ...,
        description="Fallback step that produced the quote (quote, summary, chart)"
    )
    day_change: Decimal = Field(..., description="current_price − previous_close, per unit")


# =============================================================================
# HISTORY
# =============================================================================

class HistoryRequest(BaseModel):
    """Batch history request."""

    tickers: list[str] = Field(
        ...,
        min_length=1,
        examples=[["RELIANCE.NS", "TCS.NS"]],
        description="Tickers to fetch (at least one)"
    )
    range: str = Field(
        default="30d",
        examples=["7d", "30d", "120d", "180d"],
        description="Lookback window"
    )


class HistoricalPointResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: dt.date
    close: Decimal


class TickerHistoryResponse(BaseModel):
    """Daily closes for one ticker (empty when the fetch failed)."""

    ticker: str
    data: list[HistoricalPointResponse]


# =============================================================================
# SEARCH
# =============================================================================

class TickerCandidateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    symbol: str
    display_name: str
    exchange: str | None = None
    quote_type: str


class SearchResponse(BaseModel):
    quotes: list[TickerCandidateResponse]
