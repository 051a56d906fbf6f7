# portfolio_tracker/routers/portfolio.py
"""
Portfolio valuation endpoints.

The snapshot is derived from the controller's last applied refresh pass;
it does not call the upstream. The value series fetches daily history
for the held tickers on every request.
"""

from fastapi import APIRouter, Depends, Query, Request

from portfolio_tracker.dependencies import get_refresh_controller
from portfolio_tracker.middleware.rate_limit import (
    limiter,
    RATE_LIMIT_DEFAULT,
    RATE_LIMIT_MARKET_DATA,
    RATE_LIMIT_REFRESH,
)
from portfolio_tracker.schemas.portfolio import PortfolioSnapshotResponse, ValueSeriesResponse
from portfolio_tracker.services.constants import ALL_OWNERS
from portfolio_tracker.services.history import HistoryRange
from portfolio_tracker.services.refresh import RefreshController

router = APIRouter(
    prefix="/api/portfolio",
    tags=["Portfolio"],
)


def _snapshot_response(controller: RefreshController, owner: str) -> PortfolioSnapshotResponse:
    return PortfolioSnapshotResponse.build(
        controller.snapshot(owner),
        controller.portfolio_state,
        controller.state,
    )


@router.get(
    "",
    response_model=PortfolioSnapshotResponse,
    summary="Portfolio snapshot",
)
@limiter.limit(RATE_LIMIT_DEFAULT)
async def get_portfolio(
        request: Request,  # Required for rate limiting
        owner: str = Query(default=ALL_OWNERS, description="Owner label, or 'All'"),
        controller: RefreshController = Depends(get_refresh_controller),
) -> PortfolioSnapshotResponse:
    """
    Per-holding valuation and totals for one owner (or all owners).

    Holdings without a quote are valued at cost basis and listed in
    `missing_quotes`.
    """
    await controller.ensure_loaded()
    return _snapshot_response(controller, owner)


@router.get(
    "/history",
    response_model=ValueSeriesResponse,
    summary="Portfolio value series",
)
@limiter.limit(RATE_LIMIT_MARKET_DATA)
async def get_portfolio_history(
        request: Request,  # Required for rate limiting
        range: str = Query(default="30d", description="7d, 30d, 120d or 180d"),
        owner: str = Query(default=ALL_OWNERS, description="Owner label, or 'All'"),
        controller: RefreshController = Depends(get_refresh_controller),
) -> ValueSeriesResponse:
    history_range = HistoryRange.parse(range)
    await controller.ensure_loaded()
    series = await controller.value_series(history_range, owner)
    return ValueSeriesResponse.build(series, history_range.value)


@router.post(
    "/refresh",
    response_model=PortfolioSnapshotResponse,
    summary="Refresh quotes now",
)
@limiter.limit(RATE_LIMIT_REFRESH)
async def refresh_portfolio(
        request: Request,  # Required for rate limiting
        owner: str = Query(default=ALL_OWNERS, description="Owner label, or 'All'"),
        controller: RefreshController = Depends(get_refresh_controller),
) -> PortfolioSnapshotResponse:
    """Re-list holdings and re-resolve every quote, then return the snapshot."""
    await controller.refresh()
    return _snapshot_response(controller, owner)
