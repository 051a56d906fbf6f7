# portfolio_tracker/routers/market_data.py
"""
Market data endpoints: live quote, batch daily history, ticker search.

All three call the upstream provider on every request (no caching).
"""

from fastapi import APIRouter, Depends, Query, Request, Response

from portfolio_tracker.dependencies import (
    get_history_fetcher,
    get_quote_resolver,
    get_ticker_search_resolver,
)
from portfolio_tracker.middleware.rate_limit import limiter, RATE_LIMIT_MARKET_DATA
from portfolio_tracker.schemas.market_data import (
    HistoricalPointResponse,
    HistoryRequest,
    QuoteResponse,
    SearchResponse,
    TickerCandidateResponse,
    TickerHistoryResponse,
)
from portfolio_tracker.services.history import HistoricalSeriesFetcher, HistoryRange
from portfolio_tracker.services.quotes import QuoteResolver
from portfolio_tracker.services.search import TickerSearchResolver

router = APIRouter(
    prefix="/api",
    tags=["Market Data"],
)


@router.get(
    "/quote/{ticker}",
    response_model=QuoteResponse,
    summary="Resolve a live quote",
)
@limiter.limit(RATE_LIMIT_MARKET_DATA)
async def get_quote(
        request: Request,  # Required for rate limiting
        response: Response,
        ticker: str,
        resolver: QuoteResolver = Depends(get_quote_resolver),
) -> QuoteResponse:
    """
    Resolve the current price through the quote → summary → chart fallback
    chain. Returns 404 when every step fails.
    """
    quote = await resolver.resolve_quote(ticker)
    response.headers["Cache-Control"] = "no-store"
    return QuoteResponse(
        ticker=quote.ticker,
        current_price=quote.current_price,
        previous_close=quote.previous_close,
        display_name=quote.display_name,
        source=quote.source,
        day_change=quote.day_change,
    )


@router.post(
    "/history",
    response_model=list[TickerHistoryResponse],
    summary="Daily closes for several tickers",
    response_description="One entry per distinct ticker, in request order"
)
@limiter.limit(RATE_LIMIT_MARKET_DATA)
async def get_history(
        request: Request,  # Required for rate limiting
        body: HistoryRequest,
        fetcher: HistoricalSeriesFetcher = Depends(get_history_fetcher),
) -> list[TickerHistoryResponse]:
    """
    - **tickers**: At least one ticker
    - **range**: 7d, 30d (alias 1mo), 120d or 180d

    A ticker whose fetch fails is returned with an empty `data` list.
    """
    history_range = HistoryRange.parse(body.range)
    history = await fetcher.fetch_history(body.tickers, history_range)
    return [
        TickerHistoryResponse(
            ticker=ticker,
            data=[HistoricalPointResponse(date=p.date, close=p.close) for p in points],
        )
        for ticker, points in history.items()
    ]


@router.get(
    "/search",
    response_model=SearchResponse,
    summary="Search tradable tickers",
)
@limiter.limit(RATE_LIMIT_MARKET_DATA)
async def search_tickers(
        request: Request,  # Required for rate limiting
        q: str = Query(..., min_length=1, description="Free-text query or symbol"),
        local_only: bool = Query(
            default=False,
            description="Only return listings on the local markets (NSE/BSE by default)"
        ),
        resolver: TickerSearchResolver = Depends(get_ticker_search_resolver),
) -> SearchResponse:
    candidates = await resolver.search_tickers(q, local_only=local_only)
    return SearchResponse(
        quotes=[TickerCandidateResponse.model_validate(c) for c in candidates]
    )
