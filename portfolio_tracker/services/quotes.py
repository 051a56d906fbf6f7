# portfolio_tracker/services/quotes.py
"""
Quote resolution through an ordered fallback chain.

The upstream is inconsistent: a symbol that the quote endpoint rejects is
often still priced by the summary endpoint or by its own daily chart. A
quote is therefore resolved by trying named strategies in strict order
and returning the first usable result:

    1. quote    - direct quote lookup
    2. summary  - summary lookup restricted to the "price" module
    3. chart    - last close of a short daily chart (7 calendar days)

A strategy "fails" when the upstream raises or when its payload has no
finite positive price. Failures of earlier steps are logged and swallowed;
when every step fails the caller gets QuoteUnavailableError listing each
step's reason. Results are never cached: every call goes upstream.

Usage:
    resolver = QuoteResolver(YahooFinanceProvider())
    quote = await resolver.resolve_quote("RELIANCE.NS")
    batch = await resolver.resolve_quotes(["INFY.NS", "TCS.NS"])
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Callable

from portfolio_tracker.services.constants import (
    QUOTE_CHART_LOOKBACK_DAYS,
    QUOTE_SUMMARY_MODULES,
)
from portfolio_tracker.services.exceptions import QuoteUnavailableError
from portfolio_tracker.services.market_data.base import MarketDataProvider
from portfolio_tracker.services.types import Quote, normalize_ticker
from portfolio_tracker.utils.decimal_utils import to_positive_decimal

logger = logging.getLogger(__name__)


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass(frozen=True)
class QuoteStrategy:
    """
    One named step of the fallback chain.

    `fetch` is a blocking callable (it talks to the provider) and is run
    in a worker thread by the resolver.
    """

    name: str
    fetch: Callable[[str], Quote]


@dataclass
class QuoteBatch:
    """
    Result of resolving several tickers at once.

    Attributes:
        quotes: Resolved quotes keyed by ticker
        failed: Failure reason keyed by ticker
    """

    quotes: dict[str, Quote] = field(default_factory=dict)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def all_successful(self) -> bool:
        return not self.failed


# =============================================================================
# RESOLVER
# =============================================================================

class QuoteResolver:
    """
    Resolves a current quote for a ticker (stateless, idempotent).

    Args:
        provider: Upstream market data provider
        lookback_days: Calendar days requested by the chart step
        today: Clock for the chart window (injectable for tests)
    """

    def __init__(
            self,
            provider: MarketDataProvider,
            lookback_days: int = QUOTE_CHART_LOOKBACK_DAYS,
            today: Callable[[], date] = date.today,
    ) -> None:
        self._provider = provider
        self._lookback_days = lookback_days
        self._today = today
        self._strategies: list[QuoteStrategy] = [
            QuoteStrategy("quote", self._from_quote),
            QuoteStrategy("summary", self._from_summary),
            QuoteStrategy("chart", self._from_chart),
        ]

    @property
    def strategy_names(self) -> list[str]:
        return [s.name for s in self._strategies]

    async def resolve_quote(self, ticker: str) -> Quote:
        """
        Resolve one ticker through the fallback chain.

        Raises:
            ValidationError: Blank ticker (no upstream call is made)
            QuoteUnavailableError: Every strategy failed
        """
        ticker = normalize_ticker(ticker)
        reasons: dict[str, str] = {}

        for strategy in self._strategies:
            try:
                quote = await asyncio.to_thread(strategy.fetch, ticker)
            except Exception as e:
                reasons[strategy.name] = str(e) or type(e).__name__
                logger.warning(f"Quote step '{strategy.name}' failed for {ticker}: {e}")
                continue

            logger.debug(f"Resolved {ticker} via '{strategy.name}': {quote.current_price}")
            return quote

        logger.error(f"All quote steps failed for {ticker}")
        raise QuoteUnavailableError(ticker, reasons)

    async def resolve_quotes(self, tickers: list[str]) -> QuoteBatch:
        """
        Resolve distinct tickers concurrently.

        One ticker's failure never affects another; failures are collected
        in QuoteBatch.failed.
        """
        unique = list(dict.fromkeys(normalize_ticker(t) for t in tickers))

        async def _resolve(ticker: str) -> tuple[str, Quote | None, str | None]:
            try:
                return ticker, await self.resolve_quote(ticker), None
            except QuoteUnavailableError as e:
                return ticker, None, str(e)

        batch = QuoteBatch()
        for ticker, quote, error in await asyncio.gather(*(_resolve(t) for t in unique)):
            if quote is not None:
                batch.quotes[ticker] = quote
            else:
                batch.failed[ticker] = error

        if batch.failed:
            logger.warning(
                f"Resolved {len(batch.quotes)}/{len(unique)} quotes; "
                f"failed: {sorted(batch.failed)}"
            )
        return batch

    # =========================================================================
    # STRATEGIES
    # =========================================================================

    def _from_quote(self, ticker: str) -> Quote:
        data = self._provider.get_quote(ticker)
        price = to_positive_decimal(data.get("regularMarketPrice"))
        if price is None:
            # equities report currentPrice when regularMarketPrice is missing
            price = to_positive_decimal(data.get("currentPrice"))
        if price is None:
            raise ValueError("quote has no usable regularMarketPrice")

        return Quote(
            ticker=ticker,
            current_price=price,
            previous_close=to_positive_decimal(
                data.get("regularMarketPreviousClose") or data.get("previousClose")
            ),
            display_name=_display_name(data),
            source="quote",
        )

    def _from_summary(self, ticker: str) -> Quote:
        summary = self._provider.get_quote_summary(ticker, modules=QUOTE_SUMMARY_MODULES)
        price_module = summary.get("price") or {}
        price = to_positive_decimal(price_module.get("regularMarketPrice"))
        if price is None:
            raise ValueError("summary price module has no usable regularMarketPrice")

        return Quote(
            ticker=ticker,
            current_price=price,
            previous_close=to_positive_decimal(price_module.get("regularMarketPreviousClose")),
            display_name=_display_name(price_module),
            source="summary",
        )

    def _from_chart(self, ticker: str) -> Quote:
        end = self._today()
        start = end - timedelta(days=self._lookback_days)
        chart = self._provider.get_chart(ticker, start, end, interval="1d")

        latest = chart.latest
        if latest is None:
            raise ValueError(f"chart has no closes in the last {self._lookback_days} days")

        # chartPreviousClose predates the whole window, so it only stands in
        # for the prior session when there is no earlier bar
        previous_close = to_positive_decimal(chart.meta.get("previousClose"))
        if previous_close is None and len(chart.prices) > 1:
            previous_close = to_positive_decimal(chart.prices[-2].open)
        if previous_close is None and len(chart.prices) == 1:
            previous_close = to_positive_decimal(chart.meta.get("chartPreviousClose"))

        return Quote(
            ticker=ticker,
            current_price=latest.close,
            previous_close=previous_close,
            display_name=_display_name(chart.meta),
            source="chart",
        )


def _display_name(data: dict[str, Any]) -> str:
    for key in ("longName", "shortName", "longname", "shortname"):
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""
