# portfolio_tracker/services/market_data/yahoo.py
"""
Yahoo Finance market data provider implementation.

Implements the MarketDataProvider interface with the yfinance library.
Symbols are passed through exchange-qualified (e.g. "RELIANCE.NS").

Upstream mapping:
- get_quote          → Ticker.info
- get_quote_summary  → Ticker.fast_info (re-shaped into a "price" module)
- get_chart          → Ticker.history + Ticker.history_metadata
- get_historical     → Ticker.history
- search             → yf.Search(...).quotes

Limitations:
- Rate limits (not officially documented, but exist)
- Data may be delayed (15-20 minutes for some markets)
"""

import logging
from datetime import date, timedelta
from typing import Any

import yfinance as yf

from portfolio_tracker.services.constants import QUOTE_SUMMARY_MODULES
from portfolio_tracker.services.exceptions import (
    MarketDataError,
    ProviderUnavailableError,
    TickerNotFoundError,
    RateLimitError,
)
from portfolio_tracker.services.market_data.base import (
    MarketDataProvider,
    ChartResult,
    OHLCVData,
)
from portfolio_tracker.utils.decimal_utils import to_decimal, to_int

logger = logging.getLogger(__name__)


class YahooFinanceProvider(MarketDataProvider):
    """
    Yahoo Finance implementation of MarketDataProvider.

    Configuration:
        timeout: API request timeout in seconds (default: 10)

    Retry Behavior (inherited from MarketDataProvider):
        - Retries on ProviderUnavailableError and RateLimitError
        - Does NOT retry on TickerNotFoundError (permanent failure)
        - Uses exponential backoff: 1s → 2s → 4s

    Example:
        provider = YahooFinanceProvider(timeout=15)
        quote = provider.get_quote("RELIANCE.NS")
        print(quote.get("regularMarketPrice"))
    """

    def __init__(self, timeout: int = 10) -> None:
        """
        Initialize the Yahoo Finance provider.

        Args:
            timeout: Request timeout in seconds
        """
        self._timeout = timeout
        logger.info(f"YahooFinanceProvider initialized (timeout={timeout}s)")

    @property
    def name(self) -> str:
        return "yahoo"

    # =========================================================================
    # QUOTE METHODS
    # =========================================================================

    def get_quote(self, symbol: str) -> dict[str, Any]:
        return self._execute_with_retry(self._fetch_quote, symbol)

    def _fetch_quote(self, symbol: str) -> dict[str, Any]:
        """Internal method to fetch the quote fields (called by retry wrapper)."""
        symbol = symbol.strip().upper()
        logger.debug(f"Fetching quote for {symbol}")

        try:
            info = yf.Ticker(symbol).info
            if not self._is_valid_ticker_info(info):
                raise TickerNotFoundError(ticker=symbol, provider=self.name)
            return dict(info)

        except MarketDataError:
            raise
        except Exception as e:
            raise self._classify_error(symbol, e)

    def get_quote_summary(
            self,
            symbol: str,
            modules: tuple[str, ...] = QUOTE_SUMMARY_MODULES,
    ) -> dict[str, dict[str, Any]]:
        return self._execute_with_retry(self._fetch_quote_summary, symbol, modules)

    def _fetch_quote_summary(
            self,
            symbol: str,
            modules: tuple[str, ...],
    ) -> dict[str, dict[str, Any]]:
        """Internal method to build the requested summary modules."""
        symbol = symbol.strip().upper()
        logger.debug(f"Fetching quote summary {list(modules)} for {symbol}")

        summary: dict[str, dict[str, Any]] = {}
        try:
            for module in modules:
                if module != "price":
                    logger.debug(f"Summary module '{module}' not supported by {self.name}, skipping")
                    continue
                price_module = self._build_price_module(yf.Ticker(symbol).fast_info)
                if price_module:
                    summary["price"] = price_module
            return summary

        except MarketDataError:
            raise
        except Exception as e:
            raise self._classify_error(symbol, e)

    # =========================================================================
    # PRICE SERIES METHODS
    # =========================================================================

    def get_chart(
            self,
            symbol: str,
            start_date: date,
            end_date: date,
            interval: str = "1d",
    ) -> ChartResult:
        return self._execute_with_retry(
            self._fetch_chart,
            symbol,
            start_date,
            end_date,
            interval,
        )

    def _fetch_chart(
            self,
            symbol: str,
            start_date: date,
            end_date: date,
            interval: str,
    ) -> ChartResult:
        """Internal method to fetch bars plus series metadata."""
        symbol = symbol.strip().upper()
        logger.debug(f"Fetching chart for {symbol}: {start_date} to {end_date}")

        try:
            yf_ticker = yf.Ticker(symbol)
            df = self._download_history(yf_ticker, start_date, end_date, interval)
            prices = self._dataframe_to_ohlcv(df)
            if not prices:
                raise TickerNotFoundError(ticker=symbol, provider=self.name)

            meta = getattr(yf_ticker, "history_metadata", None) or {}
            return ChartResult(symbol=symbol, meta=dict(meta), prices=prices)

        except MarketDataError:
            raise
        except Exception as e:
            raise self._classify_error(symbol, e)

    def get_historical(
            self,
            symbol: str,
            start_date: date,
            end_date: date,
            interval: str = "1d",
    ) -> list[OHLCVData]:
        return self._execute_with_retry(
            self._fetch_historical,
            symbol,
            start_date,
            end_date,
            interval,
        )

    def _fetch_historical(
            self,
            symbol: str,
            start_date: date,
            end_date: date,
            interval: str,
    ) -> list[OHLCVData]:
        """Internal method to fetch historical bars."""
        symbol = symbol.strip().upper()
        logger.debug(f"Fetching historical prices for {symbol}: {start_date} to {end_date}")

        try:
            df = self._download_history(yf.Ticker(symbol), start_date, end_date, interval)
            prices = self._dataframe_to_ohlcv(df)

            if not prices:
                logger.warning(f"No price data for {symbol} between {start_date} and {end_date}")
            else:
                logger.debug(f"Fetched {len(prices)} days for {symbol}")
            return prices

        except MarketDataError:
            raise
        except Exception as e:
            raise self._classify_error(symbol, e)

    # =========================================================================
    # SEARCH
    # =========================================================================

    def search(
            self,
            query: str,
            quotes_count: int = 15,
            news_count: int = 0,
    ) -> list[dict[str, Any]]:
        return self._execute_with_retry(self._fetch_search, query, quotes_count, news_count)

    def _fetch_search(
            self,
            query: str,
            quotes_count: int,
            news_count: int,
    ) -> list[dict[str, Any]]:
        """Internal method to run a search query."""
        logger.debug(f"Searching '{query}' (quotes_count={quotes_count})")

        try:
            result = yf.Search(
                query,
                max_results=quotes_count,
                news_count=news_count,
                timeout=self._timeout,
            )
            quotes = result.quotes or []
            return [q for q in quotes if isinstance(q, dict)]

        except Exception as e:
            raise self._classify_error(query, e)

    # =========================================================================
    # HELPER METHODS
    # =========================================================================

    def _download_history(self, yf_ticker, start_date: date, end_date: date, interval: str):
        # Yahoo Finance end date is exclusive, so add 1 day
        yahoo_end = end_date + timedelta(days=1)
        return yf_ticker.history(
            start=start_date.isoformat(),
            end=yahoo_end.isoformat(),
            interval=interval,
            auto_adjust=False,
            timeout=self._timeout,
        )

    def _classify_error(self, symbol: str, error: Exception) -> MarketDataError:
        """
        Map a raw yfinance/HTTP exception onto the service error hierarchy.

        yfinance surfaces most failures as generic exceptions, so the
        classification is based on the message text.
        """
        error_str = str(error).lower()

        if "not found" in error_str or "no data" in error_str or "delisted" in error_str:
            return TickerNotFoundError(ticker=symbol, provider=self.name)

        if "rate limit" in error_str or "too many requests" in error_str:
            return RateLimitError(provider=self.name)

        logger.error(f"Yahoo Finance error for {symbol}: {error}")
        return ProviderUnavailableError(provider=self.name, reason=str(error))

    def _dataframe_to_ohlcv(self, df) -> list[OHLCVData]:
        """
        Convert a pandas DataFrame from yfinance to a list of OHLCVData.

        Rows with a missing or non-positive close are skipped; missing
        open/high/low fall back to the close.
        """
        prices: list[OHLCVData] = []
        if df is None or df.empty:
            return prices

        for idx, row in df.iterrows():
            price_date = idx.date() if hasattr(idx, 'date') else idx

            close_price = to_decimal(row.get('Close'))
            if close_price is None or close_price <= 0:
                logger.warning(f"Skipping {price_date}: missing close price")
                continue

            open_price = to_decimal(row.get('Open')) or close_price
            high_price = to_decimal(row.get('High')) or close_price
            low_price = to_decimal(row.get('Low')) or close_price

            try:
                prices.append(OHLCVData(
                    date=price_date,
                    open=open_price,
                    high=max(high_price, close_price),
                    low=min(low_price, close_price),
                    close=close_price,
                    volume=to_int(row.get('Volume')),
                ))
            except ValueError as e:
                logger.warning(f"Error parsing row {idx}: {e}")

        return prices

    @staticmethod
    def _build_price_module(fast_info: Any) -> dict[str, Any]:
        """
        Re-shape Ticker.fast_info into quote-style "price" module fields.

        fast_info computes some fields lazily and raises on missing data,
        so each field is read independently.
        """
        fields = {
            "regularMarketPrice": "last_price",
            "regularMarketPreviousClose": "previous_close",
            "currency": "currency",
        }
        module: dict[str, Any] = {}
        for key, attr in fields.items():
            try:
                value = getattr(fast_info, attr)
            except (KeyError, AttributeError, TypeError, ValueError):
                continue
            if value is not None:
                module[key] = value

        if "regularMarketPrice" not in module:
            return {}
        return module

    @staticmethod
    def _is_valid_ticker_info(info: dict | None) -> bool:
        """
        Check if a Yahoo Finance info dict represents a real instrument.

        Yahoo returns an info dict even for invalid tickers, but it lacks
        meaningful data. We check for price or name to validate.
        """
        if not info:
            return False
        return bool(
            info.get("regularMarketPrice")
            or info.get("currentPrice")
            or info.get("shortName")
            or info.get("longName")
        )
