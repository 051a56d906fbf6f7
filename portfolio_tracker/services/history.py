# portfolio_tracker/services/history.py
"""
Daily close series per ticker over a selectable lookback window.

Fetches are issued per ticker and run concurrently. Each ticker is its own
failure domain: an upstream error or timeout degrades that ticker to an
empty series and the batch still answers for every requested ticker.
"""

import asyncio
import enum
import logging
from datetime import date, timedelta

from portfolio_tracker.config import settings
from portfolio_tracker.services.exceptions import InvalidRangeError
from portfolio_tracker.services.market_data.base import MarketDataProvider
from portfolio_tracker.services.types import HistoricalPoint, normalize_ticker

logger = logging.getLogger(__name__)


class HistoryRange(str, enum.Enum):
    """Supported lookback windows; the value is the wire name."""

    D7 = "7d"
    D30 = "30d"
    D120 = "120d"
    D180 = "180d"

    @property
    def days(self) -> int:
        return int(self.value[:-1])

    def start_date(self, today: date) -> date:
        return today - timedelta(days=self.days)

    @classmethod
    def parse(cls, value: "str | HistoryRange") -> "HistoryRange":
        """
        Parse a wire value. "1mo" is accepted as an alias of "30d".

        Raises:
            InvalidRangeError: Unknown range
        """
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        normalized = _RANGE_ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            raise InvalidRangeError(str(value), [r.value for r in cls])


_RANGE_ALIASES = {"1mo": "30d"}

DEFAULT_HISTORY_RANGE = HistoryRange.D30


class HistoricalSeriesFetcher:
    """
    Fetches daily close series for many tickers at once.

    Args:
        provider: Upstream market data provider
        timeout_seconds: Upper bound for a single ticker's fetch
    """

    def __init__(
            self,
            provider: MarketDataProvider,
            timeout_seconds: float | None = None,
    ) -> None:
        self._provider = provider
        self._timeout = (
            settings.history_fetch_timeout_seconds if timeout_seconds is None else timeout_seconds
        )

    async def fetch_history(
            self,
            tickers: list[str],
            history_range: "str | HistoryRange" = DEFAULT_HISTORY_RANGE,
            today: date | None = None,
    ) -> dict[str, list[HistoricalPoint]]:
        """
        Fetch one series per distinct ticker for [today - range, today].

        Returns:
            Mapping with exactly one entry per distinct requested ticker,
            in request order. Failed tickers map to an empty list.

        Raises:
            InvalidRangeError: Unknown range (before any upstream call)
            ValidationError: Blank ticker (before any upstream call)
        """
        history_range = HistoryRange.parse(history_range)
        unique = list(dict.fromkeys(normalize_ticker(t) for t in tickers))
        if not unique:
            return {}

        end_date = today or date.today()
        start_date = history_range.start_date(end_date)

        series = await asyncio.gather(
            *(self._fetch_one(t, start_date, end_date) for t in unique)
        )
        result = dict(zip(unique, series))

        empty = [t for t, points in result.items() if not points]
        logger.info(
            f"Fetched {history_range.value} history for {len(unique)} tickers "
            f"({len(empty)} empty)"
        )
        return result

    async def _fetch_one(
            self,
            ticker: str,
            start_date: date,
            end_date: date,
    ) -> list[HistoricalPoint]:
        try:
            bars = await asyncio.wait_for(
                asyncio.to_thread(
                    self._provider.get_historical, ticker, start_date, end_date, "1d"
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"History fetch for {ticker} timed out after {self._timeout}s")
            return []
        except Exception as e:
            logger.warning(f"History fetch for {ticker} failed: {e}")
            return []

        return [
            HistoricalPoint(date=bar.date, close=bar.close)
            for bar in bars
            if bar.close is not None and bar.close > 0
        ]
