# portfolio_tracker/services/market_data/base.py
"""
Upstream market data contract.

The quote resolver, ticker search and history fetcher only ever talk to a
MarketDataProvider, so tests can hand them an in-memory fake and the
upstream can be replaced without touching the fallback logic.

All methods are synchronous (the upstream client library blocks); callers
run them in worker threads.

Upstream payloads are schema-inconsistent: every dict returned by
`get_quote`, `get_quote_summary` and `search` must be read with `.get()`
and every field treated as optionally absent.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import TypeVar, Callable, Any

from tenacity import (
    Retrying,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from portfolio_tracker.services.constants import QUOTE_SUMMARY_MODULES
from portfolio_tracker.services.exceptions import (
    ProviderUnavailableError,
    RateLimitError,
)

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Failures worth another attempt; TickerNotFoundError is final
RETRYABLE_ERRORS = (ProviderUnavailableError, RateLimitError)


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass(frozen=True)
class OHLCVData:
    """One daily bar. `close` is the price every valuation uses."""

    date: date
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: int | None = None

    def __post_init__(self) -> None:
        if self.close <= 0:
            raise ValueError(f"Bar for {self.date} has non-positive close {self.close}")
        if self.high < self.low:
            raise ValueError(f"Bar for {self.date} has high {self.high} below low {self.low}")


@dataclass
class ChartResult:
    """
    Short-range chart: series metadata plus daily bars.

    Attributes:
        symbol: The symbol requested
        meta: Raw series metadata (chartPreviousClose, previousClose, names, ...)
        prices: Daily bars in ascending date order (may be empty)
    """

    symbol: str
    meta: dict[str, Any] = field(default_factory=dict)
    prices: list[OHLCVData] = field(default_factory=list)

    @property
    def latest(self) -> OHLCVData | None:
        return self.prices[-1] if self.prices else None


# =============================================================================
# PROVIDER
# =============================================================================

class MarketDataProvider(ABC):
    """
    Quote, summary, chart, history and search lookups against one upstream.

    Error contract for every method:
        TickerNotFoundError       symbol unknown upstream (never retried)
        ProviderUnavailableError  network, server or payload failure (retried)
        RateLimitError            upstream throttling (retried with backoff)

    Retry tuning lives in class attributes so tests can zero the waits.
    """

    MAX_RETRY_ATTEMPTS: int = 3
    RETRY_MIN_WAIT: int = 1
    RETRY_MAX_WAIT: int = 10
    RETRY_MULTIPLIER: int = 1

    @property
    @abstractmethod
    def name(self) -> str:
        """Short provider id used in logs and error messages."""

    @abstractmethod
    def get_quote(self, symbol: str) -> dict[str, Any]:
        """
        Raw quote fields for one symbol.

        Typical keys: regularMarketPrice, regularMarketPreviousClose,
        longName, shortName. Any of them may be missing.
        """

    @abstractmethod
    def get_quote_summary(
            self,
            symbol: str,
            modules: tuple[str, ...] = QUOTE_SUMMARY_MODULES,
    ) -> dict[str, dict[str, Any]]:
        """
        Summary modules for one symbol, keyed by module name ("price", ...).

        Requested modules the provider could not produce are absent.
        """

    @abstractmethod
    def get_chart(
            self,
            symbol: str,
            start_date: date,
            end_date: date,
            interval: str = "1d",
    ) -> ChartResult:
        """Daily chart for [start_date, end_date] with its series metadata."""

    @abstractmethod
    def get_historical(
            self,
            symbol: str,
            start_date: date,
            end_date: date,
            interval: str = "1d",
    ) -> list[OHLCVData]:
        """Daily bars for [start_date, end_date], ascending; empty when the range has none."""

    @abstractmethod
    def search(
            self,
            query: str,
            quotes_count: int = 15,
            news_count: int = 0,
    ) -> list[dict[str, Any]]:
        """
        Free-text instrument search.

        Returns raw candidate dicts (symbol, shortname, longname, quoteType,
        exchange) in the provider's ranking order.
        """

    # =========================================================================
    # RETRY
    # =========================================================================

    def _execute_with_retry(
            self,
            func: Callable[..., T],
            *args: Any,
            **kwargs: Any,
    ) -> T:
        """Call func, retrying RETRYABLE_ERRORS with exponential backoff; re-raise the last one."""
        retrying = Retrying(
            stop=stop_after_attempt(self.MAX_RETRY_ATTEMPTS),
            wait=wait_exponential(
                multiplier=self.RETRY_MULTIPLIER,
                min=self.RETRY_MIN_WAIT,
                max=self.RETRY_MAX_WAIT,
            ),
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return retrying(func, *args, **kwargs)
