# portfolio_tracker/services/search.py
"""
Ticker search with local-market disambiguation.

Free-text queries for local listings rarely match on their own: "RELIANCE"
ranks foreign instruments first, "KOTAK" only matches as "KOTAKBANK.NS",
and "TATA" is a group name with no listing of its own. The resolver runs
the base query and then, for unqualified queries only, a sequence of
best-effort disambiguation passes:

    base query                       (failure propagates)
    <query><suffix>                  (query has no ".")
    <query>BANK<suffix>              (still empty, query lacks "BANK")
    <conglomerate subsidiary>        (still empty, query is a known group)

Only EQUITY and ETF candidates are kept. Results from all passes are
merged in pass order and de-duplicated by symbol (first occurrence wins).
"""

import asyncio
import logging
from typing import Any

from portfolio_tracker.config import settings
from portfolio_tracker.services.constants import (
    BANK_SEARCH_TOKEN,
    CONGLOMERATE_QUOTE_TYPES,
    CONGLOMERATE_SUBSIDIARIES,
    SEARCHABLE_QUOTE_TYPES,
    SEARCH_NEWS_COUNT,
)
from portfolio_tracker.services.exceptions import ValidationError
from portfolio_tracker.services.market_data.base import MarketDataProvider
from portfolio_tracker.services.types import TickerCandidate

logger = logging.getLogger(__name__)


class TickerSearchResolver:
    """
    Resolves a free-text query into deduplicated tradable candidates.

    Args:
        provider: Upstream market data provider
        local_suffix: Exchange suffix for the local-market pass (e.g. ".NS")
        quotes_count: Candidates requested per upstream query
        conglomerates: Group short name -> subsidiary searched instead
        local_exchange_codes: Exchange codes kept by the local-only filter
        local_suffixes: Symbol suffixes kept by the local-only filter
    """

    def __init__(
            self,
            provider: MarketDataProvider,
            local_suffix: str | None = None,
            quotes_count: int | None = None,
            conglomerates: dict[str, str] | None = None,
            local_exchange_codes: list[str] | None = None,
            local_suffixes: list[str] | None = None,
    ) -> None:
        self._provider = provider
        self._local_suffix = local_suffix or settings.local_market_suffix
        self._quotes_count = quotes_count or settings.search_quotes_count
        self._conglomerates = {
            k.upper(): v for k, v in (conglomerates or CONGLOMERATE_SUBSIDIARIES).items()
        }
        self._local_exchange_codes = {
            c.upper() for c in (local_exchange_codes or settings.local_exchange_codes)
        }
        self._local_suffixes = tuple(
            s.upper() for s in (local_suffixes or settings.local_market_suffixes)
        )

    async def search_tickers(self, query: str, local_only: bool = False) -> list[TickerCandidate]:
        """
        Search for tradable tickers.

        Args:
            query: Free-text query or symbol
            local_only: Keep only candidates listed on the local markets

        Raises:
            ValidationError: Blank query
            MarketDataError: The base query failed
        """
        if not query or not query.strip():
            raise ValidationError("Query parameter 'q' is required", field="q")
        query = query.strip()

        candidates = self._filter(
            await self._query(query), SEARCHABLE_QUOTE_TYPES
        )

        if "." not in query:
            candidates += await self._best_effort(
                f"{query}{self._local_suffix}", SEARCHABLE_QUOTE_TYPES
            )

            upper = query.upper()
            if not candidates and BANK_SEARCH_TOKEN not in upper:
                candidates += await self._best_effort(
                    f"{query}{BANK_SEARCH_TOKEN}{self._local_suffix}", SEARCHABLE_QUOTE_TYPES
                )

            subsidiary = self._conglomerates.get(upper)
            if not candidates and subsidiary:
                candidates += await self._best_effort(subsidiary, CONGLOMERATE_QUOTE_TYPES)

        results = self._dedupe(candidates)
        if local_only:
            results = [c for c in results if self._is_local(c)]

        logger.debug(f"Search '{query}' returned {len(results)} candidates")
        return results

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _query(self, query: str) -> list[dict[str, Any]]:
        return await asyncio.to_thread(
            self._provider.search,
            query,
            quotes_count=self._quotes_count,
            news_count=SEARCH_NEWS_COUNT,
        )

    async def _best_effort(self, query: str, allowed_types: frozenset[str]) -> list[TickerCandidate]:
        """Run a disambiguation pass; its failure contributes nothing."""
        try:
            return self._filter(await self._query(query), allowed_types)
        except Exception as e:
            logger.warning(f"Disambiguation search '{query}' failed: {e}")
            return []

    @staticmethod
    def _filter(raw: list[dict[str, Any]], allowed_types: frozenset[str]) -> list[TickerCandidate]:
        candidates = []
        for item in raw or []:
            symbol = item.get("symbol")
            quote_type = item.get("quoteType")
            if not isinstance(symbol, str) or not symbol or quote_type not in allowed_types:
                continue
            candidates.append(TickerCandidate(
                symbol=symbol,
                display_name=item.get("shortname") or item.get("longname") or symbol,
                exchange=item.get("exchange"),
                quote_type=quote_type,
            ))
        return candidates

    @staticmethod
    def _dedupe(candidates: list[TickerCandidate]) -> list[TickerCandidate]:
        seen: dict[str, TickerCandidate] = {}
        for candidate in candidates:
            seen.setdefault(candidate.symbol, candidate)
        return list(seen.values())

    def _is_local(self, candidate: TickerCandidate) -> bool:
        if candidate.exchange and candidate.exchange.upper() in self._local_exchange_codes:
            return True
        return candidate.symbol.upper().endswith(self._local_suffixes)
