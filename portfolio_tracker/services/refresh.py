# portfolio_tracker/services/refresh.py
"""
Refresh/Sync Controller.

Owns the in-memory holding set and its quotes, and decides when they are
re-resolved:

    INITIAL_LOAD  - once, when the controller starts
    MUTATION      - after every add / edit / remove
    INTERVAL      - on a fixed cadence (default 60 s)
    MANUAL        - on explicit request

Every trigger runs one reconciliation pass: re-list the authoritative
holdings from the store, resolve a quote per distinct ticker concurrently,
then publish a new PortfolioState.

Concurrency:
    Passes are not serialized. Each pass works on its own local copy and
    publishes it when done, so with overlapping passes the one that
    finishes last wins, even if it started first. Every pass carries a
    monotonically increasing pass_id; with discard_stale=True a pass that
    finishes after a newer pass was already published is dropped instead.
"""

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone

from portfolio_tracker.config import settings
from portfolio_tracker.services.constants import ALL_OWNERS
from portfolio_tracker.services.exceptions import InvalidTickerError, QuoteUnavailableError
from portfolio_tracker.services.history import DEFAULT_HISTORY_RANGE, HistoryRange
from portfolio_tracker.services.portfolio import (
    PortfolioService,
    PortfolioSnapshot,
    ValueSeries,
    list_owners,
)
from portfolio_tracker.services.protocols import HoldingStore
from portfolio_tracker.services.quotes import QuoteResolver
from portfolio_tracker.services.types import Holding, HoldingChanges, HoldingInput, Quote

logger = logging.getLogger(__name__)


class RefreshState(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"


class RefreshTrigger(str, enum.Enum):
    INITIAL_LOAD = "initial_load"
    MUTATION = "mutation"
    INTERVAL = "interval"
    MANUAL = "manual"


@dataclass(frozen=True)
class PortfolioState:
    """
    Result of one reconciliation pass.

    Attributes:
        holdings: Holdings as listed by the store, newest first
        quotes: Quotes keyed by ticker (tickers whose lookup failed and had
            no earlier quote are absent)
        owners: Distinct owners in first-seen order
        pass_id: Sequence number of the pass that produced this state (0 = none yet)
        trigger: What started the pass
        refreshed_at: When the pass finished
        failed_tickers: Tickers whose quote lookup failed in this pass
    """

    holdings: list[Holding] = field(default_factory=list)
    quotes: dict[str, Quote] = field(default_factory=dict)
    owners: list[str] = field(default_factory=list)
    pass_id: int = 0
    trigger: RefreshTrigger | None = None
    refreshed_at: datetime | None = None
    failed_tickers: dict[str, str] = field(default_factory=dict)


class RefreshController:
    """
    Orchestrates quote refreshes and holding mutations.

    Args:
        store: Authoritative holdings store
        quote_resolver: Quote fallback chain (also validates tickers)
        portfolio_service: Snapshot / value-series derivation
        interval_seconds: Cadence of the INTERVAL trigger
        discard_stale: Drop passes that finish after a newer one was applied
    """

    def __init__(
            self,
            store: HoldingStore,
            quote_resolver: QuoteResolver,
            portfolio_service: PortfolioService,
            interval_seconds: float | None = None,
            discard_stale: bool | None = None,
    ) -> None:
        self._store = store
        self._resolver = quote_resolver
        self._portfolio = portfolio_service
        self._interval = (
            settings.refresh_interval_seconds if interval_seconds is None else interval_seconds
        )
        self._discard_stale = (
            settings.discard_stale_refresh_results if discard_stale is None else discard_stale
        )

        self._state = PortfolioState()
        self._last_pass_id = 0
        self._in_flight = 0
        self._task: asyncio.Task | None = None
        self._initial_load: asyncio.Task | None = None

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def state(self) -> RefreshState:
        return RefreshState.LOADING if self._in_flight else RefreshState.IDLE

    @property
    def portfolio_state(self) -> PortfolioState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def health(self) -> dict:
        """Loop status and last applied pass, for the health endpoint."""
        applied = self._state
        return {
            "state": self.state.value,
            "loop_running": self.is_running,
            "last_pass_id": applied.pass_id,
            "refreshed_at": applied.refreshed_at.isoformat() if applied.refreshed_at else None,
            "failed_tickers": sorted(applied.failed_tickers),
        }

    # =========================================================================
    # RECONCILIATION
    # =========================================================================

    async def reconcile(self, trigger: RefreshTrigger) -> PortfolioState:
        """
        Run one pass and publish its result.

        Returns:
            The state produced by this pass (returned even when it was
            discarded as stale)

        Raises:
            Whatever the store raises while listing holdings
        """
        self._last_pass_id += 1
        pass_id = self._last_pass_id
        self._in_flight += 1
        logger.debug(f"Refresh pass {pass_id} started ({trigger.value})")

        try:
            holdings = await asyncio.to_thread(self._store.list)
            tickers = list(dict.fromkeys(h.ticker for h in holdings))
            batch = await self._resolver.resolve_quotes(tickers)

            quotes = dict(batch.quotes)
            for ticker in batch.failed:
                previous = self._state.quotes.get(ticker)
                if previous is not None:
                    quotes[ticker] = previous

            result = PortfolioState(
                holdings=holdings,
                quotes=quotes,
                owners=list_owners(holdings),
                pass_id=pass_id,
                trigger=trigger,
                refreshed_at=datetime.now(timezone.utc),
                failed_tickers=dict(batch.failed),
            )
            self._publish(result)
            return result
        finally:
            self._in_flight -= 1

    async def refresh(self) -> PortfolioState:
        """Manual refresh."""
        return await self.reconcile(RefreshTrigger.MANUAL)

    async def ensure_loaded(self) -> PortfolioState:
        """
        Return the applied state, waiting for the initial load if none exists.

        Concurrent callers share one initial-load pass. A failed load is
        forgotten, so the next call tries again.

        Raises:
            Whatever the initial load raised
        """
        if self._state.pass_id:
            return self._state

        if self._initial_load is None:
            self._initial_load = asyncio.create_task(
                self.reconcile(RefreshTrigger.INITIAL_LOAD)
            )
        task = self._initial_load
        try:
            await asyncio.shield(task)
        except Exception:
            if self._initial_load is task:
                self._initial_load = None
            raise
        return self._state

    def _publish(self, result: PortfolioState) -> None:
        if self._discard_stale and result.pass_id < self._state.pass_id:
            logger.info(
                f"Discarding stale refresh pass {result.pass_id} "
                f"(pass {self._state.pass_id} already applied)"
            )
            return

        self._state = result
        logger.info(
            f"Refresh pass {result.pass_id} applied ({result.trigger.value}): "
            f"{len(result.holdings)} holdings, {len(result.quotes)} quotes, "
            f"{len(result.failed_tickers)} failed"
        )

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def add_holding(self, data: HoldingInput) -> Holding:
        """
        Validate the ticker, persist the holding, then reconcile.

        A failed reconcile is logged and does not fail the write; the next
        pass picks the holding up.

        Raises:
            InvalidTickerError: No quote could be resolved (nothing persisted)
        """
        await self._validate_ticker(data.ticker)
        holding = await asyncio.to_thread(self._store.create, data)
        await self._reconcile_after_write()
        return holding

    async def edit_holding(self, holding_id: int, changes: HoldingChanges) -> Holding:
        """
        Validate the (new or current) ticker, persist the changes, reconcile.

        Raises:
            HoldingNotFoundError: Unknown id (checked before any upstream call)
            InvalidTickerError: No quote could be resolved (nothing persisted)
        """
        current = await asyncio.to_thread(self._store.get, holding_id)
        if changes.is_empty:
            return current

        await self._validate_ticker(changes.ticker or current.ticker)
        holding = await asyncio.to_thread(self._store.update, holding_id, changes)
        await self._reconcile_after_write()
        return holding

    async def remove_holding(self, holding_id: int) -> None:
        await asyncio.to_thread(self._store.delete, holding_id)
        await self._reconcile_after_write()

    async def _reconcile_after_write(self) -> None:
        try:
            await self.reconcile(RefreshTrigger.MUTATION)
        except Exception:
            logger.exception("Refresh after holding write failed")

    async def _validate_ticker(self, ticker: str) -> Quote:
        try:
            return await self._resolver.resolve_quote(ticker)
        except QuoteUnavailableError as e:
            logger.warning(f"Rejected holding write for '{ticker}': {e}")
            raise InvalidTickerError(ticker) from e

    # =========================================================================
    # DERIVED VIEWS
    # =========================================================================

    def snapshot(self, owner_filter: str | None = ALL_OWNERS) -> PortfolioSnapshot:
        return self._portfolio.get_snapshot(
            self._state.holdings, self._state.quotes, owner_filter
        )

    async def value_series(
            self,
            history_range: str | HistoryRange = DEFAULT_HISTORY_RANGE,
            owner_filter: str | None = ALL_OWNERS,
            today: date | None = None,
    ) -> ValueSeries:
        return await self._portfolio.get_value_series(
            self._state.holdings, history_range, owner_filter, today=today
        )

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(self) -> None:
        """Initial load, then schedule the interval loop."""
        if self.is_running:
            return
        try:
            await self.ensure_loaded()
        except Exception:
            logger.exception("Initial portfolio load failed")
        self._task = asyncio.create_task(self._run_interval_loop())
        logger.info(f"Refresh loop started (every {self._interval}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Refresh loop stopped")

    async def _run_interval_loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.reconcile(RefreshTrigger.INTERVAL)
            except Exception:
                logger.exception("Interval refresh failed")
