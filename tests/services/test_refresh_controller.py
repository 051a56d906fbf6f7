# tests/services/test_refresh_controller.py
"""
Tests for RefreshController.

This module tests:
- Reconciliation passes (store re-list + concurrent quote resolution)
- Idle/Loading state
- Overlapping passes: last write wins, or stale passes discarded when enabled
- Ticker validation before add/edit writes
- Interval loop lifecycle
"""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from portfolio_tracker.services.exceptions import (
    HoldingNotFoundError,
    InvalidTickerError,
    ProviderUnavailableError,
)
from portfolio_tracker.services.history import HistoricalSeriesFetcher
from portfolio_tracker.services.market_data.base import ChartResult
from portfolio_tracker.services.portfolio import PortfolioService
from portfolio_tracker.services.quotes import QuoteBatch, QuoteResolver
from portfolio_tracker.services.refresh import RefreshController, RefreshState, RefreshTrigger
from portfolio_tracker.services.types import HoldingChanges, HoldingInput
from tests.conftest import FakeHoldingStore, create_bars, create_holding, create_quote


async def _until(condition, attempts: int = 200) -> None:
    for _ in range(attempts):
        if condition():
            return
        await asyncio.sleep(0.01)
    raise AssertionError("condition not met in time")


def _controller(store, provider, **kwargs) -> RefreshController:
    return RefreshController(
        store=store,
        quote_resolver=QuoteResolver(provider),
        portfolio_service=PortfolioService(HistoricalSeriesFetcher(provider, timeout_seconds=5)),
        **kwargs,
    )


class GatedQuoteResolver:
    """Resolver whose batch calls block until their gate is opened."""

    def __init__(self, prices_per_call: list[str]):
        self._prices = list(prices_per_call)
        self.gates: list[asyncio.Event] = []

    async def resolve_quotes(self, tickers):
        price = self._prices.pop(0)
        gate = asyncio.Event()
        self.gates.append(gate)
        await gate.wait()
        return QuoteBatch(quotes={t: create_quote(ticker=t, current_price=price) for t in tickers})


class FlakyStore(FakeHoldingStore):
    """Store whose first `failures` list calls raise."""

    def __init__(self, holdings=None, failures: int = 1):
        super().__init__(holdings)
        self._failures = failures

    def list(self):
        if self.list_calls < self._failures:
            self.list_calls += 1
            raise RuntimeError("database is locked")
        return super().list()


# =============================================================================
# RECONCILIATION
# =============================================================================

class TestReconcile:

    @pytest.mark.asyncio
    async def test_pass_lists_store_and_resolves_each_ticker_once(self, mock_provider):
        store = FakeHoldingStore([
            create_holding(id=1, ticker="A.NS", owner="Asha"),
            create_holding(id=2, ticker="A.NS", owner="Ravi"),
            create_holding(id=3, ticker="B.NS", owner="Asha"),
        ])
        mock_provider.set_quote("A.NS", {"regularMarketPrice": 110})
        mock_provider.set_quote("B.NS", {"regularMarketPrice": 220})
        controller = _controller(store, mock_provider)

        state = await controller.reconcile(RefreshTrigger.MANUAL)

        assert store.list_calls == 1
        assert sorted(mock_provider.calls_to("quote")) == ["A.NS", "B.NS"]
        assert set(state.quotes) == {"A.NS", "B.NS"}
        assert state.owners == ["Asha", "Ravi"]
        assert state.pass_id == 1
        assert state.trigger is RefreshTrigger.MANUAL
        assert controller.portfolio_state is state
        assert controller.state is RefreshState.IDLE

    @pytest.mark.asyncio
    async def test_failed_quote_keeps_last_known_quote(self, mock_provider):
        store = FakeHoldingStore([create_holding(id=1, ticker="A.NS")])
        mock_provider.set_quote("A.NS", {"regularMarketPrice": 110})
        controller = _controller(store, mock_provider)
        await controller.refresh()

        mock_provider.set_error("quote", "A.NS", ProviderUnavailableError("mock", "down"))
        state = await controller.refresh()

        assert state.quotes["A.NS"].current_price == Decimal("110")
        assert list(state.failed_tickers) == ["A.NS"]

    @pytest.mark.asyncio
    async def test_never_quoted_ticker_uses_cost_basis(self, mock_provider):
        store = FakeHoldingStore([create_holding(id=1, ticker="NEW.NS", cost_basis_per_unit="40")])
        controller = _controller(store, mock_provider)

        await controller.refresh()
        snapshot = controller.snapshot()

        assert snapshot.missing_quotes == ["NEW.NS"]
        assert snapshot.total_pl == Decimal("0")

    @pytest.mark.asyncio
    async def test_ensure_loaded_runs_once(self, mock_provider):
        store = FakeHoldingStore()
        controller = _controller(store, mock_provider)

        first = await controller.ensure_loaded()
        second = await controller.ensure_loaded()

        assert first.trigger is RefreshTrigger.INITIAL_LOAD
        assert second is first
        assert store.list_calls == 1

    @pytest.mark.asyncio
    async def test_concurrent_readers_wait_for_one_initial_load(self):
        """A reader arriving mid-load gets the loaded holdings, not an empty state."""
        store = FakeHoldingStore([create_holding(id=1, ticker="A.NS", quantity=2)])
        resolver = GatedQuoteResolver(["100"])
        controller = RefreshController(
            store=store,
            quote_resolver=resolver,
            portfolio_service=PortfolioService(HistoricalSeriesFetcher(None, timeout_seconds=1)),
        )

        first = asyncio.create_task(controller.ensure_loaded())
        await _until(lambda: len(resolver.gates) == 1)
        second = asyncio.create_task(controller.ensure_loaded())
        await asyncio.sleep(0.01)
        assert not second.done()

        resolver.gates[0].set()
        loaded, waited = await asyncio.gather(first, second)

        assert waited is loaded
        assert [h.id for h in waited.holdings] == [1]
        assert controller.snapshot().total_value == Decimal("200")
        assert store.list_calls == 1

    @pytest.mark.asyncio
    async def test_failed_initial_load_is_retried(self, mock_provider):
        store = FlakyStore([create_holding(id=1, ticker="A.NS")], failures=1)
        mock_provider.set_quote("A.NS", {"regularMarketPrice": 110})
        controller = _controller(store, mock_provider)

        with pytest.raises(RuntimeError):
            await controller.ensure_loaded()
        state = await controller.ensure_loaded()

        assert state.trigger is RefreshTrigger.INITIAL_LOAD
        assert [h.id for h in state.holdings] == [1]
        assert store.list_calls == 2


class TestOverlappingPasses:

    @pytest.fixture
    def store(self):
        return FakeHoldingStore([create_holding(id=1, ticker="A.NS")])

    def _gated_controller(self, store, resolver, discard_stale):
        return RefreshController(
            store=store,
            quote_resolver=resolver,
            portfolio_service=PortfolioService(HistoricalSeriesFetcher(None, timeout_seconds=1)),
            discard_stale=discard_stale,
        )

    async def _run_out_of_order(self, controller, resolver):
        """Start pass 1, start pass 2, finish pass 2, then finish pass 1."""
        first = asyncio.create_task(controller.reconcile(RefreshTrigger.INTERVAL))
        await _until(lambda: len(resolver.gates) == 1)
        second = asyncio.create_task(controller.reconcile(RefreshTrigger.MANUAL))
        await _until(lambda: len(resolver.gates) == 2)

        assert controller.state is RefreshState.LOADING

        resolver.gates[1].set()
        await second
        assert controller.portfolio_state.pass_id == 2
        assert controller.state is RefreshState.LOADING

        resolver.gates[0].set()
        await first
        assert controller.state is RefreshState.IDLE

    @pytest.mark.asyncio
    async def test_last_write_wins_by_default(self, store):
        resolver = GatedQuoteResolver(["100", "200"])
        controller = self._gated_controller(store, resolver, discard_stale=False)

        await self._run_out_of_order(controller, resolver)

        assert controller.portfolio_state.pass_id == 1
        assert controller.portfolio_state.quotes["A.NS"].current_price == Decimal("100")

    @pytest.mark.asyncio
    async def test_stale_pass_discarded_when_enabled(self, store):
        resolver = GatedQuoteResolver(["100", "200"])
        controller = self._gated_controller(store, resolver, discard_stale=True)

        await self._run_out_of_order(controller, resolver)

        assert controller.portfolio_state.pass_id == 2
        assert controller.portfolio_state.quotes["A.NS"].current_price == Decimal("200")


# =============================================================================
# MUTATIONS
# =============================================================================

class TestAddHolding:

    @pytest.mark.asyncio
    async def test_valid_ticker_persisted_and_reconciled(self, fake_store, mock_provider):
        mock_provider.set_quote("INFY.NS", {"regularMarketPrice": 1500})
        controller = _controller(fake_store, mock_provider)

        holding = await controller.add_holding(
            HoldingInput(ticker="infy.ns", quantity=10, cost_basis_per_unit=Decimal("1400"))
        )

        assert holding.ticker == "INFY.NS"
        assert fake_store.list() == [holding]
        assert controller.portfolio_state.trigger is RefreshTrigger.MUTATION
        assert controller.snapshot().total_value == Decimal("15000")

    @pytest.mark.asyncio
    async def test_invalid_ticker_not_persisted(self, fake_store, mock_provider):
        """Every quote step fails → InvalidTickerError, nothing stored, no pass."""
        controller = _controller(fake_store, mock_provider)

        with pytest.raises(InvalidTickerError) as exc_info:
            await controller.add_holding(
                HoldingInput(ticker="NOPE", quantity=1, cost_basis_per_unit=Decimal("1"))
            )

        assert exc_info.value.ticker == "NOPE"
        assert fake_store.list_calls == 0
        assert fake_store.list() == []
        assert controller.portfolio_state.pass_id == 0

    @pytest.mark.asyncio
    async def test_fallback_quote_validates(self, fake_store, mock_provider):
        """A ticker priced only by the chart step is valid."""
        mock_provider.set_summary("ODD.NS", {})
        mock_provider.set_chart("ODD.NS", ChartResult(symbol="ODD.NS", prices=create_bars(["5"])))
        controller = _controller(fake_store, mock_provider)

        holding = await controller.add_holding(
            HoldingInput(ticker="ODD.NS", quantity=1, cost_basis_per_unit=Decimal("4"))
        )

        assert holding.id == 1

    @pytest.mark.asyncio
    async def test_failed_reconcile_does_not_fail_the_write(self, mock_provider):
        """The stored holding is returned; the next pass picks it up."""
        store = FlakyStore(failures=1)
        mock_provider.set_quote("INFY.NS", {"regularMarketPrice": 1500})
        controller = _controller(store, mock_provider)

        holding = await controller.add_holding(
            HoldingInput(ticker="INFY.NS", quantity=2, cost_basis_per_unit=Decimal("1400"))
        )

        assert holding.id == 1
        assert controller.portfolio_state.pass_id == 0

        state = await controller.refresh()
        assert [h.id for h in state.holdings] == [1]


class TestEditHolding:

    @pytest.fixture
    def store(self):
        return FakeHoldingStore([create_holding(id=1, ticker="A.NS", quantity=10)])

    @pytest.mark.asyncio
    async def test_unknown_id_checked_before_upstream(self, store, mock_provider):
        controller = _controller(store, mock_provider)

        with pytest.raises(HoldingNotFoundError):
            await controller.edit_holding(99, HoldingChanges(quantity=1))

        assert mock_provider.calls == []

    @pytest.mark.asyncio
    async def test_invalid_new_ticker_not_persisted(self, store, mock_provider):
        controller = _controller(store, mock_provider)

        with pytest.raises(InvalidTickerError):
            await controller.edit_holding(1, HoldingChanges(ticker="BAD.NS"))

        assert store.get(1).ticker == "A.NS"

    @pytest.mark.asyncio
    async def test_quantity_change_revalidates_current_ticker(self, store, mock_provider):
        mock_provider.set_quote("A.NS", {"regularMarketPrice": 50})
        controller = _controller(store, mock_provider)

        updated = await controller.edit_holding(1, HoldingChanges(quantity=20))

        assert updated.quantity == 20
        assert mock_provider.calls_to("quote")[0] == "A.NS"
        assert controller.snapshot().total_value == Decimal("1000")

    @pytest.mark.asyncio
    async def test_empty_changes_are_a_no_op(self, store, mock_provider):
        controller = _controller(store, mock_provider)

        holding = await controller.edit_holding(1, HoldingChanges())

        assert holding == store.get(1)
        assert mock_provider.calls == []
        assert store.list_calls == 0

    @pytest.mark.asyncio
    async def test_failed_reconcile_does_not_fail_the_edit(self, mock_provider):
        store = FlakyStore([create_holding(id=1, ticker="A.NS", quantity=10)], failures=1)
        mock_provider.set_quote("A.NS", {"regularMarketPrice": 50})
        controller = _controller(store, mock_provider)

        updated = await controller.edit_holding(1, HoldingChanges(quantity=20))

        assert updated.quantity == 20
        assert store.get(1).quantity == 20


class TestRemoveHolding:

    @pytest.mark.asyncio
    async def test_remove_reconciles(self, mock_provider):
        store = FakeHoldingStore([
            create_holding(id=1, ticker="A.NS", owner="Asha"),
            create_holding(id=2, ticker="B.NS", owner="Ravi"),
        ])
        controller = _controller(store, mock_provider)

        await controller.remove_holding(2)

        assert [h.id for h in controller.portfolio_state.holdings] == [1]
        assert controller.portfolio_state.owners == ["Asha"]

    @pytest.mark.asyncio
    async def test_remove_unknown_is_idempotent(self, fake_store, mock_provider):
        controller = _controller(fake_store, mock_provider)

        await controller.remove_holding(5)

        assert controller.portfolio_state.pass_id == 1

    @pytest.mark.asyncio
    async def test_failed_reconcile_does_not_fail_the_remove(self, mock_provider):
        store = FlakyStore([create_holding(id=1, ticker="A.NS")], failures=1)
        controller = _controller(store, mock_provider)

        await controller.remove_holding(1)

        assert store.list() == []


# =============================================================================
# DERIVED VIEWS
# =============================================================================

class TestValueSeries:

    @pytest.mark.asyncio
    async def test_uses_applied_holdings(self, mock_provider):
        store = FakeHoldingStore([create_holding(id=1, ticker="A.NS", quantity=3)])
        mock_provider.set_historical("A.NS", create_bars(["10", "11"]))
        controller = _controller(store, mock_provider)
        await controller.refresh()

        series = await controller.value_series("7d", today=date(2024, 6, 5))

        assert [p.total_value for p in series.points] == [Decimal("30"), Decimal("33")]


# =============================================================================
# LIFECYCLE
# =============================================================================

class TestLifecycle:

    @pytest.mark.asyncio
    async def test_start_loads_then_runs_interval_passes(self, fake_store, mock_provider):
        controller = _controller(fake_store, mock_provider, interval_seconds=0.02)

        await controller.start()
        assert controller.is_running
        assert controller.portfolio_state.trigger is RefreshTrigger.INITIAL_LOAD

        await _until(lambda: controller.portfolio_state.trigger is RefreshTrigger.INTERVAL)
        await controller.stop()

        assert not controller.is_running

    @pytest.mark.asyncio
    async def test_loop_survives_failed_passes(self, mock_provider):
        store = FlakyStore(failures=2)
        controller = _controller(store, mock_provider, interval_seconds=0.02)

        await controller.start()
        await _until(lambda: controller.portfolio_state.pass_id > 0)
        await controller.stop()

        assert controller.portfolio_state.trigger is RefreshTrigger.INTERVAL
        assert controller.state is RefreshState.IDLE

    @pytest.mark.asyncio
    async def test_zero_interval_is_kept(self, fake_store, mock_provider):
        """An explicit 0 refreshes back to back instead of every 60 s."""
        controller = _controller(fake_store, mock_provider, interval_seconds=0)

        await controller.start()
        await _until(lambda: controller.portfolio_state.trigger is RefreshTrigger.INTERVAL)
        await controller.stop()

    @pytest.mark.asyncio
    async def test_stop_without_start(self, fake_store, mock_provider):
        controller = _controller(fake_store, mock_provider)
        await controller.stop()
        assert not controller.is_running
