"""Tests for the MarketDashboard facade."""

import asyncio

import pytest

from src.services.market_data_service import PRICE_FETCH_ADVISORY
from src.services.news_service import NEWS_FETCH_ADVISORY
from src.utils.event_store import FETCH_COMPLETE
from tests.factories import MARKET_BASE_URL, NEWS_BASE_URL, make_quote


class TestMarketDashboard:
    """Test suite for MarketDashboard."""

    def test_defaults_before_start(self, dashboard):
        assert dashboard.selected_asset == "bitcoin"
        assert dashboard.get_tokens() == []
        assert dashboard.get_news() == []
        assert dashboard.advisory == ""

    @pytest.mark.asyncio
    async def test_start_loads_both_collections_and_registers_callback(
        self, dashboard, orchestrator
    ):
        await dashboard.start()
        try:
            assert [t.symbol for t in dashboard.get_tokens()] == ["BTC", "ETH"]
            assert len(dashboard.get_news()) == 3
            assert orchestrator.has_callback is True
            assert dashboard.scheduler.get_job(dashboard.NEWS_JOB_ID) is not None
        finally:
            dashboard.stop()

        assert orchestrator.has_callback is False
        assert dashboard.is_running is False

    @pytest.mark.asyncio
    async def test_start_under_running_orchestrator_fetches_prices_once(
        self, dashboard, orchestrator, upstream
    ):
        orchestrator.start()
        try:
            await dashboard.start()
            for _ in range(200):
                if dashboard.get_tokens() and not orchestrator.is_loading:
                    break
                await asyncio.sleep(0.01)

            assert [t.symbol for t in dashboard.get_tokens()] == ["BTC", "ETH"]
            assert len(dashboard.get_news()) == 3
            assert len(upstream.requests_to(f"{MARKET_BASE_URL}/coins/markets")) == 1
        finally:
            dashboard.stop()
            orchestrator.stop()

    @pytest.mark.asyncio
    async def test_orchestrator_tick_refreshes_prices(self, dashboard, orchestrator, upstream):
        orchestrator.register_refresh_callback(dashboard.refresh_prices)
        upstream.quotes = [make_quote(current_price=70000.0)]

        await orchestrator.refresh_now()

        assert dashboard.get_token("btc").price == 70000.0
        assert len(upstream.requests_to(f"{MARKET_BASE_URL}/coins/markets")) == 1

    @pytest.mark.asyncio
    async def test_get_token_is_case_insensitive(self, dashboard):
        await dashboard.refresh_prices()

        assert dashboard.get_token("eth").symbol == "ETH"
        assert dashboard.get_token("ETH") is dashboard.get_token("eth")
        assert dashboard.get_token("DOGE") is None

    @pytest.mark.asyncio
    async def test_selected_token(self, dashboard):
        await dashboard.refresh_prices()
        assert dashboard.get_selected_token().symbol == "BTC"

    @pytest.mark.asyncio
    async def test_selected_token_missing_from_snapshot(self, dashboard):
        await dashboard.refresh_prices()
        await dashboard.select_asset("cardano")
        assert dashboard.get_selected_token() is None

    @pytest.mark.asyncio
    async def test_select_asset_refetches_news_for_that_asset(self, dashboard, upstream):
        await dashboard.select_asset("ethereum")

        assert dashboard.selected_asset == "ethereum"
        request = upstream.requests_to(f"{NEWS_BASE_URL}/everything")[-1]
        assert request.url.params["q"] == "Ethereum"

    @pytest.mark.asyncio
    async def test_select_unknown_asset_raises(self, dashboard, upstream):
        with pytest.raises(ValueError, match="Unknown asset"):
            await dashboard.select_asset("dogecoin")
        assert dashboard.selected_asset == "bitcoin"
        assert upstream.requests == []

    @pytest.mark.asyncio
    async def test_suggestion_uses_current_news(self, dashboard):
        await dashboard.refresh_prices()
        await dashboard.refresh_news()

        suggestion = dashboard.get_suggestion(dashboard.get_token("BTC"))

        # 67234 sits between the 2% and 5% support bands
        assert suggestion.action == "hold"
        assert suggestion.confidence == 50

    @pytest.mark.asyncio
    async def test_advisory_combines_both_failures(self, dashboard, upstream):
        upstream.price_status = 500
        upstream.news_status = 500

        await dashboard.refresh_prices()
        await dashboard.refresh_news()

        assert dashboard.advisory == f"{PRICE_FETCH_ADVISORY} {NEWS_FETCH_ADVISORY}"
        assert [t.symbol for t in dashboard.get_tokens()] == ["BTC"]
        assert [a.id for a in dashboard.get_news()] == ["fallback-1"]

    @pytest.mark.asyncio
    async def test_scheduled_news_refresh_is_traced(self, dashboard, event_store):
        await dashboard._scheduled_news_refresh()

        events = event_store.get_events_by_type(FETCH_COMPLETE)
        assert len(events) == 1
        assert events[0].trace_id is not None
