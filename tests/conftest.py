"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient

from main import app
from src.services.dashboard_service import MarketDashboard
from src.services.market_data_service import MarketDataService
from src.services.news_service import NewsService
from src.services.refresh_orchestrator import RefreshOrchestrator
from src.services.signal_engine import SignalEngine
from src.utils.config import TRACKED_ASSETS, MarketDataConfig, NewsConfig, RefreshConfig
from src.utils.event_store import EventStore
from src.utils.metrics import MetricsCalculator
from tests.factories import MARKET_BASE_URL, NEWS_BASE_URL, PROBE_URL, FakeUpstream


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def event_store():
    return EventStore()


@pytest.fixture
def refresh_config():
    return RefreshConfig(
        price_interval_seconds=30,
        news_interval_seconds=300,
        probe_url=PROBE_URL,
        probe_timeout=1.0,
    )


@pytest.fixture
def market_service(upstream, event_store):
    return MarketDataService(
        MarketDataConfig(base_url=MARKET_BASE_URL),
        TRACKED_ASSETS,
        event_store,
        transport=upstream.transport,
    )


@pytest.fixture
def news_service(upstream, event_store):
    return NewsService(
        NewsConfig(api_key="test-key", base_url=NEWS_BASE_URL),
        TRACKED_ASSETS,
        event_store,
        transport=upstream.transport,
    )


@pytest.fixture
def orchestrator(upstream, event_store, refresh_config):
    return RefreshOrchestrator(refresh_config, event_store, transport=upstream.transport)


@pytest.fixture
def dashboard(orchestrator, market_service, news_service, event_store, refresh_config):
    return MarketDashboard(
        orchestrator,
        market_data=market_service,
        news=news_service,
        signal_engine=SignalEngine(event_store),
        refresh_config=refresh_config,
        default_asset="bitcoin",
    )


@pytest.fixture
def test_client(dashboard, orchestrator, event_store):
    """Test client wired to faked upstreams; the lifespan timers are not started."""
    app.state.event_store = event_store
    app.state.metrics = MetricsCalculator(event_store)
    app.state.orchestrator = orchestrator
    app.state.dashboard = dashboard

    client = TestClient(app)
    yield client

    for name in ("event_store", "metrics", "orchestrator", "dashboard"):
        setattr(app.state, name, None)
