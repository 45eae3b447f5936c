"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from main import app
from src.utils.event_store import FETCH_COMPLETE, PROBE_COMPLETE


@pytest.fixture
def loaded_client(test_client, dashboard, orchestrator):
    """Client whose dashboard already went through one refresh cycle."""
    orchestrator.register_refresh_callback(dashboard.refresh_prices)
    test_client.post("/api/refresh")
    return test_client


class TestTokenRoutes:
    """Test suite for /api/tokens."""

    def test_tokens_empty_before_first_refresh(self, test_client):
        response = test_client.get("/api/tokens")

        assert response.status_code == 200
        data = response.json()
        assert data["tokens"] == []
        assert data["count"] == 0
        assert data["selected_asset"] == "bitcoin"

    def test_tokens_after_refresh(self, loaded_client):
        data = loaded_client.get("/api/tokens").json()

        assert data["count"] == 2
        btc = data["tokens"][0]
        assert btc["symbol"] == "BTC"
        assert btc["price"] == 67234.0
        assert btc["price_display"] == "$67,234"
        assert btc["support"] == pytest.approx(65500.0 * 0.98)
        assert data["advisory"] == ""

    def test_tokens_fall_back_on_upstream_failure(self, test_client, upstream, dashboard, orchestrator):
        upstream.price_status = 500
        orchestrator.register_refresh_callback(dashboard.refresh_prices)
        test_client.post("/api/refresh")

        data = test_client.get("/api/tokens").json()

        assert data["count"] == 1
        assert data["tokens"][0]["symbol"] == "BTC"
        assert "Failed to fetch cryptocurrency data" in data["advisory"]

    def test_suggestion_for_known_symbol(self, loaded_client):
        response = loaded_client.get("/api/tokens/btc/suggestion")

        assert response.status_code == 200
        data = response.json()
        assert data["symbol"] == "BTC"
        assert data["suggestion"]["action"] in ("buy", "sell", "hold")
        assert 0 <= data["suggestion"]["confidence"] <= 100

    def test_suggestion_for_unknown_symbol_is_404(self, loaded_client):
        response = loaded_client.get("/api/tokens/doge/suggestion")

        assert response.status_code == 404
        data = response.json()
        assert data["error"] == "TOKEN_NOT_FOUND"
        assert data["details"]["symbol"] == "DOGE"


class TestNewsRoutes:
    """Test suite for /api/news and /api/selection."""

    def test_news_after_selection(self, test_client):
        response = test_client.put("/api/selection", json={"asset_id": "ethereum"})
        assert response.status_code == 200
        assert response.json() == {"selected_asset": "ethereum", "articles": 3}

        data = test_client.get("/api/news").json()

        assert data["count"] == 3
        assert data["filter"] == "all"
        assert all("time" in article for article in data["articles"])
        assert data["articles"][0]["relevance"] == 90

    def test_news_filter(self, test_client):
        test_client.put("/api/selection", json={"asset_id": "bitcoin"})

        data = test_client.get("/api/news", params={"filter": "negative"}).json()

        assert [a["title"] for a in data["articles"]] == ["Exchange hack reported"]

    def test_invalid_news_filter_is_400(self, test_client):
        response = test_client.get("/api/news", params={"filter": "neutral"})

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_FILTER"

    def test_unknown_asset_is_404(self, test_client):
        response = test_client.put("/api/selection", json={"asset_id": "dogecoin"})

        assert response.status_code == 404
        data = response.json()
        assert data["error"] == "UNKNOWN_ASSET"
        assert "bitcoin" in data["details"]["tracked_assets"]

    def test_missing_asset_id_is_validation_error(self, test_client):
        response = test_client.put("/api/selection", json={})

        assert response.status_code == 422
        data = response.json()
        assert data["error"] == "VALIDATION_ERROR"
        assert "body.asset_id" in data["details"]


class TestRefreshRoutes:
    """Test suite for /api/refresh, /api/status, /api/metrics and /api/events."""

    def test_status_before_any_cycle(self, test_client):
        assert test_client.get("/api/status").json() == {
            "is_live": False,
            "is_loading": False,
            "last_update": None,
        }

    def test_refresh_reports_live_state(self, test_client):
        data = test_client.post("/api/refresh").json()

        assert data["is_live"] is True
        assert data["is_loading"] is False
        assert data["last_update"] is not None

    def test_refresh_reports_offline_state(self, test_client, upstream):
        upstream.probe_status = 503

        data = test_client.post("/api/refresh").json()

        assert data["is_live"] is False
        assert data["last_update"] is None

    def test_metrics_count_probes_and_fetches(self, loaded_client, upstream):
        upstream.probe_error = True
        loaded_client.post("/api/refresh")

        data = loaded_client.get("/api/metrics").json()

        assert data["total_probes"] == 2
        assert data["successful_probes"] == 1
        assert data["failed_probes"] == 1
        assert data["probe_success_rate"] == 50.0
        assert data["successful_fetches"] == 2

    def test_events_filtered_by_type(self, loaded_client):
        data = loaded_client.get("/api/events", params={"event_type": PROBE_COMPLETE}).json()

        assert data["count"] == 1
        assert data["events"][0]["event_type"] == PROBE_COMPLETE

    def test_events_limit(self, loaded_client):
        loaded_client.post("/api/refresh")

        data = loaded_client.get("/api/events", params={"limit": 1}).json()

        assert data["count"] == 1
        assert data["events"][0]["event_type"] in (PROBE_COMPLETE, FETCH_COMPLETE)


class TestAppWiring:
    """Test suite for app-level endpoints and startup state."""

    def test_health(self, test_client):
        assert test_client.get("/health").json() == {"status": "healthy"}

    def test_routes_are_unavailable_before_startup(self):
        client = TestClient(app)

        response = client.get("/api/status")

        assert response.status_code == 503
        assert response.json()["error"] == "SERVICE_UNAVAILABLE"
