"""API routes for tokens, news, suggestions and refresh state."""

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from src.api.dependencies import (
    get_dashboard,
    get_event_store,
    get_metrics_calculator,
    get_orchestrator,
)
from src.api.error_handlers import (
    create_invalid_filter_error,
    create_token_not_found_error,
    create_unknown_asset_error,
)
from src.models.news import NEWS_FILTERS, NewsArticle
from src.services.dashboard_service import MarketDashboard
from src.services.news_service import format_time_ago
from src.services.refresh_orchestrator import RefreshOrchestrator
from src.utils.event_store import EventStore
from src.utils.metrics import MetricsCalculator

router = APIRouter()


class SelectionUpdate(BaseModel):
    """Request model for changing the selected asset."""

    asset_id: str


def _article_payload(article: NewsArticle) -> dict:
    return {**asdict(article), "time": format_time_ago(article.published_at)}


def _status_payload(orchestrator: RefreshOrchestrator) -> dict:
    return orchestrator.state.snapshot()


@router.get("/tokens")
async def get_tokens(dashboard: MarketDashboard = Depends(get_dashboard)):
    """
    Current token snapshots, last-known-good on upstream failure.

    Returns:
        Tokens, their count, the selected asset and any degradation advisory
    """
    tokens = dashboard.get_tokens()
    return {
        "tokens": tokens,
        "count": len(tokens),
        "selected_asset": dashboard.selected_asset,
        "advisory": dashboard.advisory,
    }


@router.get("/tokens/{symbol}/suggestion")
async def get_suggestion(symbol: str, dashboard: MarketDashboard = Depends(get_dashboard)):
    """
    Trading suggestion for one token against the current news set.

    Args:
        symbol: Display symbol, e.g. BTC (case-insensitive)
    """
    token = dashboard.get_token(symbol)
    if token is None:
        raise create_token_not_found_error(symbol).to_http_exception()
    return {"symbol": token.symbol, "suggestion": dashboard.get_suggestion(token)}


@router.get("/news")
async def get_news(
    news_filter: str = Query("all", alias="filter", description="all, positive, negative or trending"),
    dashboard: MarketDashboard = Depends(get_dashboard),
):
    """News for the selected asset, optionally filtered."""
    if news_filter not in NEWS_FILTERS:
        raise create_invalid_filter_error(news_filter, NEWS_FILTERS).to_http_exception()
    articles = dashboard.get_news(news_filter)
    return {
        "articles": [_article_payload(article) for article in articles],
        "count": len(articles),
        "filter": news_filter,
        "advisory": dashboard.advisory,
    }


@router.put("/selection")
async def update_selection(
    selection: SelectionUpdate, dashboard: MarketDashboard = Depends(get_dashboard)
):
    """Select another tracked asset and refetch its news."""
    known = list(dashboard.market_data.tracked_assets)
    if selection.asset_id not in known:
        raise create_unknown_asset_error(selection.asset_id, known).to_http_exception()
    await dashboard.select_asset(selection.asset_id)
    return {"selected_asset": dashboard.selected_asset, "articles": len(dashboard.news.articles)}


@router.post("/refresh")
async def refresh_now(orchestrator: RefreshOrchestrator = Depends(get_orchestrator)):
    """Run one refresh cycle now and report the resulting state."""
    await orchestrator.refresh_now()
    return _status_payload(orchestrator)


@router.get("/status")
async def get_status(orchestrator: RefreshOrchestrator = Depends(get_orchestrator)):
    return _status_payload(orchestrator)


@router.get("/metrics")
async def get_metrics(calculator: MetricsCalculator = Depends(get_metrics_calculator)):
    return calculator.calculate().to_dict()


@router.get("/events")
async def get_events(
    limit: int = Query(100, ge=1, le=1000),
    event_type: str | None = Query(None),
    store: EventStore = Depends(get_event_store),
):
    """Recent refresh, fetch and suggestion events, oldest first."""
    if event_type:
        events = store.get_events_by_type(event_type, limit)
    else:
        events = store.get_recent_events(limit)
    return {"events": [event.to_dict() for event in events], "count": len(events)}
