"""FastAPI dependencies resolving the services held on app.state."""

from fastapi import Request

from src.api.error_handlers import create_service_unavailable_error
from src.services.dashboard_service import MarketDashboard
from src.services.refresh_orchestrator import RefreshOrchestrator
from src.utils.event_store import EventStore
from src.utils.metrics import MetricsCalculator


def _state_attr(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise create_service_unavailable_error().to_http_exception()
    return value


def get_orchestrator(request: Request) -> RefreshOrchestrator:
    """
    FastAPI dependency for the application's refresh orchestrator.

    Raises:
        HTTPException: 503 if the application has not finished starting up
    """
    return _state_attr(request, "orchestrator")


def get_dashboard(request: Request) -> MarketDashboard:
    """FastAPI dependency for the market dashboard facade."""
    return _state_attr(request, "dashboard")


def get_event_store(request: Request) -> EventStore:
    return _state_attr(request, "event_store")


def get_metrics_calculator(request: Request) -> MetricsCalculator:
    return _state_attr(request, "metrics")
