"""Main application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.error_handlers import register_error_handlers
from src.api.routes import router
from src.services.dashboard_service import MarketDashboard
from src.services.market_data_service import MarketDataService
from src.services.news_service import NewsService
from src.services.refresh_orchestrator import RefreshOrchestrator
from src.services.signal_engine import SignalEngine
from src.utils.config import config
from src.utils.event_store import EventStore
from src.utils.logger import StructuredLogger
from src.utils.metrics import MetricsCalculator

logger = StructuredLogger("App", config.log_file)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the services, start both timers, and tear them down on shutdown."""
    # Startup
    try:
        config.validate()
    except ValueError as e:
        logger.critical("Configuration error", exception=e)
        raise
    if not config.news.api_key:
        logger.warning("NEWS_API_KEY is not set; news will use the fallback article")

    event_store = EventStore()
    orchestrator = RefreshOrchestrator(config.refresh, event_store)
    dashboard = MarketDashboard(
        orchestrator,
        market_data=MarketDataService(config.market, config.tracked_assets, event_store),
        news=NewsService(config.news, config.tracked_assets, event_store),
        signal_engine=SignalEngine(event_store),
        refresh_config=config.refresh,
        default_asset=config.default_asset,
    )

    app.state.event_store = event_store
    app.state.metrics = MetricsCalculator(event_store)
    app.state.orchestrator = orchestrator
    app.state.dashboard = dashboard

    orchestrator.start()
    await dashboard.start()
    yield
    # Shutdown
    dashboard.stop()
    orchestrator.stop()


# Create FastAPI app
app = FastAPI(
    title="Token Signals",
    description="Live token prices, news sentiment and rule-based trading suggestions",
    version="1.0.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Include API routes
app.include_router(router, prefix="/api", tags=["signals"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
