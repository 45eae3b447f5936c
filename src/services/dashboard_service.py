"""Consumer-facing facade over prices, news and suggestions."""

import asyncio

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from src.models.market_data import Token
from src.models.news import NewsArticle
from src.models.trading_suggestion import TradingSuggestion
from src.services.market_data_service import MarketDataService
from src.services.news_service import NewsService
from src.services.refresh_orchestrator import RefreshOrchestrator
from src.services.signal_engine import SignalEngine
from src.utils.config import RefreshConfig, config
from src.utils.logger import StructuredLogger
from src.utils.trace_context import clear_trace, create_trace


class MarketDashboard:
    """Owns the current Token and NewsArticle collections for the selected asset.

    Prices refresh through the orchestrator's callback slot, on the
    orchestrator's tick. News refreshes on its own, slower timer.
    """

    NEWS_JOB_ID = "news_refresh"

    def __init__(
        self,
        orchestrator: RefreshOrchestrator,
        market_data: MarketDataService | None = None,
        news: NewsService | None = None,
        signal_engine: SignalEngine | None = None,
        refresh_config: RefreshConfig | None = None,
        default_asset: str | None = None,
    ):
        self.orchestrator = orchestrator
        self.market_data = market_data or MarketDataService()
        self.news = news or NewsService()
        self.signal_engine = signal_engine or SignalEngine()
        self.refresh_config = refresh_config or config.refresh
        self.selected_asset = default_asset or config.default_asset
        self.scheduler: AsyncIOScheduler | None = None
        self.is_running = False
        self.logger = StructuredLogger("MarketDashboard", config.log_file)

    @property
    def advisory(self) -> str:
        """User-visible degradation notice, empty when all data is live."""
        return " ".join(msg for msg in (self.market_data.error, self.news.error) if msg)

    def get_tokens(self) -> list[Token]:
        return self.market_data.get_tokens()

    def get_token(self, symbol: str) -> Token | None:
        symbol = symbol.upper()
        for token in self.market_data.tokens:
            if token.symbol == symbol:
                return token
        return None

    def get_selected_token(self) -> Token | None:
        tracked = self.market_data.tracked_assets.get(self.selected_asset)
        return self.get_token(tracked.symbol) if tracked else None

    def get_news(self, news_filter: str = "all") -> list[NewsArticle]:
        return self.news.get_news(news_filter)

    def get_suggestion(self, token: Token) -> TradingSuggestion:
        """Suggestion for a token against the news currently held."""
        return self.signal_engine.get_suggestion(token, self.news.articles)

    async def refresh_prices(self) -> None:
        await self.market_data.refresh()

    async def refresh_news(self) -> None:
        await self.news.refresh(self.selected_asset)

    async def _scheduled_news_refresh(self) -> None:
        create_trace()
        try:
            await self.refresh_news()
        finally:
            clear_trace()

    async def select_asset(self, asset_id: str) -> None:
        """
        Switch the selected asset and refetch its news right away.

        Raises:
            ValueError: If the asset is not tracked
        """
        if asset_id not in self.market_data.tracked_assets:
            raise ValueError(f"Unknown asset: {asset_id}")
        self.selected_asset = asset_id
        self.logger.info("Selected asset changed", context={"asset_id": asset_id})
        await self.refresh_news()

    async def start(self) -> None:
        """
        Register the price refresh with the orchestrator, load both
        collections, and schedule periodic news refreshes.

        When the orchestrator is already running, its immediate first tick
        loads the prices, so only news is fetched here.

        Must be awaited from inside the running event loop.
        """
        if self.is_running:
            return

        self.orchestrator.register_refresh_callback(self.refresh_prices)
        initial = [self.refresh_news()]
        if not self.orchestrator.is_running:
            # a running orchestrator fetches prices on its first tick
            initial.append(self.refresh_prices())
        await asyncio.gather(*initial)

        self.scheduler = AsyncIOScheduler(event_loop=asyncio.get_running_loop())
        self.scheduler.add_job(
            self._scheduled_news_refresh,
            IntervalTrigger(seconds=self.refresh_config.news_interval_seconds),
            id=self.NEWS_JOB_ID,
            name="News refresh",
            replace_existing=True,
            coalesce=True,
        )
        self.scheduler.start()
        self.is_running = True
        self.logger.info(
            "Market dashboard started",
            context={
                "selected_asset": self.selected_asset,
                "news_interval_seconds": self.refresh_config.news_interval_seconds,
            },
        )

    def stop(self) -> None:
        """Unregister from the orchestrator and cancel the news timer."""
        self.orchestrator.unregister_refresh_callback()
        if self.is_running and self.scheduler:
            self.scheduler.shutdown(wait=False)
            self.is_running = False
            self.logger.info("Market dashboard stopped")
