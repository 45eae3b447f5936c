"""Configuration management for the application."""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


@dataclass(frozen=True)
class TrackedAsset:
    """A tracked asset and the identifiers used to query it upstream."""

    asset_id: str  # CoinGecko id
    symbol: str
    news_query: str


TRACKED_ASSETS: dict[str, TrackedAsset] = {
    "bitcoin": TrackedAsset("bitcoin", "BTC", "Bitcoin"),
    "ethereum": TrackedAsset("ethereum", "ETH", "Ethereum"),
    "solana": TrackedAsset("solana", "SOL", "Solana"),
    "cardano": TrackedAsset("cardano", "ADA", "Cardano"),
    "binancecoin": TrackedAsset("binancecoin", "BNB", "Binance Coin"),
    "ripple": TrackedAsset("ripple", "XRP", "Ripple"),
}

GENERIC_NEWS_QUERY = "cryptocurrency"


@dataclass
class MarketDataConfig:
    """Price source configuration."""

    base_url: str = "https://api.coingecko.com/api/v3"
    vs_currency: str = "usd"
    request_timeout: float = 10.0
    per_page: int = 10


@dataclass
class NewsConfig:
    """News source configuration."""

    api_key: str | None = None
    base_url: str = "https://newsapi.org/v2"
    language: str = "en"
    page_size: int = 10
    request_timeout: float = 10.0


@dataclass
class RefreshConfig:
    """Polling intervals and connectivity probe settings."""

    price_interval_seconds: int = 30
    news_interval_seconds: int = 300
    probe_url: str = "https://api.coingecko.com/api/v3/ping"
    probe_timeout: float = 5.0


class Config:
    """Main application configuration."""

    def __init__(self):
        self.market = MarketDataConfig(
            base_url=os.getenv("COINGECKO_BASE_URL", "https://api.coingecko.com/api/v3"),
            vs_currency=os.getenv("VS_CURRENCY", "usd"),
            request_timeout=float(os.getenv("MARKET_REQUEST_TIMEOUT", "10")),
        )

        self.news = NewsConfig(
            api_key=os.getenv("NEWS_API_KEY") or None,
            base_url=os.getenv("NEWS_API_BASE_URL", "https://newsapi.org/v2"),
            language=os.getenv("NEWS_LANGUAGE", "en"),
            page_size=int(os.getenv("NEWS_PAGE_SIZE", "10")),
        )

        self.refresh = RefreshConfig(
            price_interval_seconds=int(os.getenv("PRICE_REFRESH_INTERVAL", "30")),
            news_interval_seconds=int(os.getenv("NEWS_REFRESH_INTERVAL", "300")),
            probe_url=os.getenv("PROBE_URL", "https://api.coingecko.com/api/v3/ping"),
            probe_timeout=float(os.getenv("PROBE_TIMEOUT", "5")),
        )

        self.tracked_assets = TRACKED_ASSETS
        self.default_asset = os.getenv("DEFAULT_ASSET", "bitcoin")
        self.log_file = os.getenv("LOG_FILE") or None

    def validate(self) -> bool:
        """
        Validate configuration.

        A missing news API key is not an error: news degrades to the
        cached/fallback article set at runtime.

        Returns:
            True if configuration is valid

        Raises:
            ValueError if configuration is invalid
        """
        if self.refresh.price_interval_seconds <= 0:
            raise ValueError("PRICE_REFRESH_INTERVAL must be a positive number of seconds")
        if self.refresh.news_interval_seconds <= 0:
            raise ValueError("NEWS_REFRESH_INTERVAL must be a positive number of seconds")
        if self.default_asset not in self.tracked_assets:
            raise ValueError(
                f"DEFAULT_ASSET '{self.default_asset}' is not one of "
                f"{', '.join(sorted(self.tracked_assets))}"
            )
        return True


# Global config instance
config = Config()
