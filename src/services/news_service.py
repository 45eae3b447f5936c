"""News fetching and per-article normalization."""

import time
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

import httpx

from src.models.news import NEWS_FILTERS, NewsArticle
from src.services.sentiment import analyze_sentiment
from src.utils.config import GENERIC_NEWS_QUERY, NewsConfig, TrackedAsset, config
from src.utils.errors import FetchFailure
from src.utils.event_store import FETCH_COMPLETE, EventStore
from src.utils.logger import StructuredLogger
from src.utils.trace_context import get_current_trace

SUMMARY_LIMIT = 200
TRENDING_COUNT = 2
ASSET_RELEVANCE = 90
GENERIC_RELEVANCE = 70

NEWS_SOURCE = "NewsAPI"
NEWS_FETCH_ADVISORY = "Failed to fetch news data. Using cached news."


def truncate_summary(text: str, limit: int = SUMMARY_LIMIT) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")


def _parse_published_at(value: Any, default: datetime) -> datetime:
    if not isinstance(value, str):
        return default
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return default
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def normalize_article(
    raw: Any,
    query: str,
    index: int,
    now: datetime | None = None,
) -> NewsArticle:
    """
    Convert one raw NewsAPI article into a NewsArticle.

    Every missing field resolves to a fixed default, and a record that is not
    an object is treated as an empty one, so this never fails.

    Args:
        raw: Raw article object
        query: Query the batch was fetched with
        index: Position of the article in the batch (0 = newest)
        now: Default publish time for articles without a usable one
    """
    record: Mapping[str, Any] = raw if isinstance(raw, Mapping) else {}
    now = now or datetime.now(timezone.utc)

    title = str(record.get("title") or "No title available")
    description = str(record.get("description") or record.get("content") or "No summary available")
    source_info = record.get("source")
    source_name = source_info.get("name") if isinstance(source_info, Mapping) else None
    source = str(source_name or "Unknown Source")
    raw_url = str(record.get("url") or "")

    return NewsArticle(
        id=raw_url or f"{query}-{index}",
        title=title,
        source=source,
        summary=truncate_summary(description),
        url=raw_url or "#",
        sentiment=analyze_sentiment(title, description),
        relevance=GENERIC_RELEVANCE if query == GENERIC_NEWS_QUERY else ASSET_RELEVANCE,
        trending=index < TRENDING_COUNT,
        published_at=_parse_published_at(record.get("publishedAt"), now),
    )


def fallback_articles(now: datetime | None = None) -> list[NewsArticle]:
    """Single placeholder article shown when news was never fetched successfully."""
    return [
        NewsArticle(
            id="fallback-1",
            title="Cryptocurrency Market Update",
            source="Fallback Source",
            summary="No live news available. Check your API key or internet connection.",
            url="#",
            sentiment="neutral",
            relevance=GENERIC_RELEVANCE,
            trending=False,
            published_at=now or datetime.now(timezone.utc),
        )
    ]


def filter_news(articles: Iterable[NewsArticle], news_filter: str = "all") -> list[NewsArticle]:
    """
    Select articles for a consumer-facing filter.

    Raises:
        ValueError: If the filter is not one of all/positive/negative/trending
    """
    if news_filter not in NEWS_FILTERS:
        raise ValueError(f"Unknown news filter: {news_filter}")
    if news_filter == "positive":
        return [a for a in articles if a.sentiment == "positive"]
    if news_filter == "negative":
        return [a for a in articles if a.sentiment == "negative"]
    if news_filter == "trending":
        return [a for a in articles if a.trending]
    return list(articles)


def format_time_ago(published_at: datetime, now: datetime | None = None) -> str:
    """Render a publish time relative to now, e.g. '5 minutes ago', '2 hours ago'."""
    now = now or datetime.now(timezone.utc)
    diff_minutes = max(0, int((now - published_at).total_seconds() // 60))

    if diff_minutes < 60:
        return f"{diff_minutes} minutes ago"
    if diff_minutes < 1440:
        hours = diff_minutes // 60
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    days = diff_minutes // 1440
    return f"{days} day{'s' if days > 1 else ''} ago"


class NewsService:
    """Fetches news for one query at a time and keeps the last good batch."""

    def __init__(
        self,
        news_config: NewsConfig | None = None,
        tracked_assets: Mapping[str, TrackedAsset] | None = None,
        event_store: EventStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.news_config = news_config or config.news
        self.tracked_assets = tracked_assets if tracked_assets is not None else config.tracked_assets
        self.event_store = event_store
        self.transport = transport
        self.logger = StructuredLogger("NewsService", config.log_file)
        self.error = ""
        self._articles: tuple[NewsArticle, ...] = ()
        self._fetch_seq = 0
        self._applied_seq = 0

    @property
    def articles(self) -> tuple[NewsArticle, ...]:
        return self._articles

    def get_news(self, news_filter: str = "all") -> list[NewsArticle]:
        return filter_news(self._articles, news_filter)

    def query_for(self, asset_id: str | None) -> str:
        """News query for a tracked asset, or the generic query for anything else."""
        tracked = self.tracked_assets.get(asset_id) if asset_id else None
        return tracked.news_query if tracked else GENERIC_NEWS_QUERY

    async def fetch_articles(self, query: str) -> list[Any]:
        """
        Fetch raw articles for a query, newest first.

        Raises:
            FetchFailure: When no API key is configured, on network errors,
                non-200 responses, or a payload without an articles list
        """
        if not self.news_config.api_key:
            raise FetchFailure(NEWS_SOURCE, "News API key is not configured")

        params = {
            "q": query,
            "language": self.news_config.language,
            "sortBy": "publishedAt",
            "pageSize": self.news_config.page_size,
            "apiKey": self.news_config.api_key,
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.news_config.request_timeout, transport=self.transport
            ) as client:
                response = await client.get(f"{self.news_config.base_url}/everything", params=params)
        except httpx.HTTPError as e:
            raise FetchFailure(NEWS_SOURCE, f"request failed: {e}") from e

        if response.status_code != 200:
            raise FetchFailure(
                NEWS_SOURCE, f"HTTP error! status: {response.status_code}", response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise FetchFailure(NEWS_SOURCE, "response is not valid JSON") from e

        articles = data.get("articles") if isinstance(data, dict) else None
        if not isinstance(articles, list):
            raise FetchFailure(NEWS_SOURCE, "response has no articles list")
        return articles

    async def refresh(self, asset_id: str | None = None) -> list[NewsArticle]:
        """
        Fetch and normalize news for an asset, never raising.

        On failure the cached batch is kept (or the fallback article, when
        nothing was ever fetched) and `error` carries the advisory.
        """
        self._fetch_seq += 1
        seq = self._fetch_seq
        query = self.query_for(asset_id)
        trace_id = get_current_trace()
        start_time = time.time()

        self.logger.info(
            "Starting news fetch",
            context={"source": NEWS_SOURCE, "query": query, "seq": seq},
        )

        try:
            raw_articles = await self.fetch_articles(query)
        except FetchFailure as e:
            duration_ms = (time.time() - start_time) * 1000
            if seq < self._applied_seq:
                self._record_fetch(trace_id, "superseded", duration_ms, query=query)
                return list(self._articles)

            fallback = not self._articles
            if fallback:
                self._articles = tuple(fallback_articles())
            self.error = NEWS_FETCH_ADVISORY
            self._applied_seq = seq
            self.logger.error(
                "Error fetching news",
                context={
                    "source": NEWS_SOURCE,
                    "query": query,
                    "result": "failed",
                    "status_code": e.status_code,
                    "fallback": fallback,
                },
                exception=e,
            )
            self._record_fetch(
                trace_id, "failed", duration_ms, query=query, fallback=fallback, error=str(e)
            )
            return list(self._articles)

        duration_ms = (time.time() - start_time) * 1000
        if seq < self._applied_seq:
            self._record_fetch(trace_id, "superseded", duration_ms, query=query)
            return list(self._articles)

        now = datetime.now(timezone.utc)
        articles = [
            normalize_article(raw, query, index, now) for index, raw in enumerate(raw_articles)
        ]
        self._articles = tuple(articles)
        self._applied_seq = seq
        self.error = ""

        self.logger.info(
            "Successfully fetched news",
            context={
                "source": NEWS_SOURCE,
                "query": query,
                "result": "success",
                "articles": len(articles),
                "duration_ms": duration_ms,
            },
        )
        self._record_fetch(trace_id, "success", duration_ms, query=query, articles=len(articles))
        return list(self._articles)

    def _record_fetch(
        self, trace_id: str | None, status: str, duration_ms: float, **context: Any
    ) -> None:
        if not self.event_store:
            return
        self.event_store.add_event(
            trace_id=trace_id,
            event_type=FETCH_COMPLETE,
            component="NewsService",
            message=f"News fetch {status}",
            context={"source": "news", "status": status, **context},
            duration_ms=duration_ms,
        )
