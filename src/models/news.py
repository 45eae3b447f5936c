"""News article model."""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal

Sentiment = Literal["positive", "negative", "neutral"]
NewsFilter = Literal["all", "positive", "negative", "trending"]

NEWS_FILTERS: tuple[str, ...] = ("all", "positive", "negative", "trending")


@dataclass(frozen=True)
class NewsArticle:
    """A normalized news item.

    `id` is the source URL when there is one, otherwise "<query>-<index>".
    That fallback collides for the same query and position across fetches.
    """

    id: str
    title: str
    source: str
    summary: str
    url: str
    sentiment: Sentiment
    relevance: int
    trending: bool
    published_at: datetime
