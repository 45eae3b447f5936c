"""Signal engine for turning a price snapshot and news into a trading suggestion."""

import math
from collections.abc import Iterable

from src.models.market_data import Token
from src.models.news import NewsArticle
from src.models.trading_suggestion import ACTIVE_TIMEFRAME, HOLD_TIMEFRAME, TradingSuggestion
from src.utils.event_store import SUGGESTION_GENERATED, EventStore
from src.utils.formatting import format_price
from src.utils.logger import StructuredLogger
from src.utils.trace_context import get_current_trace

RELEVANCE_THRESHOLD = 80
DEGRADED_CONFIDENCE = 30

MOMENTUM_REASONING = (
    "Strong upward momentum (+{change:.1f}%) with positive sentiment. "
    "Price well above support level."
)
SELL_REASONING = (
    "Negative price action near resistance. Consider taking profits or reducing position."
)
SUPPORT_REASONING = "Price approaching strong support level. Good risk/reward opportunity."
HOLD_REASONING = (
    "Price in neutral zone. Wait for clearer signals near support ({support}) "
    "or resistance ({resistance})."
)
DEGRADED_REASONING = (
    "Market data is inconsistent. Waiting for a clean snapshot before suggesting a trade."
)


def calculate_sentiment_score(articles: Iterable[NewsArticle]) -> float:
    """
    Net sentiment of asset-specific news, in [-1, 1].

    Only articles with relevance above 80 count. Returns 0.0 when none do.
    """
    recent = [article for article in articles if article.relevance > RELEVANCE_THRESHOLD]
    if not recent:
        return 0.0
    positive = len([a for a in recent if a.sentiment == "positive"])
    negative = len([a for a in recent if a.sentiment == "negative"])
    return (positive - negative) / len(recent)


def _clamp_confidence(value: float) -> float:
    return max(0.0, min(100.0, value))


def _is_degraded(token: Token) -> bool:
    values = (
        token.price,
        token.support,
        token.resistance,
        token.change_percent,
        token.high_24h,
        token.low_24h,
    )
    if not all(math.isfinite(v) for v in values):
        return True
    return (
        token.price <= 0
        or token.high_24h < token.low_24h
        or token.support > token.resistance
    )


def generate_trading_suggestion(
    token: Token, articles: Iterable[NewsArticle]
) -> TradingSuggestion:
    """
    Map a token snapshot and the current news set to buy/sell/hold.

    Rules are tried in order and the first match wins:
      1. momentum buy: change > 2%, > 5% above support, sentiment > 0.2
      2. sell: change < -1.5% within 3% of resistance
      3. support buy: within 2% of support
      4. hold

    Inconsistent snapshots (non-finite values, non-positive price, a 24h
    high below the 24h low, support above resistance) short-circuit to a
    low-confidence hold.
    """
    price = token.price
    change = token.change_percent

    if _is_degraded(token):
        safe_price = price if math.isfinite(price) and price > 0 else 0.0
        return TradingSuggestion(
            action="hold",
            confidence=DEGRADED_CONFIDENCE,
            price_target=safe_price,
            stop_loss=safe_price * 0.95,
            reasoning=DEGRADED_REASONING,
            timeframe=HOLD_TIMEFRAME,
        )

    support_distance = (price - token.support) / price * 100
    resistance_distance = (token.resistance - price) / price * 100
    sentiment_score = calculate_sentiment_score(articles)

    if change > 2 and support_distance > 5 and sentiment_score > 0.2:
        return TradingSuggestion(
            action="buy",
            confidence=_clamp_confidence(min(85, 60 + change * 2 + sentiment_score * 20)),
            price_target=token.resistance * 0.95,
            stop_loss=token.support * 1.02,
            reasoning=MOMENTUM_REASONING.format(change=change),
            timeframe=ACTIVE_TIMEFRAME,
        )

    if change < -1.5 and resistance_distance < 3:
        return TradingSuggestion(
            action="sell",
            confidence=_clamp_confidence(min(80, 55 + abs(change) * 1.5)),
            price_target=token.support * 1.05,
            stop_loss=token.resistance * 0.98,
            reasoning=SELL_REASONING,
            timeframe=ACTIVE_TIMEFRAME,
        )

    if support_distance < 2:
        return TradingSuggestion(
            action="buy",
            confidence=_clamp_confidence(70),
            price_target=price * 1.08,
            stop_loss=token.support * 0.98,
            reasoning=SUPPORT_REASONING,
            timeframe=ACTIVE_TIMEFRAME,
        )

    return TradingSuggestion(
        action="hold",
        confidence=_clamp_confidence(50),
        price_target=price,
        stop_loss=price * 0.95,
        reasoning=HOLD_REASONING.format(
            support=format_price(token.support), resistance=format_price(token.resistance)
        ),
        timeframe=HOLD_TIMEFRAME,
    )


class SignalEngine:
    """Generates suggestions and records them for observability."""

    def __init__(self, event_store: EventStore | None = None):
        """
        Initialize the signal engine.

        Args:
            event_store: Optional event store for suggestion events
        """
        self.logger = StructuredLogger("SignalEngine")
        self.event_store = event_store

    def get_suggestion(
        self, token: Token, articles: Iterable[NewsArticle]
    ) -> TradingSuggestion:
        """
        Generate a suggestion for one token.

        Args:
            token: Current snapshot of the asset
            articles: Current news collection

        Returns:
            TradingSuggestion for the token
        """
        articles = list(articles)
        suggestion = generate_trading_suggestion(token, articles)

        self.logger.info(
            f"Suggestion generated for {token.symbol}",
            context={
                "symbol": token.symbol,
                "action": suggestion.action,
                "confidence": suggestion.confidence,
                "articles": len(articles),
            },
        )

        if self.event_store:
            self.event_store.add_event(
                trace_id=get_current_trace(),
                event_type=SUGGESTION_GENERATED,
                component="SignalEngine",
                message=f"Suggestion generated for {token.symbol}",
                context={
                    "symbol": token.symbol,
                    "action": suggestion.action,
                    "confidence": suggestion.confidence,
                },
            )

        return suggestion
