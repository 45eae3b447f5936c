"""Lexical sentiment heuristic for news headlines."""

from src.models.news import Sentiment

POSITIVE_TERMS = ("bullish", "surge", "rise", "gain", "success", "growth", "adoption")
NEGATIVE_TERMS = ("bearish", "crash", "drop", "decline", "loss", "scam", "hack")


def sentiment_score(title: str | None, description: str | None) -> int:
    """
    Score text as positive hits minus negative hits.

    Each term counts at most once and matches as a plain substring, so a term
    inside a longer word ("sunrise", "hackathon") still counts. Downstream
    thresholds were tuned against this behaviour.
    """
    text = f"{title or ''} {description or ''}".lower()
    positive = sum(1 for term in POSITIVE_TERMS if term in text)
    negative = sum(1 for term in NEGATIVE_TERMS if term in text)
    return positive - negative


def analyze_sentiment(title: str | None, description: str | None) -> Sentiment:
    """Classify a title/description pair as positive, negative or neutral."""
    score = sentiment_score(title, description)
    if score > 0:
        return "positive"
    if score < 0:
        return "negative"
    return "neutral"
