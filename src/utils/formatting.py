"""Display formatting for prices, percentages and magnitudes."""

import math


def format_price(value: float) -> str:
    """Format a price as dollars with thousands separators and at most 2 decimals."""
    if not math.isfinite(value):
        return "$-"
    text = f"{value:,.2f}".rstrip("0").rstrip(".")
    return f"${text}"


def format_change(change_percent: float) -> str:
    sign = "+" if change_percent >= 0 else ""
    return f"{sign}{change_percent:.2f}%"


def to_billions(value: float) -> float:
    return value / 1e9


def format_billions(value: float) -> str:
    """Format a raw magnitude as billions, e.g. 28_512_000_000 -> '$28.5B'."""
    return f"${to_billions(value):.1f}B"
