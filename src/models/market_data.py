"""Market snapshot model for a single tracked asset."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Token:
    """Derived market snapshot for one asset.

    Rebuilt wholesale on every successful fetch cycle. Numeric fields are
    what the signal engine reads; the *_display fields are string mirrors
    for consumers.
    """

    asset_id: str
    symbol: str
    name: str
    price: float
    change_percent: float
    support: float  # low_24h * 0.98
    resistance: float  # high_24h * 1.02
    high_24h: float
    low_24h: float
    volume_24h: float  # billions
    market_cap: float  # billions
    last_updated: datetime
    price_display: str
    change_display: str
    volume_display: str
    market_cap_display: str
