"""Trading suggestion model."""

from dataclasses import dataclass
from typing import Literal

Action = Literal["buy", "sell", "hold"]

ACTIVE_TIMEFRAME = "1-7 days"
HOLD_TIMEFRAME = "Wait for setup"


@dataclass(frozen=True)
class TradingSuggestion:
    """A recommendation derived from one Token and the current news set."""

    action: Action
    confidence: float  # 0-100
    price_target: float
    stop_loss: float
    reasoning: str
    timeframe: str
