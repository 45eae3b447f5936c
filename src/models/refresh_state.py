"""Liveness and loading state owned by a RefreshOrchestrator."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class RefreshState:
    """Mutable connectivity state. Only the orchestrator writes to it."""

    is_live: bool = False
    is_loading: bool = False
    last_update: datetime | None = None  # last successful liveness check

    def snapshot(self) -> dict:
        return {
            "is_live": self.is_live,
            "is_loading": self.is_loading,
            "last_update": self.last_update,
        }
