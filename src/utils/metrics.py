"""Metrics calculator for aggregating event store data."""

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from src.utils.event_store import (
    CALLBACK_FAILED,
    FETCH_COMPLETE,
    PROBE_COMPLETE,
    SUGGESTION_GENERATED,
    EventStore,
)


@dataclass
class Metrics:
    """Aggregated refresh and signal metrics."""

    total_probes: int
    successful_probes: int
    failed_probes: int
    probe_success_rate: float
    total_fetches: int
    successful_fetches: int
    failed_fetches: int
    fallback_activations: int
    average_fetch_duration_ms: float
    callback_failures: int
    suggestions_generated: int
    uptime_seconds: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class MetricsCalculator:
    """Calculates metrics from event store data."""

    def __init__(self, event_store: EventStore, start_time: Optional[datetime] = None):
        """
        Initialize the metrics calculator.

        Args:
            event_store: The event store to calculate metrics from
            start_time: Optional start time for uptime calculation (defaults to now)
        """
        self.event_store = event_store
        self.start_time = start_time or datetime.now(timezone.utc)

    def calculate(self) -> Metrics:
        """
        Calculate metrics from the event store.

        Superseded fetches are neither successes nor failures and only count
        towards the total.
        """
        events = self.event_store.get_all_events()

        probes = [e for e in events if e.event_type == PROBE_COMPLETE]
        successful_probes = len([e for e in probes if e.context.get("status") == "success"])
        failed_probes = len([e for e in probes if e.context.get("status") == "failed"])
        probe_success_rate = (successful_probes / len(probes) * 100) if probes else 0.0

        fetches = [e for e in events if e.event_type == FETCH_COMPLETE]
        successful_fetches = len([e for e in fetches if e.context.get("status") == "success"])
        failed_fetches = len([e for e in fetches if e.context.get("status") == "failed"])
        fallback_activations = len([e for e in fetches if e.context.get("fallback")])

        fetch_durations = [e.duration_ms for e in fetches if e.duration_ms is not None]
        average_fetch_duration_ms = (
            sum(fetch_durations) / len(fetch_durations) if fetch_durations else 0.0
        )

        callback_failures = len([e for e in events if e.event_type == CALLBACK_FAILED])
        suggestions_generated = len([e for e in events if e.event_type == SUGGESTION_GENERATED])

        uptime_seconds = int((datetime.now(timezone.utc) - self.start_time).total_seconds())

        return Metrics(
            total_probes=len(probes),
            successful_probes=successful_probes,
            failed_probes=failed_probes,
            probe_success_rate=probe_success_rate,
            total_fetches=len(fetches),
            successful_fetches=successful_fetches,
            failed_fetches=failed_fetches,
            fallback_activations=fallback_activations,
            average_fetch_duration_ms=average_fetch_duration_ms,
            callback_failures=callback_failures,
            suggestions_generated=suggestions_generated,
            uptime_seconds=uptime_seconds,
        )
