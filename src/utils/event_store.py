"""In-memory store of refresh, fetch and suggestion events."""

import threading
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

PROBE_COMPLETE = "probe_complete"
FETCH_COMPLETE = "fetch_complete"
CALLBACK_FAILED = "callback_failed"
SUGGESTION_GENERATED = "suggestion_generated"


@dataclass
class Event:
    """A single recorded event."""

    id: str
    recorded_at: datetime
    trace_id: str | None
    event_type: str
    component: str
    message: str
    context: dict[str, Any] = field(default_factory=dict)
    duration_ms: float | None = None

    @property
    def timestamp(self) -> str:
        return self.recorded_at.isoformat().replace("+00:00", "Z")

    def to_dict(self) -> dict[str, Any]:
        """Convert event to a JSON-friendly dict, omitting empty optional fields."""
        result = {
            "id": self.id,
            "timestamp": self.timestamp,
            "trace_id": self.trace_id,
            "event_type": self.event_type,
            "component": self.component,
            "message": self.message,
            "context": self.context,
            "duration_ms": self.duration_ms,
        }
        return {k: v for k, v in result.items() if v is not None}


class EventStore:
    """Bounded in-memory event log.

    The API thread reads while the scheduler's loop writes, so access is
    serialized with a lock.
    """

    def __init__(self, max_size: int = 5000, max_age_seconds: int = 3600):
        self.max_size = max_size
        self.max_age_seconds = max_age_seconds
        self._events: deque[Event] = deque(maxlen=max_size)
        self._lock = threading.RLock()

    def add_event(
        self,
        trace_id: str | None,
        event_type: str,
        component: str,
        message: str,
        context: dict[str, Any] | None = None,
        duration_ms: float | None = None,
    ) -> Event:
        """
        Append an event.

        Args:
            trace_id: Refresh cycle the event belongs to, if any
            event_type: One of the *_COMPLETE / *_FAILED / *_GENERATED constants
            component: Component that produced the event
            message: Human readable summary
            context: Extra fields (status, source, ...)
            duration_ms: Optional duration of the operation

        Returns:
            The stored Event
        """
        event = Event(
            id=str(uuid.uuid4()),
            recorded_at=datetime.now(timezone.utc),
            trace_id=trace_id,
            event_type=event_type,
            component=component,
            message=message,
            context=dict(context or {}),
            duration_ms=duration_ms,
        )
        with self._lock:
            self._events.append(event)
        return event

    def get_recent_events(self, limit: int = 100) -> list[Event]:
        """Return up to `limit` most recent events, oldest first."""
        if limit <= 0:
            return []
        with self._lock:
            return list(self._events)[-limit:]

    def get_events_by_trace(self, trace_id: str) -> list[Event]:
        with self._lock:
            return [event for event in self._events if event.trace_id == trace_id]

    def get_events_by_type(self, event_type: str, limit: int = 100) -> list[Event]:
        if limit <= 0:
            return []
        with self._lock:
            matching = [event for event in self._events if event.event_type == event_type]
        return matching[-limit:]

    def clear_old_events(self, max_age_seconds: int | None = None) -> int:
        """
        Drop events older than the given age.

        Returns:
            Number of events removed
        """
        cutoff = datetime.now(timezone.utc) - timedelta(seconds=max_age_seconds or self.max_age_seconds)
        with self._lock:
            before = len(self._events)
            self._events = deque(
                (event for event in self._events if event.recorded_at > cutoff),
                maxlen=self.max_size,
            )
            return before - len(self._events)

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._events)

    def get_all_events(self) -> list[Event]:
        with self._lock:
            return list(self._events)
