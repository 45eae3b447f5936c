"""Refresh-cycle trace ids shared by everything a single cycle touches."""

import contextvars
import uuid
from typing import Optional

# Copied into every task spawned by asyncio.gather, so probe and callback
# log under the cycle that started them.
_trace_id_context: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "trace_id", default=None
)


def create_trace() -> str:
    """
    Start a new refresh cycle trace in the current context.

    Returns:
        The new trace id (UUID4)
    """
    trace_id = str(uuid.uuid4())
    _trace_id_context.set(trace_id)
    return trace_id


def get_current_trace() -> Optional[str]:
    """Return the trace id of the running cycle, if any."""
    return _trace_id_context.get()


def set_trace(trace_id: Optional[str]) -> contextvars.Token:
    """
    Bind an existing trace id to the current context.

    Returns:
        A token that restores the previous value via reset_trace()
    """
    return _trace_id_context.set(trace_id)


def reset_trace(token: contextvars.Token) -> None:
    """Restore the trace id that was active before set_trace()."""
    _trace_id_context.reset(token)


def clear_trace() -> None:
    _trace_id_context.set(None)
