"""Refresh orchestrator: liveness probing and the periodic refresh tick."""

import asyncio
import time
import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

import httpx
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from src.models.refresh_state import RefreshState
from src.utils.config import RefreshConfig, config
from src.utils.errors import ProbeFailure
from src.utils.event_store import CALLBACK_FAILED, PROBE_COMPLETE, EventStore
from src.utils.logger import StructuredLogger
from src.utils.trace_context import get_current_trace, reset_trace, set_trace

RefreshCallback = Callable[[], Awaitable[None]]


class RefreshOrchestrator:
    """Tracks connectivity and drives one refresh cycle per tick.

    Each cycle runs the connectivity probe and the registered callback (if
    any) concurrently. Neither can fail the other, and neither raises out
    of the cycle. Overlapping cycles are allowed; the last probe to finish
    decides `is_live`.
    """

    JOB_ID = "liveness_probe"

    def __init__(
        self,
        refresh_config: RefreshConfig | None = None,
        event_store: EventStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            refresh_config: Interval and probe settings (defaults to global config)
            event_store: Optional event store for probe/callback events
            transport: Optional httpx transport, used by tests to fake the probe
        """
        self.refresh_config = refresh_config or config.refresh
        self.event_store = event_store
        self.transport = transport
        self.state = RefreshState()
        self.scheduler: AsyncIOScheduler | None = None
        self.is_running = False
        self.logger = StructuredLogger("RefreshOrchestrator", config.log_file)
        self._callback: RefreshCallback | None = None
        self._in_flight = 0

    @property
    def is_live(self) -> bool:
        return self.state.is_live

    @property
    def is_loading(self) -> bool:
        return self.state.is_loading

    @property
    def last_update(self) -> datetime | None:
        return self.state.last_update

    @property
    def has_callback(self) -> bool:
        return self._callback is not None

    def register_refresh_callback(self, callback: RefreshCallback) -> None:
        """Install the companion refresh action, replacing any previous one."""
        replaced = self._callback is not None
        self._callback = callback
        self.logger.debug("Refresh callback registered", context={"replaced": replaced})

    def unregister_refresh_callback(self) -> None:
        self._callback = None
        self.logger.debug("Refresh callback cleared")

    async def probe(self) -> None:
        """
        Hit the connectivity endpoint once.

        Raises:
            ProbeFailure: On network errors or a non-2xx response
        """
        url = self.refresh_config.probe_url
        try:
            async with httpx.AsyncClient(
                timeout=self.refresh_config.probe_timeout, transport=self.transport
            ) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            raise ProbeFailure(url, f"request failed: {e}") from e

        if not response.is_success:
            raise ProbeFailure(
                url, f"HTTP error! status: {response.status_code}", response.status_code
            )

    async def check_liveness(self) -> bool:
        """
        Probe connectivity and record the result. Never raises.

        Returns:
            True if the probe succeeded
        """
        start_time = time.time()
        try:
            await self.probe()
        except ProbeFailure as e:
            self.state.is_live = False
            duration_ms = (time.time() - start_time) * 1000
            self.logger.warning(
                "Connectivity probe failed",
                context={"url": e.url, "status_code": e.status_code, "duration_ms": duration_ms},
                exception=e,
            )
            self._record_probe("failed", duration_ms, error=str(e))
            return False

        self.state.is_live = True
        self.state.last_update = datetime.now(timezone.utc)
        duration_ms = (time.time() - start_time) * 1000
        self.logger.debug("Connectivity probe succeeded", context={"duration_ms": duration_ms})
        self._record_probe("success", duration_ms)
        return True

    async def _run_callback(self, callback: RefreshCallback | None) -> None:
        if callback is None:
            return
        try:
            await callback()
        except Exception as e:
            self.logger.error(
                "Refresh callback failed",
                context={"error_type": type(e).__name__},
                exception=e,
            )
            if self.event_store:
                self.event_store.add_event(
                    trace_id=get_current_trace(),
                    event_type=CALLBACK_FAILED,
                    component="RefreshOrchestrator",
                    message="Refresh callback failed",
                    context={"error_type": type(e).__name__, "error_message": str(e)},
                )

    async def refresh_now(self) -> None:
        """Run one refresh cycle: probe and callback side by side."""
        trace_token = set_trace(str(uuid.uuid4()))
        callback = self._callback
        start_time = time.time()

        self._in_flight += 1
        self.state.is_loading = True
        self.logger.info(
            "Starting refresh cycle",
            context={"has_callback": callback is not None, "in_flight": self._in_flight},
        )

        try:
            await asyncio.gather(self.check_liveness(), self._run_callback(callback))
        finally:
            self._in_flight -= 1
            self.state.is_loading = self._in_flight > 0
            self.logger.info(
                "Refresh cycle completed",
                context={
                    "is_live": self.state.is_live,
                    "duration_ms": (time.time() - start_time) * 1000,
                },
            )
            reset_trace(trace_token)

    def start(self) -> None:
        """
        Schedule the periodic tick on the running event loop.

        The first cycle runs immediately. Ticks keep probing while offline.
        Must be called from inside a running event loop.
        """
        if self.is_running:
            return

        self.scheduler = AsyncIOScheduler(event_loop=asyncio.get_running_loop())
        self.scheduler.add_job(
            self.refresh_now,
            IntervalTrigger(seconds=self.refresh_config.price_interval_seconds),
            id=self.JOB_ID,
            name="Liveness probe and price refresh",
            next_run_time=datetime.now(timezone.utc),
            replace_existing=True,
            coalesce=True,
        )
        self.scheduler.start()
        self.is_running = True
        self.logger.info(
            "Refresh orchestrator started",
            context={"interval_seconds": self.refresh_config.price_interval_seconds},
        )

    def stop(self) -> None:
        """Cancel the tick and clear the callback. In-flight cycles are left to finish."""
        if self.is_running and self.scheduler:
            self.scheduler.shutdown(wait=False)
            self.is_running = False
            self.logger.info("Refresh orchestrator stopped")
        self.unregister_refresh_callback()

    def _record_probe(self, status: str, duration_ms: float, **context) -> None:
        if not self.event_store:
            return
        self.event_store.add_event(
            trace_id=get_current_trace(),
            event_type=PROBE_COMPLETE,
            component="RefreshOrchestrator",
            message=f"Connectivity probe {status}",
            context={"status": status, **context},
            duration_ms=duration_ms,
        )
