"""Scheduler driving the room availability engine.

A tick runs on three occasions, all through ``trigger``:
- once after start (short startup delay), then on a fixed interval
- whenever the room or booking feed delivers a new snapshot
- on demand via ``force_check``

Ticks are fire-and-forget tasks; a new tick never waits for an older one.
"""

import asyncio
import logging

from frontdesk.config import settings
from frontdesk.gateways.base import RawRecord, Unsubscribe
from frontdesk.services.availability_engine import AvailabilityEngine, TickReport

logger = logging.getLogger(__name__)


class ReconciliationScheduler:
    """Runs engine ticks on an interval and on feed changes."""

    def __init__(
        self,
        engine: AvailabilityEngine,
        interval_seconds: float | None = None,
        startup_delay_seconds: float | None = None,
    ) -> None:
        self.engine = engine
        self.interval_seconds = (
            interval_seconds if interval_seconds is not None else settings.reconcile_interval_seconds
        )
        self.startup_delay_seconds = (
            startup_delay_seconds if startup_delay_seconds is not None else settings.startup_delay_seconds
        )
        self._loop: asyncio.AbstractEventLoop | None = None
        self._stop_event: asyncio.Event | None = None
        self._interval_task: asyncio.Task | None = None
        self._unsubscribes: list[Unsubscribe] = []
        self._ticks: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._interval_task is not None

    @property
    def pending_ticks(self) -> int:
        return len(self._ticks)

    # ==================== LIFECYCLE ====================

    async def start(self) -> None:
        """Subscribe to both feeds and arm the interval timer."""
        if self.running:
            return

        self._loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()
        self._interval_task = asyncio.create_task(self._interval_loop())
        self._unsubscribes = [
            self.engine.booking_repository.subscribe_bookings(self._on_bookings),
            self.engine.room_repository.subscribe_rooms(self._on_rooms),
        ]
        logger.info(
            f"Room status scheduler started (interval: {self.interval_seconds}s, "
            f"lookahead: {self.engine.reserved_lookahead})"
        )

    async def stop(self) -> None:
        """Cancel the timer and release subscriptions.

        Ticks already running are left to finish on their own.
        """
        if not self.running:
            return

        self._stop_event.set()
        for unsubscribe in self._unsubscribes:
            unsubscribe()
        self._unsubscribes = []

        task, self._interval_task = self._interval_task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

        self.engine.clear()
        logger.info("Room status scheduler stopped")

    async def wait_idle(self) -> None:
        """Wait for every tick started so far to finish."""
        while self._ticks:
            await asyncio.gather(*list(self._ticks), return_exceptions=True)

    # ==================== TRIGGERS ====================

    def trigger(self, reason: str = "manual") -> asyncio.Task | None:
        """Start a tick on the latest snapshot without waiting for it."""
        if not self.running:
            logger.debug(f"Ignoring {reason} trigger, scheduler is not running")
            return None

        task = self._loop.create_task(self._run(reason))
        self._ticks.add(task)
        task.add_done_callback(self._ticks.discard)
        return task

    async def force_check(self) -> TickReport | None:
        """Run a tick now and return its report."""
        logger.info("Manual status check triggered")
        if not self.running:
            return await self._run("manual")
        return await self.trigger("manual")

    async def _run(self, reason: str) -> TickReport | None:
        try:
            return await self.engine.run_tick(reason)
        except Exception as e:
            logger.error(f"Room status check error ({reason}): {e}")
            return None

    def _on_bookings(self, records: list[RawRecord]) -> None:
        self.engine.load_bookings(records)
        self._schedule("bookings_changed")

    def _on_rooms(self, records: list[RawRecord]) -> None:
        self.engine.load_rooms(records)
        self._schedule("rooms_changed")

    def _schedule(self, reason: str) -> None:
        # Feeds may deliver from another thread
        if self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self.trigger, reason)

    async def _interval_loop(self) -> None:
        delay = self.startup_delay_seconds
        reason = "startup"
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
                break
            except asyncio.TimeoutError:
                pass
            self.trigger(reason)
            delay, reason = self.interval_seconds, "interval"
