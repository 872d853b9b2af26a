"""
Refresh Scheduler.

Two states, Idle and Refreshing. A refresh starts on mount, on a timer tick,
on a manual request, or after a settings change. Requests that arrive while
a refresh is in flight are coalesced: they are ignored and reported back to
the caller as not started, so no redundant network calls race each other.

The mount refresh runs in the background, so start() returns as soon as the
timer is armed. Cadence is in minutes; 0 disables the timer and leaves only
explicit requests. stop() clears the pending timer but lets an in-flight
refresh finish.
"""

import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, Optional, Set

from coinbox.core.clock import Timer, TimerHandle, utcnow

logger = logging.getLogger(__name__)


class RefreshState(str, Enum):
    IDLE = "idle"
    REFRESHING = "refreshing"


class RefreshTrigger(str, Enum):
    MOUNT = "mount"
    TIMER = "timer"
    MANUAL = "manual"
    SETTINGS = "settings"


class RefreshScheduler:
    """Drives when the aggregator and FX client run."""

    def __init__(
        self,
        refresh: Callable[[], Awaitable[None]],
        timer: Timer,
        interval_minutes: float = 0.0,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._refresh = refresh
        self.timer = timer
        self.interval_minutes = max(interval_minutes or 0.0, 0.0)
        self.clock = clock
        self.state = RefreshState.IDLE
        self.running = False
        self.last_trigger: Optional[RefreshTrigger] = None
        self.last_started: Optional[datetime] = None
        self.last_finished: Optional[datetime] = None
        self.coalesced_count = 0
        self._handle: Optional[TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def timer_armed(self) -> bool:
        return self._handle is not None and not self._handle.cancelled

    async def start(self) -> None:
        """Arm the timer and kick off the initial (mount) refresh without waiting for it."""
        self.running = True
        self._arm()
        if self._begin(RefreshTrigger.MOUNT):
            task = asyncio.create_task(self._run(RefreshTrigger.MOUNT))
            # Keep a reference so the task is not garbage collected mid-flight
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait for background refreshes started by start() to settle."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def stop(self) -> None:
        """Clear the pending timer. An in-flight refresh is left to complete."""
        self.running = False
        self._disarm()

    async def set_interval(self, minutes: Optional[float]) -> bool:
        """Change cadence, re-arm the timer and refresh for the new settings."""
        self.interval_minutes = max(minutes or 0.0, 0.0)
        self._disarm()
        if self.running:
            self._arm()
        return await self.request(RefreshTrigger.SETTINGS)

    async def request(self, trigger: RefreshTrigger = RefreshTrigger.MANUAL) -> bool:
        """
        Run a refresh unless one is already in flight.

        Returns True if this call performed the refresh, False if it was coalesced.
        """
        if not self._begin(trigger):
            return False
        await self._run(trigger)
        return True

    def _begin(self, trigger: RefreshTrigger) -> bool:
        if self.state is RefreshState.REFRESHING:
            self.coalesced_count += 1
            logger.debug(f"Refresh already in flight, ignoring {trigger.value} trigger")
            return False
        self.state = RefreshState.REFRESHING
        self.last_trigger = trigger
        self.last_started = self.clock()
        return True

    async def _run(self, trigger: RefreshTrigger) -> None:
        try:
            await self._refresh()
        except Exception as e:
            # The refresh callable absorbs provider errors; anything here is a bug
            logger.error(f"Refresh ({trigger.value}) failed: {e}", exc_info=True)
        finally:
            self.state = RefreshState.IDLE
            self.last_finished = self.clock()

    def _arm(self) -> None:
        if self.interval_minutes <= 0:
            return
        self._handle = self.timer.call_later(self.interval_minutes * 60, self._on_tick)

    def _disarm(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    async def _on_tick(self) -> None:
        self._handle = None
        if not self.running:
            return
        self._arm()
        await self.request(RefreshTrigger.TIMER)
