"""
Timer and clock abstractions.

The refresh scheduler only talks to a Timer, so tests can drive it with
ManualTimer instead of waiting on the event loop.
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional

TimerCallback = Callable[[], Awaitable[None]]


def utcnow() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


class TimerHandle(ABC):
    """Handle to a pending timer callback."""

    @abstractmethod
    def cancel(self) -> None:
        pass

    @property
    @abstractmethod
    def cancelled(self) -> bool:
        pass


class Timer(ABC):
    """Schedules a coroutine function to run once after a delay."""

    @abstractmethod
    def call_later(self, delay_sec: float, callback: TimerCallback) -> TimerHandle:
        pass


class _AsyncioHandle(TimerHandle):
    def __init__(self, handle: asyncio.TimerHandle):
        self._handle = handle

    def cancel(self) -> None:
        self._handle.cancel()

    @property
    def cancelled(self) -> bool:
        return self._handle.cancelled()


class AsyncioTimer(Timer):
    """Timer backed by the running asyncio event loop."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    def call_later(self, delay_sec: float, callback: TimerCallback) -> TimerHandle:
        loop = asyncio.get_running_loop()

        def _fire() -> None:
            task = loop.create_task(callback())
            # Keep a reference so the task is not garbage collected mid-flight
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        return _AsyncioHandle(loop.call_later(delay_sec, _fire))


class _ManualHandle(TimerHandle):
    def __init__(self, due: float, callback: TimerCallback):
        self.due = due
        self.callback = callback
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ManualTimer(Timer):
    """
    Deterministic timer for tests.

    Time only moves when advance() is awaited; due callbacks run in due order.
    """

    def __init__(self) -> None:
        self.now = 0.0
        self._pending: List[_ManualHandle] = []

    def call_later(self, delay_sec: float, callback: TimerCallback) -> TimerHandle:
        handle = _ManualHandle(self.now + delay_sec, callback)
        self._pending.append(handle)
        return handle

    @property
    def pending(self) -> List[TimerHandle]:
        return [h for h in self._pending if not h.cancelled]

    def next_due(self) -> Optional[float]:
        pending = self.pending
        return min(h.due for h in pending) if pending else None

    async def advance(self, seconds: float) -> int:
        """Move time forward and run every callback that falls due. Returns the number run."""
        target = self.now + seconds
        fired = 0
        while True:
            due = [h for h in self._pending if not h.cancelled and h.due <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.due)
            self._pending.remove(handle)
            self.now = handle.due
            await handle.callback()
            fired += 1
        self.now = target
        self._pending = [h for h in self._pending if not h.cancelled]
        return fired
