"""Clock abstraction used for countdowns and delayed transitions.

Architecture note:
    The engine never sleeps or spawns timers on its own. Everything time
    related goes through a ``Clock`` so the same state machine runs against
    the wall clock in production and against a hand-advanced fake in tests.
    ``SystemClock`` keeps a single scheduler thread with a heap of due
    callbacks instead of one ``threading.Timer`` per tick, because the
    countdown schedules a callback every 10 ms.
"""

from __future__ import annotations

from datetime import datetime, timezone
import heapq
import itertools
import logging
from threading import Condition, RLock, Thread
import time
from typing import Callable, Protocol

logger = logging.getLogger(__name__)

Callback = Callable[[], None]


class CancelHandle(Protocol):
    def cancel(self) -> None: ...


class Clock(Protocol):
    """Source of the current time and of delayed callbacks."""

    def now(self) -> datetime: ...

    def schedule_after(self, delay_seconds: float, callback: Callback) -> CancelHandle: ...


class ScheduledCall:
    """Cancel handle for a callback queued on a clock."""

    __slots__ = ("callback", "cancelled")

    def __init__(self, callback: Callback) -> None:
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class SystemClock:
    """Wall-clock implementation backed by one daemon scheduler thread."""

    def __init__(self) -> None:
        self._condition = Condition()
        self._queue: list[tuple[float, int, ScheduledCall]] = []
        self._sequence = itertools.count()
        self._thread: Thread | None = None
        self._stopped = False

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def schedule_after(self, delay_seconds: float, callback: Callback) -> ScheduledCall:
        call = ScheduledCall(callback)
        due = time.monotonic() + max(0.0, delay_seconds)
        with self._condition:
            if self._stopped:
                raise RuntimeError("Clock has been shut down.")
            heapq.heappush(self._queue, (due, next(self._sequence), call))
            self._ensure_thread()
            self._condition.notify()
        return call

    def shutdown(self) -> None:
        with self._condition:
            self._stopped = True
            self._queue.clear()
            self._condition.notify()

    def _ensure_thread(self) -> None:
        if self._thread is None:
            self._thread = Thread(target=self._run, name="QuizClock", daemon=True)
            self._thread.start()

    def _run(self) -> None:
        while True:
            with self._condition:
                while not self._stopped:
                    if not self._queue:
                        self._condition.wait()
                        continue
                    due, _, call = self._queue[0]
                    remaining = due - time.monotonic()
                    if remaining <= 0:
                        heapq.heappop(self._queue)
                        break
                    self._condition.wait(timeout=remaining)
                if self._stopped:
                    return
            # The scheduler lock is released before running callbacks so they
            # may schedule follow-up calls.
            if call.cancelled:
                continue
            try:
                call.callback()
            except Exception:
                logger.exception("Scheduled callback failed")


class LockedClock:
    """Wraps a clock so every scheduled callback runs under ``lock``."""

    def __init__(self, clock: Clock, lock: RLock) -> None:
        self._clock = clock
        self._lock = lock

    def now(self) -> datetime:
        return self._clock.now()

    def schedule_after(self, delay_seconds: float, callback: Callback) -> CancelHandle:
        handle = _LockedHandle()

        def locked_callback() -> None:
            with self._lock:
                # A cancel issued while this call waited for the lock still wins.
                if not handle.cancelled:
                    callback()

        handle.inner = self._clock.schedule_after(delay_seconds, locked_callback)
        return handle


class _LockedHandle:
    __slots__ = ("cancelled", "inner")

    def __init__(self) -> None:
        self.cancelled = False
        self.inner: CancelHandle | None = None

    def cancel(self) -> None:
        self.cancelled = True
        if self.inner is not None:
            self.inner.cancel()
