"""Per-question countdown driving the timeout transition."""

from __future__ import annotations

import logging
import math
from typing import Callable

from khodkquiz.constants.quiz_constants import TIMER_TICK_INTERVAL_MS
from khodkquiz.core.clock import CancelHandle, Clock

logger = logging.getLogger(__name__)

# Remaining time is tracked in hundredths of a second so repeated ticks never
# accumulate floating point drift.
_CENTIS_PER_SECOND = 100
_MS_PER_CENTI = 10


def seconds_to_centis(seconds: float) -> int:
    return int(round(seconds * _CENTIS_PER_SECOND))


class QuizTimer:
    """Counts a question's time limit down to zero and signals one timeout."""

    def __init__(
        self,
        clock: Clock,
        on_timeout: Callable[[], None],
        tick_interval_ms: int = TIMER_TICK_INTERVAL_MS,
    ) -> None:
        if tick_interval_ms <= 0 or tick_interval_ms % _MS_PER_CENTI:
            raise ValueError("Tick interval must be a positive multiple of 10 ms.")
        self._clock = clock
        self._on_timeout = on_timeout
        self._tick_ms = tick_interval_ms
        self._tick_centis = tick_interval_ms // _MS_PER_CENTI
        self._limit_centis: int = 0
        self._remaining_centis: int = 0
        self._running: bool = False
        self._pending: CancelHandle | None = None

    def start(self, limit_seconds: float) -> None:
        """(Re)start the countdown from ``limit_seconds``."""
        limit_centis = seconds_to_centis(limit_seconds)
        if limit_centis <= 0:
            raise ValueError("Time limit must be positive.")
        self._cancel_pending()
        self._limit_centis = limit_centis
        self._remaining_centis = limit_centis
        self._running = True
        self._schedule_next()

    def tick(self) -> None:
        """Advance the countdown by one tick interval."""
        if not self._running:
            return
        self._pending = None
        self._remaining_centis = max(0, self._remaining_centis - self._tick_centis)
        if self._remaining_centis == 0:
            self._running = False
            logger.debug("Question timer expired")
            self._on_timeout()
            return
        self._schedule_next()

    def stop(self) -> None:
        """Stop without firing the timeout. Safe to call at any time."""
        self._cancel_pending()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def remaining_centis(self) -> int:
        return self._remaining_centis

    @property
    def limit_centis(self) -> int:
        return self._limit_centis

    @property
    def remaining_seconds(self) -> float:
        return self._remaining_centis / _CENTIS_PER_SECOND

    @property
    def display_seconds(self) -> int:
        return math.ceil(self._remaining_centis / _CENTIS_PER_SECOND)

    def _schedule_next(self) -> None:
        self._pending = self._clock.schedule_after(self._tick_ms / 1000, self.tick)

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
