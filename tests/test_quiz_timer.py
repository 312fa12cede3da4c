"""Tests for the per-question countdown."""

import pytest

from khodkquiz.core.services.quiz_timer import QuizTimer


class TestQuizTimer:
    def _timer(self, clock, timeouts, **kwargs):
        return QuizTimer(clock, on_timeout=lambda: timeouts.append(clock.now()), **kwargs)

    def test_counts_down_with_fixed_precision(self, clock):
        timeouts = []
        timer = self._timer(clock, timeouts)
        timer.start(25.0)

        clock.advance(0.01)
        assert timer.remaining_seconds == 24.99

        clock.advance(14.99)
        assert timer.remaining_centis == 1000
        assert timer.remaining_seconds == 10.0
        assert timeouts == []

    def test_display_rounds_up_to_whole_seconds(self, clock):
        timer = self._timer(clock, [])
        timer.start(25.0)
        assert timer.display_seconds == 25

        clock.advance(0.01)
        assert timer.display_seconds == 25

        clock.advance(0.99)
        assert timer.display_seconds == 24

    def test_fires_exactly_one_timeout(self, clock):
        timeouts = []
        timer = self._timer(clock, timeouts)
        timer.start(1.0)

        clock.advance(5)

        assert len(timeouts) == 1
        assert timer.remaining_seconds == 0
        assert not timer.is_running
        assert clock.pending == 0

    def test_stop_prevents_timeout(self, clock):
        timeouts = []
        timer = self._timer(clock, timeouts)
        timer.start(1.0)
        clock.advance(0.5)

        timer.stop()
        clock.advance(2)

        assert timeouts == []
        assert timer.remaining_seconds == 0.5

    def test_stop_after_timeout_is_noop(self, clock):
        timeouts = []
        timer = self._timer(clock, timeouts)
        timer.start(0.1)
        clock.advance(1)

        timer.stop()

        assert len(timeouts) == 1

    def test_restart_cancels_previous_countdown(self, clock):
        timeouts = []
        timer = self._timer(clock, timeouts)
        timer.start(1.0)
        clock.advance(0.5)

        timer.start(1.0)
        assert clock.pending == 1

        clock.advance(0.9)
        assert timeouts == []
        clock.advance(0.1)
        assert len(timeouts) == 1

    def test_coarser_tick_clamps_at_zero(self, clock):
        timeouts = []
        timer = self._timer(clock, timeouts, tick_interval_ms=1000)
        timer.start(2.5)

        clock.advance(3)

        assert timer.remaining_seconds == 0
        assert len(timeouts) == 1

    @pytest.mark.parametrize("interval", [0, -10, 15])
    def test_rejects_tick_interval_below_precision(self, clock, interval):
        with pytest.raises(ValueError):
            QuizTimer(clock, on_timeout=lambda: None, tick_interval_ms=interval)

    def test_rejects_non_positive_limit(self, clock):
        timer = self._timer(clock, [])
        with pytest.raises(ValueError):
            timer.start(0)
