from threading import Event, RLock

from fakes import FakeClock
from khodkquiz.core.clock import LockedClock, SystemClock


class TestSystemClock:
    def test_runs_callbacks_in_due_order(self):
        clock = SystemClock()
        order = []
        done = Event()
        try:
            clock.schedule_after(0.05, lambda: (order.append("late"), done.set()))
            clock.schedule_after(0.01, lambda: order.append("early"))

            assert done.wait(timeout=2)
            assert order == ["early", "late"]
        finally:
            clock.shutdown()

    def test_cancelled_callback_does_not_run(self):
        clock = SystemClock()
        ran = []
        done = Event()
        try:
            handle = clock.schedule_after(0.01, lambda: ran.append("cancelled"))
            handle.cancel()
            clock.schedule_after(0.03, done.set)

            assert done.wait(timeout=2)
            assert ran == []
        finally:
            clock.shutdown()

    def test_now_is_timezone_aware(self):
        assert SystemClock().now().tzinfo is not None


class _RecordingLock:
    def __init__(self) -> None:
        self.held = False

    def __enter__(self):
        self.held = True
        return self

    def __exit__(self, *exc_info):
        self.held = False


class TestLockedClock:
    def test_callback_runs_while_holding_lock(self):
        lock = _RecordingLock()
        fake = FakeClock()
        clock = LockedClock(fake, lock)
        held = []

        clock.schedule_after(1, lambda: held.append(lock.held))
        fake.advance(1)

        assert held == [True]
        assert lock.held is False

    def test_cancel_wins_over_pending_callback(self):
        fake = FakeClock()
        clock = LockedClock(fake, RLock())
        ran = []

        handle = clock.schedule_after(1, lambda: ran.append(True))
        handle.cancel()
        fake.advance(5)

        assert ran == []
        assert fake.pending == 0

    def test_now_delegates(self):
        fake = FakeClock()
        fake.advance(3)

        assert LockedClock(fake, RLock()).now() == fake.now()
