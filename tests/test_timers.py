from __future__ import annotations

from datetime import timedelta

import pytest
from PySide6.QtCore import QCoreApplication, QDeadlineTimer, QEventLoop

from eyecare.errors import InvalidIntervalError
from eyecare.timers import QtTimer, VirtualClock
from project_eye.project_eye import logger as app_logger


def _fired(timer):
    hits = []
    timer.on_timeout(lambda: hits.append(timer.name))
    return hits


class TestVirtualClock:
    def test_periodic_timer_fires_each_interval(self):
        clock = VirtualClock()
        timer = clock.create_timer("tick", timedelta(minutes=2))
        hits = _fired(timer)
        timer.start()

        clock.advance(timedelta(minutes=7))

        assert len(hits) == 3
        assert timer.deadline == timedelta(minutes=8)

    def test_start_and_stop_are_idempotent(self):
        clock = VirtualClock()
        timer = clock.create_timer("tick", timedelta(seconds=10))

        timer.start()
        clock.advance(timedelta(seconds=5))
        timer.start()
        assert timer.start_count == 1
        assert timer.deadline == timedelta(seconds=10)

        timer.stop()
        timer.stop()
        assert timer.stop_count == 1
        assert not timer.is_running()

    def test_stopped_timer_never_fires(self):
        clock = VirtualClock()
        timer = clock.create_timer("tick", timedelta(seconds=10))
        hits = _fired(timer)
        timer.start()
        timer.stop()

        clock.advance(timedelta(minutes=5))

        assert hits == []

    def test_interval_change_applies_from_next_start(self):
        clock = VirtualClock()
        timer = clock.create_timer("tick", timedelta(minutes=10))
        hits = _fired(timer)
        timer.start()
        clock.advance(timedelta(minutes=4))

        timer.set_interval(timedelta(minutes=1))
        clock.advance(timedelta(minutes=5))
        assert hits == []

        clock.advance(timedelta(minutes=1))
        assert len(hits) == 1
        # Rearmed with the new period.
        assert timer.deadline == timedelta(minutes=11)

    def test_callback_stopping_another_timer_prevents_its_firing(self):
        clock = VirtualClock()
        first = clock.create_timer("first", timedelta(seconds=30))
        second = clock.create_timer("second", timedelta(seconds=30))
        second_hits = _fired(second)
        first.on_timeout(second.stop)
        first.start()
        second.start()

        clock.advance(timedelta(seconds=30))

        assert second_hits == []
        assert not second.is_running()

    def test_timers_fire_in_deadline_order(self):
        clock = VirtualClock()
        order = []
        slow = clock.create_timer("slow", timedelta(seconds=3))
        fast = clock.create_timer("fast", timedelta(seconds=2))
        slow.on_timeout(lambda: order.append(("slow", clock.now.total_seconds())))
        fast.on_timeout(lambda: order.append(("fast", clock.now.total_seconds())))
        slow.start()
        fast.start()

        clock.advance(timedelta(seconds=6))

        assert order == [
            ("fast", 2.0),
            ("slow", 3.0),
            ("fast", 4.0),
            ("slow", 6.0),
            ("fast", 6.0),
        ]

    def test_failing_callback_does_not_stop_other_timers(self):
        clock = VirtualClock()
        broken = clock.create_timer("broken", timedelta(seconds=1))
        healthy = clock.create_timer("healthy", timedelta(seconds=1))

        def explode():
            raise RuntimeError("boom")

        broken.on_timeout(explode)
        healthy_hits = _fired(healthy)
        broken.start()
        healthy.start()

        messages = []
        sink_id = app_logger.get_logger().add(messages.append, level="ERROR")
        try:
            clock.advance(timedelta(seconds=3))
        finally:
            app_logger.get_logger().remove(sink_id)

        assert len(healthy_hits) == 3
        assert broken.fire_count == 3
        assert broken.is_running()
        assert any("broken" in str(message) for message in messages)

    def test_non_positive_interval_is_rejected(self):
        clock = VirtualClock()
        with pytest.raises(InvalidIntervalError):
            clock.create_timer("zero", timedelta(0))
        timer = clock.create_timer("tick", timedelta(seconds=1))
        with pytest.raises(InvalidIntervalError):
            timer.set_interval(timedelta(seconds=-1))

    def test_advance_rejects_negative_delta(self):
        clock = VirtualClock()
        with pytest.raises(ValueError):
            clock.advance(timedelta(seconds=-1))


class TestQtTimer:
    def _spin(self, predicate, timeout_ms: int = 2000) -> None:
        deadline = QDeadlineTimer(timeout_ms)
        while not predicate() and not deadline.hasExpired():
            QCoreApplication.processEvents(QEventLoop.ProcessEventsFlag.AllEvents, 20)

    def test_fires_on_the_qt_event_loop(self):
        timer = QtTimer("qt", timedelta(milliseconds=10))
        hits = _fired(timer)
        timer.start()
        try:
            self._spin(lambda: len(hits) >= 2)
        finally:
            timer.stop()

        assert len(hits) >= 2
        assert not timer.is_running()

    def test_start_twice_and_stop_twice(self):
        timer = QtTimer("qt", timedelta(seconds=60))

        timer.start()
        timer.start()
        assert timer.is_running()

        timer.stop()
        timer.stop()
        assert not timer.is_running()

    def test_stopped_timer_does_not_dispatch(self):
        timer = QtTimer("qt", timedelta(milliseconds=5))
        hits = _fired(timer)
        timer.start()
        timer.stop()

        self._spin(lambda: False, timeout_ms=50)

        assert hits == []

    def test_interval_change_is_deferred_while_running(self):
        timer = QtTimer("qt", timedelta(seconds=60))
        timer.start()
        timer.set_interval(timedelta(seconds=5))

        assert timer.interval == timedelta(seconds=5)
        assert timer._timer.interval() == 60000

        timer.stop()
        timer.start()
        assert timer._timer.interval() == 5000
        timer.stop()
