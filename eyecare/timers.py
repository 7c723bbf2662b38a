"""
Timer abstraction shared by every scheduled activity of the service.

Production code runs on ``QtTimer`` so all callbacks execute serially on the
Qt GUI thread. Tests drive ``VirtualClock`` instead, which fires the same
callbacks in deadline order without waiting on wall-clock time.
"""

from __future__ import annotations

import itertools
from datetime import timedelta
from typing import Callable, List, Optional, Protocol

from PySide6.QtCore import QObject, QTimer

from eyecare.errors import InvalidIntervalError
from project_eye.project_eye import logger as app_logger

_LOGGER = app_logger.get_logger()

TimerCallback = Callable[[], None]


class Timer(Protocol):
    """Periodic timer with idempotent start/stop."""

    name: str

    @property
    def interval(self) -> timedelta: ...

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def is_running(self) -> bool: ...

    def set_interval(self, interval: timedelta) -> None: ...

    def on_timeout(self, callback: TimerCallback) -> None: ...


TimerFactory = Callable[[str, timedelta], Timer]


def _validate_interval(interval: timedelta) -> timedelta:
    if interval <= timedelta(0):
        raise InvalidIntervalError(f"Timer interval must be positive, got {interval}.")
    return interval


def _dispatch(name: str, callbacks: List[TimerCallback]) -> None:
    for callback in list(callbacks):
        try:
            callback()
        except Exception:
            # One failing callback must not stall the remaining timers.
            _LOGGER.exception("Callback of timer '{}' raised; timer keeps running.", name)


class QtTimer(QObject):
    """
    ``QTimer`` wrapper honouring the service timer contract.

    Interval changes are recorded and applied on the next start, so a running
    timer keeps its current schedule.
    """

    def __init__(self, name: str, interval: timedelta, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self.name = name
        self._interval = _validate_interval(interval)
        self._callbacks: List[TimerCallback] = []
        self._running = False
        self._timer = QTimer(self)
        self._timer.timeout.connect(self._on_qt_timeout)  # type: ignore[arg-type]

    @property
    def interval(self) -> timedelta:
        return self._interval

    def start(self) -> None:
        if self._running:
            return
        self._timer.setInterval(int(self._interval.total_seconds() * 1000))
        self._running = True
        self._timer.start()

    def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        self._timer.stop()

    def is_running(self) -> bool:
        return self._running

    def set_interval(self, interval: timedelta) -> None:
        self._interval = _validate_interval(interval)

    def on_timeout(self, callback: TimerCallback) -> None:
        self._callbacks.append(callback)

    def _on_qt_timeout(self) -> None:
        # A timeout queued before stop() must not reach the callbacks.
        if not self._running:
            return
        _dispatch(self.name, self._callbacks)


class VirtualClock:
    """Deterministic clock creating timers that fire only when advanced."""

    def __init__(self) -> None:
        self._now = timedelta(0)
        self._timers: List[VirtualTimer] = []
        self._sequence = itertools.count()

    @property
    def now(self) -> timedelta:
        return self._now

    def create_timer(self, name: str, interval: timedelta) -> "VirtualTimer":
        timer = VirtualTimer(self, name, interval)
        self._timers.append(timer)
        return timer

    def timer(self, name: str) -> "VirtualTimer":
        for timer in self._timers:
            if timer.name == name:
                return timer
        raise KeyError(name)

    def advance(self, delta: timedelta) -> None:
        """Move time forward, firing every deadline reached on the way."""
        if delta < timedelta(0):
            raise ValueError("Virtual time cannot move backwards.")
        target = self._now + delta
        while True:
            due = self._next_due(target)
            if due is None:
                break
            self._now = due.deadline
            due._fire()
        self._now = target

    def advance_to(self, when: timedelta) -> None:
        self.advance(when - self._now)

    def _next_due(self, target: timedelta) -> Optional["VirtualTimer"]:
        candidates = [
            timer
            for timer in self._timers
            if timer.deadline is not None and timer.deadline <= target
        ]
        if not candidates:
            return None
        return min(candidates, key=lambda timer: (timer.deadline, timer._armed_at))

    def _next_sequence(self) -> int:
        return next(self._sequence)


class VirtualTimer:
    """Timer driven by a ``VirtualClock``; exposes counters for assertions."""

    def __init__(self, clock: VirtualClock, name: str, interval: timedelta) -> None:
        self.name = name
        self._clock = clock
        self._interval = _validate_interval(interval)
        self._callbacks: List[TimerCallback] = []
        self._deadline: Optional[timedelta] = None
        self._armed_at = 0
        self.start_count = 0
        self.stop_count = 0
        self.fire_count = 0

    @property
    def interval(self) -> timedelta:
        return self._interval

    @property
    def deadline(self) -> Optional[timedelta]:
        return self._deadline

    def start(self) -> None:
        if self._deadline is not None:
            return
        self._arm()
        self.start_count += 1

    def stop(self) -> None:
        if self._deadline is None:
            return
        self._deadline = None
        self.stop_count += 1

    def is_running(self) -> bool:
        return self._deadline is not None

    def set_interval(self, interval: timedelta) -> None:
        self._interval = _validate_interval(interval)

    def on_timeout(self, callback: TimerCallback) -> None:
        self._callbacks.append(callback)

    def _arm(self) -> None:
        self._deadline = self._clock.now + self._interval
        self._armed_at = self._clock._next_sequence()

    def _fire(self) -> None:
        # Periodic: rearm before dispatching so callbacks may stop or restart it.
        self._arm()
        self.fire_count += 1
        _dispatch(self.name, self._callbacks)
