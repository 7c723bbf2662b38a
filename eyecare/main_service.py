"""
Main service coordinating rest reminders, leave/return detection, the busy
watchdog, and usage statistics.

Five timers are owned here:

* ``main``  - asks for a rest prompt every ``warn_time`` minutes.
* ``leave`` - checks whether the user walked away.
* ``back``  - while away, checks whether the user came back.
* ``busy``  - hides an unattended prompt and treats the user as away.
* ``usage`` - tallies and persists eye-usage statistics.

All callbacks run on one scheduling thread (the Qt GUI thread, or a
``VirtualClock`` in tests), so each transition completes before the next
callback starts.
"""

from __future__ import annotations

from datetime import timedelta
from enum import Enum
from typing import Optional

from PySide6.QtCore import QObject, Signal

from eyecare.capabilities import (
    ConfigSource,
    ScreenController,
    StatisticsCollector,
    WindowManager,
)
from eyecare.errors import InvalidIntervalError, ServiceStateError
from eyecare.presence import CursorPresenceDetector
from eyecare.settings import EyeSettings, IntervalProfile, profile_for
from eyecare.timers import QtTimer, Timer, TimerFactory
from project_eye.project_eye import logger as app_logger

_LOGGER = app_logger.get_logger()

TIP_WINDOW = "TipWindow"
# Reserved payload of the leave/return notifications.
LEAVE_MESSAGE = 0


class PresenceState(Enum):
    ACTIVE = "Active"
    AWAY_CONFIRMING = "AwayConfirming"
    AWAY = "Away"


class MainService(QObject):
    userLeft = Signal(int)
    userReturned = Signal(int)
    # Away state abandoned without a detected return (listener closed or timing restarted).
    awayCleared = Signal(int)
    restarted = Signal()

    def __init__(
        self,
        config: ConfigSource,
        presence: CursorPresenceDetector,
        windows: WindowManager,
        statistics: StatisticsCollector,
        screen: ScreenController,
        *,
        timer_factory: TimerFactory = QtTimer,
        profile: Optional[IntervalProfile] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._config = config
        self._presence = presence
        self._windows = windows
        self._statistics = statistics
        self._screen = screen
        self._timer_factory = timer_factory
        self._profile = profile

        self._timer: Optional[Timer] = None
        self._leave_timer: Optional[Timer] = None
        self._back_timer: Optional[Timer] = None
        self._busy_timer: Optional[Timer] = None
        self._useeye_timer: Optional[Timer] = None

        self._away = False
        self._prompting = False
        self._exited = False

    @property
    def settings(self) -> EyeSettings:
        return self._config.current()

    @property
    def presence(self) -> PresenceState:
        if self._away:
            return PresenceState.AWAY
        if self._leave_timer is not None and self._leave_timer.is_running():
            return PresenceState.AWAY_CONFIRMING
        return PresenceState.ACTIVE

    @property
    def is_prompting(self) -> bool:
        return self._prompting

    @property
    def is_paused(self) -> bool:
        """True when neither reminders nor presence checks are scheduled."""
        self._require_init()
        return not (
            self._timer.is_running()
            or self._leave_timer.is_running()
            or self._back_timer.is_running()
        )

    def init(self) -> None:
        """Create the timers, hook prompt visibility, take a first cursor sample, and start."""
        if self._timer is not None:
            _LOGGER.warning("Main service already initialised; ignoring init().")
            return

        settings = self.settings
        profile = self._profile or profile_for(settings)
        self._profile = profile
        _LOGGER.info("Initialising main service with '{}' interval profile.", profile.name)

        self._timer = self._timer_factory("main", profile.warn_interval(settings))
        self._timer.on_timeout(self._on_timer_tick)
        self._leave_timer = self._timer_factory("leave", profile.leave)
        self._leave_timer.on_timeout(self._on_leave_timer_tick)
        self._back_timer = self._timer_factory("back", profile.back)
        self._back_timer.on_timeout(self._on_back_timer_tick)
        self._busy_timer = self._timer_factory("busy", profile.busy)
        self._busy_timer.on_timeout(self._on_busy_timer_tick)
        self._useeye_timer = self._timer_factory("usage", profile.usage)
        self._useeye_timer.on_timeout(self._on_useeye_timer_tick)

        for window in self._windows.get_or_create(TIP_WINDOW, True):
            window.visibilityChanged.connect(self._on_visibility_changed)

        self._presence.sample_and_store()
        self.start()

    def start(self) -> None:
        self._require_init()
        self._do_start()

    def pause(self) -> None:
        """Halt reminders and presence checks; usage statistics keep running."""
        self._require_init()
        _LOGGER.info("Pausing rest reminders.")
        self._do_stop()

    def exit(self) -> None:
        """
        Stop the service for good.

        A final tally is persisted when usage collection is enabled; a
        persistence error is raised to the caller once cleanup has finished.
        """
        self._require_init()
        if self._exited:
            _LOGGER.debug("Main service already stopped.")
            return
        self._exited = True
        _LOGGER.info("Stopping main service.")
        try:
            if self.settings.collect_usage_data:
                self._statistics.tally_usage()
                self._statistics.persist()
        finally:
            self._screen.release()
            self._do_stop()
            self._busy_timer.stop()
            self._useeye_timer.stop()
            self._windows.close(TIP_WINDOW)

    def open_leave_listener(self) -> None:
        self._require_init()
        if not self._leave_timer.is_running():
            _LOGGER.info("Leave detection enabled.")
            self._leave_timer.start()

    def close_leave_listener(self) -> None:
        """Disable leave detection; reminders resume if they were halted."""
        self._require_init()
        _LOGGER.info("Leave detection disabled.")
        self._leave_timer.stop()
        self._back_timer.stop()
        self._clear_away()
        if not self._timer.is_running():
            self._timer.start()

    def open_usage_collection(self) -> None:
        """Start the usage timer when collection is enabled and it is not already running."""
        self._require_init()
        if self.settings.collect_usage_data and not self._useeye_timer.is_running():
            _LOGGER.info("Usage collection enabled.")
            self._useeye_timer.start()

    def set_warn_time(self, minutes: int) -> None:
        """Change the reminder period and restart timing when it differs."""
        self._require_init()
        if isinstance(minutes, bool) or not isinstance(minutes, int) or minutes <= 0:
            raise InvalidIntervalError(f"Warn time must be a positive number of minutes, got {minutes!r}.")
        current_minutes = self._timer.interval.total_seconds() / 60
        if current_minutes == minutes:
            return
        _LOGGER.info("Warn time changed from {} to {} minutes.", current_minutes, minutes)
        self._timer.set_interval(timedelta(minutes=minutes))
        self._restart()

    def stop_busy_listener(self) -> None:
        self._require_init()
        if self._busy_timer.is_running():
            self._busy_timer.stop()

    def on_leave(self) -> None:
        """Enter the away state: reminders halt and the return check starts."""
        self._require_init()
        if self._away:
            _LOGGER.debug("User already away; ignoring leave request.")
            return
        _LOGGER.info("User left the computer.")
        self._away = True
        self._leave_timer.stop()
        self._back_timer.start()
        self._timer.stop()
        self.userLeft.emit(LEAVE_MESSAGE)

    def _restart(self) -> None:
        _LOGGER.info("Restarting rest timing.")
        self._do_stop()
        self._do_start()
        self.restarted.emit()

    def _do_start(self) -> None:
        settings = self.settings
        self._clear_away()
        self._timer.start()
        if settings.leave_listener:
            self._leave_timer.start()
        if settings.collect_usage_data:
            self._useeye_timer.start()

    def _clear_away(self) -> None:
        if not self._away:
            return
        _LOGGER.info("Leaving away state without a detected return.")
        self._away = False
        self.awayCleared.emit(LEAVE_MESSAGE)

    def _do_stop(self) -> None:
        self._timer.stop()
        self._leave_timer.stop()
        self._back_timer.stop()

    def _show_tip_window(self) -> None:
        if self.settings.no_reset:
            return
        _LOGGER.info("Time for a rest; showing tip window.")
        self._busy_timer.start()
        self._windows.show(TIP_WINDOW)

    def _on_timer_tick(self) -> None:
        self._show_tip_window()

    def _on_leave_timer_tick(self) -> None:
        if self._presence.is_user_away():
            self.on_leave()
        self._presence.sample_and_store()

    def _on_back_timer_tick(self) -> None:
        if self._presence.has_moved():
            _LOGGER.info("User came back.")
            self._away = False
            self._back_timer.stop()
            self._leave_timer.start()
            self._timer.start()
            self.userReturned.emit(LEAVE_MESSAGE)
        self._presence.sample_and_store()

    def _on_busy_timer_tick(self) -> None:
        _LOGGER.info("Tip window left unattended; hiding it.")
        self._windows.hide(TIP_WINDOW)
        if self.settings.leave_listener:
            self.on_leave()
        self._busy_timer.stop()

    def _on_useeye_timer_tick(self) -> None:
        if not self.settings.collect_usage_data:
            _LOGGER.debug("Usage collection disabled; stopping usage timer.")
            self._useeye_timer.stop()
            return
        _LOGGER.debug("Tallying eye usage.")
        self._statistics.tally_usage()
        self._statistics.persist()

    def _on_visibility_changed(self, visible: bool) -> None:
        if self._exited:
            return
        self._prompting = visible
        if visible:
            self._timer.stop()
        else:
            self._timer.start()

    def _require_init(self) -> None:
        if self._timer is None:
            raise ServiceStateError("Main service has not been initialised.")
