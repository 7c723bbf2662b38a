"""
Application coordinator wiring the main service to the Qt front end.
"""

from __future__ import annotations

from PySide6.QtCore import QObject, QTimer
from PySide6.QtGui import QAction
from PySide6.QtWidgets import QApplication, QMenu, QStyle, QSystemTrayIcon

from eyecare.cache import MemoryCache
from eyecare.capabilities import AudioActivityProvider, CursorProvider
from eyecare.main_service import TIP_WINDOW, MainService
from eyecare.presence import CursorPresenceDetector
from eyecare.providers import default_audio_provider, default_cursor_provider
from eyecare.settings import EyeSettings, EyeSettingsManager
from eyecare.statistics import UsageStatistics, UsageStore
from eyecare.timers import QtTimer, TimerFactory
from eyecare.tip_window import TipWindow
from eyecare.windows import QtWindowManager, ScreenWatcher
from project_eye.project_eye import logger as app_logger

APP_NAME = "Project Eye"
APP_VERSION = "1.0.0"
SETTINGS_REFRESH_INTERVAL_MS = 15000


class EyeCoordinator(QObject):
    def __init__(
        self,
        settings_manager: EyeSettingsManager | None = None,
        statistics: UsageStatistics | None = None,
        *,
        cursor: CursorProvider | None = None,
        audio: AudioActivityProvider | None = None,
        timer_factory: TimerFactory = QtTimer,
    ) -> None:
        super().__init__()
        self._logger = app_logger.get_logger()

        self.settings_manager = settings_manager or EyeSettingsManager()
        self.statistics = statistics or UsageStatistics(UsageStore())
        self._settings: EyeSettings = self.settings_manager.current()

        self._windows = QtWindowManager()
        self._windows.register(TIP_WINDOW, self._create_tip_window)
        self._screen = ScreenWatcher(self._windows)

        presence = CursorPresenceDetector(
            cursor or default_cursor_provider(),
            audio or default_audio_provider(),
            MemoryCache(),
        )
        self.service = MainService(
            self.settings_manager,
            presence,
            self._windows,
            self.statistics,
            self._screen,
            timer_factory=timer_factory,
            parent=self,
        )
        self.service.userLeft.connect(self._on_user_left)
        self.service.userReturned.connect(self._on_user_returned)
        self.service.awayCleared.connect(self._on_user_returned)

        self._tray = QSystemTrayIcon(self)
        tray_icon = QApplication.style().standardIcon(QStyle.StandardPixmap.SP_DesktopIcon)
        self._tray.setIcon(tray_icon)
        self._tray.setToolTip(f"{APP_NAME} v{APP_VERSION}")

        menu = QMenu()
        self._pause_action = QAction("Pause reminders", menu)
        self._pause_action.setCheckable(True)
        self._leave_action = QAction("Detect when I leave", menu)
        self._leave_action.setCheckable(True)
        self._leave_action.setChecked(self._settings.leave_listener)
        exit_action = QAction("Exit", menu)
        menu.addAction(self._pause_action)
        menu.addAction(self._leave_action)
        menu.addSeparator()
        menu.addAction(exit_action)
        self._tray.setContextMenu(menu)
        self._menu = menu

        self._pause_action.toggled.connect(self._on_pause_toggled)
        self._leave_action.toggled.connect(self._on_leave_toggled)
        exit_action.triggered.connect(self.shutdown)

        self._settings_timer = QTimer(self)
        self._settings_timer.setInterval(SETTINGS_REFRESH_INTERVAL_MS)
        self._settings_timer.timeout.connect(self._reload_settings)

    def start(self) -> None:
        self._logger.info("Starting {} v{}.", APP_NAME, APP_VERSION)
        self.service.init()
        self._tray.show()
        self._settings_timer.start()

    def shutdown(self) -> None:
        self._logger.info("Shutting down application on user request.")
        self.stop_service()
        self._tray.hide()
        QApplication.instance().quit()

    def stop_service(self) -> None:
        """Stop polling and the main service; safe to call more than once."""
        self._settings_timer.stop()
        try:
            self.service.exit()
        except OSError as exc:
            self._logger.error("Failed to persist usage statistics on exit: {}", exc)

    def _create_tip_window(self, screen) -> TipWindow:
        window = TipWindow(screen)
        window.rested.connect(self._on_rest_chosen)
        window.skipped.connect(self._on_skip_chosen)
        return window

    def _reload_settings(self) -> None:
        if self.settings_manager.reload():
            self._logger.info("Detected registry settings change. Applying updates.")
            self._apply_settings(self.settings_manager.current())

    def _apply_settings(self, settings: EyeSettings) -> None:
        previous = self._settings
        self._settings = settings

        if settings.warn_time != previous.warn_time and not settings.accelerated:
            self.service.set_warn_time(settings.warn_time)
            # set_warn_time restarts every schedule; keep tray choices in force.
            if self._pause_action.isChecked():
                self.service.pause()
            else:
                self._sync_leave_listener()

        if settings.leave_listener != previous.leave_listener:
            # The tray toggle drives the service so both stay in sync.
            self._leave_action.setChecked(settings.leave_listener)

        if settings.collect_usage_data and not previous.collect_usage_data:
            self.statistics.discard_untallied()
            self.service.open_usage_collection()

    def _on_pause_toggled(self, paused: bool) -> None:
        if paused:
            self.service.pause()
            self.statistics.pause()
        else:
            self.statistics.resume()
            self.service.start()
            self._sync_leave_listener()

    def _on_leave_toggled(self, enabled: bool) -> None:
        if self._pause_action.isChecked():
            self._logger.info("Reminders paused; leave detection change applies on resume.")
            return
        if enabled:
            self.service.open_leave_listener()
        else:
            self.service.close_leave_listener()

    def _sync_leave_listener(self) -> None:
        if self._leave_action.isChecked():
            self.service.open_leave_listener()
        else:
            self.service.close_leave_listener()

    def _on_rest_chosen(self) -> None:
        self._logger.info("User chose to rest.")
        self.service.stop_busy_listener()
        self.statistics.record_rest()
        self._windows.hide(TIP_WINDOW)

    def _on_skip_chosen(self) -> None:
        self._logger.info("User skipped the rest.")
        self.service.stop_busy_listener()
        self.statistics.record_skip()
        self._windows.hide(TIP_WINDOW)

    def _on_user_left(self, _msg: int) -> None:
        self.statistics.pause()

    def _on_user_returned(self, _msg: int) -> None:
        if self._pause_action.isChecked():
            return
        self.statistics.resume()
