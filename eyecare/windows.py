"""
Named window registry and screen tracking for the Qt front end.
"""

from __future__ import annotations

from typing import Callable, Dict, List

from PySide6.QtGui import QGuiApplication, QScreen
from PySide6.QtWidgets import QWidget

from project_eye.project_eye import logger as app_logger

_LOGGER = app_logger.get_logger()

WindowFactory = Callable[[QScreen], QWidget]


class QtWindowManager:
    """
    Creates one window per screen for each registered name and shows, hides,
    or closes them as a group.
    """

    def __init__(self) -> None:
        self._factories: Dict[str, WindowFactory] = {}
        self._windows: Dict[str, List[QWidget]] = {}

    def register(self, name: str, factory: WindowFactory) -> None:
        self._factories[name] = factory

    def get_or_create(self, name: str, hidden: bool = True) -> List[QWidget]:
        windows = self._windows.get(name)
        if windows is None:
            try:
                factory = self._factories[name]
            except KeyError as exc:
                raise KeyError(f"No window factory registered for '{name}'.") from exc
            windows = [factory(screen) for screen in QGuiApplication.screens()]
            self._windows[name] = windows
            _LOGGER.debug("Created {} '{}' window(s).", len(windows), name)
            if not hidden:
                self.show(name)
        return list(windows)

    def show(self, name: str) -> None:
        for window in self._windows.get(name, []):
            center = getattr(window, "center_on_screen", None)
            if center is not None:
                center()
            window.show()
            window.raise_()
            window.activateWindow()

    def hide(self, name: str) -> None:
        for window in self._windows.get(name, []):
            window.hide()

    def close(self, name: str) -> None:
        for window in self._windows.pop(name, []):
            window.close()
            window.deleteLater()

    def recenter(self) -> None:
        for windows in self._windows.values():
            for window in windows:
                center = getattr(window, "center_on_screen", None)
                if center is not None and window.isVisible():
                    center()


class ScreenWatcher:
    """Keeps visible prompts centred while monitors are plugged or unplugged."""

    def __init__(self, windows: QtWindowManager) -> None:
        self._windows = windows
        self._app = QGuiApplication.instance()
        self._connected = False
        if self._app is not None:
            self._app.screenAdded.connect(self._on_screen_added)
            self._app.screenRemoved.connect(self._on_screen_removed)
            self._connected = True

    def release(self) -> None:
        if not self._connected:
            return
        self._app.screenAdded.disconnect(self._on_screen_added)
        self._app.screenRemoved.disconnect(self._on_screen_removed)
        self._connected = False
        _LOGGER.debug("Screen watcher released.")

    def _on_screen_added(self, screen: QScreen) -> None:
        _LOGGER.info("Screen added: {}", screen.name())
        self._windows.recenter()

    def _on_screen_removed(self, screen: QScreen) -> None:
        _LOGGER.info("Screen removed: {}", screen.name())
        self._windows.recenter()
