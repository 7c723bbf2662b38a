"""
Entry point for the Project Eye application.
"""

from __future__ import annotations

import ctypes
import sys

from PySide6.QtWidgets import QApplication

from eyecare.app import EyeCoordinator
from project_eye.project_eye import logger as app_logger

_LOGGER = app_logger.get_logger()
_MUTEX_NAME = "Global\\ProjectEyeServiceMutex"
_ERROR_ALREADY_EXISTS = 183


class _InstanceGuard:
    """Named mutex guard preventing concurrent instances on Windows."""

    def __init__(self, name: str) -> None:
        self._name = name
        self._handle = None
        self._kernel32 = ctypes.WinDLL("kernel32", use_last_error=True) if sys.platform == "win32" else None

    def acquire(self) -> bool:
        if self._kernel32 is None:
            return True
        ctypes.set_last_error(0)
        handle = self._kernel32.CreateMutexW(None, False, self._name)
        if not handle:
            return True
        last_error = ctypes.get_last_error()
        if last_error == _ERROR_ALREADY_EXISTS:
            self._kernel32.CloseHandle(handle)
            return False
        self._handle = handle
        return True

    def release(self) -> None:
        if self._kernel32 is None or not self._handle:
            return
        self._kernel32.ReleaseMutex(self._handle)
        self._kernel32.CloseHandle(self._handle)
        self._handle = None


def main() -> int:
    """Run the tray application once; a second instance exits immediately."""
    guard = _InstanceGuard(_MUTEX_NAME)
    if not guard.acquire():
        _LOGGER.debug("Project Eye is already running; exiting silently.")
        return 0

    try:
        app = QApplication(sys.argv)
        app.setQuitOnLastWindowClosed(False)
        coordinator = EyeCoordinator()
        # Session end or an external quit still persists statistics.
        app.aboutToQuit.connect(coordinator.stop_service)
        coordinator.start()
        exit_code = app.exec()
        _LOGGER.info("Project Eye exited with code {}.", exit_code)
        return exit_code
    finally:
        guard.release()


if __name__ == "__main__":
    raise SystemExit(main())
