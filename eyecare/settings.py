"""
Registry-backed configuration for the Project Eye service.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from project_eye.project_eye import logger as app_logger

try:
    import winreg
except ModuleNotFoundError:  # pragma: no cover - non-Windows environments
    winreg = None

_LOGGER = app_logger.get_logger()

_BASE_SUBKEY = r"Software\ProjectEye\General"
_ACCELERATED_ENV = "PROJECT_EYE_ACCELERATED"
DEFAULT_WARN_TIME_MINUTES = 20
MIN_WARN_TIME_MINUTES = 1
MAX_WARN_TIME_MINUTES = 120


@dataclass(frozen=True, eq=True)
class EyeSettings:
    warn_time: int = DEFAULT_WARN_TIME_MINUTES
    leave_listener: bool = True
    collect_usage_data: bool = True
    no_reset: bool = False
    accelerated: bool = False


@dataclass(frozen=True)
class IntervalProfile:
    """
    Timer periods for one deployment profile.

    ``warn`` overrides the configured reminder period when set; the normal
    profile leaves it to ``EyeSettings.warn_time``.
    """

    name: str
    leave: timedelta
    back: timedelta
    busy: timedelta
    usage: timedelta
    warn: Optional[timedelta] = None

    def warn_interval(self, settings: EyeSettings) -> timedelta:
        if self.warn is not None:
            return self.warn
        return timedelta(minutes=settings.warn_time)


NORMAL_PROFILE = IntervalProfile(
    name="normal",
    leave=timedelta(minutes=5),
    back=timedelta(minutes=1),
    busy=timedelta(seconds=30),
    usage=timedelta(minutes=30),
)

ACCELERATED_PROFILE = IntervalProfile(
    name="accelerated",
    warn=timedelta(seconds=30),
    leave=timedelta(seconds=20),
    back=timedelta(seconds=10),
    busy=timedelta(seconds=30),
    usage=timedelta(minutes=1),
)


def profile_for(settings: EyeSettings) -> IntervalProfile:
    """Pick the interval profile once at startup."""
    if settings.accelerated:
        return ACCELERATED_PROFILE
    return NORMAL_PROFILE


class EyeSettingsManager:
    """Loads persisted settings from HKCU, clamps invalid data, and keeps the active snapshot."""

    def __init__(self, *, hive: Optional[int] = None, winreg_module=winreg, environ=None) -> None:
        self._winreg = winreg_module
        if hive is not None:
            self.hive = hive
        elif winreg_module is not None:
            self.hive = winreg_module.HKEY_CURRENT_USER
        else:
            self.hive = None
        self._environ = os.environ if environ is None else environ
        self._current = self.read_settings()

    def current(self) -> EyeSettings:
        return self._current

    def reload(self) -> bool:
        """Re-read the registry; return True when the snapshot changed."""
        new_settings = self.read_settings()
        if new_settings == self._current:
            return False
        self._current = new_settings
        return True

    def read_settings(self) -> EyeSettings:
        accelerated = self._environ.get(_ACCELERATED_ENV, "") == "1"
        key = self._open_key()
        if key is None:
            return EyeSettings(accelerated=accelerated)

        try:
            return EyeSettings(
                warn_time=self._read_warn_time(key),
                leave_listener=self._read_bool(key, "LeaveListener", True),
                collect_usage_data=self._read_bool(key, "Data", True),
                no_reset=self._read_bool(key, "Noreset", False),
                accelerated=accelerated or self._read_bool(key, "Accelerated", False),
            )
        finally:
            self._winreg.CloseKey(key)

    def _open_key(self):
        if self._winreg is None:
            return None
        try:
            return self._winreg.OpenKey(self.hive, _BASE_SUBKEY, 0, self._winreg.KEY_READ)
        except FileNotFoundError:
            return None

    def _read_bool(self, key, name: str, default: bool) -> bool:
        raw = self._read_dword(key, name)
        if raw is None:
            return default
        return bool(raw)

    def _read_warn_time(self, key) -> int:
        raw = self._read_dword(key, "WarnTime")
        if raw is None:
            return DEFAULT_WARN_TIME_MINUTES
        if raw < MIN_WARN_TIME_MINUTES or raw > MAX_WARN_TIME_MINUTES:
            _LOGGER.warning(
                "Invalid warn time {} found in registry. Clamping to safe bounds.",
                raw,
            )
        return max(MIN_WARN_TIME_MINUTES, min(MAX_WARN_TIME_MINUTES, raw))

    def _read_dword(self, key, name: str) -> Optional[int]:
        try:
            value, value_type = self._winreg.QueryValueEx(key, name)
        except FileNotFoundError:
            return None
        if value_type != self._winreg.REG_DWORD:
            _LOGGER.warning("Registry value {} has unexpected type {}.", name, value_type)
            return None
        return int(value)
