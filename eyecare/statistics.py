"""
Eye-usage statistics and their registry persistence.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, Iterator, Optional

from project_eye.project_eye import logger as app_logger

try:
    import winreg
except ModuleNotFoundError:  # pragma: no cover - non-Windows environments
    winreg = None

_LOGGER = app_logger.get_logger()


@dataclass
class DailyUsage:
    working_minutes: int = 0
    rest_count: int = 0
    skip_count: int = 0


class UsageStore:
    """Thin wrapper over winreg storing one key per day of usage."""

    base_subkey: str = r"Software\ProjectEye\Statistics"

    def __init__(self, *, hive: Optional[int] = None, winreg_module=winreg) -> None:
        self._winreg = winreg_module
        if hive is not None:
            self.hive = hive
        elif winreg_module is not None:
            self.hive = winreg_module.HKEY_CURRENT_USER
        else:
            self.hive = None

    @property
    def available(self) -> bool:
        return self._winreg is not None

    def load(self, day: date) -> DailyUsage:
        if not self.available:
            return DailyUsage()
        try:
            with self._open_key(day, writable=False) as key:
                return DailyUsage(
                    working_minutes=self._query_dword(key, "WorkingMinutes"),
                    rest_count=self._query_dword(key, "RestCount"),
                    skip_count=self._query_dword(key, "SkipCount"),
                )
        except (FileNotFoundError, OSError):
            return DailyUsage()

    def save(self, day: date, usage: DailyUsage) -> None:
        if not self.available:
            _LOGGER.debug("Registry unavailable; usage for {} kept in memory only.", day.isoformat())
            return
        with self._open_key(day, writable=True) as key:
            self._winreg.SetValueEx(key, "WorkingMinutes", 0, self._winreg.REG_DWORD, usage.working_minutes)
            self._winreg.SetValueEx(key, "RestCount", 0, self._winreg.REG_DWORD, usage.rest_count)
            self._winreg.SetValueEx(key, "SkipCount", 0, self._winreg.REG_DWORD, usage.skip_count)

    @contextmanager
    def _open_key(self, day: date, *, writable: bool) -> Iterator:
        subkey = f"{self.base_subkey}\\{day.isoformat()}"
        access = self._winreg.KEY_READ
        if writable:
            access |= self._winreg.KEY_WRITE

        try:
            key = self._winreg.OpenKey(self.hive, subkey, 0, access)
        except FileNotFoundError:
            if not writable:
                raise
            key = self._winreg.CreateKey(self.hive, subkey)
        try:
            yield key
        finally:
            self._winreg.CloseKey(key)

    def _query_dword(self, key, value_name: str) -> int:
        try:
            value, _ = self._winreg.QueryValueEx(key, value_name)
            return int(value)
        except OSError:
            return 0


class UsageStatistics:
    """
    Accumulates active screen time per day.

    ``tally_usage`` folds the time elapsed since the previous tally into
    today's total. Time spent between ``pause`` and ``resume`` (the user being
    away) is discarded. Partial minutes carry over to the next tally.
    """

    def __init__(
        self,
        store: UsageStore,
        *,
        clock: Callable[[], float] = time.monotonic,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._store = store
        self._clock = clock
        self._today = today
        self._days: Dict[date, DailyUsage] = {}
        self._dirty: set[date] = set()
        self._last_mark: Optional[float] = self._clock()
        self._carry_seconds = 0.0

    @property
    def paused(self) -> bool:
        return self._last_mark is None

    def usage_for(self, day: date) -> DailyUsage:
        if day not in self._days:
            self._days[day] = self._store.load(day)
        return self._days[day]

    def tally_usage(self) -> None:
        if self._last_mark is None:
            return
        now = self._clock()
        self._add_seconds(now - self._last_mark)
        self._last_mark = now

    def pause(self) -> None:
        """Count time up to now, then stop accumulating."""
        if self._last_mark is None:
            return
        self.tally_usage()
        self._last_mark = None

    def resume(self) -> None:
        if self._last_mark is not None:
            return
        self._last_mark = self._clock()

    def discard_untallied(self) -> None:
        """Drop time not yet tallied; counting restarts now unless paused."""
        self._carry_seconds = 0.0
        if self._last_mark is not None:
            self._last_mark = self._clock()

    def record_rest(self) -> None:
        day = self._today()
        self.usage_for(day).rest_count += 1
        self._dirty.add(day)

    def record_skip(self) -> None:
        day = self._today()
        self.usage_for(day).skip_count += 1
        self._dirty.add(day)

    def persist(self) -> None:
        for day in sorted(self._dirty):
            self._store.save(day, self._days[day])
            _LOGGER.debug("Persisted usage for {}: {}", day.isoformat(), self._days[day])
        self._dirty.clear()

    def _add_seconds(self, seconds: float) -> None:
        total = self._carry_seconds + max(0.0, seconds)
        minutes = int(total // 60)
        self._carry_seconds = total - minutes * 60
        if minutes == 0:
            return
        day = self._today()
        self.usage_for(day).working_minutes += minutes
        self._dirty.add(day)
        _LOGGER.info("Tallied {} minute(s) of eye usage for {}.", minutes, day.isoformat())
