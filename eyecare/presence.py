"""
Cursor and audio based presence detection.
"""

from __future__ import annotations

from typing import Optional

from eyecare.capabilities import AudioActivityProvider, CursorProvider, KeyValueCache, Point
from project_eye.project_eye import logger as app_logger

_LOGGER = app_logger.get_logger()

CURSOR_POS_KEY = "CursorPos"


class CursorPresenceDetector:
    """
    Classifies the user as present or away.

    Only the latest cursor sample is kept. Any failure to read the cursor is
    treated as movement so a flaky platform call never declares the user away.
    """

    def __init__(
        self,
        cursor: CursorProvider,
        audio: AudioActivityProvider,
        cache: KeyValueCache,
    ) -> None:
        self._cursor = cursor
        self._audio = audio
        self._cache = cache

    def sample_and_store(self) -> Optional[Point]:
        """Overwrite the stored sample with the current cursor position."""
        point = self._read_cursor()
        self._cache.set(CURSOR_POS_KEY, str(point) if point is not None else None)
        return point

    def has_moved(self) -> bool:
        point = self._read_cursor()
        if point is None:
            return True
        before = self._cache.get(CURSOR_POS_KEY)
        if before is None:
            return True
        return before != str(point)

    def is_user_away(self) -> bool:
        if self.has_moved():
            return False
        return not self._is_sound_playing()

    def _read_cursor(self) -> Optional[Point]:
        try:
            return self._cursor.get_cursor_position()
        except Exception as exc:
            _LOGGER.warning("Cursor position unavailable: {}", exc)
            return None

    def _is_sound_playing(self) -> bool:
        try:
            return bool(self._audio.is_any_sound_playing())
        except Exception as exc:
            # Unknown audio state counts as activity.
            _LOGGER.warning("Audio activity query failed: {}", exc)
            return True
