"""
Collaborator interfaces consumed by the main service.

Platform code implements these; tests substitute deterministic fakes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Protocol

from eyecare.settings import EyeSettings


@dataclass(frozen=True, slots=True)
class Point:
    x: int
    y: int

    def __str__(self) -> str:
        return f"{self.x},{self.y}"


class CursorProvider(Protocol):
    def get_cursor_position(self) -> Point:
        """Return the cursor position; raise ``OSError`` when unavailable."""
        ...


class AudioActivityProvider(Protocol):
    def is_any_sound_playing(self) -> bool: ...


class KeyValueCache(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: Optional[str]) -> None: ...


class VisibilitySignal(Protocol):
    def connect(self, slot: Callable[[bool], Any]) -> Any: ...


class WindowHandle(Protocol):
    visibilityChanged: VisibilitySignal


class WindowManager(Protocol):
    def get_or_create(self, name: str, hidden: bool = True) -> List[WindowHandle]: ...

    def show(self, name: str) -> None: ...

    def hide(self, name: str) -> None: ...

    def close(self, name: str) -> None: ...


class StatisticsCollector(Protocol):
    def tally_usage(self) -> None: ...

    def persist(self) -> None: ...


class ScreenController(Protocol):
    def release(self) -> None: ...


class ConfigSource(Protocol):
    def current(self) -> EyeSettings:
        """Return the active configuration snapshot."""
        ...
