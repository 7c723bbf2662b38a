from __future__ import annotations

import os
import tempfile

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
os.environ.setdefault("PROJECT_EYE_LOG_DIR", tempfile.mkdtemp(prefix="project-eye-logs-"))

from dataclasses import dataclass, field  # noqa: E402
from datetime import timedelta  # noqa: E402
from typing import Dict, List, Optional, Tuple  # noqa: E402

import pytest  # noqa: E402
from PySide6.QtCore import QObject, Signal  # noqa: E402
from PySide6.QtWidgets import QApplication  # noqa: E402

from eyecare.cache import MemoryCache  # noqa: E402
from eyecare.capabilities import Point  # noqa: E402
from eyecare.main_service import MainService  # noqa: E402
from eyecare.presence import CursorPresenceDetector  # noqa: E402
from eyecare.settings import NORMAL_PROFILE, EyeSettings, IntervalProfile  # noqa: E402
from eyecare.timers import VirtualClock  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def qt_app():
    # Widgets (tip window, tray) need a QApplication; offscreen needs no display.
    app = QApplication.instance() or QApplication([])
    yield app


class FakeCursor:
    def __init__(self, x: int = 0, y: int = 0) -> None:
        self.position = Point(x, y)
        self.fail = False
        self.reads = 0

    def move_to(self, x: int, y: int) -> None:
        self.position = Point(x, y)

    def get_cursor_position(self) -> Point:
        self.reads += 1
        if self.fail:
            raise OSError("cursor unavailable")
        return self.position


class FakeAudio:
    def __init__(self, playing: bool = False) -> None:
        self.playing = playing
        self.fail = False
        self.queries = 0

    def is_any_sound_playing(self) -> bool:
        self.queries += 1
        if self.fail:
            raise OSError("audio meter unavailable")
        return self.playing


class FakeWindow(QObject):
    visibilityChanged = Signal(bool)

    def __init__(self) -> None:
        super().__init__()
        self.visible = False
        self.closed = False

    def set_visible(self, visible: bool) -> None:
        if self.visible == visible:
            return
        self.visible = visible
        self.visibilityChanged.emit(visible)


class FakeWindowManager:
    def __init__(self, screens: int = 1) -> None:
        self._screens = screens
        self.windows: Dict[str, List[FakeWindow]] = {}
        self.calls: List[Tuple[str, str]] = []

    def get_or_create(self, name: str, hidden: bool = True) -> List[FakeWindow]:
        if name not in self.windows:
            self.windows[name] = [FakeWindow() for _ in range(self._screens)]
            if not hidden:
                self.show(name)
        return list(self.windows[name])

    def show(self, name: str) -> None:
        self.calls.append(("show", name))
        for window in self.windows.get(name, []):
            window.set_visible(True)

    def hide(self, name: str) -> None:
        self.calls.append(("hide", name))
        for window in self.windows.get(name, []):
            window.set_visible(False)

    def close(self, name: str) -> None:
        self.calls.append(("close", name))
        for window in self.windows.get(name, []):
            window.set_visible(False)
            window.closed = True

    def is_visible(self, name: str) -> bool:
        return any(window.visible for window in self.windows.get(name, []))


class FakeStatistics:
    def __init__(self) -> None:
        self.calls: List[str] = []
        self.persist_error: Optional[Exception] = None

    def tally_usage(self) -> None:
        self.calls.append("tally")

    def persist(self) -> None:
        self.calls.append("persist")
        if self.persist_error is not None:
            raise self.persist_error


class FakeScreen:
    def __init__(self) -> None:
        self.release_count = 0

    def release(self) -> None:
        self.release_count += 1


class StaticConfig:
    def __init__(self, settings: EyeSettings) -> None:
        self.settings = settings

    def current(self) -> EyeSettings:
        return self.settings


@dataclass
class Harness:
    service: MainService
    clock: VirtualClock
    cursor: FakeCursor
    audio: FakeAudio
    cache: MemoryCache
    windows: FakeWindowManager
    statistics: FakeStatistics
    screen: FakeScreen
    config: StaticConfig
    left: List[int] = field(default_factory=list)
    returned: List[int] = field(default_factory=list)
    cleared: List[int] = field(default_factory=list)
    restarts: List[bool] = field(default_factory=list)

    def timer(self, name: str):
        return self.clock.timer(name)

    def advance(self, **kwargs) -> None:
        self.clock.advance(timedelta(**kwargs))

    def advance_to(self, **kwargs) -> None:
        self.clock.advance_to(timedelta(**kwargs))


@pytest.fixture
def make_harness():
    def _make(
        settings: Optional[EyeSettings] = None,
        profile: Optional[IntervalProfile] = NORMAL_PROFILE,
        *,
        init: bool = True,
    ) -> Harness:
        clock = VirtualClock()
        cursor = FakeCursor()
        audio = FakeAudio()
        cache = MemoryCache()
        windows = FakeWindowManager()
        statistics = FakeStatistics()
        screen = FakeScreen()
        config = StaticConfig(settings or EyeSettings())
        service = MainService(
            config,
            CursorPresenceDetector(cursor, audio, cache),
            windows,
            statistics,
            screen,
            timer_factory=clock.create_timer,
            profile=profile,
        )
        harness = Harness(service, clock, cursor, audio, cache, windows, statistics, screen, config)
        service.userLeft.connect(lambda msg: harness.left.append(msg))
        service.userReturned.connect(lambda msg: harness.returned.append(msg))
        service.awayCleared.connect(lambda msg: harness.cleared.append(msg))
        service.restarted.connect(lambda: harness.restarts.append(True))
        if init:
            service.init()
        return harness

    return _make


class FakeWinreg:
    """Minimal in-memory stand-in for the ``winreg`` module."""

    HKEY_CURRENT_USER = 0x80000001
    KEY_READ = 0x20019
    KEY_WRITE = 0x20006
    REG_SZ = 1
    REG_DWORD = 4

    def __init__(self) -> None:
        self.keys: Dict[Tuple[int, str], Dict[str, Tuple[object, int]]] = {}
        self.closed = 0
        self.fail_writes = False

    def set_value(self, subkey: str, name: str, value, value_type: int = REG_DWORD) -> None:
        self.keys.setdefault((self.HKEY_CURRENT_USER, subkey), {})[name] = (value, value_type)

    def OpenKey(self, hive, subkey, reserved=0, access=KEY_READ):  # noqa: N802
        if (hive, subkey) not in self.keys:
            raise FileNotFoundError(subkey)
        return (hive, subkey)

    def CreateKey(self, hive, subkey):  # noqa: N802
        self.keys.setdefault((hive, subkey), {})
        return (hive, subkey)

    def CloseKey(self, key) -> None:  # noqa: N802
        self.closed += 1

    def QueryValueEx(self, key, name):  # noqa: N802
        values = self.keys.get(key, {})
        if name not in values:
            raise FileNotFoundError(name)
        return values[name]

    def SetValueEx(self, key, name, reserved, value_type, value) -> None:  # noqa: N802
        if self.fail_writes:
            raise PermissionError("registry is read-only")
        self.keys.setdefault(key, {})[name] = (value, value_type)


@pytest.fixture
def fake_winreg() -> FakeWinreg:
    return FakeWinreg()


@pytest.fixture
def fake_cursor() -> FakeCursor:
    return FakeCursor(10, 20)


@pytest.fixture
def fake_audio() -> FakeAudio:
    return FakeAudio()
