from __future__ import annotations

from types import SimpleNamespace

import pytest

from eyecare import providers
from eyecare.providers import (
    GUID,
    IID_IAUDIO_METER_INFORMATION,
    NullAudioActivity,
    QtCursorProvider,
    Win32AudioActivity,
    Win32CursorProvider,
)


class FixedPeakAudio(Win32AudioActivity):
    def __init__(self, peak: float) -> None:
        self.peak = peak

    def peak_value(self) -> float:
        return self.peak


@pytest.mark.parametrize(
    ("platform", "audio_type", "cursor_type"),
    [
        ("win32", Win32AudioActivity, Win32CursorProvider),
        ("linux", NullAudioActivity, QtCursorProvider),
        ("darwin", NullAudioActivity, QtCursorProvider),
    ],
)
def test_default_providers_follow_platform(monkeypatch, platform, audio_type, cursor_type):
    monkeypatch.setattr(providers, "sys", SimpleNamespace(platform=platform))

    assert type(providers.default_audio_provider()) is audio_type
    assert type(providers.default_cursor_provider()) is cursor_type


def test_null_audio_reports_silence():
    assert NullAudioActivity().is_any_sound_playing() is False


def test_any_peak_counts_as_sound():
    assert FixedPeakAudio(0.0).is_any_sound_playing() is False
    assert FixedPeakAudio(0.0001).is_any_sound_playing() is True
    assert FixedPeakAudio(0.8).is_any_sound_playing() is True


def test_guid_uses_windows_field_layout():
    guid = GUID.from_string(IID_IAUDIO_METER_INFORMATION)

    assert guid.Data1 == 0xC02216F6
    assert guid.Data2 == 0x8C67
    assert guid.Data3 == 0x4B5B
    assert bytes(guid.Data4) == bytes.fromhex("9D00D008E73E0064")
