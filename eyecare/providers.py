"""
Platform implementations of the cursor and audio capabilities.
"""

from __future__ import annotations

import ctypes
import sys
import uuid

from eyecare.capabilities import AudioActivityProvider, CursorProvider, Point
from project_eye.project_eye import logger as app_logger

_LOGGER = app_logger.get_logger()

CLSID_MM_DEVICE_ENUMERATOR = "{BCDE0395-E52F-467C-8E3D-C4579291692E}"
IID_IMM_DEVICE_ENUMERATOR = "{A95664D2-9614-4F35-A746-DE8DB63617E6}"
IID_IAUDIO_METER_INFORMATION = "{C02216F6-8C67-4B5B-9D00-D008E73E0064}"

_CLSCTX_ALL = 0x17
_COINIT_APARTMENTTHREADED = 0x2
_E_RENDER = 0
_E_MULTIMEDIA = 1

# Vtable slots (IUnknown occupies 0-2).
_RELEASE = 2
_GET_DEFAULT_AUDIO_ENDPOINT = 4
_ACTIVATE = 3
_GET_PEAK_VALUE = 3


class GUID(ctypes.Structure):
    _fields_ = [
        ("Data1", ctypes.c_ulong),
        ("Data2", ctypes.c_ushort),
        ("Data3", ctypes.c_ushort),
        ("Data4", ctypes.c_ubyte * 8),
    ]

    @classmethod
    def from_string(cls, value: str) -> "GUID":
        return cls.from_buffer_copy(uuid.UUID(value).bytes_le)


class Win32CursorProvider:
    """Reads the cursor through ``user32.GetCursorPos``."""

    def get_cursor_position(self) -> Point:
        class POINT(ctypes.Structure):
            _fields_ = [("x", ctypes.c_long), ("y", ctypes.c_long)]

        user32 = ctypes.windll.user32  # type: ignore[attr-defined]
        point = POINT()
        if not user32.GetCursorPos(ctypes.byref(point)):
            raise ctypes.WinError()  # type: ignore[attr-defined]
        return Point(int(point.x), int(point.y))


class QtCursorProvider:
    """Reads the cursor through Qt; requires a running ``QGuiApplication``."""

    def get_cursor_position(self) -> Point:
        from PySide6.QtGui import QCursor, QGuiApplication

        if QGuiApplication.instance() is None:
            raise OSError("No QGuiApplication available to query the cursor.")
        pos = QCursor.pos()
        return Point(pos.x(), pos.y())


def _com_call(pointer: ctypes.c_void_p, slot: int, restype, *args):
    """Invoke vtable entry ``slot`` of the COM object behind ``pointer``."""
    vtable = ctypes.cast(pointer, ctypes.POINTER(ctypes.POINTER(ctypes.c_void_p))).contents
    prototype = ctypes.WINFUNCTYPE(restype, ctypes.c_void_p, *(type(arg) for arg in args))  # type: ignore[attr-defined]
    return prototype(vtable[slot])(pointer, *args)


def _release(pointer: ctypes.c_void_p) -> None:
    if pointer:
        _com_call(pointer, _RELEASE, ctypes.c_ulong)


class Win32AudioActivity:
    """
    Reports playback on the default render endpoint.

    Reads ``IAudioMeterInformation::GetPeakValue`` of the default multimedia
    output device; any non-zero peak means sound is playing. COM failures
    surface as ``OSError``. A machine without an output device is silent.
    """

    def is_any_sound_playing(self) -> bool:
        return self.peak_value() > 0

    def peak_value(self) -> float:
        ole32 = ctypes.windll.ole32  # type: ignore[attr-defined]
        # S_FALSE or RPC_E_CHANGED_MODE when the Qt thread already joined an apartment.
        initialised = ole32.CoInitializeEx(None, _COINIT_APARTMENTTHREADED) >= 0

        enumerator = ctypes.c_void_p()
        device = ctypes.c_void_p()
        meter = ctypes.c_void_p()
        try:
            clsid = GUID.from_string(CLSID_MM_DEVICE_ENUMERATOR)
            iid = GUID.from_string(IID_IMM_DEVICE_ENUMERATOR)
            result = ole32.CoCreateInstance(
                ctypes.byref(clsid), None, _CLSCTX_ALL, ctypes.byref(iid), ctypes.byref(enumerator)
            )
            if result < 0:
                raise ctypes.WinError(result)  # type: ignore[attr-defined]

            result = _com_call(
                enumerator,
                _GET_DEFAULT_AUDIO_ENDPOINT,
                ctypes.c_long,
                ctypes.c_int(_E_RENDER),
                ctypes.c_int(_E_MULTIMEDIA),
                ctypes.pointer(device),
            )
            if result < 0:
                _LOGGER.debug("No default audio output device (HRESULT {:#010x}).", result & 0xFFFFFFFF)
                return 0.0

            meter_iid = GUID.from_string(IID_IAUDIO_METER_INFORMATION)
            result = _com_call(
                device,
                _ACTIVATE,
                ctypes.c_long,
                ctypes.pointer(meter_iid),
                ctypes.c_ulong(_CLSCTX_ALL),
                ctypes.c_void_p(None),
                ctypes.pointer(meter),
            )
            if result < 0:
                raise ctypes.WinError(result)  # type: ignore[attr-defined]

            peak = ctypes.c_float()
            result = _com_call(meter, _GET_PEAK_VALUE, ctypes.c_long, ctypes.pointer(peak))
            if result < 0:
                raise ctypes.WinError(result)  # type: ignore[attr-defined]
            return float(peak.value)
        finally:
            _release(meter)
            _release(device)
            _release(enumerator)
            if initialised:
                ole32.CoUninitialize()


class NullAudioActivity:
    """Audio activity for systems without a playback meter: always reports silence."""

    def is_any_sound_playing(self) -> bool:
        return False


def default_cursor_provider() -> CursorProvider:
    if sys.platform == "win32":
        return Win32CursorProvider()
    return QtCursorProvider()


def default_audio_provider() -> AudioActivityProvider:
    if sys.platform == "win32":
        return Win32AudioActivity()
    return NullAudioActivity()
