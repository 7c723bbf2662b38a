"""
Presence-aware rest reminder service for Project Eye.
"""

from .main_service import LEAVE_MESSAGE, MainService, PresenceState  # noqa: F401
from .settings import EyeSettings, EyeSettingsManager  # noqa: F401
