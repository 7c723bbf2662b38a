"""
Exception types raised by the eye-care service.
"""

from __future__ import annotations


class EyeCareError(Exception):
    """Base class for service errors."""


class InvalidIntervalError(EyeCareError, ValueError):
    """Raised when a timer interval or reminder period is not positive."""


class ServiceStateError(EyeCareError, RuntimeError):
    """Raised when an operation is invoked before the service is initialised."""
