"""
project_eye package.

Holds process-wide helpers shared by the Project Eye entry point and the
``eyecare`` service package.
"""

__all__ = [
    "logger",
]
