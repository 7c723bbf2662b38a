"""
In-process key/value cache for transient service state.
"""

from __future__ import annotations

from typing import Dict, Optional


class MemoryCache:
    """Dictionary-backed cache; contents are lost when the process exits."""

    def __init__(self) -> None:
        self._values: Dict[str, Optional[str]] = {}

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: Optional[str]) -> None:
        self._values[key] = value
