"""Host platform detection, used to name binary release archives."""

from __future__ import annotations

import platform as _platform
from enum import Enum, auto
from functools import lru_cache

__all__ = ["Platform", "detect_platform"]


class Platform(Enum):
    """Operating system platform."""

    LINUX = auto()
    MACOS = auto()
    WINDOWS = auto()
    UNKNOWN = auto()

    def __str__(self) -> str:
        return self.name.lower()


@lru_cache(maxsize=1)
def detect_platform() -> Platform:
    system = _platform.system().lower()
    if system == "linux":
        return Platform.LINUX
    if system == "darwin":
        return Platform.MACOS
    if system == "windows":
        return Platform.WINDOWS
    return Platform.UNKNOWN
