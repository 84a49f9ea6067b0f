"""Host platform detection.

Only macOS can build, sign and notarize the app; the other values exist
so the verify step can report what it found.
"""

from __future__ import annotations

import platform as _platform
import sys as _sys
from enum import Enum, auto
from functools import lru_cache

__all__ = ["Platform", "detect_platform", "macos_version"]


class Platform(Enum):
    """Operating system platform."""

    LINUX = auto()
    MACOS = auto()
    WINDOWS = auto()
    UNKNOWN = auto()

    def __str__(self) -> str:
        return self.name.lower()

    @property
    def can_deliver(self) -> bool:
        """Whether the Apple toolchain can exist on this platform."""
        return self == Platform.MACOS


@lru_cache(maxsize=1)
def detect_platform() -> Platform:
    """Detect the current platform from ``sys.platform``."""
    if _sys.platform == "darwin":
        return Platform.MACOS
    if _sys.platform.startswith("linux"):
        return Platform.LINUX
    if _sys.platform in ("win32", "cygwin"):
        return Platform.WINDOWS
    return Platform.UNKNOWN


def macos_version() -> str | None:
    """Return the macOS product version (e.g. ``"14.5"``), or None elsewhere."""
    version, _, _ = _platform.mac_ver()
    return version or None
