"""Platform abstraction layer."""

from .detection import Platform, detect_platform, macos_version
from .process import CommandRunner, ProcessError, SubprocessRunner, run, run_live

__all__ = [
    # detection
    "Platform",
    "detect_platform",
    "macos_version",
    # process
    "CommandRunner",
    "ProcessError",
    "SubprocessRunner",
    "run",
    "run_live",
]
