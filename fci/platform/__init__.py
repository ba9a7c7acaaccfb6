"""Platform layer: subprocesses, filesystem and host detection."""

from .detection import Arch, Platform, detect_platform, host_target_triple, platform_for_label
from .process import ProcessError, run

__all__ = [
    "Arch",
    "Platform",
    "ProcessError",
    "detect_platform",
    "host_target_triple",
    "platform_for_label",
    "run",
]
