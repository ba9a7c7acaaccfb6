"""Host platform detection and runner label mapping.

Matrix cells carry a runner label (``ubuntu``, ``macos``, ``windows``) from
the configuration. When cells execute on the local host, these helpers tell
the executor whether the label matches the machine it is running on, and
what the host's own target triple is.
"""

from __future__ import annotations

import os as _os
import platform as _platform
import sys as _sys
from enum import Enum, auto
from functools import lru_cache

__all__ = [
    "Arch",
    "Platform",
    "detect_arch",
    "detect_platform",
    "host_target_triple",
    "platform_for_label",
]


class Platform(Enum):
    """Operating system platform."""

    LINUX = auto()
    MACOS = auto()
    WINDOWS = auto()
    UNKNOWN = auto()

    def __str__(self) -> str:
        return self.name.lower()


class Arch(Enum):
    """CPU architecture."""

    X64 = auto()
    ARM64 = auto()
    UNKNOWN = auto()

    def __str__(self) -> str:
        return self.name.lower()


_LABELS = {
    "ubuntu": Platform.LINUX,
    "linux": Platform.LINUX,
    "macos": Platform.MACOS,
    "darwin": Platform.MACOS,
    "windows": Platform.WINDOWS,
}


def platform_for_label(label: str) -> Platform:
    """Map a runner label (``ubuntu-latest``, ``macOS``...) to a Platform."""
    key = label.lower().split("-", 1)[0]
    return _LABELS.get(key, Platform.UNKNOWN)


@lru_cache(maxsize=1)
def detect_platform() -> Platform:
    """Detect the current operating system (cached)."""
    # NOTE: avoid platform.system() on Windows, it may query WMI.
    system = _sys.platform.lower()
    if system.startswith("linux"):
        return Platform.LINUX
    if system.startswith("darwin"):
        return Platform.MACOS
    if system.startswith(("win32", "cygwin", "msys")):
        return Platform.WINDOWS
    return Platform.UNKNOWN


@lru_cache(maxsize=1)
def detect_arch() -> Arch:
    """Detect the current CPU architecture (cached)."""
    if detect_platform() == Platform.WINDOWS:
        env_arch = (
            _os.environ.get("PROCESSOR_ARCHITEW6432")
            or _os.environ.get("PROCESSOR_ARCHITECTURE")
            or ""
        )
        machine = env_arch.lower()
    else:
        machine = _platform.machine().lower()
    if machine in ("x86_64", "amd64"):
        return Arch.X64
    if machine in ("aarch64", "arm64"):
        return Arch.ARM64
    return Arch.UNKNOWN


def host_target_triple() -> str | None:
    """Rust target triple of the host, or None if unrecognized."""
    arch = {Arch.X64: "x86_64", Arch.ARM64: "aarch64"}.get(detect_arch())
    if arch is None:
        return None
    match detect_platform():
        case Platform.LINUX:
            return f"{arch}-unknown-linux-gnu"
        case Platform.MACOS:
            return f"{arch}-apple-darwin"
        case Platform.WINDOWS:
            return f"{arch}-pc-windows-msvc"
        case _:
            return None
