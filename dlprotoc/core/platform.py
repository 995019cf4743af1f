"""
Platform detection for dlprotoc.

This module maps the running host's operating system and CPU architecture to
the platform tag used in upstream protoc release file names
(e.g. ``protoc-31.0-linux-x86_64.zip``).

Detection never guesses: a host that has no matching tag raises
UnsupportedPlatformError instead of falling back to some default binary.

Usage:
    from dlprotoc.core.platform import detect_platform

    platform_tag = detect_platform()
    print(f"Platform: {platform_tag.tag}")
"""

import functools
import platform as _platform
from enum import Enum
from typing import Optional

from dlprotoc.core.exceptions import UnsupportedPlatformError


class Platform(Enum):
    """
    Supported (OS, architecture) pairs.

    The value of each member is the tag upstream uses in release file names.
    """

    LINUX_X86_64 = "linux-x86_64"
    LINUX_AARCH64 = "linux-aarch_64"
    OSX_X86_64 = "osx-x86_64"
    OSX_AARCH64 = "osx-aarch_64"
    WIN64 = "win64"

    @property
    def tag(self) -> str:
        """Upstream platform tag (e.g. 'linux-x86_64')."""
        return self.value

    @property
    def os(self) -> str:
        return _PLATFORM_PARTS[self][0]

    @property
    def arch(self) -> str:
        return _PLATFORM_PARTS[self][1]

    @property
    def is_windows(self) -> bool:
        return self.os == "windows"

    @property
    def member_path(self) -> str:
        """Path of the protoc executable inside the release archive."""
        return "bin/protoc.exe" if self.is_windows else "bin/protoc"

    @classmethod
    def from_tag(cls, tag: str) -> "Platform":
        """
        Look up a platform by its upstream tag.

        Raises:
            ValueError: If the tag is unknown
        """
        for member in cls:
            if member.value == tag:
                return member
        raise ValueError(
            f"Unknown platform tag: {tag}. "
            f"Supported: {', '.join(m.value for m in cls)}"
        )

    def __str__(self) -> str:
        return self.value


_PLATFORM_PARTS = {
    Platform.LINUX_X86_64: ("linux", "x86_64"),
    Platform.LINUX_AARCH64: ("linux", "aarch64"),
    Platform.OSX_X86_64: ("macos", "x86_64"),
    Platform.OSX_AARCH64: ("macos", "aarch64"),
    Platform.WIN64: ("windows", "x86_64"),
}

_PLATFORMS_BY_PARTS = {parts: member for member, parts in _PLATFORM_PARTS.items()}


def _normalize_os(system: str) -> Optional[str]:
    system = system.lower()
    if system == "linux":
        return "linux"
    elif system == "darwin":
        return "macos"
    elif system == "windows":
        return "windows"
    return None


def _normalize_arch(machine: str) -> Optional[str]:
    machine = machine.lower()
    if machine in ("x86_64", "amd64", "x64"):
        return "x86_64"
    elif machine in ("aarch64", "arm64"):
        return "aarch64"
    return None


def identify(system: Optional[str] = None, machine: Optional[str] = None) -> Platform:
    """
    Identify the protoc platform for a host.

    Args:
        system: OS name as reported by platform.system(). Detected if None.
        machine: CPU name as reported by platform.machine(). Detected if None.

    Returns:
        The matching Platform

    Raises:
        UnsupportedPlatformError: If no protoc platform matches the host

    Example:
        >>> identify("Linux", "x86_64")
        <Platform.LINUX_X86_64: 'linux-x86_64'>
    """
    system = _platform.system() if system is None else system
    machine = _platform.machine() if machine is None else machine

    os_name = _normalize_os(system)
    arch = _normalize_arch(machine)
    platform_tag = _PLATFORMS_BY_PARTS.get((os_name, arch))
    if platform_tag is None:
        raise UnsupportedPlatformError(system, machine)
    return platform_tag


@functools.lru_cache(maxsize=1)
def detect_platform() -> Platform:
    """
    Detect the platform of the running host.

    This function is cached - it only runs detection once per process.

    Raises:
        UnsupportedPlatformError: If the host is not supported
    """
    return identify()


def clear_platform_cache():
    """
    Clear the platform detection cache.

    This forces the next call to detect_platform() to re-detect.
    Useful for testing.
    """
    detect_platform.cache_clear()


__all__ = [
    "Platform",
    "identify",
    "detect_platform",
    "clear_platform_cache",
]
