"""
Platform detection for clangd-install.

This module detects the current operating system and CPU architecture and
maps them onto the keywords used to name clangd release assets.

Usage:
    from clangd_install.core.platform import detect_platform

    info = detect_platform()
    print(info.platform_string())   # e.g. 'linux-x64'
    print(info.release_variant())   # e.g. 'linux'
"""

import functools
import platform
from dataclasses import dataclass
from typing import Optional

# OS name -> keyword used in release asset names (clangd-<keyword>-<version>.zip)
_RELEASE_VARIANTS = {
    "windows": "windows",
    "linux": "linux",
    "macos": "mac",
}


@dataclass(frozen=True)
class PlatformInfo:
    """
    Operating system and architecture of the host.

    Attributes:
        os: Operating system ('windows', 'linux', 'macos', or the raw system name)
        arch: CPU architecture ('x64', 'arm64', 'x86', 'arm', or the raw machine name)
    """

    os: str
    arch: str

    def platform_string(self) -> str:
        """
        Get canonical platform string (e.g., 'linux-x64', 'macos-arm64').

        Example:
            >>> PlatformInfo('linux', 'x64').platform_string()
            'linux-x64'
        """
        return f"{self.os}-{self.arch}"

    def release_variant(self) -> Optional[str]:
        """
        Get the keyword release assets use for this OS.

        Returns:
            'windows', 'linux' or 'mac', or None if releases don't cover this OS

        Example:
            >>> PlatformInfo('macos', 'arm64').release_variant()
            'mac'
        """
        return _RELEASE_VARIANTS.get(self.os)

    def executable_name(self, tool: str) -> str:
        """File name of `tool`'s executable on this OS."""
        return f"{tool}.exe" if self.os == "windows" else tool

    def __str__(self) -> str:
        return f"{self.os}/{self.arch}"


@functools.lru_cache(maxsize=1)
def detect_platform() -> PlatformInfo:
    """
    Detect current platform information.

    This function is cached - it only runs detection once per process.

    Returns:
        PlatformInfo instance with detected platform information
    """
    return PlatformInfo(os=_detect_os(), arch=_detect_architecture())


def _detect_os() -> str:
    """
    Detect operating system.

    Returns:
        Normalized OS name: 'windows', 'linux', 'macos', or the lowercased
        system name for anything else
    """
    system = platform.system().lower()

    if system == "windows":
        return "windows"
    elif system == "linux":
        return "linux"
    elif system == "darwin":
        return "macos"
    else:
        return system or "unknown"


def _detect_architecture() -> str:
    """
    Detect CPU architecture.

    Returns:
        Normalized architecture: 'x64', 'arm64', 'x86', 'arm'
    """
    machine = platform.machine().lower()

    # Normalize architecture names
    if machine in ("x86_64", "amd64", "x64"):
        return "x64"
    elif machine in ("aarch64", "arm64"):
        return "arm64"
    elif machine in ("i386", "i686", "x86"):
        return "x86"
    elif machine.startswith("arm"):
        return "arm"
    else:
        # Return original for unknown architectures
        return machine


def clear_platform_cache():
    """
    Clear the platform detection cache.

    This forces the next call to detect_platform() to re-detect.
    Useful for testing.
    """
    detect_platform.cache_clear()


__all__ = [
    "PlatformInfo",
    "detect_platform",
    "clear_platform_cache",
]
