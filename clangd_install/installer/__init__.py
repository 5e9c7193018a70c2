"""
Install/update flows for clangd.

This package decides whether the configured binary is usable, finds the
release asset for this machine, compares versions and manages the install tree.
"""

from .ui import ReuseDecision, UI
from .release import Asset, Release, ReleaseResolver, MIN_GLIBC
from .version import SemVer, UpgradeInfo, VersionComparator, VersionRange, range_greater
from .manager import InstallManager
from .workflows import InstallStatus, Installer

__all__ = [
    "ReuseDecision",
    "UI",
    "Asset",
    "Release",
    "ReleaseResolver",
    "MIN_GLIBC",
    "SemVer",
    "UpgradeInfo",
    "VersionComparator",
    "VersionRange",
    "range_greater",
    "InstallManager",
    "InstallStatus",
    "Installer",
]
