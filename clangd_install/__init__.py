"""
clangd-install: locate, install and upgrade clangd for editor plugins.

Editor plugins implement `UI` and drive the flows through `Installer`:

    from clangd_install import Installer

    installer = Installer(my_editor_ui)
    status = installer.prepare(check_update=True)
"""

from clangd_install.config import InstallerConfig, load_config
from clangd_install.core import CancellationToken, PlatformInfo, detect_platform
from clangd_install.installer import (
    Asset,
    InstallManager,
    InstallStatus,
    Installer,
    Release,
    ReleaseResolver,
    ReuseDecision,
    UI,
    UpgradeInfo,
    VersionComparator,
    VersionRange,
)

__version__ = "0.1.0"

__all__ = [
    "InstallerConfig",
    "load_config",
    "CancellationToken",
    "PlatformInfo",
    "detect_platform",
    "Asset",
    "InstallManager",
    "InstallStatus",
    "Installer",
    "Release",
    "ReleaseResolver",
    "ReuseDecision",
    "UI",
    "UpgradeInfo",
    "VersionComparator",
    "VersionRange",
]
