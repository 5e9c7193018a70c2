"""
Core functionality for clangd-install.

This package contains the foundational modules the installer flows depend on:
exceptions, platform detection, downloads and file system helpers.
"""

from .download import (
    CancellationToken,
    download_file,
)

from .platform import (
    PlatformInfo,
    detect_platform,
    clear_platform_cache,
)

from .exceptions import (
    ClangdInstallError,
    ConfigError,
    ReleaseError,
    ReleaseFetchError,
    PlatformIncompatibleError,
    GlibcTooOldError,
    VersionError,
    UnparseableVersionError,
    IncomparableVersionError,
    VersionProbeError,
    InstallError,
    AlreadyInstalledError,
    BinaryNotFoundError,
    DownloadError,
    DownloadCancelledError,
    FilesystemError,
    ArchiveExtractionError,
    InsecureArchiveError,
)

__all__ = [
    "CancellationToken",
    "download_file",
    "PlatformInfo",
    "detect_platform",
    "clear_platform_cache",
    "ClangdInstallError",
    "ConfigError",
    "ReleaseError",
    "ReleaseFetchError",
    "PlatformIncompatibleError",
    "GlibcTooOldError",
    "VersionError",
    "UnparseableVersionError",
    "IncomparableVersionError",
    "VersionProbeError",
    "InstallError",
    "AlreadyInstalledError",
    "BinaryNotFoundError",
    "DownloadError",
    "DownloadCancelledError",
    "FilesystemError",
    "ArchiveExtractionError",
    "InsecureArchiveError",
]
