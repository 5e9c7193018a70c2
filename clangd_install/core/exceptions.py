"""
Centralized exception hierarchy for clangd-install.

This module defines all custom exceptions raised by the install/update
engine so that hosts can distinguish failure classes (network, platform,
version, install) without string matching.
"""

from typing import Optional


# ============================================================================
# Base Exceptions
# ============================================================================


class ClangdInstallError(Exception):
    """Base exception for all clangd-install errors."""

    pass


class ConfigError(ClangdInstallError):
    """Configuration parsing or validation error."""

    pass


# ============================================================================
# Release Exceptions
# ============================================================================


class ReleaseError(ClangdInstallError):
    """Base exception for release lookup errors."""

    pass


class ReleaseFetchError(ReleaseError):
    """Release metadata could not be fetched or parsed."""

    pass


class PlatformIncompatibleError(ReleaseError):
    """No release asset can run on this machine."""

    pass


class GlibcTooOldError(PlatformIncompatibleError):
    """The system glibc is older than the release requires."""

    def __init__(self, detected: str, minimum: str):
        self.detected = detected
        self.minimum = minimum
        super().__init__(
            "The clangd release is not compatible with your system "
            f"(glibc {detected} < {minimum}). "
            "Try to install it using your package manager instead."
        )


# ============================================================================
# Version Exceptions
# ============================================================================


class VersionError(ClangdInstallError):
    """Base exception for version detection and comparison errors."""

    pass


class UnparseableVersionError(VersionError):
    """A version string or `--version` output doesn't have the expected format."""

    pass


class IncomparableVersionError(VersionError):
    """Installed binary is a vendor build whose versions don't track upstream."""

    def __init__(self, vendor: str, output: str):
        self.vendor = vendor
        self.output = output
        super().__init__(f"Cannot compare vendor's clangd version: {output}")


class VersionProbeError(VersionError):
    """A version probe command could not be run."""

    pass


# ============================================================================
# Install Exceptions
# ============================================================================


class InstallError(ClangdInstallError):
    """Base exception for download and install errors."""

    pass


class AlreadyInstalledError(InstallError):
    """Release is already installed and the user didn't choose to reuse or replace it."""

    def __init__(self, release_name: str):
        self.release_name = release_name
        super().__init__(f"clangd {release_name} already installed!")


class BinaryNotFoundError(InstallError):
    """Expected executable is missing from an archive or install directory."""

    def __init__(self, filename: str, location: str):
        self.filename = filename
        self.location = location
        super().__init__(f"Didn't find {filename} in {location}")


class DownloadError(InstallError):
    """Download failed."""

    pass


class DownloadCancelledError(InstallError):
    """Download was cancelled by the user."""

    def __init__(self, url: str, destination: Optional[str] = None):
        self.url = url
        self.destination = destination
        super().__init__(f"Download of {url} was cancelled")


class FilesystemError(InstallError):
    """A file system operation on the install tree failed."""

    pass


class ArchiveExtractionError(FilesystemError):
    """Failed to extract an archive."""

    pass


class InsecureArchiveError(ArchiveExtractionError):
    """Archive contains insecure paths (directory traversal attempt)."""

    pass
