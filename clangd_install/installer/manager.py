"""
Download and install releases, and manage the files on disk.

File layout:
    <storage_path>/
        install/
            <tag>/
                clangd_<version>/            (outer directory from zip file)
                    bin/clangd
                    lib/clang/...
        download/
            clangd-<platform>-<version>.zip  (deleted after extraction)
"""

import logging
from pathlib import Path
from typing import Optional, Tuple

from clangd_install.core.download import CancellationToken, ProgressCallback, download_file
from clangd_install.core.exceptions import (
    AlreadyInstalledError,
    ArchiveExtractionError,
    BinaryNotFoundError,
    FilesystemError,
)
from clangd_install.core.filesystem import (
    extract_zip,
    find_archive_member,
    list_files,
    make_executable,
    safe_rmtree,
)
from clangd_install.core.platform import PlatformInfo, detect_platform
from .release import Asset, Release
from .ui import UI, ReuseDecision

logger = logging.getLogger(__name__)


class InstallManager:
    """
    Installs release archives under the host's storage directory.

    Each release tag gets its own directory under install/, so several
    versions can coexist. An existing directory for the tag being installed
    is reused or replaced depending on the user's answer.

    Example:
        >>> manager = InstallManager(ui)
        >>> clangd = manager.install(release, asset, CancellationToken())
        >>> print(clangd)
        /home/user/.config/editor/clangd/install/17.0.3/clangd_17.0.3/bin/clangd
    """

    def __init__(
        self,
        ui: UI,
        tool_name: str = "clangd",
        platform: Optional[PlatformInfo] = None,
        chunk_size: int = 8192,
    ):
        """
        Initialize install manager.

        Args:
            ui: Host UI; provides storage_path, prompts and progress
            tool_name: Name of the executable to locate after extraction
            platform: Platform information (auto-detected if None)
            chunk_size: Download chunk size in bytes
        """
        self.ui = ui
        self.tool_name = tool_name
        self.platform = platform or detect_platform()
        self.chunk_size = chunk_size

    @property
    def executable_name(self) -> str:
        """Binary file name on this OS, e.g. 'clangd.exe'."""
        return self.platform.executable_name(self.tool_name)

    def install(self, release: Release, asset: Asset, cancel: CancellationToken) -> Path:
        """
        Download `asset` from `release` and extract it to the storage location.

        `cancel` is signalled if the user cancels the download or dismisses
        the reuse prompt.

        Returns:
            Absolute path to the installed executable

        Raises:
            AlreadyInstalledError: If the release is installed and the user
                didn't choose to reuse or replace it
            BinaryNotFoundError: If the executable isn't in the archive or
                existing installation
            DownloadError: If the download fails
            DownloadCancelledError: If the user cancelled the download
            ArchiveExtractionError: If extraction fails
        """
        install_dir, download_dir = self.create_dirs()
        extract_root = install_dir / release.tag_name

        entries = list_files(extract_root)
        if entries:
            decision = self.ui.should_reuse(release.name)
            logger.debug(f"Existing install in {extract_root}, decision: {decision}")
            if decision is ReuseDecision.UNDECIDED:
                # User dismissed prompt, bail out.
                cancel.cancel()
                raise AlreadyInstalledError(release.name)
            if decision is ReuseDecision.REUSE:
                for entry in entries:
                    if entry.name == self.executable_name:
                        return entry
                raise BinaryNotFoundError(self.executable_name, str(extract_root))
            logger.info(f"Removing previous install {extract_root}")
            safe_rmtree(extract_root, require_prefix=install_dir)

        zip_file = download_dir / asset.name
        self._download(asset.browser_download_url, zip_file, cancel)
        try:
            return self._extract(zip_file, extract_root, asset)
        finally:
            zip_file.unlink(missing_ok=True)

    def create_dirs(self) -> Tuple[Path, Path]:
        """
        Create the 'install' and 'download' directories.

        Returns:
            Absolute (install, download) paths
        """
        root = Path(self.ui.storage_path).absolute()
        install = root / "install"
        download = root / "download"
        for directory in (install, download):
            directory.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Install directories ready under {root}")
        return install, download

    def _download(self, url: str, dest: Path, cancel: CancellationToken) -> None:
        """Download `url` to `dest`, showing a cancellable progress dialog."""

        def work(progress: ProgressCallback) -> Path:
            return download_file(
                url,
                dest,
                cancel=cancel,
                progress_callback=progress,
                chunk_size=self.chunk_size,
            )

        self.ui.progress(self.ui.localize("Downloading {0}", dest.name), cancel, work)

    def _extract(self, zip_file: Path, extract_root: Path, asset: Asset) -> Path:
        member = find_archive_member(zip_file, self.executable_name)
        if member is None:
            raise BinaryNotFoundError(self.executable_name, str(zip_file))

        try:
            self.ui.slow(
                self.ui.localize("Extracting {0}", asset.name),
                lambda: extract_zip(zip_file, extract_root),
            )
        except ArchiveExtractionError:
            # Don't leave a half-populated tag directory behind.
            try:
                safe_rmtree(extract_root, require_prefix=extract_root.parent)
            except FilesystemError as cleanup_error:
                logger.error(f"Failed to clean up {extract_root}: {cleanup_error}")
            raise

        executable = (extract_root / member).absolute()
        make_executable(executable)
        logger.info(f"Installed {self.tool_name} to {executable}")
        return executable


__all__ = ["InstallManager"]
