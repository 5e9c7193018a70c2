"""
Install clangd binary releases from GitHub on behalf of an editor plugin.

We don't bundle them with the plugin because they're big; we'd have to
include all OS versions, and download them again with every plugin update.

There are several entry points:
- installation explicitly requested (Installer.install_latest)
- checking for updates, manual or automatic (Installer.check_updates)
- no usable clangd found, try to recover (via Installer.prepare)
These have different flows, but the same underlying mechanisms.
"""

import logging
import os
import shutil
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from clangd_install.config.parser import InstallerConfig
from clangd_install.core.download import CancellationToken
from clangd_install.core.platform import PlatformInfo, detect_platform
from .manager import InstallManager
from .release import ReleaseResolver
from .ui import UI
from .version import VersionComparator

logger = logging.getLogger(__name__)


@dataclass
class InstallStatus:
    """Result of the startup check."""

    clangd_path: Optional[str]
    """Absolute path to clangd, or None if no valid clangd binary is configured"""

    background: Future
    """Background work that was started (update check or recovery), exposed for testing"""


class Installer:
    """
    Entry points used by editor plugins.

    Example:
        >>> installer = Installer(ui)
        >>> status = installer.prepare(check_update=True)
        >>> if status.clangd_path is None:
        ...     return  # recovery prompt is on its way
        >>> start_language_server(status.clangd_path)
    """

    def __init__(
        self,
        ui: UI,
        config: Optional[InstallerConfig] = None,
        platform: Optional[PlatformInfo] = None,
        resolver: Optional[ReleaseResolver] = None,
        comparator: Optional[VersionComparator] = None,
        manager: Optional[InstallManager] = None,
    ):
        """
        Initialize installer.

        Args:
            ui: Host UI implementation
            config: Installer settings (defaults if None)
            platform: Platform information (auto-detected if None)
            resolver: Release resolver (built from config if None)
            comparator: Version comparator (built from config if None)
            manager: Install manager (built from config if None)
        """
        self.ui = ui
        self.config = config or InstallerConfig()
        self.platform = platform or detect_platform()
        self.comparator = comparator or VersionComparator(
            tool_name=self.config.tool_name,
            ldd_command=self.config.ldd_command,
            incomparable_vendors=self.config.incomparable_vendors,
        )
        self.resolver = resolver or ReleaseResolver(
            release_url=self.config.release_url,
            timeout=self.config.release_timeout,
            tool_name=self.config.tool_name,
            platform=self.platform,
            comparator=self.comparator,
        )
        self.manager = manager or InstallManager(
            ui,
            tool_name=self.config.tool_name,
            platform=self.platform,
            chunk_size=self.config.download_chunk_size,
        )

    @property
    def tool_name(self) -> str:
        return self.config.tool_name

    def prepare(self, check_update: bool) -> InstallStatus:
        """
        Main startup workflow: check whether the configured binary is usable.

        If not, offer to install one. If so, check for updates (when enabled).
        Returns without waiting for any network access; the follow-up work
        runs in the background.
        """
        clangd_path = self.locate(self.ui.clangd_path)
        if clangd_path is None:
            # Couldn't find clangd - start recovery flow and stop plugin loading.
            background = _run_in_background(self.recover)
        elif check_update:
            # Allow plugin to load, asynchronously check for updates.
            background = _run_in_background(lambda: self.check_updates(requested=False))
        else:
            background = Future()
            background.set_result(None)
        return InstallStatus(clangd_path=clangd_path, background=background)

    def locate(self, configured: str) -> Optional[str]:
        """
        Resolve the configured binary: probe absolute paths, search PATH for names.

        Returns:
            Usable path, or None if not found
        """
        if not configured:
            return None
        if os.path.isabs(configured):
            try:
                found = Path(configured).exists()
            except OSError as e:
                logger.error(f"Can't access {configured}: {e}")
                return None
            if not found:
                logger.error(f"Configured {self.tool_name} not found: {configured}")
                return None
            return configured
        return shutil.which(configured)

    def install_latest(self) -> Optional[Path]:
        """
        The user has explicitly asked to install the latest release.

        Do so without further prompting, or report an error.

        Returns:
            Path to the installed binary, or None on failure or cancellation
        """
        cancel = CancellationToken()
        try:
            release = self.resolver.latest_release()
            asset = self.resolver.choose_asset(release)
            installed = self.manager.install(release, asset, cancel)
        except Exception as e:
            if cancel.cancelled:
                logger.info(f"Install of {self.tool_name} cancelled: {e}")
                return None
            logger.error(f"Failed to install {self.tool_name}: {e}")
            message = self.ui.localize(
                "Failed to install clangd language server: {0}\n"
                "You may want to install it manually.",
                str(e),
            )
            self.ui.show_help(message, self.config.install_help_url)
            return None

        self.ui.clangd_path = str(installed)
        self.ui.prompt_reload(
            self.ui.localize("clangd {0} is now installed.", release.name)
        )
        return installed

    def check_updates(self, requested: bool) -> None:
        """
        We have an apparently-valid binary (ui.clangd_path), check for updates.

        Args:
            requested: Whether the user asked for this check. Unrequested
                checks stay quiet unless an upgrade is available.
        """
        # Gather all the version information to see if there's an upgrade.
        try:
            release = self.resolver.latest_release()
            self.resolver.choose_asset(release)  # Ensure a binary for this platform.
            upgrade = self.comparator.upgrade(release, self.ui.clangd_path)
        except Exception as e:
            logger.error(f"Failed to check for {self.tool_name} update: {e}")
            # We're not sure whether there's an upgrade: stay quiet unless asked.
            if requested:
                self.ui.error(
                    self.ui.localize("Failed to check for clangd update: {0}", str(e))
                )
            return

        logger.info(
            f"Checking for {self.tool_name} update: available={upgrade.new} "
            f"installed={upgrade.old}"
        )
        # Bail out if the new version is better or comparable.
        if not upgrade.upgrade_available:
            if requested:
                self.ui.info(
                    self.ui.localize(
                        "clangd is up-to-date (you have {0}, latest is {1})",
                        upgrade.old,
                        upgrade.new,
                    )
                )
            return
        self.ui.prompt_update(upgrade.old, upgrade.new)

    def recover(self) -> None:
        """
        The binary isn't available: inform the user, and offer to install if possible.

        Unlike install_latest(), we've had no explicit user request or consent yet.
        """
        try:
            release = self.resolver.latest_release()
            self.resolver.choose_asset(release)  # Ensure a binary for this platform.
        except Exception as e:
            logger.error(f"Auto-install failed: {e}")
            self.ui.show_help(
                self.ui.localize("The clangd language server is not installed."),
                self.config.install_help_url,
            )
            return
        self.ui.prompt_install(release.name)


def _run_in_background(work: Callable[[], None]) -> Future:
    """Start `work` on a worker thread and return its future without waiting."""
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="clangd-install")
    future = executor.submit(work)
    executor.shutdown(wait=False)
    return future


__all__ = [
    "InstallStatus",
    "Installer",
]
