"""
Host editor interface for the installer flows.

The install/update flows are shared across editors; each editor plugin
implements UI to provide prompts, progress indication and the configured
clangd location.
"""

from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, TypeVar, Union

from clangd_install.core.download import CancellationToken, ProgressCallback

T = TypeVar("T")


class ReuseDecision(Enum):
    """Answer to "reuse the existing installation of this release?"."""

    REUSE = "reuse"
    REPLACE = "replace"
    UNDECIDED = "undecided"  # Prompt dismissed, do neither


class UI(ABC):
    """
    Abstracts the editor UI and configuration.

    Attributes:
        storage_path: Root where downloaded/installed files are placed
        clangd_path: Configured clangd location, absolute or a name to look
            up on PATH. install_latest() replaces it with the installed binary.
    """

    storage_path: Path
    clangd_path: str

    @abstractmethod
    def info(self, message: str) -> None:
        """Show a generic message to the user."""
        pass

    @abstractmethod
    def error(self, message: str) -> None:
        """Show a generic error message to the user."""
        pass

    @abstractmethod
    def show_help(self, message: str, url: str) -> None:
        """Show a message and direct the user to a website."""
        pass

    @abstractmethod
    def prompt_reload(self, message: str) -> None:
        """Ask the user to reload the plugin."""
        pass

    @abstractmethod
    def prompt_update(self, old_version: str, new_version: str) -> None:
        """Ask the user to run install_latest() to upgrade clangd."""
        pass

    @abstractmethod
    def prompt_install(self, version: str) -> None:
        """Ask the user to run install_latest() to install missing clangd."""
        pass

    @abstractmethod
    def should_reuse(self, release_name: str) -> ReuseDecision:
        """Ask whether to reuse rather than overwrite an existing installation."""
        pass

    @abstractmethod
    def slow(self, title: str, work: Callable[[], T]) -> T:
        """
        Run `work`, which may take a while, while indicating we're busy.

        Returns:
            Whatever `work` returns
        """
        pass

    @abstractmethod
    def progress(
        self,
        title: str,
        cancel: Optional[CancellationToken],
        work: Callable[[ProgressCallback], T],
    ) -> T:
        """
        Run `work`, which reports fractional progress through its argument.

        If the user cancels, the implementation calls `cancel.cancel()`;
        `work` then stops and raises DownloadCancelledError.

        Returns:
            Whatever `work` returns
        """
        pass

    def localize(self, message: str, *args: Union[str, int, float, bool]) -> str:
        """
        Get localization string.

        `message` is an English template where `{0}`, `{1}`... are replaced
        by the item at that index in `args`.

        Example:
            >>> ui.localize("Hello {0}!", "World")
            'Hello World!'
        """
        return message.format(*args)


__all__ = [
    "CancellationToken",
    "ReuseDecision",
    "UI",
]
