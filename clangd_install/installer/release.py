"""
Bits for talking to GitHub's release API.

Fetches the latest clangd release descriptor and selects the asset that can
run on this machine.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional

import requests
from requests.exceptions import RequestException, Timeout

from clangd_install.config.parser import DEFAULT_RELEASE_URL
from clangd_install.core.exceptions import (
    GlibcTooOldError,
    PlatformIncompatibleError,
    ReleaseFetchError,
)
from clangd_install.core.platform import PlatformInfo, detect_platform
from .version import VersionComparator, VersionRange

logger = logging.getLogger(__name__)

# Hardcoding this here is sad, but we'd like to offer a nice error message
# without making the user download the package first.
MIN_GLIBC = "2.18"


@dataclass(frozen=True)
class Asset:
    """One downloadable file of a release."""

    name: str
    browser_download_url: str


@dataclass(frozen=True)
class Release:
    """A published release: display name, tag and its assets."""

    name: str
    tag_name: str
    assets: List[Asset]

    @classmethod
    def from_json(cls, data: Any) -> "Release":
        """
        Build a release from the GitHub API's JSON shape.

        Raises:
            ReleaseFetchError: If required fields are missing or mistyped
        """
        if not isinstance(data, Mapping):
            raise ReleaseFetchError("Release metadata is not a JSON object")

        name = data.get("name")
        tag_name = data.get("tag_name")
        raw_assets = data.get("assets")
        if not isinstance(tag_name, str):
            raise ReleaseFetchError("Release metadata has no tag_name")
        if name is None:
            name = tag_name
        if not isinstance(name, str):
            raise ReleaseFetchError("Release metadata has an invalid name")
        if not isinstance(raw_assets, list):
            raise ReleaseFetchError("Release metadata has no assets list")

        assets = []
        for item in raw_assets:
            if not isinstance(item, Mapping):
                raise ReleaseFetchError("Release asset is not a JSON object")
            asset_name = item.get("name")
            url = item.get("browser_download_url")
            if not isinstance(asset_name, str) or not isinstance(url, str):
                raise ReleaseFetchError(f"Release asset is incomplete: {item}")
            assets.append(Asset(name=asset_name, browser_download_url=url))

        return cls(name=name, tag_name=tag_name, assets=assets)


class ReleaseResolver:
    """
    Finds the latest release and the asset to install on this machine.

    Example:
        >>> resolver = ReleaseResolver()
        >>> release = resolver.latest_release()
        >>> asset = resolver.choose_asset(release)
        >>> print(asset.browser_download_url)
    """

    def __init__(
        self,
        release_url: str = DEFAULT_RELEASE_URL,
        timeout: float = 5.0,
        tool_name: str = "clangd",
        platform: Optional[PlatformInfo] = None,
        comparator: Optional[VersionComparator] = None,
        min_glibc: str = MIN_GLIBC,
    ):
        """
        Initialize release resolver.

        Args:
            release_url: Endpoint returning the latest release as JSON
            timeout: Seconds to wait for the release endpoint
            tool_name: Asset names contain "<tool_name>-<platform keyword>"
            platform: Platform information (auto-detected if None)
            comparator: Used for the glibc check on Linux
            min_glibc: Oldest glibc the released binaries run on
        """
        self.release_url = release_url
        self.timeout = timeout
        self.tool_name = tool_name
        self.platform = platform or detect_platform()
        self.comparator = comparator or VersionComparator(tool_name=tool_name)
        self.min_glibc = VersionRange.parse(min_glibc)

    def latest_release(self) -> Release:
        """
        Fetch the metadata for the latest stable release.

        Raises:
            ReleaseFetchError: On timeout, transport error, non-success
                status or malformed body
        """
        logger.debug(f"Fetching release metadata from {self.release_url}")
        try:
            response = requests.get(self.release_url, timeout=self.timeout)
        except Timeout as e:
            raise ReleaseFetchError(
                f"Can't fetch release: timed out after {self.timeout}s"
            ) from e
        except RequestException as e:
            raise ReleaseFetchError(f"Can't fetch release: {e}") from e

        if not response.ok:
            logger.error(f"{response.url} {response.status_code} {response.reason}")
            raise ReleaseFetchError(f"Can't fetch release: {response.reason}")

        try:
            data = response.json()
        except ValueError as e:
            raise ReleaseFetchError(f"Release metadata is not valid JSON: {e}") from e

        return Release.from_json(data)

    def choose_asset(self, release: Release) -> Asset:
        """
        Determine which release asset should be installed for this machine.

        Raises:
            GlibcTooOldError: On Linux, if glibc is confidently too old
            PlatformIncompatibleError: If no asset matches this OS/arch
        """
        variant = self.platform.release_variant()
        if variant == "linux":
            old_glibc = self.comparator.old_glibc(self.min_glibc)
            if old_glibc:
                raise GlibcTooOldError(old_glibc.raw, self.min_glibc.raw)

        arch = self.platform.arch
        # 32-bit editors are still common on 64-bit windows, so don't reject that.
        # The Mac distribution contains a fat binary working on both x64 and arm64.
        if variant and (
            arch == "x64" or variant == "windows" or (arch == "arm64" and variant == "mac")
        ):
            substr = f"{self.tool_name}-{variant}"
            for asset in release.assets:
                if substr in asset.name:
                    logger.info(f"Chose {asset.name} from release {release.name}")
                    return asset

        raise PlatformIncompatibleError(
            f"No {self.tool_name} {release.name} binary available for {self.platform}"
        )


__all__ = [
    "Asset",
    "Release",
    "ReleaseResolver",
    "MIN_GLIBC",
]
