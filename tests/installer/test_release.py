"""
Tests for release metadata fetching and asset selection.
"""

from unittest.mock import Mock

import pytest
import requests
import responses

from clangd_install.core.exceptions import (
    GlibcTooOldError,
    PlatformIncompatibleError,
    ReleaseFetchError,
)
from clangd_install.core.platform import PlatformInfo
from clangd_install.installer.release import MIN_GLIBC, Asset, Release, ReleaseResolver
from clangd_install.installer.version import VersionComparator, VersionRange
from tests.fixtures.releases import RELEASE_URL, release_payload


def make_resolver(platform: PlatformInfo, old_glibc=None) -> ReleaseResolver:
    comparator = Mock(spec=VersionComparator)
    comparator.old_glibc.return_value = old_glibc
    return ReleaseResolver(release_url=RELEASE_URL, platform=platform, comparator=comparator)


class TestReleaseFromJson:
    def test_parses_payload(self):
        release = Release.from_json(release_payload())

        assert release.name == "10.0"
        assert release.tag_name == "10.0"
        assert [a.name for a in release.assets] == [
            "clangd-windows-10.0.zip",
            "clangd-linux-10.0.zip",
            "clangd-mac-10.0.zip",
        ]
        assert release.assets[1].browser_download_url.endswith("/clangd-linux-10.0.zip")

    def test_missing_name_falls_back_to_tag(self):
        payload = release_payload()
        del payload["name"]

        assert Release.from_json(payload).name == "10.0"

    @pytest.mark.parametrize(
        "payload",
        [
            [],
            {"name": "10.0", "assets": []},
            {"tag_name": "10.0", "name": 10, "assets": []},
            {"tag_name": "10.0", "assets": None},
            {"tag_name": "10.0", "assets": ["clangd.zip"]},
            {"tag_name": "10.0", "assets": [{"name": "clangd-linux-10.0.zip"}]},
        ],
    )
    def test_rejects_malformed(self, payload):
        with pytest.raises(ReleaseFetchError):
            Release.from_json(payload)


class TestLatestRelease:
    @responses.activate
    def test_fetches_release(self, linux_x64):
        responses.add(responses.GET, RELEASE_URL, json=release_payload(tag_name="17.0.3", name="17.0.3"))

        release = make_resolver(linux_x64).latest_release()

        assert release.tag_name == "17.0.3"
        assert len(release.assets) == 3

    @responses.activate
    def test_http_error(self, linux_x64):
        responses.add(responses.GET, RELEASE_URL, status=404)

        with pytest.raises(ReleaseFetchError, match="Can't fetch release: Not Found"):
            make_resolver(linux_x64).latest_release()

    @responses.activate
    def test_timeout(self, linux_x64):
        responses.add(responses.GET, RELEASE_URL, body=requests.exceptions.ReadTimeout("slow"))

        with pytest.raises(ReleaseFetchError, match="timed out after 5.0s"):
            make_resolver(linux_x64).latest_release()

    @responses.activate
    def test_connection_error(self, linux_x64):
        responses.add(responses.GET, RELEASE_URL, body=requests.exceptions.ConnectionError("refused"))

        with pytest.raises(ReleaseFetchError, match="refused"):
            make_resolver(linux_x64).latest_release()

    @responses.activate
    def test_invalid_json(self, linux_x64):
        responses.add(responses.GET, RELEASE_URL, body="<html>rate limited</html>", status=200)

        with pytest.raises(ReleaseFetchError, match="not valid JSON"):
            make_resolver(linux_x64).latest_release()

    @responses.activate
    def test_uses_configured_timeout(self, linux_x64):
        responses.add(responses.GET, RELEASE_URL, json=release_payload())
        resolver = ReleaseResolver(
            release_url=RELEASE_URL, timeout=1.5, platform=linux_x64, comparator=Mock()
        )

        resolver.latest_release()

        assert responses.calls[0].request.req_kwargs["timeout"] == 1.5


class TestChooseAsset:
    @pytest.mark.parametrize(
        "os_name,arch,expected",
        [
            ("linux", "x64", "clangd-linux-10.0.zip"),
            ("windows", "x64", "clangd-windows-10.0.zip"),
            ("windows", "x86", "clangd-windows-10.0.zip"),
            ("windows", "arm64", "clangd-windows-10.0.zip"),
            ("macos", "x64", "clangd-mac-10.0.zip"),
            ("macos", "arm64", "clangd-mac-10.0.zip"),
        ],
    )
    def test_selects_matching_asset(self, os_name, arch, expected):
        resolver = make_resolver(PlatformInfo(os_name, arch))
        release = Release.from_json(release_payload())

        assert resolver.choose_asset(release).name == expected

    @pytest.mark.parametrize(
        "os_name,arch",
        [("linux", "arm64"), ("linux", "x86"), ("freebsd", "x64"), ("macos", "x86")],
    )
    def test_unsupported_platform(self, os_name, arch):
        resolver = make_resolver(PlatformInfo(os_name, arch))
        release = Release.from_json(release_payload())

        with pytest.raises(PlatformIncompatibleError, match=f"No clangd 10.0 binary available for {os_name}/{arch}"):
            resolver.choose_asset(release)

    def test_no_asset_for_platform(self, linux_x64):
        resolver = make_resolver(linux_x64)
        release = Release.from_json(release_payload(asset_names=["clangd-mac-10.0.zip"]))

        with pytest.raises(PlatformIncompatibleError):
            resolver.choose_asset(release)

    def test_first_match_wins(self, linux_x64):
        resolver = make_resolver(linux_x64)
        release = Release(
            name="10.0",
            tag_name="10.0",
            assets=[
                Asset("clangd_indexing_tools-linux-10.0.zip", "https://x/1"),
                Asset("clangd-linux-10.0.zip", "https://x/2"),
                Asset("clangd-linux-10.0-debug.zip", "https://x/3"),
            ],
        )

        assert resolver.choose_asset(release).browser_download_url == "https://x/2"

    def test_old_glibc_rejected(self, linux_x64):
        resolver = make_resolver(linux_x64, old_glibc=VersionRange.parse("2.17"))
        release = Release.from_json(release_payload())

        with pytest.raises(GlibcTooOldError) as exc_info:
            resolver.choose_asset(release)

        assert isinstance(exc_info.value, PlatformIncompatibleError)
        assert "glibc 2.17 < 2.18" in str(exc_info.value)
        resolver.comparator.old_glibc.assert_called_once_with(VersionRange.parse(MIN_GLIBC))

    def test_glibc_only_checked_on_linux(self, windows_x64):
        resolver = make_resolver(windows_x64, old_glibc=VersionRange.parse("2.17"))

        resolver.choose_asset(Release.from_json(release_payload()))

        resolver.comparator.old_glibc.assert_not_called()
