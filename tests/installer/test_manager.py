"""
Tests for downloading and installing release archives.
"""

import io
import os
import zipfile

import pytest
import responses

from unittest.mock import patch

from clangd_install.core.download import CancellationToken
from clangd_install.core.exceptions import (
    AlreadyInstalledError,
    ArchiveExtractionError,
    BinaryNotFoundError,
    DownloadCancelledError,
    DownloadError,
    FilesystemError,
)
from clangd_install.core.filesystem import list_files
from clangd_install.installer.manager import InstallManager
from clangd_install.installer.release import Asset, Release
from clangd_install.installer.ui import ReuseDecision
from tests.fixtures.binaries import posix_only
from tests.fixtures.releases import asset_url, build_clangd_zip, download_calls

LINUX_ZIP = "clangd-linux-10.0.zip"


@pytest.fixture
def release():
    return Release(
        name="10.0",
        tag_name="10.0",
        assets=[Asset(LINUX_ZIP, asset_url(LINUX_ZIP))],
    )


@pytest.fixture
def manager(fake_ui, linux_x64):
    return InstallManager(fake_ui, platform=linux_x64, chunk_size=1024)


def install_dir(fake_ui):
    return fake_ui.storage_path / "install" / "10.0"


def staged_zip(fake_ui):
    return fake_ui.storage_path / "download" / LINUX_ZIP


def test_create_dirs(manager, fake_ui):
    install, download = manager.create_dirs()

    assert install == (fake_ui.storage_path / "install").absolute()
    assert download == (fake_ui.storage_path / "download").absolute()
    assert install.is_dir() and download.is_dir()


def test_fresh_install(manager, fake_ui, fake_github, release):
    path = manager.install(release, release.assets[0], CancellationToken())

    assert path == (install_dir(fake_ui) / "fake-clangd-10" / "bin" / "clangd").absolute()
    assert path.is_file()
    assert fake_ui.events == ["progress", "slow"]
    assert fake_ui.messages == []
    assert not staged_zip(fake_ui).exists()
    assert fake_ui.progress_fractions


@posix_only
def test_fresh_install_is_executable(manager, fake_github, release):
    path = manager.install(release, release.assets[0], CancellationToken())

    assert os.access(path, os.X_OK)


def test_windows_binary_name(fake_ui, fake_github, windows_x64):
    name = "clangd-windows-10.0.zip"
    release = Release("10.0", "10.0", [Asset(name, asset_url(name))])
    manager = InstallManager(fake_ui, platform=windows_x64)

    path = manager.install(release, release.assets[0], CancellationToken())

    assert manager.executable_name == "clangd.exe"
    assert path.name == "clangd.exe"


class TestExistingInstall:
    @pytest.fixture
    def existing(self, fake_ui):
        binary = install_dir(fake_ui) / "old-layout" / "bin" / "clangd"
        binary.parent.mkdir(parents=True)
        binary.write_text("existing")
        (install_dir(fake_ui) / "old-layout" / "README").write_text("")
        return binary.absolute()

    def test_reuse(self, manager, fake_ui, fake_github, release, existing):
        fake_ui.reuse = ReuseDecision.REUSE

        path = manager.install(release, release.assets[0], CancellationToken())

        assert path == existing
        assert fake_ui.events == ["should_reuse"]
        assert fake_ui.messages == ["10.0"]
        assert download_calls(fake_github) == []

    def test_reuse_without_binary(self, manager, fake_ui, fake_github, release, existing):
        existing.unlink()
        fake_ui.reuse = ReuseDecision.REUSE

        with pytest.raises(BinaryNotFoundError, match="Didn't find clangd in"):
            manager.install(release, release.assets[0], CancellationToken())

    def test_replace(self, manager, fake_ui, fake_github, release, existing):
        fake_ui.reuse = ReuseDecision.REPLACE

        path = manager.install(release, release.assets[0], CancellationToken())

        assert fake_ui.events == ["should_reuse", "progress", "slow"]
        assert not existing.exists()
        assert path.read_bytes().startswith(b"#!/bin/sh")
        assert download_calls(fake_github) == [asset_url(LINUX_ZIP)]

    def test_undecided_cancels(self, manager, fake_ui, fake_github, release, existing):
        fake_ui.reuse = ReuseDecision.UNDECIDED
        cancel = CancellationToken()
        before = {p: p.read_bytes() for p in list_files(install_dir(fake_ui))}

        with pytest.raises(AlreadyInstalledError, match="clangd 10.0 already installed!"):
            manager.install(release, release.assets[0], cancel)

        assert cancel.cancelled
        assert {p: p.read_bytes() for p in list_files(install_dir(fake_ui))} == before
        assert fake_ui.events == ["should_reuse"]
        assert download_calls(fake_github) == []

    def test_empty_directories_are_not_an_install(self, manager, fake_ui, fake_github, release):
        (install_dir(fake_ui) / "leftover" / "bin").mkdir(parents=True)

        manager.install(release, release.assets[0], CancellationToken())

        assert fake_ui.events == ["progress", "slow"]


class TestFailures:
    def test_download_error_leaves_nothing(self, manager, fake_ui, release):
        with responses.RequestsMock() as rsps:
            rsps.add(responses.GET, asset_url(LINUX_ZIP), status=404)

            with pytest.raises(DownloadError):
                manager.install(release, release.assets[0], CancellationToken())

        assert not staged_zip(fake_ui).exists()
        assert not install_dir(fake_ui).exists()

    def test_cancelled_download(self, manager, fake_ui, fake_github, release):
        fake_ui.cancel_on_progress = True
        cancel = CancellationToken()

        with pytest.raises(DownloadCancelledError):
            manager.install(release, release.assets[0], cancel)

        assert cancel.cancelled
        assert fake_ui.events == ["progress"]
        assert not staged_zip(fake_ui).exists()

    def test_binary_missing_from_archive(self, manager, fake_ui, release):
        with responses.RequestsMock() as rsps:
            rsps.add(responses.GET, asset_url(LINUX_ZIP), body=build_clangd_zip(executable=None))

            with pytest.raises(BinaryNotFoundError) as exc_info:
                manager.install(release, release.assets[0], CancellationToken())

        assert LINUX_ZIP in str(exc_info.value)
        assert not staged_zip(fake_ui).exists()
        assert not install_dir(fake_ui).exists()
        assert fake_ui.events == ["progress"]

    def test_insecure_archive_removes_tag_directory(self, manager, fake_ui, release):
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as zf:
            zf.writestr("fake-clangd-10/bin/clangd", "#!/bin/sh\n")
            zf.writestr("../../escape.txt", "evil")

        with responses.RequestsMock() as rsps:
            rsps.add(responses.GET, asset_url(LINUX_ZIP), body=buffer.getvalue())

            with pytest.raises(ArchiveExtractionError):
                manager.install(release, release.assets[0], CancellationToken())

        assert not install_dir(fake_ui).exists()
        assert not staged_zip(fake_ui).exists()
        assert (fake_ui.storage_path / "install").is_dir()

    def test_cleanup_failure_keeps_extraction_error(self, manager, fake_ui, release):
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as zf:
            zf.writestr("fake-clangd-10/bin/clangd", "#!/bin/sh\n")
            zf.writestr("../../escape.txt", "evil")

        with responses.RequestsMock() as rsps:
            rsps.add(responses.GET, asset_url(LINUX_ZIP), body=buffer.getvalue())

            with patch(
                "clangd_install.installer.manager.safe_rmtree",
                side_effect=FilesystemError("directory is busy"),
            ):
                with pytest.raises(ArchiveExtractionError, match="directory traversal"):
                    manager.install(release, release.assets[0], CancellationToken())

        assert not staged_zip(fake_ui).exists()
