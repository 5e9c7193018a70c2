"""
Pytest configuration and shared fixtures for clangd-install tests.
"""

import pytest

from clangd_install.core.platform import PlatformInfo, clear_platform_cache

# Import test fixtures to make them available to all tests
# These imports register the fixtures with pytest's fixture discovery system
# ruff: noqa: F401
from tests.fixtures.ui import fake_ui
from tests.fixtures.releases import fake_github
from tests.fixtures.binaries import fake_binaries


@pytest.fixture(autouse=True)
def _reset_platform_cache():
    """Don't let platform patches leak between tests."""
    clear_platform_cache()
    yield
    clear_platform_cache()


@pytest.fixture
def linux_x64() -> PlatformInfo:
    """Linux x86-64 platform info."""
    return PlatformInfo(os="linux", arch="x64")


@pytest.fixture
def windows_x64() -> PlatformInfo:
    """Windows x86-64 platform info."""
    return PlatformInfo(os="windows", arch="x64")


@pytest.fixture
def macos_arm64() -> PlatformInfo:
    """macOS Apple Silicon platform info."""
    return PlatformInfo(os="macos", arch="arm64")
