"""Test fixtures for clangd-install tests.

This package provides reusable pytest fixtures. Fixtures are organized by type:

- ui: FakeUI, a recording editor UI
- releases: Release metadata, release archives and a fake GitHub server
- binaries: Fake clangd and ldd executables (POSIX shell scripts)

Import fixtures in your tests using:
    from tests.fixtures.ui import FakeUI
    from tests.fixtures.releases import RELEASE_URL, build_clangd_zip
    from tests.fixtures.binaries import write_fake_binary
"""

__all__ = [
    "ui",
    "releases",
    "binaries",
]
