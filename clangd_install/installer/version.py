"""
Functions dealing with clangd versions.

We parse both GitHub release numbers and installed `clangd --version` output
by treating them as loose semantic-version ranges, and offer an upgrade only
if the release is unambiguously newer.

A partial version such as "10.0" stands for every 10.0.x version, so
"10.0" is newer than "5" but not newer than "10.0.3". Prerelease and build
metadata follow semver ordering ("18.0.0git" < "18.0.0").

These functions raise if versions can't be parsed (e.g. installed clangd
is a vendor-modified version).
"""

import functools
import logging
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, List, Optional, Tuple, Union

from packaging.version import Version

from clangd_install.core.exceptions import (
    IncomparableVersionError,
    UnparseableVersionError,
    VersionProbeError,
)

if TYPE_CHECKING:
    from .release import Release

logger = logging.getLogger(__name__)

_WILDCARDS = ("x", "X", "*")
_IDENTIFIER = r"(?:\d+|\d*[a-zA-Z-][a-zA-Z0-9-]*)"
_LOOSE_RANGE = re.compile(
    r"^[v=\s]*"
    r"(?P<major>\d+|[xX*])"
    r"(?:\.(?P<minor>\d+|[xX*])"
    r"(?:\.(?P<patch>\d+|[xX*])"
    rf"(?:-?(?P<prerelease>{_IDENTIFIER}(?:\.{_IDENTIFIER})*))?"
    r"(?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r")?)?\s*$"
)

# The first line is e.g. "ldd (Debian GLIBC 2.29-9) 2.29".
# Require some confirmation this is [e]glibc, and a plausible version number.
_GLIBC_LINE = re.compile(r"^ldd .*glibc.* (\d+(?:\.\d+)+)[^ ]*$", re.IGNORECASE)


def _identifier_key(identifier: str) -> Tuple[int, int, str]:
    # Numeric identifiers sort before alphanumeric ones.
    if identifier.isdigit():
        return (0, int(identifier), "")
    return (1, 0, identifier)


@functools.total_ordering
class SemVer:
    """
    A concrete semantic version: major.minor.patch plus optional prerelease.

    Example:
        >>> SemVer(18, 0, 0, ("git",)) < SemVer(18, 0, 0)
        True
    """

    def __init__(self, major: int, minor: int, patch: int, prerelease: Tuple[str, ...] = ()):
        self.major = major
        self.minor = minor
        self.patch = patch
        self.prerelease = tuple(prerelease)

    @property
    def release(self) -> Version:
        """The version without prerelease, for ordering."""
        return Version(f"{self.major}.{self.minor}.{self.patch}")

    def _key(self):
        return (
            self.release,
            0 if self.prerelease else 1,
            tuple(_identifier_key(p) for p in self.prerelease),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemVer):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: "SemVer") -> bool:
        if not isinstance(other, SemVer):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        core = f"{self.major}.{self.minor}.{self.patch}"
        return f"{core}-{'.'.join(self.prerelease)}" if self.prerelease else core

    def __repr__(self) -> str:
        return f"SemVer('{self}')"


@dataclass(frozen=True)
class VersionRange:
    """
    A loose semver range: an exact version or a partial one like "10.0".

    Attributes:
        raw: The string the range was parsed from (trimmed)
        minimum: Lowest version satisfying the range
        upper: Exclusive upper bound, or None if unbounded (or exact)
        exact: Whether `minimum` is the only satisfying version
    """

    raw: str
    minimum: SemVer
    upper: Optional[SemVer]
    exact: bool

    @classmethod
    def parse(cls, text: str) -> "VersionRange":
        """
        Parse a loose version range.

        Accepts forms like "17", "17.0", "17.0.3", "v17.0.3", "=17.0.3",
        "18.0.0git", "15.0.7-0ubuntu0.22.04.3", "17.x" and "*".

        Raises:
            UnparseableVersionError: If `text` isn't a valid range
        """
        raw = text.strip() if isinstance(text, str) else ""
        match = _LOOSE_RANGE.match(raw) if raw else None
        if not match:
            raise UnparseableVersionError(f"Couldn't parse version range: {text!r}")

        parts: List[Optional[int]] = []
        for name in ("major", "minor", "patch"):
            value = match.group(name)
            if value is None or value in _WILDCARDS:
                break
            parts.append(int(value))

        if not parts:
            return cls(raw=raw, minimum=SemVer(0, 0, 0), upper=None, exact=False)
        if len(parts) == 3:
            prerelease = tuple(match.group("prerelease").split(".")) if match.group("prerelease") else ()
            return cls(raw=raw, minimum=SemVer(*parts, prerelease), upper=None, exact=True)
        if len(parts) == 1:
            major = parts[0]
            return cls(
                raw=raw,
                minimum=SemVer(major, 0, 0),
                upper=SemVer(major + 1, 0, 0, ("0",)),
                exact=False,
            )
        major, minor = parts
        return cls(
            raw=raw,
            minimum=SemVer(major, minor, 0),
            upper=SemVer(major, minor + 1, 0, ("0",)),
            exact=False,
        )

    @staticmethod
    def is_valid(text: str) -> bool:
        """Whether `text` parses as a loose range."""
        try:
            VersionRange.parse(text)
        except UnparseableVersionError:
            return False
        return True

    def min_version(self) -> SemVer:
        """Lowest version satisfying this range."""
        return self.minimum

    def satisfied_by(self, version: SemVer) -> bool:
        """Whether `version` lies within this range."""
        if self.exact:
            return version == self.minimum
        if version < self.minimum:
            return False
        return self.upper is None or version < self.upper

    def __str__(self) -> str:
        return self.raw


def range_greater(newer: VersionRange, older: VersionRange) -> bool:
    """
    Whether `newer` is unambiguously newer than `older`.

    True if the lowest version in `newer` is greater than every version
    satisfying `older`.

    Example:
        >>> range_greater(VersionRange.parse("10.0"), VersionRange.parse("5"))
        True
        >>> range_greater(VersionRange.parse("10.0"), VersionRange.parse("10.0.3"))
        False
    """
    lowest = newer.min_version()
    if older.exact:
        return lowest > older.minimum
    if older.upper is None:
        return False
    return lowest >= older.upper


@dataclass
class UpgradeInfo:
    """Installed vs released versions and whether upgrading makes sense."""

    old: str
    """Installed version"""

    new: str
    """Released version"""

    upgrade_available: bool
    """Whether the release is unambiguously newer"""


class VersionComparator:
    """
    Determines installed and released versions and compares them.

    Example:
        >>> comparator = VersionComparator()
        >>> info = comparator.upgrade(release, "/usr/bin/clangd")
        >>> if info.upgrade_available:
        ...     print(f"{info.old} -> {info.new}")
    """

    def __init__(
        self,
        tool_name: str = "clangd",
        ldd_command: str = "ldd",
        incomparable_vendors: Iterable[str] = ("Apple",),
    ):
        """
        Initialize version comparator.

        Args:
            tool_name: Name printed by `<tool> --version` before the version
            ldd_command: Command whose `--version` output reveals glibc's version
            incomparable_vendors: Vendor labels whose builds don't follow
                upstream version numbers
        """
        self.tool_name = tool_name
        self.ldd_command = ldd_command
        self.incomparable_vendors = frozenset(incomparable_vendors)

    def upgrade(self, release: "Release", binary_path: Union[str, Path]) -> UpgradeInfo:
        """
        Compare a release against an installed binary.

        Raises:
            VersionError: If either version can't be determined or compared
        """
        released_ver = self.released(release)
        installed_ver = self.installed(binary_path)
        return UpgradeInfo(
            old=installed_ver.raw,
            new=released_ver.raw,
            upgrade_available=range_greater(released_ver, installed_ver),
        )

    def released(self, release: "Release") -> VersionRange:
        """
        Get the version of a release, by parsing the tag or name.

        Raises:
            UnparseableVersionError: If neither tag nor name is a version
        """
        # Prefer the tag name, but fall back to the release name.
        if not VersionRange.is_valid(release.tag_name) and VersionRange.is_valid(
            release.name
        ):
            return VersionRange.parse(release.name)
        return VersionRange.parse(release.tag_name)

    def installed(self, binary_path: Union[str, Path]) -> VersionRange:
        """
        Get the version of an installed binary using `<tool> --version`.

        Raises:
            UnparseableVersionError: If the output has no recognizable version
            IncomparableVersionError: If the binary is a known vendor build
            VersionProbeError: If the binary can't be run
        """
        output = self._run(str(binary_path), ["--version"])
        logger.info(f"{binary_path} --version output: {output!r}")

        prefix = f"{self.tool_name} version "
        pos = output.find(prefix)
        if pos < 0:
            raise UnparseableVersionError(
                f"Couldn't parse {self.tool_name} --version output: {output}"
            )
        if pos > 0:
            vendor = output[:pos].strip()
            if vendor in self.incomparable_vendors:
                raise IncomparableVersionError(vendor, output)

        # Some vendors add trailing ~patchlevel, ignore this.
        raw_version = re.split(r"\s|~", output[pos + len(prefix) :], maxsplit=1)[0]
        return VersionRange.parse(raw_version)

    def old_glibc(self, minimum: VersionRange) -> Optional[VersionRange]:
        """
        Detect the (linux) system's glibc version. If older than `minimum`, return it.

        Detection problems return None: we'd rather attempt an install that
        might not work than block one because our probe failed.
        """
        # ldd is distributed with glibc, so ldd --version should be a good proxy.
        try:
            output = self._run(self.ldd_command, ["--version"])
        except VersionProbeError as e:
            logger.warning(f"Can't run {self.ldd_command} to detect glibc: {e}")
            return None

        line = output.split("\n", 1)[0]
        match = _GLIBC_LINE.match(line)
        if not match or not VersionRange.is_valid(match.group(1)):
            logger.error(f"Can't parse glibc version from ldd --version output: {line}")
            return None

        version = VersionRange.parse(match.group(1))
        logger.info(f"glibc is {version.raw}, min is {minimum.raw}")
        return version if range_greater(minimum, version) else None

    def _run(self, command: str, flags: List[str]) -> str:
        """Run a system command and capture any stdout produced."""
        try:
            result = subprocess.run(
                [command, *flags],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                text=True,
                errors="replace",
                check=False,
            )
        except OSError as e:
            raise VersionProbeError(f"Failed to run {command}: {e}") from e
        return result.stdout or ""


__all__ = [
    "SemVer",
    "VersionRange",
    "UpgradeInfo",
    "VersionComparator",
    "range_greater",
]
