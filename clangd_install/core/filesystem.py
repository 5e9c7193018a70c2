"""
File system utilities for the clangd install tree.

This module provides:
- Recursive file listing of an install directory
- Safe recursive deletion constrained to a parent directory
- ZIP inspection and extraction with directory-traversal validation
- Marking extracted binaries executable
"""

import logging
import os
import shutil
import zipfile
from pathlib import Path, PurePosixPath
from typing import List, Optional, Union

from .exceptions import ArchiveExtractionError, FilesystemError, InsecureArchiveError

logger = logging.getLogger(__name__)

IS_WINDOWS = os.name == "nt"


def list_files(root: Union[str, Path]) -> List[Path]:
    """
    List all regular files under `root`, recursively, in sorted order.

    Directories are not included, so a tree of empty directories yields [].

    Args:
        root: Directory to scan

    Returns:
        Absolute file paths, or [] if `root` doesn't exist
    """
    root = Path(root)
    if not root.is_dir():
        return []
    return sorted(p.absolute() for p in root.rglob("*") if p.is_file())


def safe_rmtree(
    path: Union[str, Path], require_prefix: Optional[Union[str, Path]] = None
) -> None:
    """
    Safely remove a directory tree with safeguards.

    Args:
        path: Directory to remove
        require_prefix: If specified, path must be under this directory

    Raises:
        ValueError: If path is not under require_prefix
        FilesystemError: If deletion fails

    Example:
        >>> safe_rmtree(storage / 'install' / '17.0.3', require_prefix=storage / 'install')
    """
    path = Path(path).resolve()

    if require_prefix is not None:
        require_prefix = Path(require_prefix).resolve()
        if path == require_prefix or not path.is_relative_to(require_prefix):
            raise ValueError(
                f"Refusing to delete '{path}': not under required prefix '{require_prefix}'"
            )

    if not path.exists():
        return  # Already gone, nothing to do

    if not path.is_dir():
        raise FilesystemError(f"Path is not a directory: {path}")

    try:
        if IS_WINDOWS:

            def handle_remove_readonly(func, path, exc):
                """Error handler for Windows read-only files."""
                if not os.access(path, os.W_OK):
                    os.chmod(path, 0o777)
                    func(path)
                else:
                    raise

            shutil.rmtree(path, onerror=handle_remove_readonly)
        else:
            shutil.rmtree(path)
    except Exception as e:
        raise FilesystemError(f"Failed to remove directory '{path}': {e}") from e


def find_archive_member(archive_path: Union[str, Path], filename: str) -> Optional[str]:
    """
    Find the first ZIP member whose base name is `filename`.

    Args:
        archive_path: ZIP file to inspect
        filename: Base file name to look for (e.g. 'clangd.exe')

    Returns:
        Member path inside the archive (e.g. 'clangd_17.0.3/bin/clangd'), or None

    Raises:
        ArchiveExtractionError: If the archive can't be read
    """
    try:
        with zipfile.ZipFile(archive_path, "r") as zf:
            for info in zf.infolist():
                if info.is_dir():
                    continue
                if PurePosixPath(info.filename).name == filename:
                    return info.filename
    except (zipfile.BadZipFile, OSError) as e:
        raise ArchiveExtractionError(f"Failed to read {archive_path}: {e}") from e
    return None


def _validate_archive_path(path: str, destination: Path) -> None:
    """
    Validate that an archive member path is safe to extract.

    Raises:
        InsecureArchiveError: If path attempts directory traversal
    """
    member_path = (destination / path).resolve()

    if not member_path.is_relative_to(destination.resolve()):
        raise InsecureArchiveError(
            f"Archive member '{path}' attempts directory traversal. "
            "This is a security risk and extraction has been blocked."
        )


def extract_zip(archive_path: Union[str, Path], destination: Union[str, Path]) -> None:
    """
    Extract a ZIP archive into `destination`, creating it if needed.

    All member paths are validated before anything is written.

    Raises:
        InsecureArchiveError: If archive contains malicious paths
        ArchiveExtractionError: If extraction fails
    """
    archive_path = Path(archive_path)
    destination = Path(destination)

    if not archive_path.exists():
        raise ArchiveExtractionError(f"Archive not found: {archive_path}")

    destination.mkdir(parents=True, exist_ok=True)
    logger.info(f"Extracting {archive_path} to {destination}")

    try:
        with zipfile.ZipFile(archive_path, "r") as zf:
            members = zf.namelist()
            for member in members:
                _validate_archive_path(member, destination)
            zf.extractall(destination)
    except InsecureArchiveError:
        raise
    except Exception as e:
        raise ArchiveExtractionError(f"Failed to extract {archive_path}: {e}") from e

    logger.debug(f"Extracted {len(members)} entries from {archive_path.name}")


def make_executable(path: Union[str, Path]) -> None:
    """Set rwxr-xr-x permissions on `path`."""
    os.chmod(path, 0o755)


__all__ = [
    "list_files",
    "safe_rmtree",
    "find_archive_member",
    "extract_zip",
    "make_executable",
]
