"""YAML configuration parser for clangd-install.

This module provides parsing and validation for the installer settings a host
may keep in a clangd-install.yaml file. Every key is optional:

    tool_name: clangd
    release_url: https://api.github.com/repos/clangd/clangd/releases/latest
    release_timeout: 5
    ldd_command: ldd
    incomparable_vendors: [Apple]
    install_help_url: https://clangd.llvm.org/installation.html
    download_chunk_size: 8192
"""

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from clangd_install.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_RELEASE_URL = "https://api.github.com/repos/clangd/clangd/releases/latest"
DEFAULT_INSTALL_HELP_URL = "https://clangd.llvm.org/installation.html"


@dataclass(frozen=True)
class InstallerConfig:
    """Settings for the install/update engine."""

    tool_name: str = "clangd"
    release_url: str = DEFAULT_RELEASE_URL
    release_timeout: float = 5.0  # seconds, release metadata only
    ldd_command: str = "ldd"
    incomparable_vendors: Tuple[str, ...] = field(default_factory=lambda: ("Apple",))
    install_help_url: str = DEFAULT_INSTALL_HELP_URL
    download_chunk_size: int = 8192


_STRING_KEYS = ("tool_name", "release_url", "ldd_command", "install_help_url")


def load_config(config_path: Optional[Path] = None) -> InstallerConfig:
    """
    Load configuration, falling back to defaults when no file is given.

    Args:
        config_path: Optional path to clangd-install.yaml

    Returns:
        Parsed configuration, or InstallerConfig() if config_path is None
    """
    if config_path is None:
        return InstallerConfig()
    return parse_config(Path(config_path))


def parse_config(config_path: Path) -> InstallerConfig:
    """
    Parse clangd-install.yaml configuration file.

    Args:
        config_path: Path to clangd-install.yaml

    Returns:
        Parsed and validated configuration

    Raises:
        ConfigError: If configuration is invalid
    """
    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax: {e}")

    if data is None:
        logger.debug(f"{config_path} is empty, using defaults")
        return InstallerConfig()

    return config_from_dict(data)


def config_from_dict(data: Mapping[str, Any]) -> InstallerConfig:
    """
    Build and validate configuration from a mapping.

    Raises:
        ConfigError: If a key is unknown or a value has the wrong type
    """
    if not isinstance(data, Mapping):
        raise ConfigError("Configuration must be a mapping")

    known = {f.name for f in fields(InstallerConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {', '.join(map(str, unknown))}")

    values: Dict[str, Any] = {}

    for key in _STRING_KEYS:
        if key in data:
            value = data[key]
            if not isinstance(value, str) or not value.strip():
                raise ConfigError(f"'{key}' must be a non-empty string")
            values[key] = value.strip()

    if "release_timeout" in data:
        timeout = data["release_timeout"]
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
            raise ConfigError("'release_timeout' must be a number")
        if timeout <= 0:
            raise ConfigError("'release_timeout' must be positive")
        values["release_timeout"] = float(timeout)

    if "download_chunk_size" in data:
        chunk_size = data["download_chunk_size"]
        if isinstance(chunk_size, bool) or not isinstance(chunk_size, int):
            raise ConfigError("'download_chunk_size' must be an integer")
        if chunk_size <= 0:
            raise ConfigError("'download_chunk_size' must be positive")
        values["download_chunk_size"] = chunk_size

    if "incomparable_vendors" in data:
        vendors = data["incomparable_vendors"]
        if not isinstance(vendors, list) or not all(
            isinstance(v, str) and v.strip() for v in vendors
        ):
            raise ConfigError("'incomparable_vendors' must be a list of strings")
        values["incomparable_vendors"] = tuple(v.strip() for v in vendors)

    return InstallerConfig(**values)
