"""Configuration loading for clangd-install."""

from .parser import (
    DEFAULT_INSTALL_HELP_URL,
    DEFAULT_RELEASE_URL,
    InstallerConfig,
    config_from_dict,
    load_config,
    parse_config,
)

__all__ = [
    "DEFAULT_INSTALL_HELP_URL",
    "DEFAULT_RELEASE_URL",
    "InstallerConfig",
    "config_from_dict",
    "load_config",
    "parse_config",
]
