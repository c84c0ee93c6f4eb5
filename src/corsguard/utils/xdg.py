"""XDG Base Directory specification utilities for corsguard.

Provides the standard location of the corsguard configuration file
following the XDG Base Directory specification.
"""

import os
from pathlib import Path

CONFIG_FILE_NAME = "config.yaml"


def get_xdg_config_home() -> Path:
    """Get the XDG config home directory.

    Returns:
        Path to XDG_CONFIG_HOME, defaults to ~/.config
    """
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


def get_config_dir() -> Path:
    """Get the corsguard configuration directory.

    The directory is not created; a missing config file is reported by the
    loader instead.

    Returns:
        Path to $XDG_CONFIG_HOME/corsguard
    """
    return get_xdg_config_home() / "corsguard"


def get_default_config_path() -> Path:
    """Get the default path of the server configuration file.

    Returns:
        Path to $XDG_CONFIG_HOME/corsguard/config.yaml
    """
    return get_config_dir() / CONFIG_FILE_NAME
