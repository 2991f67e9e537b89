"""Environment utilities for gitbundle."""

from __future__ import annotations

import os
from pathlib import Path


CONFIG_FILE_NAME = "bundle_config.sh"


def is_debug_mode() -> bool:
    """Check if debug mode is enabled.

    Returns:
        True if GITBUNDLE_DEBUG is set to a truthy value
    """
    val = os.environ.get("GITBUNDLE_DEBUG", "").lower()
    return val in ("1", "true", "yes", "on")


def get_home_dir() -> Path:
    return Path.home()


def get_gitbundle_dir() -> Path:
    """Get the per-user gitbundle directory (~/.gitbundle)."""
    return get_home_dir() / ".gitbundle"


def get_config_path() -> Path:
    """Get the fixed configuration file path (~/.gitbundle/bundle_config.sh)."""
    return get_gitbundle_dir() / CONFIG_FILE_NAME
