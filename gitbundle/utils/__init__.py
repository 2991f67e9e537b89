"""Utility modules for gitbundle."""

from .fs import atomic_write, ensure_dir
from .env import get_config_path, get_gitbundle_dir, get_home_dir, is_debug_mode
from .log import attach_log_file, configure_logging, get_logger

__all__ = [
    "atomic_write",
    "ensure_dir",
    "get_config_path",
    "get_gitbundle_dir",
    "get_home_dir",
    "is_debug_mode",
    "attach_log_file",
    "configure_logging",
    "get_logger",
]
