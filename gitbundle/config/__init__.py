"""Configuration management for gitbundle."""

from .types import BundleConfig, DEFAULT_BASELINE_VERSION
from .loader import ConfigLoader, parse_assignments

__all__ = [
    "BundleConfig",
    "DEFAULT_BASELINE_VERSION",
    "ConfigLoader",
    "parse_assignments",
]
