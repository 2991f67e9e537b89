"""Configuration record for gitbundle."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


DEFAULT_BASELINE_VERSION = "1.0.0"


@dataclass(frozen=True)
class BundleConfig:
    """Persisted settings, one value per key of the config file.

    Empty strings mean "not configured"; operations that need a value
    report it instead of guessing a default location.
    """
    repo_dir: str = ""
    baseline_version: str = DEFAULT_BASELINE_VERSION
    bundle_dir: str = ""
    log_dir: str = ""

    # config file key -> attribute name
    KEYS = {
        "REPO_DIR": "repo_dir",
        "BASELINE_VERSION": "baseline_version",
        "BUNDLE_DIR": "bundle_dir",
        "LOG_DIR": "log_dir",
    }

    @classmethod
    def from_dict(cls, data: dict[str, str]) -> BundleConfig:
        """Create BundleConfig from KEY -> value pairs, ignoring unknown keys."""
        defaults = cls()
        values = {
            attr: str(data[key]) if key in data else getattr(defaults, attr)
            for key, attr in cls.KEYS.items()
        }
        return cls(**values)

    def to_dict(self) -> dict[str, str]:
        """Convert to KEY -> value pairs in config file order."""
        return {key: getattr(self, attr) for key, attr in self.KEYS.items()}

    @property
    def repo_path(self) -> Path | None:
        return Path(self.repo_dir).expanduser() if self.repo_dir else None

    @property
    def bundle_path(self) -> Path | None:
        return Path(self.bundle_dir).expanduser() if self.bundle_dir else None

    @property
    def log_path(self) -> Path | None:
        return Path(self.log_dir).expanduser() if self.log_dir else None
