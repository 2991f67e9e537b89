"""Configuration loader for gitbundle.

The configuration file is a shell-sourceable list of assignments:

    # Git Bundle Management Configuration
    REPO_DIR="/srv/repo"
    BASELINE_VERSION="1.0.0"
    BUNDLE_DIR="/srv/bundles"
    LOG_DIR="/var/log/gitbundle"

Values in the file override the built-in defaults. Lines that cannot be
parsed and unknown keys are skipped without error.
"""

from __future__ import annotations

import re
from pathlib import Path

from ..utils.env import get_config_path
from ..utils.fs import atomic_write
from .types import BundleConfig


CONFIG_HEADER = "# Git Bundle Management Configuration"

_ASSIGNMENT = re.compile(r"^(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)=(.*)$")
# Characters a backslash escapes inside double quotes.
_DQUOTE_ESCAPES = '\\"$`'


def _env_quote(val: str) -> str:
    """Double-quote a value, escaping shell-expansion characters so the line is safe if sourced."""

    escaped = (
        val.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("$", "\\$")
        .replace("`", "\\`")
    )
    return f'"{escaped}"'


def _shell_unquote(rhs: str) -> str | None:
    """Unquote the right-hand side of an assignment as a POSIX shell would.

    Handles bare words, single quotes and double quotes (with the escapes a
    shell honours inside them). Returns None for anything that is not a
    single literal word: unbalanced quotes, extra words, expansions.
    """
    out: list[str] = []
    i = 0
    n = len(rhs)
    while i < n:
        ch = rhs[i]
        if ch == "'":
            end = rhs.find("'", i + 1)
            if end < 0:
                return None
            out.append(rhs[i + 1:end])
            i = end + 1
        elif ch == '"':
            i += 1
            while i < n and rhs[i] != '"':
                if rhs[i] == "\\" and i + 1 < n and rhs[i + 1] in _DQUOTE_ESCAPES:
                    out.append(rhs[i + 1])
                    i += 2
                    continue
                if rhs[i] in "$`":
                    return None
                out.append(rhs[i])
                i += 1
            if i >= n:
                return None
            i += 1
        elif ch == "\\":
            if i + 1 >= n:
                return None
            out.append(rhs[i + 1])
            i += 2
        elif ch.isspace():
            # Only a trailing comment may follow the word.
            rest = rhs[i:].lstrip()
            if rest and not rest.startswith("#"):
                return None
            break
        elif ch in "$`;&|<>()":
            return None
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def parse_assignments(text: str) -> dict[str, str]:
    """Parse KEY=value lines the way a shell would unquote them.

    Later assignments win. Comments, blank lines and anything that is not a
    single well-formed assignment are ignored.
    """
    values: dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue

        match = _ASSIGNMENT.match(line)
        if not match:
            continue

        value = _shell_unquote(match.group(2))
        if value is None:
            continue
        values[match.group(1)] = value
    return values


class ConfigLoader:
    """Loads and saves the gitbundle configuration file."""

    def __init__(self, config_path: Path | str | None = None):
        """Initialize config loader.

        Args:
            config_path: Configuration file (defaults to ~/.gitbundle/bundle_config.sh)
        """
        self.config_path = Path(config_path) if config_path else get_config_path()
        self._config: BundleConfig | None = None

    @property
    def config(self) -> BundleConfig:
        """Get loaded configuration, loading if necessary."""
        if self._config is None:
            self._config = self.load()
        return self._config

    def exists(self) -> bool:
        return self.config_path.is_file()

    def load(self) -> BundleConfig:
        """Load configuration, falling back to defaults for anything missing.

        Returns:
            BundleConfig built from defaults overridden by the file
        """
        if not self.exists():
            return BundleConfig()

        try:
            text = self.config_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return BundleConfig()

        return BundleConfig.from_dict(parse_assignments(text))

    def reload(self) -> BundleConfig:
        """Force reload configuration."""
        self._config = None
        return self.config

    def render(self, config: BundleConfig) -> str:
        lines = [CONFIG_HEADER]
        for key, value in config.to_dict().items():
            lines.append(f"{key}={_env_quote(value)}")
        return "\n".join(lines) + "\n"

    def save(self, config: BundleConfig) -> Path:
        """Write configuration to the config file.

        Args:
            config: Configuration to save

        Returns:
            Path where config was saved
        """
        atomic_write(self.config_path, self.render(config), mode="w")
        self._config = config
        return self.config_path
