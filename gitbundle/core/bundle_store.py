"""Bundle storage for gitbundle.

Handles naming, exporting, verifying and listing the artifacts kept in the
bundle directory:

    baseline_<version>.bundle            + baseline_<version>_verify.sh
    update_<base>_<YYYYMMDD_HHMMSS>.bundle + update_<base>_<id>_deploy.sh
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from . import git
from .bundle_format import BundleFormatError, check_pack, read_header, write_empty_bundle
from .errors import BundleError, ErrorKind
from .scripts import deploy_script_path, verify_script_path


_BASELINE_NAME = re.compile(r"^baseline_(?P<version>[0-9]+\.[0-9]+\.[0-9]+)\.bundle$")
_UPDATE_NAME = re.compile(
    r"^update_(?P<version>[0-9]+\.[0-9]+\.[0-9]+)_(?P<update_id>[0-9]{8}_[0-9]{6})\.bundle$"
)


def _version_key(version: str) -> tuple[int, ...]:
    return tuple(int(part) for part in version.split("."))


@dataclass
class BundleInfo:
    """An artifact found in the bundle directory."""
    kind: str  # "baseline" | "update"
    version: str
    path: Path
    size: int
    update_id: str | None = None
    script: Path | None = None


@dataclass
class VerifyReport:
    """Outcome of a successful verification."""
    path: Path
    object_count: int
    prerequisites: int
    references: list[str]


class BundleStore:
    """Manages the bundle directory for one repository."""

    def __init__(self, bundle_dir: Path, repo_root: Path | None = None):
        """Initialize bundle store.

        Args:
            bundle_dir: Directory holding artifacts and their scripts
            repo_root: Repository the artifacts are exported from; only
                listing works without one
        """
        self.bundle_dir = Path(bundle_dir).resolve()
        self.repo_root = Path(repo_root) if repo_root is not None else None

    def _git_root(self) -> Path:
        if self.repo_root is None:
            raise BundleError(ErrorKind.CONFIG, "Failed to navigate to repo")
        return self.repo_root

    def baseline_path(self, version: str) -> Path:
        return self.bundle_dir / f"baseline_{version}.bundle"

    def update_path(self, base_version: str, update_id: str) -> Path:
        return self.bundle_dir / f"update_{base_version}_{update_id}.bundle"

    def ensure_absent(self, path: Path) -> None:
        """Artifacts are immutable: refuse to write over one."""
        if path.exists():
            raise BundleError(ErrorKind.PRECONDITION, f"Bundle already exists: {path}")

    def export_full(self, path: Path) -> Path:
        """Export every ref with full history."""
        git.bundle_create(self._git_root(), path, ["--all"], "Failed to create baseline bundle")
        return path

    def export_range(self, path: Path, base_tag: str) -> int:
        """Export commits reachable from HEAD but not from base_tag.

        Returns:
            Number of commits in the artifact
        """
        repo = self._git_root()
        count = git.count_commits(repo, f"{base_tag}..HEAD")
        branch = git.current_branch(repo)
        refs = ["HEAD"] + ([f"refs/heads/{branch}"] if branch else [])

        if count == 0:
            tip = git.resolve_commit(repo, "HEAD")
            write_empty_bundle(
                path,
                tip=tip,
                tip_subject=git.commit_subject(repo, tip),
                refnames=refs,
                pack=git.empty_pack(repo),
                object_format=git.object_format(repo),
            )
            return 0

        git.bundle_create(
            repo,
            path,
            [*refs, "--not", base_tag],
            "Failed to create update bundle",
        )
        return count

    def verify(self, path: Path) -> VerifyReport:
        """Verify an artifact with git and check its pack checksum."""
        path = Path(path)
        if not path.is_file():
            raise BundleError(ErrorKind.PRECONDITION, f"Bundle not found: {path}")

        git.bundle_verify(self._git_root(), path)
        try:
            header = read_header(path)
            count = check_pack(path, header)
        except (BundleFormatError, UnicodeDecodeError) as e:
            raise BundleError(ErrorKind.EXTERNAL, f"Bundle verification failed for {path} ({e})") from e

        return VerifyReport(
            path=path,
            object_count=count,
            prerequisites=len(header.prerequisites),
            references=[name for _, name in header.references],
        )

    def list(self) -> list[BundleInfo]:
        """List artifacts: baselines by version, then updates by base version and time."""
        if not self.bundle_dir.is_dir():
            return []

        baselines: list[BundleInfo] = []
        updates: list[BundleInfo] = []
        for entry in self.bundle_dir.iterdir():
            if not entry.is_file():
                continue

            match = _BASELINE_NAME.match(entry.name)
            if match:
                script = verify_script_path(entry)
                baselines.append(BundleInfo(
                    kind="baseline",
                    version=match.group("version"),
                    path=entry,
                    size=entry.stat().st_size,
                    script=script if script.exists() else None,
                ))
                continue

            match = _UPDATE_NAME.match(entry.name)
            if match:
                script = deploy_script_path(entry)
                updates.append(BundleInfo(
                    kind="update",
                    version=match.group("version"),
                    path=entry,
                    size=entry.stat().st_size,
                    update_id=match.group("update_id"),
                    script=script if script.exists() else None,
                ))

        baselines.sort(key=lambda b: _version_key(b.version))
        updates.sort(key=lambda b: (_version_key(b.version), b.update_id or ""))
        return baselines + updates
