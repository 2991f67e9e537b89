"""Thin wrapper around the git executable.

Every call runs ``git`` in a given repository with a C locale so output can
be parsed, and never raises from subprocess itself: callers decide whether a
non-zero exit is fatal via ``GitError``.
"""

from __future__ import annotations

import os
import subprocess
from pathlib import Path

from ..utils.log import get_logger
from .errors import BundleError, ErrorKind


logger = get_logger(__name__)


class GitError(BundleError):
    """A git invocation failed."""

    def __init__(self, message: str, stderr: str = ""):
        detail = _last_line(stderr)
        super().__init__(ErrorKind.EXTERNAL, f"{message} ({detail})" if detail else message)
        self.stderr = stderr


def _last_line(text: str) -> str:
    for line in reversed(text.splitlines()):
        if line.strip():
            return line.strip()
    return ""


def _git_env() -> dict[str, str]:
    env = dict(os.environ)
    # Deterministic parsing: avoid localized output.
    env.setdefault("LANG", "C")
    env.setdefault("LC_ALL", "C")
    return env


def run_git(
    repo_root: Path,
    args: list[str],
    *,
    input_bytes: bytes | None = None,
) -> subprocess.CompletedProcess[bytes]:
    logger.debug("git %s", " ".join(args))
    try:
        cp = subprocess.run(
            ["git", *args],
            cwd=str(repo_root),
            env=_git_env(),
            input=input_bytes,
            stdin=None if input_bytes is not None else subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            check=False,
        )
    except FileNotFoundError as e:
        raise GitError("git executable not found", str(e)) from e
    if cp.returncode != 0 and cp.stderr:
        logger.debug("git exited %d: %s", cp.returncode, _decode(cp.stderr).strip())
    return cp


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def _checked(repo_root: Path, args: list[str], message: str) -> str:
    cp = run_git(repo_root, args)
    if cp.returncode != 0:
        raise GitError(message, _decode(cp.stderr))
    return _decode(cp.stdout).strip()


def is_git_repo(path: Path | None) -> bool:
    """True if path contains a `.git` directory (or worktree file)."""
    return path is not None and (path / ".git").exists()


def rev_exists(repo_root: Path, rev: str) -> bool:
    cp = run_git(repo_root, ["rev-parse", "--verify", "--quiet", rev])
    return cp.returncode == 0


def resolve_commit(repo_root: Path, rev: str) -> str:
    return _checked(repo_root, ["rev-parse", "--verify", f"{rev}^{{commit}}"], f"Cannot resolve {rev}")


def current_branch(repo_root: Path) -> str | None:
    """Short name of the checked-out branch, None when HEAD is detached."""
    cp = run_git(repo_root, ["symbolic-ref", "--quiet", "--short", "HEAD"])
    if cp.returncode != 0:
        return None
    name = _decode(cp.stdout).strip()
    return name or None


def object_format(repo_root: Path) -> str:
    """Hash algorithm of the repository ("sha1" or "sha256")."""
    cp = run_git(repo_root, ["rev-parse", "--show-object-format"])
    fmt = _decode(cp.stdout).strip() if cp.returncode == 0 else ""
    # Older git prints the option back verbatim.
    return fmt if fmt in ("sha1", "sha256") else "sha1"


def commit_subject(repo_root: Path, rev: str) -> str:
    return _checked(repo_root, ["log", "-1", "--format=%s", rev], f"Cannot read commit {rev}")


def count_commits(repo_root: Path, rev_range: str) -> int:
    out = _checked(repo_root, ["rev-list", "--count", rev_range], f"Cannot count commits in {rev_range}")
    return int(out or "0")


def list_revisions(repo_root: Path, rev_range: str) -> list[str]:
    cp = run_git(repo_root, ["rev-list", rev_range])
    if cp.returncode != 0:
        raise GitError(f"Cannot list commits in {rev_range}", _decode(cp.stderr))
    return [line for line in _decode(cp.stdout).split() if line]


def create_annotated_tag(repo_root: Path, tag: str, message: str) -> None:
    _checked(repo_root, ["tag", "-a", tag, "-m", message], f"Failed to create tag {tag}")


def create_branch(repo_root: Path, name: str) -> None:
    _checked(repo_root, ["branch", name], f"Failed to create backup branch {name}")


def revert_no_commit(repo_root: Path, commits: list[str]) -> None:
    """Revert commits (newest first) into the index and working tree without committing."""
    _checked(repo_root, ["revert", "--no-commit", *commits], "Failed to revert commits")


def commit(repo_root: Path, message: str) -> str:
    _checked(repo_root, ["commit", "-q", "-m", message], "Failed to commit")
    return resolve_commit(repo_root, "HEAD")


def bundle_create(repo_root: Path, bundle_file: Path, rev_args: list[str], message: str) -> None:
    _checked(repo_root, ["bundle", "create", str(bundle_file), *rev_args], message)


def bundle_verify(repo_root: Path, bundle_file: Path) -> str:
    """Run `git bundle verify`; returns git's report."""
    cp = run_git(repo_root, ["bundle", "verify", str(bundle_file)])
    if cp.returncode != 0:
        raise GitError(f"Bundle verification failed for {bundle_file}", _decode(cp.stderr))
    # git writes the report to stderr
    return (_decode(cp.stdout) + _decode(cp.stderr)).strip()


def empty_pack(repo_root: Path) -> bytes:
    """A valid packfile containing no objects."""
    cp = run_git(repo_root, ["pack-objects", "-q", "--stdout"], input_bytes=b"")
    if cp.returncode != 0:
        raise GitError("Failed to create empty pack", _decode(cp.stderr))
    return cp.stdout
