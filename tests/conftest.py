from __future__ import annotations

import logging
import shutil
import subprocess
from datetime import datetime, timedelta
from itertools import count
from pathlib import Path

import pytest

from gitbundle.config import BundleConfig, ConfigLoader
from gitbundle.core.controller import BundleController
from gitbundle.utils.log import LOGGER_NAME, configure_logging


requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


@pytest.fixture(autouse=True)
def _isolate_home(monkeypatch: pytest.MonkeyPatch, tmp_path):
    """Keep the developer's ~/.gitbundle and ~/.gitconfig out of tests."""

    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test Author")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "author@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test Committer")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "committer@example.com")
    monkeypatch.delenv("GITBUNDLE_DEBUG", raising=False)


@pytest.fixture(autouse=True)
def _reset_logging():
    """Start every test with a console-only logger and drop file handlers afterwards."""

    configure_logging()
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()


def run_git(repo: Path, *args: str) -> str:
    cp = subprocess.run(
        ["git", *args],
        cwd=str(repo),
        check=True,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
    )
    return cp.stdout.decode("utf-8").strip()


def commit_file(repo: Path, name: str, content: str, message: str | None = None) -> str:
    (repo / name).write_text(content)
    run_git(repo, "add", name)
    run_git(repo, "commit", "-q", "-m", message or f"Update {name}")
    return run_git(repo, "rev-parse", "HEAD")


@pytest.fixture
def git_repo(tmp_path):
    """A repository on branch master with one commit."""
    repo = tmp_path / "repo"
    repo.mkdir()
    run_git(repo, "init", "-q")
    run_git(repo, "symbolic-ref", "HEAD", "refs/heads/master")
    commit_file(repo, "app.py", "print('hello')\n", "Initial commit")
    return repo


@pytest.fixture
def clock():
    """A clock that advances one second per reading."""
    start = datetime(2024, 1, 2, 3, 4, 5)
    ticks = count()
    return lambda: start + timedelta(seconds=next(ticks))


@pytest.fixture
def config(tmp_path, git_repo):
    bundle_dir = tmp_path / "bundles"
    log_dir = tmp_path / "logs"
    bundle_dir.mkdir()
    log_dir.mkdir()
    return BundleConfig(
        repo_dir=str(git_repo),
        bundle_dir=str(bundle_dir),
        log_dir=str(log_dir),
    )


@pytest.fixture
def controller(config, clock, tmp_path):
    loader = ConfigLoader(tmp_path / "bundle_config.sh")
    return BundleController(config, loader=loader, now=clock)
