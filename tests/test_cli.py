"""Tests for the gitbundle command-line interface."""

from __future__ import annotations

import re
from pathlib import Path

import pytest

from conftest import commit_file, requires_git, run_git
from gitbundle.app.cli import main
from gitbundle.config import ConfigLoader
from gitbundle.utils.log import LOG_FILE_NAME


LINE = re.compile(r"^\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\] ")


@pytest.fixture
def config_path(tmp_path) -> Path:
    return tmp_path / "bundle_config.sh"


@pytest.fixture
def configured(tmp_path, git_repo, config_path):
    """Run `setup` through the CLI and return (bundle_dir, log_dir)."""
    bundle_dir = tmp_path / "bundles"
    log_dir = tmp_path / "logs"
    assert main(["setup", str(git_repo), str(bundle_dir), str(log_dir)], config_path=config_path) == 0
    return bundle_dir, log_dir


@pytest.mark.parametrize("argv", [[], ["help"], ["frobnicate"], ["frobnicate", "x"]])
def test_help_and_unknown_verbs_exit_zero(argv, capsys, config_path):
    """Test that help, no verb and unknown verbs print usage and exit 0."""
    assert main(argv, config_path=config_path) == 0

    out = capsys.readouterr().out
    assert "usage: gitbundle" in out
    assert "baseline <version>" in out
    assert not config_path.exists()


def test_version_flag(capsys):
    """Test --version."""
    with pytest.raises(SystemExit) as exc:
        main(["--version"])
    assert exc.value.code == 0
    assert "gitbundle" in capsys.readouterr().out


@requires_git
def test_setup_writes_config(configured, config_path, git_repo):
    """Test setup through the CLI."""
    bundle_dir, log_dir = configured

    cfg = ConfigLoader(config_path).load()
    assert cfg.repo_dir == str(git_repo)
    assert cfg.bundle_dir == str(bundle_dir)
    assert bundle_dir.is_dir()
    log_text = (log_dir / LOG_FILE_NAME).read_text()
    assert f"Configuration file created: {config_path}" in log_text


@requires_git
def test_error_is_logged_and_exits_one(configured, config_path, capsys):
    """Failures are logged with a timestamp and exit with status 1."""
    _, log_dir = configured
    capsys.readouterr()

    assert main(["baseline", "1.0"], config_path=config_path) == 1

    out = capsys.readouterr().out
    assert "ERROR: Invalid version format. Use semantic versioning (e.g., 1.0.0)" in out
    last = (log_dir / LOG_FILE_NAME).read_text().splitlines()[-1]
    assert LINE.match(last)
    assert last.endswith("ERROR: Invalid version format. Use semantic versioning (e.g., 1.0.0)")


@requires_git
def test_baseline_update_list_verify(configured, config_path, git_repo, capsys):
    """Test a full baseline, update, list and verify cycle."""
    bundle_dir, log_dir = configured

    assert main(["baseline", "1.0.0"], config_path=config_path) == 0
    commit_file(git_repo, "feature.py", "x = 1\n")
    assert main(["update", "1.0.0"], config_path=config_path) == 0

    names = sorted(p.name for p in bundle_dir.iterdir())
    assert names[0] == "baseline_1.0.0.bundle"
    assert names[1] == "baseline_1.0.0_verify.sh"
    assert re.fullmatch(r"update_1\.0\.0_\d{8}_\d{6}\.bundle", names[2])
    assert names[3] == names[2][: -len(".bundle")] + "_deploy.sh"

    capsys.readouterr()
    assert main(["list"], config_path=config_path) == 0
    listing = capsys.readouterr().out
    assert "baseline_1.0.0.bundle" in listing
    assert names[2] in listing

    assert main(["verify", "baseline_1.0.0.bundle"], config_path=config_path) == 0

    log_lines = (log_dir / LOG_FILE_NAME).read_text().splitlines()
    assert all(LINE.match(line) for line in log_lines)
    assert any("Baseline bundle verified successfully." in line for line in log_lines)
    assert any("Update bundle verified successfully." in line for line in log_lines)


@requires_git
def test_update_without_baseline(configured, config_path, capsys):
    """Test updating from a baseline that was never created."""
    assert main(["update", "3.2.1"], config_path=config_path) == 1
    assert "ERROR: Baseline version 3.2.1 not found" in capsys.readouterr().out


@requires_git
def test_rollback_default_count(configured, config_path, git_repo):
    """Test rollback without a commit count."""
    commit_file(git_repo, "a.txt", "a\n", "Add a")

    assert main(["rollback"], config_path=config_path) == 0

    assert run_git(git_repo, "log", "-1", "--format=%s") == "Rollback: Reverted the last 1 commit(s)"
    assert any(b.startswith("backup_") for b in run_git(git_repo, "branch", "--format=%(refname:short)").split())


def test_operations_without_setup_fail(config_path, capsys):
    """Test running an operation before setup."""
    assert main(["baseline", "1.0.0"], config_path=config_path) == 1
    assert "ERROR: Failed to navigate to repo" in capsys.readouterr().out


def test_list_without_bundle_dir(config_path, capsys):
    """Test listing when no bundle directory is configured."""
    assert main(["list"], config_path=config_path) == 0
    assert "No bundles found." in capsys.readouterr().out


@requires_git
def test_debug_logs_git_commands(configured, config_path, capsys):
    """--debug echoes git invocations to the console."""
    capsys.readouterr()

    assert main(["--debug", "baseline", "2.0.0"], config_path=config_path) == 0

    assert "git bundle create" in capsys.readouterr().out
