"""Tests for the operation log."""

from __future__ import annotations

import logging

from gitbundle.utils.log import LOG_FILE_NAME, attach_log_file, configure_logging, get_logger


def test_message_goes_to_stdout_and_file(tmp_path, capsys):
    """Test that a message reaches stdout and the log file."""
    configure_logging(tmp_path)

    get_logger("core.controller").info("Baseline bundle created: /x")

    out = capsys.readouterr().out
    assert out.startswith("[")
    assert out.rstrip().endswith("] Baseline bundle created: /x")
    assert (tmp_path / LOG_FILE_NAME).read_text() == out


def test_missing_log_dir_is_not_created(tmp_path, capsys):
    """The logger never creates the log directory."""
    missing = tmp_path / "logs"

    configure_logging(missing)
    get_logger().info("hello")

    assert not missing.exists()
    assert "hello" in capsys.readouterr().out


def test_file_is_appended_not_truncated(tmp_path):
    """Test appending to an existing log file."""
    (tmp_path / LOG_FILE_NAME).write_text("[2020-01-01 00:00:00] earlier\n")

    configure_logging(tmp_path)
    get_logger().info("later")

    lines = (tmp_path / LOG_FILE_NAME).read_text().splitlines()
    assert lines[0] == "[2020-01-01 00:00:00] earlier"
    assert lines[1].endswith("] later")


def test_attach_is_idempotent(tmp_path):
    """Test attaching the same log file twice."""
    configure_logging()

    first = attach_log_file(tmp_path)
    second = attach_log_file(tmp_path)

    assert first == second
    handlers = [h for h in logging.getLogger("gitbundle").handlers if isinstance(h, logging.FileHandler)]
    assert len(handlers) == 1


def test_debug_level(capsys):
    """Test that debug messages need debug mode."""
    configure_logging(debug=False)
    get_logger().debug("hidden")
    configure_logging(debug=True)
    get_logger().debug("shown")

    out = capsys.readouterr().out
    assert "hidden" not in out
    assert "shown" in out
