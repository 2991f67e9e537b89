"""File system utilities for gitbundle.

Provides atomic writes and directory creation.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path


def atomic_write(
    file_path: Path | str,
    content: str | bytes,
    mode: str = "w",
    *,
    executable: bool = False,
) -> Path:
    """Write content atomically using tempfile + rename pattern.

    Args:
        file_path: Target file path
        content: Content to write
        mode: Write mode ('w' for text, 'wb' for binary)
        executable: Mark the file 0755 before it is moved into place

    Returns:
        The target path
    """
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    # Create temp file in same directory for atomic rename
    fd, tmp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp"
    )

    try:
        with os.fdopen(fd, mode) as f:
            f.write(content)
        os.chmod(tmp_path, 0o755 if executable else 0o644)
        os.replace(tmp_path, path)
    except Exception:
        # Clean up temp file on failure
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise

    return path


def ensure_dir(dir_path: Path | str) -> Path:
    """Ensure directory exists, creating it if necessary.

    Args:
        dir_path: Directory path to create

    Returns:
        Path object for the directory
    """
    path = Path(dir_path)
    path.mkdir(parents=True, exist_ok=True)
    return path
