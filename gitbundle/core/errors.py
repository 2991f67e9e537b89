"""Error kinds and operation results.

Helpers raise ``BundleError``; each public controller operation turns it into
an ``OperationResult`` and the CLI is the only place that logs the failure
and picks the exit status.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Why an operation failed."""
    CONFIG = "config"              # missing/invalid repository or directory
    VALIDATION = "validation"      # malformed input such as a version string
    PRECONDITION = "precondition"  # baseline tag absent, artifact already present
    EXTERNAL = "external"          # git or filesystem failure


class BundleError(Exception):
    """Raised by gitbundle helpers; carries an ErrorKind."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


@dataclass
class OperationResult:
    """Result of a controller operation."""
    success: bool
    error: str | None = None
    kind: ErrorKind | None = None
    bundle: str | None = None
    script: str | None = None
    tag: str | None = None
    branch: str | None = None
    commit: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failure(cls, exc: BundleError) -> OperationResult:
        return cls(success=False, error=exc.message, kind=exc.kind)
