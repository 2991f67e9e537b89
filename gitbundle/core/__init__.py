"""Core modules for gitbundle."""

from .bundle_store import BundleInfo, BundleStore
from .controller import BundleController
from .errors import BundleError, ErrorKind, OperationResult

__all__ = [
    "BundleController",
    "BundleError",
    "BundleInfo",
    "BundleStore",
    "ErrorKind",
    "OperationResult",
]
