"""Utility functions and exceptions."""

from .exceptions import (
    DecodeError,
    FetchError,
    FileOperationError,
    InstanceManifestError,
    InstanceNotFoundError,
    ModsyncError,
    PlanValidationError,
    ReconcileAbortedError,
    SyncInProgressError,
    UnsafePathError,
)

__all__ = [
    "ModsyncError",
    "PlanValidationError",
    "InstanceNotFoundError",
    "InstanceManifestError",
    "SyncInProgressError",
    "FileOperationError",
    "FetchError",
    "DecodeError",
    "UnsafePathError",
    "ReconcileAbortedError",
]
