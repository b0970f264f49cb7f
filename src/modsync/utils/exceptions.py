"""Custom exceptions for modsync.

Exception Hierarchy:
-------------------
ModsyncError (base)
├── PlanValidationError        # Plan document unreadable or malformed
├── InstanceNotFoundError      # Instance directory unset, missing or not a directory
├── InstanceManifestError      # minecraftinstance.json unreadable or malformed
├── SyncInProgressError        # Another run holds the instance directory
├── FileOperationError         # rename/delete/write failed inside the instance
├── FetchError                 # Remote content could not be downloaded
├── DecodeError                # Override payload could not be decoded
├── UnsafePathError            # Plan path resolves outside the instance directory
└── ReconcileAbortedError      # Fatal phase failure, remaining phases not run

Usage Guidelines:
----------------
1. FileOperationError and FetchError are raised by the collaborators
   (FileMutator, ContentFetcher). The Reconciler decides whether they are
   fatal or recoverable based on the phase they occur in.

2. ReconcileAbortedError is the only exception that leaves Reconciler.apply
   for entry failures. It wraps the original error as ``cause`` and names the
   phase and the entry that failed.

3. Recoverable failures (disable and override phases) never propagate; they
   are logged and returned as EntryFailure records in ReconcileResult.
"""

from ..models.results import ReconcileResult


class ModsyncError(Exception):
    """Base exception for all modsync errors."""

    pass


class PlanValidationError(ModsyncError):
    """Raised when an update plan cannot be parsed or validated."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        """
        Initialize PlanValidationError.

        Args:
            message: Error message.
            original_error: Optional original exception that caused this error.
        """
        super().__init__(message)
        self.original_error = original_error


class InstanceNotFoundError(ModsyncError):
    """Raised when the instance directory is not configured or does not exist."""

    def __init__(self, location: str | None) -> None:
        """
        Initialize InstanceNotFoundError.

        Args:
            location: Configured instance location (None if unset).
        """
        if location:
            message = f"Instance directory not found: {location}"
        else:
            message = "No instance directory defined"
        super().__init__(message)
        self.location = location


class InstanceManifestError(ModsyncError):
    """Raised when the instance metadata file cannot be read."""

    pass


class SyncInProgressError(ModsyncError):
    """Raised when a run is already active against the same instance directory."""

    def __init__(self, instance_root: str) -> None:
        super().__init__(f"An update is already running for {instance_root}")
        self.instance_root = instance_root


class FileOperationError(ModsyncError):
    """Raised when a file operation inside the instance directory fails."""

    def __init__(
        self,
        operation: str,
        path: str,
        original_error: Exception | None = None,
    ) -> None:
        """
        Initialize FileOperationError.

        Args:
            operation: Operation that failed (rename, delete, write).
            path: Path the operation was applied to.
            original_error: Underlying OSError, if any.
        """
        detail = f": {original_error}" if original_error else ""
        super().__init__(f"{operation} failed for {path}{detail}")
        self.operation = operation
        self.path = path
        self.original_error = original_error


class FetchError(ModsyncError):
    """Raised when remote content cannot be fetched."""

    def __init__(self, url: str, message: str, status_code: int | None = None) -> None:
        """
        Initialize FetchError.

        Args:
            url: URL that was requested.
            message: Error message.
            status_code: Optional HTTP status code.
        """
        super().__init__(f"Download of {url} failed: {message}")
        self.url = url
        self.status_code = status_code


class DecodeError(ModsyncError):
    """Raised when an override payload is not valid for its detected type."""

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"Cannot decode override {key}: {reason}")
        self.key = key
        self.reason = reason


class UnsafePathError(ModsyncError):
    """Raised when a plan path would resolve outside the instance directory."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Path escapes the instance directory: {path}")
        self.path = path


class ReconcileAbortedError(ModsyncError):
    """
    Raised when an entry of a fatal phase (add, replace, remove) fails.

    The remaining entries of the phase and all later phases are not executed.
    The instance directory is left in a partially updated state. ``result``
    holds the run's counters up to the failing entry, so callers can tell how
    far the update got.
    """

    def __init__(
        self,
        phase: str,
        entry: str,
        cause: Exception,
        result: ReconcileResult | None = None,
    ) -> None:
        """
        Initialize ReconcileAbortedError.

        Args:
            phase: Phase that failed (add, replace, remove).
            entry: Filename of the entry that failed.
            cause: Original exception.
            result: Partial result of the aborted run.
        """
        super().__init__(f"Update aborted in {phase} phase at {entry}: {cause}")
        self.phase = phase
        self.entry = entry
        self.cause = cause
        self.result = result
