"""Result types for reconciliation runs."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Phase(str, Enum):
    """Reconciliation phases, in execution order."""

    ADD = "add"
    REPLACE = "replace"
    DISABLE = "disable"
    REMOVE = "remove"
    OVERRIDES = "overrides"

    @property
    def is_fatal(self) -> bool:
        """Whether an entry failure in this phase aborts the run."""
        return self in (Phase.ADD, Phase.REPLACE, Phase.REMOVE)


class EntryStatus(str, Enum):
    """Outcome of a single plan entry."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class EntryFailure:
    """
    A recoverable failure recorded during a run.

    Attributes:
        phase: Phase the entry belongs to
        entry: Filename or override key identifying the entry
        error_type: Exception class name
        error_message: Error details
    """

    phase: Phase
    entry: str
    error_type: str
    error_message: str


@dataclass
class ReconcileResult:
    """
    Overall result of a reconciliation run.

    A run that hits a fatal failure raises instead of returning a result; the
    partial result travels on the ReconcileAbortedError.

    Attributes:
        total: Progress denominator fixed before the run started
        completed: Entries that reached their action (the progress counter)
        skipped: Entries skipped for missing optional fields
        failures: Recoverable failures, in the order they happened
        progress_events: Number of progress callbacks fired
        started_at: Start timestamp
        completed_at: Completion timestamp
    """

    total: int
    completed: int = 0
    skipped: int = 0
    failures: list[EntryFailure] = field(default_factory=list)
    progress_events: int = 0
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def percent_complete(self) -> float:
        """
        Final progress value as reported to the observer.

        Returns:
            float: Percentage (0.0 to 100.0), 100.0 for an empty plan.
        """
        if self.total == 0:
            return 100.0
        return min(100.0, self.completed / self.total * 100)

    @property
    def duration_seconds(self) -> float:
        if self.started_at is None or self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()

    @property
    def is_complete_success(self) -> bool:
        """
        Check if every counted entry was applied without failure.

        Returns:
            bool: True if no recoverable failures and nothing skipped.
        """
        return not self.failures and self.skipped == 0

    def get_summary(self) -> str:
        """
        Get a human-readable summary.

        Returns:
            str: Summary string with counts and final progress.
        """
        return (
            f"{self.completed}/{self.total} applied, "
            f"{len(self.failures)} failed, {self.skipped} skipped "
            f"({self.percent_complete:.1f}% reported)"
        )
