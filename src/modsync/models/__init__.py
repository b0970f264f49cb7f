"""Data models for modsync."""

from .plan import OverrideEntry, UpdateFile, UpdatePlan
from .results import EntryFailure, EntryStatus, Phase, ReconcileResult

__all__ = [
    # Plan
    "UpdateFile",
    "OverrideEntry",
    "UpdatePlan",
    # Results
    "Phase",
    "EntryStatus",
    "EntryFailure",
    "ReconcileResult",
]
