"""Execution engine for applying update plans."""

from .reconciler import ProgressCallback, Reconciler
from .runner import SyncRunner

__all__ = ["Reconciler", "ProgressCallback", "SyncRunner"]
