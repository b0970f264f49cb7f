"""Observability - Metrics, logging, and reporting."""

from .logger import LogContext, configure_logging
from .metrics import LoggerBackend, MetricsCollector, get_global_collector
from .reporter import ReportGenerator, SyncReport

__all__ = [
    "MetricsCollector",
    "LoggerBackend",
    "get_global_collector",
    "ReportGenerator",
    "SyncReport",
    "configure_logging",
    "LogContext",
]
