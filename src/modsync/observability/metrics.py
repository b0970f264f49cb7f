"""In-process metrics for reconciliation runs.

Metrics are keyed by name plus sorted tags, e.g.
``reconcile_entry_total[phase=disable,status=failed]``, and summarised into
the run report and a closing log event.
"""

from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

ENTRY_TOTAL = "reconcile_entry_total"
ENTRY_DURATION_MS = "reconcile_entry_duration_ms"


def metric_key(name: str, tags: dict[str, str] | None = None) -> str:
    """Flatten a metric name and its tags into a single key."""
    if not tags:
        return name
    rendered = ",".join(f"{k}={v}" for k, v in sorted(tags.items()))
    return f"{name}[{rendered}]"


@dataclass
class TimingStats:
    """Running aggregate of one timing series."""

    count: int = 0
    total: float = 0.0
    min: float = float("inf")
    max: float = 0.0

    def add(self, value: float) -> None:
        self.count += 1
        self.total += value
        self.min = min(self.min, value)
        self.max = max(self.max, value)

    def as_dict(self) -> dict[str, float]:
        return {
            "count": self.count,
            "avg": self.total / self.count if self.count else 0.0,
            "min": self.min if self.count else 0.0,
            "max": self.max,
        }


class MetricsBackend(ABC):
    """Sink for counters and timings."""

    @abstractmethod
    def increment(self, name: str, value: int = 1, tags: dict[str, str] | None = None) -> None:
        pass

    @abstractmethod
    def timing(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        pass


class LoggerBackend(MetricsBackend):
    """
    Keeps metrics in memory and reports them through the log.

    Nothing is exported; ``get_summary`` feeds the JSON report and
    ``log_summary`` writes one event at the end of a run.
    """

    def __init__(self) -> None:
        self.counters: Counter[str] = Counter()
        self.timings: dict[str, TimingStats] = {}

    def increment(self, name: str, value: int = 1, tags: dict[str, str] | None = None) -> None:
        self.counters[metric_key(name, tags)] += value

    def timing(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        self.timings.setdefault(metric_key(name, tags), TimingStats()).add(value)

    def get_summary(self) -> dict[str, Any]:
        return {
            "counters": dict(self.counters),
            "timings": {key: stats.as_dict() for key, stats in self.timings.items()},
        }

    def log_summary(self) -> None:
        summary = self.get_summary()
        logger.info("Run metrics", counters=summary["counters"], timings=summary["timings"])

    def reset(self) -> None:
        self.counters.clear()
        self.timings.clear()


class MetricsCollector:
    """
    Entry-level metrics for the reconciler.

    Every plan entry ends as exactly one ``reconcile_entry_total`` increment
    tagged with its phase and status (succeeded, failed or skipped).
    """

    def __init__(self, backend: str = "logger") -> None:
        """
        Args:
            backend: Backend name. Only "logger" exists; anything else falls
                back to it with a warning.
        """
        if backend != "logger":
            logger.warning("Unknown metrics backend, using logger", backend=backend)
        self.backend: LoggerBackend = LoggerBackend()

    def count_entry(self, phase: str, status: str) -> None:
        self.backend.increment(ENTRY_TOTAL, tags={"phase": phase, "status": status})

    def record_latency(self, phase: str, duration_ms: float) -> None:
        self.backend.timing(ENTRY_DURATION_MS, duration_ms, tags={"phase": phase})

    def get_summary(self) -> dict[str, Any]:
        return self.backend.get_summary()


_GLOBAL_COLLECTOR: MetricsCollector | None = None


def get_global_collector() -> MetricsCollector:
    """Process-wide collector shared by the reconciler, fetcher and runner."""
    global _GLOBAL_COLLECTOR
    if _GLOBAL_COLLECTOR is None:
        _GLOBAL_COLLECTOR = MetricsCollector()
    return _GLOBAL_COLLECTOR
