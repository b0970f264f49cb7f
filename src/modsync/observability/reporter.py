"""Sync Report Generator.

Generates JSON reports for reconciliation runs.
"""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import structlog

from ..models.plan import UpdatePlan
from ..models.results import ReconcileResult
from ..utils.exceptions import ReconcileAbortedError

logger = structlog.get_logger(__name__)


@dataclass
class SyncReport:
    """
    Structured report data for one run.

    Attributes:
        session_id: Session identifier
        status: completed, partial (recoverable failures) or aborted
        instance: Instance directory
        start_time: Start timestamp
        end_time: End timestamp
        duration_seconds: Total duration
        total: Progress denominator
        completed: Entries applied
        skipped: Entries skipped for missing optional fields
        final_percent: Last progress value reported
        phase_counts: Planned entries per phase
        errors: Recoverable failures, plus the fatal error if aborted
        metrics: Metrics summary
    """

    session_id: str
    status: str
    instance: str
    start_time: str
    end_time: str
    duration_seconds: float
    total: int
    completed: int
    skipped: int
    final_percent: float
    phase_counts: dict[str, int] = field(default_factory=dict)
    errors: list[dict[str, Any]] = field(default_factory=list)
    metrics: dict[str, Any] = field(default_factory=dict)


class ReportGenerator:
    """
    Generate reports for reconciliation runs.
    """

    def generate_report(
        self,
        session_id: str,
        instance_root: Path,
        plan: UpdatePlan,
        start_time: datetime,
        end_time: datetime,
        result: ReconcileResult | None,
        metrics: dict[str, Any],
        fatal_error: ReconcileAbortedError | None = None,
    ) -> SyncReport:
        """
        Build a report from a finished run.

        Args:
            session_id: Session identifier
            instance_root: Instance directory
            plan: Plan that was applied
            start_time: Start timestamp
            end_time: End timestamp
            result: Run result (None when the run was aborted; the partial
                result carried by ``fatal_error`` is used instead)
            metrics: Metrics summary
            fatal_error: The abort signal, if the run was aborted

        Returns:
            SyncReport object
        """
        if result is None and fatal_error is not None:
            result = fatal_error.result

        errors: list[dict[str, Any]] = []
        if result is not None:
            errors = [
                {
                    "phase": failure.phase.value,
                    "entry": failure.entry,
                    "error_type": failure.error_type,
                    "error": failure.error_message,
                    "fatal": False,
                }
                for failure in result.failures
            ]

        if fatal_error is not None:
            status = "aborted"
            errors.append(
                {
                    "phase": fatal_error.phase,
                    "entry": fatal_error.entry,
                    "error_type": type(fatal_error.cause).__name__,
                    "error": str(fatal_error.cause),
                    "fatal": True,
                }
            )
        elif result is not None and result.failures:
            status = "partial"
        else:
            status = "completed"

        completed = result.completed if result else 0
        total = plan.total
        return SyncReport(
            session_id=session_id,
            status=status,
            instance=str(instance_root),
            start_time=start_time.isoformat(),
            end_time=end_time.isoformat(),
            duration_seconds=(end_time - start_time).total_seconds(),
            total=total,
            completed=completed,
            skipped=result.skipped if result else 0,
            final_percent=result.percent_complete if result else 0.0,
            phase_counts=plan.phase_counts(),
            errors=errors,
            metrics=metrics,
        )

    def write_json_report(self, report: SyncReport, output_path: Path) -> None:
        """
        Write report as JSON.

        Args:
            report: Sync report
            output_path: Output file path
        """
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, "w") as f:
            json.dump(asdict(report), f, indent=2)

        logger.info("JSON report written", path=str(output_path))
