"""
Sync Runner - drive one reconciliation run from the command line.

This module wraps the Reconciler with everything a front end needs:
1. Per-instance exclusivity (one run per instance directory)
2. Fetcher lifecycle
3. Log context binding
4. Progress bar rendering
5. Report generation
"""

import uuid
from datetime import datetime
from pathlib import Path

import structlog
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from ..config import ModsyncConfig
from ..models.plan import UpdatePlan
from ..models.results import ReconcileResult
from ..observability.logger import LogContext
from ..observability.metrics import get_global_collector
from ..observability.reporter import ReportGenerator
from ..remote.fetcher import ContentFetcher, HttpContentFetcher
from ..utils.exceptions import ReconcileAbortedError
from ..utils.locking import KeyedLock
from .reconciler import Reconciler

logger = structlog.get_logger(__name__)

# Shared by every runner in the process so two runs never target one instance
_INSTANCE_LOCKS = KeyedLock()


class SyncRunner:
    """
    Executes an update plan against an instance directory from start to finish.
    """

    def __init__(
        self,
        config: ModsyncConfig,
        console: Console,
        fetcher: ContentFetcher | None = None,
        locks: KeyedLock | None = None,
    ) -> None:
        """
        Initialize SyncRunner.

        Args:
            config: modsync configuration
            console: Rich console for output
            fetcher: Optional content fetcher (an HttpContentFetcher from
                config is created and closed per run if None)
            locks: Optional lock registry (process-wide registry if None)
        """
        self.config = config
        self.console = console
        self.fetcher = fetcher
        self.locks = locks or _INSTANCE_LOCKS

    async def run(
        self,
        plan: UpdatePlan,
        instance_root: Path,
        report_path: Path | None = None,
        session_id: str | None = None,
    ) -> int:
        """
        Apply a plan.

        Args:
            plan: Update plan
            instance_root: Resolved instance directory
            report_path: Optional path for a JSON report
            session_id: Optional session identifier (generated if None)

        Returns:
            int: 0 when every phase ran (recoverable failures included),
                1 when the run was aborted

        Raises:
            SyncInProgressError: If a run is already active for the instance
        """
        key = str(instance_root.resolve())
        session_id = session_id or str(uuid.uuid4())[:8]
        async with self.locks.acquire(key, wait=False):
            with LogContext(session_id=session_id, instance=key):
                return await self._run_locked(plan, instance_root, report_path, session_id)

    async def _run_locked(
        self,
        plan: UpdatePlan,
        instance_root: Path,
        report_path: Path | None,
        session_id: str,
    ) -> int:
        # Reports carry this run's metrics only
        get_global_collector().backend.reset()
        start_time = datetime.now()
        result: ReconcileResult | None = None
        fatal: ReconcileAbortedError | None = None

        owns_fetcher = self.fetcher is None
        fetcher = self.fetcher or HttpContentFetcher(self.config.fetch)
        reconciler = Reconciler(
            fetcher,
            mods_dirname=self.config.instance.mods_dir,
            disabled_suffix=self.config.instance.disabled_suffix,
        )

        progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TimeElapsedColumn(),
            console=self.console,
        )

        try:
            with progress:
                task = progress.add_task("[cyan]Updating modpack...", total=100)

                def on_progress(percent: float) -> None:
                    progress.update(task, completed=percent)

                try:
                    result = await reconciler.apply(plan, instance_root, on_progress)
                    progress.update(task, description="[green]DONE: Modpack updated")
                except ReconcileAbortedError as e:
                    fatal = e
                    progress.update(task, description="[red]FAILED: Update aborted")
        finally:
            if owns_fetcher:
                await fetcher.close()  # type: ignore[attr-defined]

        end_time = datetime.now()
        get_global_collector().backend.log_summary()

        if fatal is not None:
            logger.error("Update aborted", phase=fatal.phase, entry=fatal.entry)
            self.console.print(f"\n[bold red]ERROR:[/bold red] {fatal}")
        elif result is not None:
            self._print_summary(result)

        if report_path:
            generator = ReportGenerator()
            report = generator.generate_report(
                session_id=session_id,
                instance_root=instance_root,
                plan=plan,
                start_time=start_time,
                end_time=end_time,
                result=result,
                metrics=get_global_collector().get_summary(),
                fatal_error=fatal,
            )
            generator.write_json_report(report, report_path)
            self.console.print(f"[green]Report written to {report_path}[/green]")

        return 1 if fatal is not None else 0

    def _print_summary(self, result: ReconcileResult) -> None:
        self.console.print(f"\n[bold]Summary:[/bold] {result.get_summary()}")

        if result.is_complete_success:
            self.console.print("[green]Every entry in the plan was applied[/green]")
            return

        if result.skipped:
            self.console.print(
                f"[yellow]WARNING: {result.skipped} entries had nothing to apply; "
                f"progress ends at {result.percent_complete:.1f}%[/yellow]"
            )

        if result.failures:
            table = Table(title="Entries that could not be applied")
            table.add_column("Phase", style="cyan")
            table.add_column("Entry")
            table.add_column("Error", style="red")
            for failure in result.failures:
                table.add_row(failure.phase.value, failure.entry, failure.error_message)
            self.console.print(table)
