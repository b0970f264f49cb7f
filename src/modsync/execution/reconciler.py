"""Reconciler - apply an update plan to an instance directory.

Executes the five phases of an update plan against the instance directory,
one entry at a time, and reports progress after every applied entry.

Phase order and failure policy:

    1. add        fetch new mods into mods/                       fatal
    2. replace    delete mods/<old>, then fetch mods/<new>        fatal
    3. disable    rename mods/<file> to mods/<file>.disabled      recoverable
    4. remove     delete mods/<file>                              fatal
    5. overrides  decode and safe-write <instance>/<key>          recoverable

A fatal failure raises ReconcileAbortedError and nothing after the failing
entry runs. Recoverable failures are logged and collected in
ReconcileResult.failures.

Entries run strictly sequentially, even across phases: destination names are
not unique across phases and a changed mod must be gone before its
replacement is written.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import structlog

from ..constants import DISABLED_SUFFIX, MODS_DIRNAME
from ..core.overrides import OverrideDecoder, strip_overrides_prefix
from ..filesystem.mutator import FileMutator
from ..models.plan import OverrideEntry, UpdateFile, UpdatePlan
from ..models.results import EntryFailure, EntryStatus, Phase, ReconcileResult
from ..observability.metrics import get_global_collector
from ..remote.fetcher import ContentFetcher
from ..utils.exceptions import InstanceNotFoundError, ModsyncError, ReconcileAbortedError
from ..validation.safety import resolve_within

logger = structlog.get_logger(__name__)

ProgressCallback = Callable[[float], None]


def _ignore_progress(percent: float) -> None:
    pass


@dataclass
class _RunContext:
    """
    State of a single run.

    Owns the progress counter; a fresh context is created per apply() call so
    nothing leaks between runs.
    """

    instance_root: Path
    mods_dir: Path
    on_progress: ProgressCallback
    result: ReconcileResult

    def advance(self) -> None:
        """Count one applied entry and notify the observer before moving on."""
        self.result.completed += 1
        total = self.result.total
        # overridesTotal comes from the plan producer and may undercount
        percent = 100.0 if total == 0 else min(100.0, self.result.completed / total * 100)
        self.result.progress_events += 1
        self.on_progress(percent)


class Reconciler:
    """
    Apply update plans with strict ordering and phase-specific failure handling.

    Collaborators:
    - fetcher: downloads remote content (ContentFetcher protocol)
    - mutator: renames, deletes and safe-writes files
    - decoder: turns override payloads into bytes
    """

    def __init__(
        self,
        fetcher: ContentFetcher,
        mutator: FileMutator | None = None,
        decoder: OverrideDecoder | None = None,
        mods_dirname: str = MODS_DIRNAME,
        disabled_suffix: str = DISABLED_SUFFIX,
    ) -> None:
        """
        Initialize reconciler.

        Args:
            fetcher: Content fetcher used by the add and replace phases
            mutator: File mutator (a default FileMutator if None)
            decoder: Override decoder (a default OverrideDecoder if None)
            mods_dirname: Name of the mods subdirectory
            disabled_suffix: Suffix appended by the disable phase
        """
        self.fetcher = fetcher
        self.mutator = mutator or FileMutator()
        self.decoder = decoder or OverrideDecoder()
        self.mods_dirname = mods_dirname
        self.disabled_suffix = disabled_suffix
        self.collector = get_global_collector()

    async def apply(
        self,
        plan: UpdatePlan,
        instance_root: Path,
        on_progress: ProgressCallback | None = None,
    ) -> ReconcileResult:
        """
        Execute every phase of ``plan`` against ``instance_root``.

        Args:
            plan: Update plan, consumed by this run
            instance_root: Instance directory (must exist)
            on_progress: Called with the completed percentage after every
                applied entry, synchronously, before the next entry starts

        Returns:
            ReconcileResult with counts and recoverable failures

        Raises:
            InstanceNotFoundError: If instance_root is not a directory
            ReconcileAbortedError: If an add, replace or remove entry fails
        """
        if not instance_root.is_dir():
            raise InstanceNotFoundError(str(instance_root))

        ctx = _RunContext(
            instance_root=instance_root,
            mods_dir=instance_root / self.mods_dirname,
            on_progress=on_progress or _ignore_progress,
            result=ReconcileResult(total=plan.total, started_at=datetime.now()),
        )

        logger.info(
            "Starting reconciliation",
            instance=str(instance_root),
            total=plan.total,
            **plan.phase_counts(),
        )

        await self._run_add(plan.new_addons, ctx)
        await self._run_replace(plan.changed_addons, ctx)
        await self._run_disable(plan.disabled_addons, ctx)
        await self._run_remove(plan.removed_addons, ctx)
        await self._run_overrides(plan.overrides, ctx)

        result = ctx.result
        result.completed_at = datetime.now()
        logger.info(
            "Reconciliation complete",
            completed=result.completed,
            total=result.total,
            skipped=result.skipped,
            failed=len(result.failures),
            duration_seconds=f"{result.duration_seconds:.2f}",
        )
        return result

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    async def _run_add(self, entries: list[UpdateFile], ctx: _RunContext) -> None:
        logger.info("Add phase", entries=len(entries))
        for entry in entries:
            if entry.download_url is None:
                self._skip(Phase.ADD, entry.label, "no download url", ctx)
                continue

            start = time.monotonic()
            try:
                await self.fetcher.fetch(entry.download_url, ctx.mods_dir, entry.filename)
            except (ModsyncError, OSError) as e:
                self._fail(Phase.ADD, entry.label, e, ctx)
            else:
                self._succeed(Phase.ADD, entry.label, start)
                ctx.advance()

    async def _run_replace(self, entries: list[UpdateFile], ctx: _RunContext) -> None:
        logger.info("Replace phase", entries=len(entries))
        for entry in entries:
            if entry.download_url is None or entry.old_filename is None:
                self._skip(Phase.REPLACE, entry.label, "no download url or old filename", ctx)
                continue

            start = time.monotonic()
            try:
                old_path = resolve_within(ctx.mods_dir, entry.old_filename)
                await self.mutator.delete(old_path)
                await self.fetcher.fetch(entry.download_url, ctx.mods_dir, entry.filename)
            except (ModsyncError, OSError) as e:
                self._fail(Phase.REPLACE, entry.label, e, ctx)
            else:
                self._succeed(Phase.REPLACE, entry.label, start)
                ctx.advance()

    async def _run_disable(self, entries: list[UpdateFile], ctx: _RunContext) -> None:
        logger.info("Disable phase", entries=len(entries))
        for entry in entries:
            start = time.monotonic()
            try:
                src = resolve_within(ctx.mods_dir, entry.filename)
                dst = resolve_within(ctx.mods_dir, entry.filename + self.disabled_suffix)
                await self.mutator.rename(src, dst)
            except (ModsyncError, OSError) as e:
                self._fail(Phase.DISABLE, entry.label, e, ctx)
            else:
                self._succeed(Phase.DISABLE, entry.label, start)
            # Counted whether or not the rename worked
            ctx.advance()

    async def _run_remove(self, entries: list[UpdateFile], ctx: _RunContext) -> None:
        logger.info("Remove phase", entries=len(entries))
        for entry in entries:
            start = time.monotonic()
            try:
                await self.mutator.delete(resolve_within(ctx.mods_dir, entry.filename))
            except (ModsyncError, OSError) as e:
                self._fail(Phase.REMOVE, entry.label, e, ctx)
            else:
                self._succeed(Phase.REMOVE, entry.label, start)
                ctx.advance()

    async def _run_overrides(self, entries: list[OverrideEntry], ctx: _RunContext) -> None:
        logger.info("Overrides phase", entries=len(entries))
        for entry in entries:
            if not entry.is_file:
                logger.debug("Ignoring directory override", key=entry.key)
                continue
            if entry.content is None:
                self._skip(Phase.OVERRIDES, entry.key, "no content", ctx)
                continue

            start = time.monotonic()
            try:
                destination = resolve_within(ctx.instance_root, strip_overrides_prefix(entry.key))
                _, data = self.decoder.decode(entry.key, entry.content)
                written = await self.mutator.write_atomic(destination, data, create_parents=True)
            except (ModsyncError, OSError) as e:
                self._fail(Phase.OVERRIDES, entry.key, e, ctx)
                continue

            if written:
                self._succeed(Phase.OVERRIDES, entry.key, start)
                ctx.advance()
            else:
                logger.warning("Override write declined", key=entry.key)

    # ------------------------------------------------------------------
    # Outcome bookkeeping
    # ------------------------------------------------------------------

    def _succeed(self, phase: Phase, entry: str, start: float) -> None:
        duration_ms = (time.monotonic() - start) * 1000
        self.collector.count_entry(phase.value, EntryStatus.SUCCEEDED.value)
        self.collector.record_latency(phase.value, duration_ms)
        logger.debug("Entry applied", phase=phase.value, entry=entry)

    def _skip(self, phase: Phase, entry: str, reason: str, ctx: _RunContext) -> None:
        ctx.result.skipped += 1
        self.collector.count_entry(phase.value, EntryStatus.SKIPPED.value)
        logger.debug("Entry skipped", phase=phase.value, entry=entry, reason=reason)

    def _fail(self, phase: Phase, entry: str, error: Exception, ctx: _RunContext) -> None:
        """Record a failed entry; in a fatal phase, end the run."""
        self.collector.count_entry(phase.value, EntryStatus.FAILED.value)

        if phase.is_fatal:
            ctx.result.completed_at = datetime.now()
            logger.error(
                "Entry failed, aborting update",
                phase=phase.value,
                entry=entry,
                error=str(error),
                completed=ctx.result.completed,
            )
            raise ReconcileAbortedError(phase.value, entry, error, result=ctx.result) from error

        ctx.result.failures.append(
            EntryFailure(
                phase=phase,
                entry=entry,
                error_type=type(error).__name__,
                error_message=str(error),
            )
        )
        logger.warning(
            "Entry failed, continuing", phase=phase.value, entry=entry, error=str(error)
        )
