"""Tests for SyncRunner."""

import io
import json
from unittest.mock import AsyncMock

import pytest
from rich.console import Console

from src.modsync.config import ModsyncConfig
from src.modsync.execution.runner import SyncRunner
from src.modsync.utils.exceptions import SyncInProgressError
from src.modsync.utils.locking import KeyedLock


@pytest.fixture
def console():
    return Console(file=io.StringIO(), width=120)


@pytest.fixture
def locks():
    return KeyedLock()


def _output(console: Console) -> str:
    return console.file.getvalue()


class TestSyncRunner:
    """End-to-end runs through the runner."""

    @pytest.mark.asyncio
    async def test_successful_run(
        self, instance_dir, fake_fetcher, make_file, make_plan, console, locks
    ):
        (instance_dir / "mods" / "b.jar").write_bytes(b"b")
        plan = make_plan(
            new=[make_file("a.jar", download_url="https://x/a.jar")],
            disabled=[make_file("b.jar")],
        )
        runner = SyncRunner(ModsyncConfig(), console, fetcher=fake_fetcher, locks=locks)

        exit_code = await runner.run(plan, instance_dir)

        assert exit_code == 0
        assert (instance_dir / "mods" / "a.jar").exists()
        assert (instance_dir / "mods" / "b.jar.disabled").exists()
        assert "2/2 applied" in _output(console)
        assert "Every entry in the plan was applied" in _output(console)
        assert not fake_fetcher.closed

    @pytest.mark.asyncio
    async def test_recoverable_failures_still_succeed(
        self, instance_dir, fake_fetcher, make_file, make_plan, console, locks
    ):
        plan = make_plan(disabled=[make_file("absent.jar")])
        runner = SyncRunner(ModsyncConfig(), console, fetcher=fake_fetcher, locks=locks)

        exit_code = await runner.run(plan, instance_dir)

        assert exit_code == 0
        output = _output(console)
        assert "could not be applied" in output
        assert "absent.jar" in output

    @pytest.mark.asyncio
    async def test_skipped_entries_warned(
        self, instance_dir, fake_fetcher, make_file, make_plan, console, locks
    ):
        plan = make_plan(new=[make_file("a.jar")])
        runner = SyncRunner(ModsyncConfig(), console, fetcher=fake_fetcher, locks=locks)

        assert await runner.run(plan, instance_dir) == 0
        assert "nothing to apply" in _output(console)

    @pytest.mark.asyncio
    async def test_aborted_run_returns_one_and_reports(
        self, instance_dir, failing_fetcher, make_file, make_plan, console, locks, tmp_path
    ):
        fetcher = failing_fetcher("https://x/a.jar")
        plan = make_plan(new=[make_file("a.jar", download_url="https://x/a.jar")])
        report_path = tmp_path / "report.json"
        runner = SyncRunner(ModsyncConfig(), console, fetcher=fetcher, locks=locks)

        exit_code = await runner.run(plan, instance_dir, report_path=report_path, session_id="s1")

        assert exit_code == 1
        report = json.loads(report_path.read_text())
        assert report["session_id"] == "s1"
        assert report["status"] == "aborted"
        assert report["errors"][0]["entry"] == "a.jar"
        assert report["metrics"]["counters"]["reconcile_entry_total[phase=add,status=failed]"] == 1

    @pytest.mark.asyncio
    async def test_aborted_report_counts_entries_applied_before_failure(
        self, instance_dir, fake_fetcher, make_file, make_plan, console, locks, tmp_path
    ):
        plan = make_plan(
            new=[make_file("a.jar", download_url="https://x/a.jar")],
            removed=[make_file("gone.jar")],
        )
        report_path = tmp_path / "report.json"
        runner = SyncRunner(ModsyncConfig(), console, fetcher=fake_fetcher, locks=locks)

        exit_code = await runner.run(plan, instance_dir, report_path=report_path)

        assert exit_code == 1
        assert (instance_dir / "mods" / "a.jar").exists()
        report = json.loads(report_path.read_text())
        assert report["status"] == "aborted"
        assert report["completed"] == 1
        assert report["final_percent"] == 50.0
        assert report["errors"][-1]["phase"] == "remove"

    @pytest.mark.asyncio
    async def test_report_for_completed_run(
        self, instance_dir, fake_fetcher, make_plan, console, locks, tmp_path
    ):
        report_path = tmp_path / "out" / "report.json"
        runner = SyncRunner(ModsyncConfig(), console, fetcher=fake_fetcher, locks=locks)

        await runner.run(make_plan(), instance_dir, report_path=report_path)

        report = json.loads(report_path.read_text())
        assert report["status"] == "completed"
        assert report["final_percent"] == 100.0

    @pytest.mark.asyncio
    async def test_second_report_counts_only_its_own_run(
        self, instance_dir, fake_fetcher, make_file, make_plan, console, locks, tmp_path
    ):
        plan = make_plan(new=[make_file("a.jar", download_url="https://x/a.jar")])
        runner = SyncRunner(ModsyncConfig(), console, fetcher=fake_fetcher, locks=locks)

        await runner.run(plan, instance_dir, report_path=tmp_path / "first.json")
        await runner.run(plan, instance_dir, report_path=tmp_path / "second.json")

        report = json.loads((tmp_path / "second.json").read_text())
        counters = report["metrics"]["counters"]
        assert counters["reconcile_entry_total[phase=add,status=succeeded]"] == 1

    @pytest.mark.asyncio
    async def test_refuses_second_run_for_same_instance(
        self, instance_dir, fake_fetcher, make_plan, console, locks
    ):
        runner = SyncRunner(ModsyncConfig(), console, fetcher=fake_fetcher, locks=locks)

        async with locks.acquire(str(instance_dir.resolve())):
            with pytest.raises(SyncInProgressError):
                await runner.run(make_plan(), instance_dir)

        assert await runner.run(make_plan(), instance_dir) == 0

    @pytest.mark.asyncio
    async def test_lock_released_after_abort(
        self, instance_dir, failing_fetcher, make_file, make_plan, console, locks
    ):
        fetcher = failing_fetcher("https://x/a.jar")
        plan = make_plan(new=[make_file("a.jar", download_url="https://x/a.jar")])
        runner = SyncRunner(ModsyncConfig(), console, fetcher=fetcher, locks=locks)

        await runner.run(plan, instance_dir)

        assert not locks.locked(str(instance_dir.resolve()))

    @pytest.mark.asyncio
    async def test_owned_fetcher_is_created_from_config_and_closed(
        self, instance_dir, make_plan, console, locks, mocker
    ):
        fetcher = AsyncMock()
        fetcher_class = mocker.patch(
            "src.modsync.execution.runner.HttpContentFetcher", return_value=fetcher
        )
        config = ModsyncConfig()
        runner = SyncRunner(config, console, locks=locks)

        await runner.run(make_plan(), instance_dir)

        fetcher_class.assert_called_once_with(config.fetch)
        fetcher.close.assert_awaited_once()
