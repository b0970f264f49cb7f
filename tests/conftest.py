"""Pytest configuration and shared fixtures.

Fixtures are organized by category:
- Instance fixtures: temporary instance directories with a mods/ folder
- Fetcher fixtures: a recording fake ContentFetcher
- Plan fixtures: builders for plans and plan entries
- Data fixtures: plan documents as producers send them
"""

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from src.modsync.models.plan import OverrideEntry, UpdateFile, UpdatePlan
from src.modsync.observability.metrics import get_global_collector
from src.modsync.utils.exceptions import FetchError

# =============================================================================
# Instance Fixtures
# =============================================================================


@pytest.fixture
def instance_dir(tmp_path: Path) -> Path:
    """Create an empty instance directory with a mods/ subdirectory."""
    root = tmp_path / "instance"
    (root / "mods").mkdir(parents=True)
    return root


@pytest.fixture(autouse=True)
def reset_metrics():
    """Keep the global metrics collector isolated between tests."""
    get_global_collector().backend.reset()
    yield
    get_global_collector().backend.reset()


# =============================================================================
# Fetcher Fixtures
# =============================================================================


class FakeFetcher:
    """ContentFetcher that writes ``content-of:<url>`` and records every call.

    URLs listed in ``fail_urls`` raise FetchError instead of writing.
    """

    def __init__(self, fail_urls: set[str] | None = None) -> None:
        self.fail_urls = fail_urls or set()
        self.calls: list[tuple[str, Path, str | None]] = []
        self.closed = False

    async def fetch(self, url: str, destination_dir: Path, filename: str | None = None) -> Path:
        self.calls.append((url, destination_dir, filename))
        if url in self.fail_urls:
            raise FetchError(url, "HTTP 404", status_code=404)
        destination_dir.mkdir(parents=True, exist_ok=True)
        target = destination_dir / (filename or url.rsplit("/", 1)[-1])
        target.write_bytes(f"content-of:{url}".encode())
        return target

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    """Fetcher that succeeds for every URL."""
    return FakeFetcher()


@pytest.fixture
def failing_fetcher() -> Callable[..., FakeFetcher]:
    """Factory for fetchers that fail on the given URLs.

    Example:
        def test_something(failing_fetcher):
            fetcher = failing_fetcher("https://x/broken.jar")
    """

    def _make(*urls: str) -> FakeFetcher:
        return FakeFetcher(fail_urls=set(urls))

    return _make


# =============================================================================
# Plan Fixtures
# =============================================================================


@pytest.fixture
def make_file() -> Callable[..., UpdateFile]:
    """Builder for UpdateFile entries (name defaults to the filename)."""

    def _make(filename: str, **kwargs: Any) -> UpdateFile:
        return UpdateFile(name=kwargs.pop("name", filename), filename=filename, **kwargs)

    return _make


@pytest.fixture
def make_plan() -> Callable[..., UpdatePlan]:
    """Builder for UpdatePlan; overrides_total defaults to the number of file overrides."""

    def _make(
        new: list[UpdateFile] | None = None,
        changed: list[UpdateFile] | None = None,
        disabled: list[UpdateFile] | None = None,
        removed: list[UpdateFile] | None = None,
        overrides: list[OverrideEntry] | None = None,
        overrides_total: int | None = None,
    ) -> UpdatePlan:
        overrides = overrides or []
        if overrides_total is None:
            overrides_total = sum(1 for o in overrides if o.is_file)
        return UpdatePlan(
            overrides=overrides,
            overrides_total=overrides_total,
            new_addons=new or [],
            changed_addons=changed or [],
            disabled_addons=disabled or [],
            removed_addons=removed or [],
        )

    return _make


# =============================================================================
# Data Fixtures
# =============================================================================


@pytest.fixture
def sample_plan_data() -> dict[str, Any]:
    """Plan document as a producer would send it (camelCase keys)."""
    return {
        "overrides": [
            {"key": "overrides/config/README", "content": "hello", "isFile": True},
            {"key": "overrides/config", "isFile": False},
        ],
        "overridesTotal": 1,
        "newAddons": [
            {
                "name": "Alpha",
                "filename": "a.jar",
                "addonID": 101,
                "fileID": 5001,
                "downloadUrl": "https://cdn.example.com/files/a.jar",
                "required": True,
            }
        ],
        "changedAddons": [
            {
                "name": "Beta",
                "filename": "beta-2.0.jar",
                "oldFilename": "beta-1.0.jar",
                "addonID": 102,
                "fileID": 5002,
                "downloadUrl": "https://cdn.example.com/files/beta-2.0.jar",
            }
        ],
        "disabledAddons": [{"name": "Gamma", "filename": "gamma.jar", "addonID": 103}],
        "removedAddons": [{"name": "Delta", "filename": "delta.jar", "addonID": 104}],
    }
