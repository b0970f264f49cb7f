"""Content Fetcher - download remote mod files into the instance.

Architecture Overview:
---------------------
The reconciler only depends on the ContentFetcher protocol: given a URL, a
destination directory and an optional filename, put the bytes on disk or
raise FetchError. HttpContentFetcher is the shipped implementation:

- Async HTTP via httpx, one streamed request per file (never parallel
  ranges), so progress accounting in the reconciler stays deterministic
- tenacity retry with exponential backoff for transient network failures
- Streams into a temporary sibling file and renames it into place, so a
  failed or interrupted download never leaves a partial archive behind

Filename resolution order:
1. Explicit ``filename`` argument (the plan's filename)
2. ``Content-Disposition`` header
3. Last segment of the URL path
"""

import asyncio
import os
import re
import tempfile
import time
from pathlib import Path, PurePosixPath
from typing import Protocol
from urllib.parse import unquote

import httpx
import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..config import FetchConfig
from ..constants import API_KEY_HEADER, TEMP_SUFFIX
from ..observability.metrics import get_global_collector
from ..utils.exceptions import FetchError, UnsafePathError
from ..validation.safety import resolve_within

logger = structlog.get_logger(__name__)

_CONTENT_DISPOSITION_EXTENDED = re.compile(r"filename\*\s*=\s*[^']*''([^;]+)", re.IGNORECASE)
_CONTENT_DISPOSITION_PLAIN = re.compile(r'filename\s*=\s*"?([^";]+)"?', re.IGNORECASE)


class ContentFetcher(Protocol):
    """Capability the reconciler needs to materialize remote content."""

    async def fetch(self, url: str, destination_dir: Path, filename: str | None = None) -> Path:
        """
        Download ``url`` into ``destination_dir``.

        Must block until the file is completely written or raise FetchError.
        """
        ...


def filename_from_content_disposition(header: str | None) -> str | None:
    """
    Extract a filename from a Content-Disposition header value.

    Prefers the RFC 5987 ``filename*`` form over plain ``filename``.
    """
    if not header:
        return None
    match = _CONTENT_DISPOSITION_EXTENDED.search(header)
    if match:
        return unquote(match.group(1).strip())
    match = _CONTENT_DISPOSITION_PLAIN.search(header)
    if match:
        return match.group(1).strip()
    return None


def filename_from_url(url: str) -> str | None:
    """Last non-empty segment of the URL path, percent-decoded."""
    name = PurePosixPath(unquote(httpx.URL(url).path)).name
    return name or None


def _discard(temp_path: str) -> None:
    try:
        os.unlink(temp_path)
    except FileNotFoundError:
        pass


class HttpContentFetcher:
    """
    ContentFetcher over HTTP(S).

    Features:
    - Lazy httpx.AsyncClient creation, closed via ``close`` or ``async with``
    - Optional API key header from configuration
    - Redirects followed (mod CDNs redirect to signed storage URLs)
    """

    def __init__(self, config: FetchConfig | None = None) -> None:
        """
        Initialize the fetcher.

        Args:
            config: Download configuration (defaults used if None)
        """
        self.config = config or FetchConfig()
        self._client: httpx.AsyncClient | None = None
        self.collector = get_global_collector()

    async def __aenter__(self) -> "HttpContentFetcher":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get HTTP client with lazy initialization."""
        if self._client is None:
            headers = {"User-Agent": self.config.user_agent}
            if self.config.api_key:
                headers[API_KEY_HEADER] = self.config.api_key
            self._client = httpx.AsyncClient(
                verify=self.config.verify_ssl,
                timeout=self.config.timeout,
                headers=headers,
                follow_redirects=True,
            )
        return self._client

    async def fetch(self, url: str, destination_dir: Path, filename: str | None = None) -> Path:
        """
        Download ``url`` into ``destination_dir``.

        Args:
            url: Remote file URL
            destination_dir: Directory to write into (created if missing)
            filename: Optional name for the written file

        Returns:
            Path of the written file

        Raises:
            FetchError: On HTTP error status, network failure after retries,
                unusable filename, or local write failure
        """
        self.collector.backend.increment("fetch_requests_total")
        start_time = time.monotonic()
        try:
            target = await self._download(url, destination_dir, filename)
        except FetchError:
            self.collector.backend.increment("fetch_failures_total")
            raise
        except httpx.HTTPError as e:
            self.collector.backend.increment("fetch_failures_total")
            raise FetchError(url, f"HTTP request failed: {e}") from e
        except OSError as e:
            self.collector.backend.increment("fetch_failures_total")
            raise FetchError(url, f"Cannot write download: {e}") from e

        duration = (time.monotonic() - start_time) * 1000
        self.collector.backend.timing("fetch_latency_ms", duration)
        return target

    @retry(
        retry=retry_if_exception_type((httpx.NetworkError, httpx.TimeoutException)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _download(self, url: str, destination_dir: Path, filename: str | None) -> Path:
        await asyncio.to_thread(destination_dir.mkdir, parents=True, exist_ok=True)
        logger.debug("Starting download", url=url, destination=str(destination_dir))

        async with self.client.stream("GET", url) as response:
            if response.is_error:
                logger.error("Download rejected", url=url, status=response.status_code)
                raise FetchError(
                    url, f"HTTP {response.status_code}", status_code=response.status_code
                )

            name = (
                filename
                or filename_from_content_disposition(response.headers.get("content-disposition"))
                or filename_from_url(url)
            )
            if not name:
                raise FetchError(url, "cannot determine a filename")
            try:
                target = resolve_within(destination_dir, name)
            except UnsafePathError as e:
                raise FetchError(url, str(e)) from e

            fd, temp_path = await asyncio.to_thread(
                tempfile.mkstemp,
                dir=target.parent,
                prefix=f".{target.name}.",
                suffix=TEMP_SUFFIX,
            )
            size = 0
            try:
                with os.fdopen(fd, "wb") as f:
                    async for chunk in response.aiter_bytes(self.config.chunk_size):
                        await asyncio.to_thread(f.write, chunk)
                        size += len(chunk)
                await asyncio.to_thread(os.replace, temp_path, target)
            except BaseException:
                await asyncio.to_thread(_discard, temp_path)
                raise

        logger.info("Downloaded file", url=url, path=str(target), size=size)
        return target
