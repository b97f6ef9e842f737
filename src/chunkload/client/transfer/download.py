"""Streamed download into a file, stream or memory buffer.

This module provides:
- Downloader: blocking downloader on httpx.Client
- AsyncDownloader: awaitable twin on httpx.AsyncClient

The body is never buffered whole: it is read in 8 KiB pieces, each written
to the destination as it arrives. A DownloadProgress event is emitted after
every 100th read and once more at the end of the body. The destination is
closed exactly once on every exit path.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from chunkload.client.errors import DownloadError, ErrorEnvelope
from chunkload.client.transfer.events import EventChannel
from chunkload.client.transfer.types import CancelCheck, DownloadProgress, DownloadResult

if TYPE_CHECKING:
    from chunkload.client.transfer.items import DownloadItem
    from chunkload.core.config import TransferConfig

logger = logging.getLogger(__name__)

DOWNLOAD_BUFFER_SIZE = 8192
PROGRESS_READ_INTERVAL = 100


def normalize_download_url(url: str, config: TransferConfig | None = None) -> str:
    """Turn a share URL or a bare locator into a direct download URL.

    Share links use /e/ (embed page); the raw body is served under /d/.

    Args:
        url: Full URL, or a locator when config is given.
        config: Used to expand a bare locator into a URL.

    Raises:
        DownloadError: If url is a bare locator and no config is given.
    """
    if "://" not in url:
        if config is None:
            raise DownloadError(f"Not a download URL: {url!r}")
        return config.download_url(url.strip("/"))
    return url.replace("/e/", "/d/")


def _declared_length(response: httpx.Response) -> int | None:
    value = response.headers.get("Content-Length")
    if value is None or not value.isdigit():
        return None
    return int(value)


class _DownloadProgressTracker:
    """Counts reads and bytes, emitting progress at the configured cadence."""

    def __init__(self, total_size: int | None, events: EventChannel) -> None:
        self.total_size = total_size
        self.bytes_downloaded = 0
        self.reads = 0
        self._events = events

    def record(self, data: bytes) -> None:
        self.reads += 1
        self.bytes_downloaded += len(data)
        if self.reads % PROGRESS_READ_INTERVAL == 0:
            self.emit()

    def emit(self) -> None:
        self._events.emit(DownloadProgress.create(self.total_size, self.bytes_downloaded))


def _http_failure(url: str, response: httpx.Response) -> DownloadError:
    envelope = ErrorEnvelope.from_response(response)
    return DownloadError(f"Download of {url} failed with HTTP {response.status_code}", envelope)


class Downloader:
    """Downloads stored content into a DownloadItem.

    Usage:
        with Downloader(config) as downloader:
            result = downloader.download(url, DownloadItem.to_file("out.bin"))
    """

    def __init__(
        self,
        config: TransferConfig,
        client: httpx.Client | None = None,
        events: EventChannel | None = None,
    ) -> None:
        """Initialize the downloader.

        Args:
            config: Transfer configuration (download timeout, SSL checks).
            client: httpx client to reuse; one is created (and closed) otherwise.
            events: Channel progress notifications go to.
        """
        self._config = config
        self._owns_client = client is None
        self._client = client if client is not None else httpx.Client(
            timeout=config.download_timeout,
            verify=config.verify_ssl,
            follow_redirects=True,
        )
        self.events = events if events is not None else EventChannel()

    def close(self) -> None:
        """Close the HTTP client if this downloader created it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> Downloader:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def download(
        self,
        url: str,
        destination: DownloadItem,
        cancel_check: CancelCheck | None = None,
    ) -> DownloadResult:
        """Stream url into destination.

        Args:
            url: Download or share URL, or a bare locator.
            destination: Where the bytes go; closed when this returns or raises.
            cancel_check: Returns True to stop before the next read.

        Returns:
            DownloadResult; cancelled is True if the transfer was stopped.

        Raises:
            DownloadError: On a transport failure, an error status, or a
                failed write to the destination.
        """
        url = normalize_download_url(url, self._config)
        logger.info(f"Downloading {url}")
        try:
            with self._client.stream("GET", url) as response:
                if response.is_error:
                    response.read()
                    raise _http_failure(url, response)
                tracker = _DownloadProgressTracker(_declared_length(response), self.events)
                for data in response.iter_bytes(DOWNLOAD_BUFFER_SIZE):
                    destination.write(data)
                    tracker.record(data)
                    if cancel_check is not None and cancel_check():
                        logger.info(f"Download of {url} cancelled")
                        return DownloadResult(
                            url, tracker.bytes_downloaded, tracker.total_size, cancelled=True
                        )
                tracker.emit()
        except httpx.HTTPError as e:
            raise DownloadError(f"Download of {url} failed: {e}") from e
        except OSError as e:
            raise DownloadError(f"Could not write download of {url}: {e}") from e
        finally:
            destination.close()

        logger.info(f"Downloaded {tracker.bytes_downloaded} bytes from {url}")
        return DownloadResult(url, tracker.bytes_downloaded, tracker.total_size)


class AsyncDownloader:
    """Awaitable Downloader on httpx.AsyncClient."""

    def __init__(
        self,
        config: TransferConfig,
        client: httpx.AsyncClient | None = None,
        events: EventChannel | None = None,
    ) -> None:
        self._config = config
        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient(
            timeout=config.download_timeout,
            verify=config.verify_ssl,
            follow_redirects=True,
        )
        self.events = events if events is not None else EventChannel()

    async def aclose(self) -> None:
        """Close the HTTP client if this downloader created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> AsyncDownloader:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def download(
        self,
        url: str,
        destination: DownloadItem,
        cancel_check: CancelCheck | None = None,
    ) -> DownloadResult:
        """Stream url into destination. See Downloader.download."""
        url = normalize_download_url(url, self._config)
        logger.info(f"Downloading {url}")
        try:
            async with self._client.stream("GET", url) as response:
                if response.is_error:
                    await response.aread()
                    raise _http_failure(url, response)
                tracker = _DownloadProgressTracker(_declared_length(response), self.events)
                async for data in response.aiter_bytes(DOWNLOAD_BUFFER_SIZE):
                    destination.write(data)
                    tracker.record(data)
                    if cancel_check is not None and cancel_check():
                        logger.info(f"Download of {url} cancelled")
                        return DownloadResult(
                            url, tracker.bytes_downloaded, tracker.total_size, cancelled=True
                        )
                tracker.emit()
        except httpx.HTTPError as e:
            raise DownloadError(f"Download of {url} failed: {e}") from e
        except OSError as e:
            raise DownloadError(f"Could not write download of {url}: {e}") from e
        finally:
            destination.close()

        logger.info(f"Downloaded {tracker.bytes_downloaded} bytes from {url}")
        return DownloadResult(url, tracker.bytes_downloaded, tracker.total_size)
