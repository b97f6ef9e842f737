"""Whole-item upload with chunking, hashing and retry.

This module provides:
- ChunkUploader: blocking upload engine
- AsyncChunkUploader: awaitable upload engine

Flow for one item:
    open session -> plan chunks -> for each chunk: cancel check, read, hash,
    send (retry on HTTP) -> finalize with the whole-content SHA-1 -> URL
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from typing import TYPE_CHECKING, BinaryIO

from chunkload.client.api import AsyncHTTPClient, HTTPClient
from chunkload.client.errors import InvalidInputError, SessionCancelError
from chunkload.client.transfer.events import EventChannel
from chunkload.client.transfer.items import UploadItem
from chunkload.client.transfer.pipeline import (
    AsyncChunkPipeline,
    AsyncChunkTransport,
    AsyncHTTPChunkTransport,
    ChunkPipeline,
    ChunkTransport,
    HTTPChunkTransport,
)
from chunkload.client.transfer.session import AsyncUploadSession, UploadSession
from chunkload.client.transfer.types import (
    AsyncSleep,
    CancelCheck,
    Sleep,
    UploadCancelled,
    UploadComplete,
    UploadCompleted,
    UploadOutcome,
)
from chunkload.client.transfer.websocket import (
    AsyncWebSocketChunkTransport,
    WebSocketChunkTransport,
)
from chunkload.core.types import TransportMode

if TYPE_CHECKING:
    from chunkload.core.config import TransferConfig

logger = logging.getLogger(__name__)


class _UploaderBase:
    """Settings and result building shared by both upload engines."""

    def __init__(self, config: TransferConfig, events: EventChannel | None) -> None:
        self._config = config
        self.events = events if events is not None else EventChannel()

    @property
    def config(self) -> TransferConfig:
        return self._config

    def _resolve(self, chunk_size: int | None, with_chunk_hashing: bool | None) -> tuple[int, bool]:
        size = self._config.chunk_size if chunk_size is None else chunk_size
        if size <= 0:
            raise InvalidInputError(f"chunk_size must be positive, got {size}")
        hashing = (
            self._config.with_chunk_hashing if with_chunk_hashing is None else with_chunk_hashing
        )
        return size, hashing

    @staticmethod
    def _measure(item: UploadItem) -> tuple[BinaryIO, int]:
        try:
            stream = item.open_stream()
        except OSError as e:
            raise InvalidInputError(f"Cannot read {item.file_path}: {e}") from e
        try:
            return stream, item.content_length(stream)
        except OSError as e:
            if item.owns_stream:
                stream.close()
            raise InvalidInputError(f"Cannot measure {item!r}: {e}") from e
        except BaseException:
            if item.owns_stream:
                stream.close()
            raise

    def _completed(
        self,
        item: UploadItem,
        session_id: str,
        locator: str,
        content_hash: str,
        size: int,
        total_chunks: int,
    ) -> UploadCompleted:
        url = self._config.download_url(locator)
        file_path = str(item.file_path) if item.file_path is not None else None
        logger.info(f"Uploaded {item!r}: {total_chunks} chunks, {url}")
        self.events.emit(UploadComplete(file_path=file_path, url=url))
        return UploadCompleted(
            url=url,
            session_id=session_id,
            content_hash=content_hash,
            size=size,
            total_chunks=total_chunks,
        )


class ChunkUploader(_UploaderBase):
    """Uploads items through a server-assigned session, one chunk at a time.

    Usage:
        with ChunkUploader(TransferConfig("https://files.example.com")) as uploader:
            uploader.events.subscribe(ChunkComplete, on_chunk)
            outcome = uploader.upload(UploadItem.from_file("report.pdf"))
            if not outcome.cancelled:
                print(outcome.url)
    """

    def __init__(
        self,
        config: TransferConfig,
        client: HTTPClient | None = None,
        events: EventChannel | None = None,
        sleep: Sleep = time.sleep,
    ) -> None:
        """Initialize the uploader.

        Args:
            config: Transfer configuration.
            client: HTTP client to reuse; one is created (and closed) otherwise.
            events: Channel notifications go to; a private one otherwise.
            sleep: Wait function used between chunk retries.
        """
        super().__init__(config, events)
        self._owns_client = client is None
        self._client = client if client is not None else HTTPClient(config)
        self._sleep = sleep

    def close(self) -> None:
        """Close the HTTP client if this uploader created it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> ChunkUploader:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def upload(
        self,
        item: UploadItem,
        cancel_check: CancelCheck | None = None,
        chunk_size: int | None = None,
        with_chunk_hashing: bool | None = None,
    ) -> UploadOutcome:
        """Upload an item.

        Args:
            item: Content to upload.
            cancel_check: Returns True to stop before the next chunk or retry.
            chunk_size: Overrides config.chunk_size.
            with_chunk_hashing: Overrides config.with_chunk_hashing.

        Returns:
            UploadCompleted with the download URL, or UploadCancelled.

        Raises:
            InvalidInputError: If the item cannot be read (before any request).
            SessionCreateError: If the session cannot be opened.
            ChunkTransferError: If a WebSocket chunk send fails.
            FinalizeError: If the server rejects the finalize request.
        """
        chunk_size, hashing = self._resolve(chunk_size, with_chunk_hashing)
        stream, total_length = self._measure(item)
        try:
            session = UploadSession(self._client, item.extension, item.name, self.events)
            session.open()
            transport = self._make_transport()
            pipeline = ChunkPipeline(
                transport,
                events=self.events,
                with_chunk_hashing=hashing,
                cancel_check=cancel_check,
                retry_delay=self._config.retry_delay,
                sleep=self._sleep,
            )
            try:
                completed = False
                # Checked once up front so empty content can be cancelled too
                if not pipeline.cancel_requested():
                    pipeline.open_transport(session.session_id)
                    try:
                        completed = pipeline.run(session, stream, total_length, chunk_size)
                    finally:
                        transport.close()
                if not completed:
                    return self._cancel(session, pipeline.chunks_sent)
                content_hash = pipeline.hasher.finalize()
                locator = session.finalize(content_hash)
            except BaseException:
                session.fail()
                raise
        finally:
            if item.owns_stream:
                stream.close()
        return self._completed(
            item, session.session_id, locator, content_hash, total_length, pipeline.chunks_sent
        )

    def upload_file(self, path: str | os.PathLike[str], **kwargs: object) -> UploadOutcome:
        """Upload a file from disk."""
        return self.upload(UploadItem.from_file(path), **kwargs)  # type: ignore[arg-type]

    def upload_bytes(
        self, data: bytes, extension: str, name: str | None = None, **kwargs: object
    ) -> UploadOutcome:
        """Upload an in-memory buffer."""
        return self.upload(UploadItem.from_bytes(data, extension, name), **kwargs)  # type: ignore[arg-type]

    def upload_stream(
        self, stream: BinaryIO, extension: str, name: str | None = None, **kwargs: object
    ) -> UploadOutcome:
        """Upload from a seekable caller-owned stream."""
        return self.upload(UploadItem.from_stream(stream, extension, name), **kwargs)  # type: ignore[arg-type]

    def _make_transport(self) -> ChunkTransport:
        if self._config.transport is TransportMode.WEBSOCKET:
            return WebSocketChunkTransport(self._config)
        return HTTPChunkTransport(self._client)

    def _cancel(self, session: UploadSession, chunks_sent: int) -> UploadCancelled:
        notified = True
        try:
            session.cancel()
        except SessionCancelError as e:
            logger.warning(f"Cancel notice for session {session.session_id} failed: {e}")
            notified = False
        return UploadCancelled(
            session_id=session.session_id, chunks_sent=chunks_sent, notified=notified
        )


class AsyncChunkUploader(_UploaderBase):
    """Awaitable ChunkUploader with the same algorithm and results."""

    def __init__(
        self,
        config: TransferConfig,
        client: AsyncHTTPClient | None = None,
        events: EventChannel | None = None,
        sleep: AsyncSleep = asyncio.sleep,
    ) -> None:
        super().__init__(config, events)
        self._owns_client = client is None
        self._client = client if client is not None else AsyncHTTPClient(config)
        self._sleep = sleep

    async def aclose(self) -> None:
        """Close the HTTP client if this uploader created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> AsyncChunkUploader:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def upload(
        self,
        item: UploadItem,
        cancel_check: CancelCheck | None = None,
        chunk_size: int | None = None,
        with_chunk_hashing: bool | None = None,
    ) -> UploadOutcome:
        """Upload an item. See ChunkUploader.upload."""
        chunk_size, hashing = self._resolve(chunk_size, with_chunk_hashing)
        stream, total_length = self._measure(item)
        try:
            session = AsyncUploadSession(self._client, item.extension, item.name, self.events)
            await session.open()
            transport = self._make_transport()
            pipeline = AsyncChunkPipeline(
                transport,
                events=self.events,
                with_chunk_hashing=hashing,
                cancel_check=cancel_check,
                retry_delay=self._config.retry_delay,
                sleep=self._sleep,
            )
            try:
                completed = False
                if not pipeline.cancel_requested():
                    await pipeline.open_transport(session.session_id)
                    try:
                        completed = await pipeline.run(session, stream, total_length, chunk_size)
                    finally:
                        await transport.close()
                if not completed:
                    return await self._cancel(session, pipeline.chunks_sent)
                content_hash = pipeline.hasher.finalize()
                locator = await session.finalize(content_hash)
            except BaseException:
                session.fail()
                raise
        finally:
            if item.owns_stream:
                stream.close()
        return self._completed(
            item, session.session_id, locator, content_hash, total_length, pipeline.chunks_sent
        )

    def _make_transport(self) -> AsyncChunkTransport:
        if self._config.transport is TransportMode.WEBSOCKET:
            return AsyncWebSocketChunkTransport(self._config)
        return AsyncHTTPChunkTransport(self._client)

    async def _cancel(self, session: AsyncUploadSession, chunks_sent: int) -> UploadCancelled:
        notified = True
        try:
            await session.cancel()
        except SessionCancelError as e:
            logger.warning(f"Cancel notice for session {session.session_id} failed: {e}")
            notified = False
        return UploadCancelled(
            session_id=session.session_id, chunks_sent=chunks_sent, notified=notified
        )
