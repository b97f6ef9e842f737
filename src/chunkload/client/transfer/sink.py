"""Push-style upload for producers that do not know the total size.

This module provides:
- ChunkedUploadSink: blocking write/flush/finish_upload sink
- AsyncChunkedUploadSink: awaitable twin

write() only buffers. Each flush() uploads exactly the buffered bytes as
one or more chunks through the same pipeline as ChunkUploader, then clears
the buffer. The whole-content hasher lives for the whole sink, so the
digest sent by finish_upload() covers every byte ever written.

Chunk numbers in ChunkComplete events restart at 1 on every flush.

Not safe for concurrent use; one producer writes and flushes in sequence.
"""

from __future__ import annotations

import asyncio
import io
import logging
import time
from typing import TYPE_CHECKING

from chunkload.client.api import AsyncHTTPClient, HTTPClient
from chunkload.client.errors import InvalidInputError, SessionCancelError, SessionStateError
from chunkload.client.transfer.events import EventChannel
from chunkload.client.transfer.items import normalize_extension
from chunkload.client.transfer.pipeline import (
    AsyncChunkPipeline,
    AsyncHTTPChunkTransport,
    ChunkPipeline,
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
from chunkload.core.types import SessionState, TransportMode

if TYPE_CHECKING:
    from chunkload.core.config import TransferConfig

logger = logging.getLogger(__name__)


class _SinkBase:
    """Buffer and result bookkeeping shared by both sinks."""

    _session: UploadSession | AsyncUploadSession

    def __init__(
        self,
        config: TransferConfig,
        extension: str,
        name: str | None,
        events: EventChannel | None,
        chunk_size: int | None,
        with_chunk_hashing: bool | None,
    ) -> None:
        self._config = config
        self.extension = normalize_extension(extension)
        self.name = name
        self.events = events if events is not None else EventChannel()
        self.chunk_size = config.chunk_size if chunk_size is None else chunk_size
        if self.chunk_size <= 0:
            raise InvalidInputError(f"chunk_size must be positive, got {self.chunk_size}")
        self.with_chunk_hashing = (
            config.with_chunk_hashing if with_chunk_hashing is None else with_chunk_hashing
        )
        self._buffer = bytearray()
        self._bytes_written = 0
        self._outcome: UploadOutcome | None = None

    @property
    def bytes_written(self) -> int:
        """Total bytes passed to write()."""
        return self._bytes_written

    @property
    def pending(self) -> int:
        """Bytes buffered since the last flush."""
        return len(self._buffer)

    @property
    def outcome(self) -> UploadOutcome | None:
        """Final result once the sink finished or was cancelled."""
        return self._outcome

    def write(self, data: bytes) -> int:
        """Append data to the buffer. No I/O happens here.

        Returns:
            Number of bytes buffered.

        Raises:
            SessionStateError: If the sink already finished or was cancelled.
        """
        self._check_writable()
        self._buffer += data
        self._bytes_written += len(data)
        return len(data)

    def _check_writable(self) -> None:
        if self._outcome is not None:
            state = "cancelled" if self._outcome.cancelled else "finished"
            raise SessionStateError(f"Upload sink already {state}")
        if self._session.state.is_terminal:
            raise SessionStateError(f"Upload sink session is {self._session.state.value}")

    def _take_buffer(self) -> bytes:
        data = bytes(self._buffer)
        self._buffer.clear()
        return data

    def _cancelled(self, session_id: str | None, chunks_sent: int, notified: bool) -> UploadCancelled:
        self._outcome = UploadCancelled(
            session_id=session_id, chunks_sent=chunks_sent, notified=notified
        )
        self._buffer.clear()
        return self._outcome

    def _completed(
        self, session_id: str, locator: str, content_hash: str, chunks_sent: int
    ) -> UploadCompleted:
        url = self._config.download_url(locator)
        logger.info(f"Sink upload finished: {self._bytes_written} bytes, {url}")
        self.events.emit(UploadComplete(file_path=None, url=url))
        self._outcome = UploadCompleted(
            url=url,
            session_id=session_id,
            content_hash=content_hash,
            size=self._bytes_written,
            total_chunks=chunks_sent,
        )
        return self._outcome


class ChunkedUploadSink(_SinkBase):
    """Blocking push/flush upload sink.

    Usage:
        with ChunkedUploadSink(config, "log") as sink:
            for line in producer():
                sink.write(line)
                if sink.pending >= config.chunk_size:
                    sink.flush()
            outcome = sink.finish_upload()
    """

    def __init__(
        self,
        config: TransferConfig,
        extension: str,
        name: str | None = None,
        client: HTTPClient | None = None,
        events: EventChannel | None = None,
        cancel_check: CancelCheck | None = None,
        chunk_size: int | None = None,
        with_chunk_hashing: bool | None = None,
        sleep: Sleep = time.sleep,
    ) -> None:
        super().__init__(config, extension, name, events, chunk_size, with_chunk_hashing)
        self._owns_client = client is None
        self._client = client if client is not None else HTTPClient(config)
        self._session = UploadSession(self._client, self.extension, name, self.events)
        if config.transport is TransportMode.WEBSOCKET:
            self._transport = WebSocketChunkTransport(config)
        else:
            self._transport = HTTPChunkTransport(self._client)
        self._pipeline = ChunkPipeline(
            self._transport,
            events=self.events,
            with_chunk_hashing=self.with_chunk_hashing,
            cancel_check=cancel_check,
            retry_delay=config.retry_delay,
            sleep=sleep,
        )

    @property
    def session(self) -> UploadSession:
        return self._session

    def open(self) -> str:
        """Open the upload session. flush() and finish_upload() call this as needed.

        Raises:
            SessionCreateError: If the server refuses the session.
        """
        if self._session.state is not SessionState.UNOPENED:
            return self._session.session_id
        session_id = self._session.open()
        try:
            self._pipeline.open_transport(session_id)
        except BaseException:
            self._session.fail()
            raise
        return session_id

    def flush(self) -> bool:
        """Upload the buffered bytes now, then clear the buffer.

        Returns:
            True when every chunk was sent, False if cancelled. After a
            cancellation the sink accepts no more writes.

        Raises:
            ChunkTransferError: If a WebSocket chunk send fails.
        """
        return self._flush_buffer() is None

    def _flush_buffer(self) -> UploadCancelled | None:
        self._check_writable()
        self.open()
        data = self._take_buffer()
        if not data:
            return None
        try:
            sent = self._pipeline.run(self._session, io.BytesIO(data), len(data), self.chunk_size)
        except BaseException:
            self._session.fail()
            raise
        if not sent:
            return self._cancel()
        logger.debug(f"Flushed {len(data)} bytes to session {self._session.session_id}")
        return None

    def finish_upload(self) -> UploadOutcome:
        """Flush what is left and finalize with the digest of all written bytes.

        Raises:
            FinalizeError: If the server rejects the finalize request.
        """
        if self._outcome is not None and self._outcome.cancelled:
            return self._outcome
        self._check_writable()
        cancelled = self._flush_buffer()
        if cancelled is not None:
            return cancelled
        if self._pipeline.cancel_requested():
            return self._cancel()
        self._transport.close()
        content_hash = self._pipeline.hasher.finalize()
        locator = self._session.finalize(content_hash)
        return self._completed(
            self._session.session_id, locator, content_hash, self._pipeline.chunks_sent
        )

    def close(self) -> None:
        """Release resources. An unfinished open session is cancelled."""
        try:
            if self._outcome is None and self._session.is_open:
                self._cancel()
        finally:
            self._transport.close()
            if self._owns_client:
                self._client.close()

    def __enter__(self) -> ChunkedUploadSink:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _cancel(self) -> UploadCancelled:
        self._transport.close()
        notified = True
        try:
            self._session.cancel()
        except SessionCancelError as e:
            logger.warning(f"Cancel notice for session {self._session.session_id} failed: {e}")
            notified = False
        return self._cancelled(self._session.session_id, self._pipeline.chunks_sent, notified)


class AsyncChunkedUploadSink(_SinkBase):
    """Awaitable push/flush upload sink. See ChunkedUploadSink."""

    def __init__(
        self,
        config: TransferConfig,
        extension: str,
        name: str | None = None,
        client: AsyncHTTPClient | None = None,
        events: EventChannel | None = None,
        cancel_check: CancelCheck | None = None,
        chunk_size: int | None = None,
        with_chunk_hashing: bool | None = None,
        sleep: AsyncSleep = asyncio.sleep,
    ) -> None:
        super().__init__(config, extension, name, events, chunk_size, with_chunk_hashing)
        self._owns_client = client is None
        self._client = client if client is not None else AsyncHTTPClient(config)
        self._session = AsyncUploadSession(self._client, self.extension, name, self.events)
        if config.transport is TransportMode.WEBSOCKET:
            self._transport = AsyncWebSocketChunkTransport(config)
        else:
            self._transport = AsyncHTTPChunkTransport(self._client)
        self._pipeline = AsyncChunkPipeline(
            self._transport,
            events=self.events,
            with_chunk_hashing=self.with_chunk_hashing,
            cancel_check=cancel_check,
            retry_delay=config.retry_delay,
            sleep=sleep,
        )

    @property
    def session(self) -> AsyncUploadSession:
        return self._session

    async def open(self) -> str:
        """Open the upload session. See ChunkedUploadSink.open."""
        if self._session.state is not SessionState.UNOPENED:
            return self._session.session_id
        session_id = await self._session.open()
        try:
            await self._pipeline.open_transport(session_id)
        except BaseException:
            self._session.fail()
            raise
        return session_id

    async def flush(self) -> bool:
        """Upload the buffered bytes now. See ChunkedUploadSink.flush."""
        return await self._flush_buffer() is None

    async def _flush_buffer(self) -> UploadCancelled | None:
        self._check_writable()
        await self.open()
        data = self._take_buffer()
        if not data:
            return None
        try:
            sent = await self._pipeline.run(
                self._session, io.BytesIO(data), len(data), self.chunk_size
            )
        except BaseException:
            self._session.fail()
            raise
        if not sent:
            return await self._cancel()
        logger.debug(f"Flushed {len(data)} bytes to session {self._session.session_id}")
        return None

    async def finish_upload(self) -> UploadOutcome:
        """Flush and finalize. See ChunkedUploadSink.finish_upload."""
        if self._outcome is not None and self._outcome.cancelled:
            return self._outcome
        self._check_writable()
        cancelled = await self._flush_buffer()
        if cancelled is not None:
            return cancelled
        if self._pipeline.cancel_requested():
            return await self._cancel()
        await self._transport.close()
        content_hash = self._pipeline.hasher.finalize()
        locator = await self._session.finalize(content_hash)
        return self._completed(
            self._session.session_id, locator, content_hash, self._pipeline.chunks_sent
        )

    async def aclose(self) -> None:
        """Release resources. An unfinished open session is cancelled."""
        try:
            if self._outcome is None and self._session.is_open:
                await self._cancel()
        finally:
            await self._transport.close()
            if self._owns_client:
                await self._client.aclose()

    async def __aenter__(self) -> AsyncChunkedUploadSink:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def _cancel(self) -> UploadCancelled:
        await self._transport.close()
        notified = True
        try:
            await self._session.cancel()
        except SessionCancelError as e:
            logger.warning(f"Cancel notice for session {self._session.session_id} failed: {e}")
            notified = False
        return self._cancelled(self._session.session_id, self._pipeline.chunks_sent, notified)
