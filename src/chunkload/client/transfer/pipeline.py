"""Shared chunk-transfer routine.

This module provides:
- HTTPChunkTransport / AsyncHTTPChunkTransport: one POST per chunk
- ChunkPipeline / AsyncChunkPipeline: plan -> read -> hash -> send -> notify

Both the whole-item uploader and the streaming sink push their bytes
through a pipeline, so chunk planning, hashing and retry behave the same
on every upload path.

The pipeline owns the whole-content hasher. Each chunk is fed to it once,
in order, before the first send attempt; retries resend the same bytes and
the same chunk digest without touching the hasher.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, BinaryIO, Protocol

from chunkload.client.errors import ChunkTransferError, UploadError
from chunkload.client.transfer.retry import async_retry_until_success, retry_until_success
from chunkload.client.transfer.types import (
    AsyncSleep,
    CancelCheck,
    ChunkComplete,
    Sleep,
    UploadFailed,
)
from chunkload.core.chunking import ChunkDescriptor, plan_chunks, read_exactly
from chunkload.core.config import DEFAULT_RETRY_DELAY
from chunkload.core.hashing import ContentHasher, hash_bytes

if TYPE_CHECKING:
    from chunkload.client.api import AsyncHTTPClient, HTTPClient
    from chunkload.client.transfer.events import EventChannel
    from chunkload.client.transfer.session import AsyncUploadSession, UploadSession

logger = logging.getLogger(__name__)


class ChunkTransport(Protocol):
    """Blocking chunk transport strategy."""

    retries_failed_chunks: bool

    def open(self, session_id: str) -> None: ...

    def send_chunk(self, session_id: str, data: bytes, chunk_hash: str | None = None) -> None: ...

    def close(self) -> None: ...


class AsyncChunkTransport(Protocol):
    """Awaitable chunk transport strategy."""

    retries_failed_chunks: bool

    async def open(self, session_id: str) -> None: ...

    async def send_chunk(
        self, session_id: str, data: bytes, chunk_hash: str | None = None
    ) -> None: ...

    async def close(self) -> None: ...


class HTTPChunkTransport:
    """Sends each chunk as its own POST; failures are retried by the pipeline."""

    retries_failed_chunks = True

    def __init__(self, client: HTTPClient) -> None:
        self._client = client

    def open(self, session_id: str) -> None:
        """Nothing to set up; every chunk is an independent request."""

    def send_chunk(self, session_id: str, data: bytes, chunk_hash: str | None = None) -> None:
        self._client.upload_chunk(session_id, data, chunk_hash)

    def close(self) -> None:
        """Nothing to release; the HTTP client belongs to the caller."""


class AsyncHTTPChunkTransport:
    """Awaitable HTTPChunkTransport."""

    retries_failed_chunks = True

    def __init__(self, client: AsyncHTTPClient) -> None:
        self._client = client

    async def open(self, session_id: str) -> None:
        pass

    async def send_chunk(
        self, session_id: str, data: bytes, chunk_hash: str | None = None
    ) -> None:
        await self._client.upload_chunk(session_id, data, chunk_hash)

    async def close(self) -> None:
        pass


class _PipelineBase:
    """Chunk bookkeeping shared by the blocking and awaitable pipelines."""

    def __init__(
        self,
        events: EventChannel | None,
        with_chunk_hashing: bool,
        cancel_check: CancelCheck | None,
        retry_delay: float,
    ) -> None:
        self.hasher = ContentHasher()
        self.chunks_sent = 0
        self._events = events
        self._with_chunk_hashing = with_chunk_hashing
        self._cancel_check = cancel_check
        self._retry_delay = retry_delay

    @property
    def bytes_sent(self) -> int:
        """Bytes read and hashed so far, across every run."""
        return self.hasher.bytes_hashed

    def cancel_requested(self) -> bool:
        """Check the caller's cancellation flag."""
        return bool(self._cancel_check and self._cancel_check())

    def _prepare(self, stream: BinaryIO, descriptor: ChunkDescriptor) -> tuple[bytes, str | None]:
        try:
            data = read_exactly(stream, descriptor.length)
        except EOFError as e:
            raise UploadError(f"Source ended early in chunk {descriptor.number}: {e}") from e
        except OSError as e:
            raise UploadError(f"Reading chunk {descriptor.number} failed: {e}") from e
        self.hasher.update(data)
        chunk_hash = hash_bytes(data) if self._with_chunk_hashing else None
        return data, chunk_hash

    def _chunk_failed(self, descriptor: ChunkDescriptor) -> Callable[[ChunkTransferError], None]:
        def on_error(error: ChunkTransferError) -> None:
            error.chunk_index = descriptor.index
            self._emit(
                UploadFailed(error=error, envelope=error.envelope, chunk_index=descriptor.index)
            )

        return on_error

    def _chunk_done(self, descriptor: ChunkDescriptor, chunk_hash: str | None, total: int) -> None:
        self.chunks_sent += 1
        logger.debug(f"Uploaded chunk {descriptor.number}/{total} ({descriptor.length} bytes)")
        self._emit(
            ChunkComplete(chunk_hash=chunk_hash, current_chunk=descriptor.number, total_chunks=total)
        )

    def _emit(self, event: ChunkComplete | UploadFailed) -> None:
        if self._events is not None:
            self._events.emit(event)


class ChunkPipeline(_PipelineBase):
    """Blocking chunk pipeline."""

    def __init__(
        self,
        transport: ChunkTransport,
        events: EventChannel | None = None,
        with_chunk_hashing: bool = True,
        cancel_check: CancelCheck | None = None,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        sleep: Sleep = time.sleep,
    ) -> None:
        super().__init__(events, with_chunk_hashing, cancel_check, retry_delay)
        self._transport = transport
        self._sleep = sleep

    def open_transport(self, session_id: str) -> None:
        """Open the transport for session_id.

        Raises:
            ChunkTransferError: If the transport cannot be opened; an
                UploadFailed event is emitted first.
        """
        try:
            self._transport.open(session_id)
        except ChunkTransferError as e:
            self._emit(UploadFailed(error=e, envelope=e.envelope))
            raise

    def run(
        self,
        session: UploadSession,
        stream: BinaryIO,
        total_length: int,
        chunk_size: int,
    ) -> bool:
        """Send total_length bytes from stream as planned chunks.

        Returns:
            True when every chunk was accepted, False if cancellation was
            observed before a chunk or between retries.

        Raises:
            ChunkTransferError: On a transport that does not retry.
            UploadError: If the stream ends early or cannot be read.
        """
        plan = plan_chunks(total_length, chunk_size)
        for descriptor in plan:
            if self.cancel_requested():
                logger.info(f"Cancelled before chunk {descriptor.number}/{len(plan)}")
                return False
            data, chunk_hash = self._prepare(stream, descriptor)
            session.begin_upload()
            if not self._send(session.session_id, descriptor, data, chunk_hash):
                return False
            self._chunk_done(descriptor, chunk_hash, len(plan))
        return True

    def _send(
        self,
        session_id: str,
        descriptor: ChunkDescriptor,
        data: bytes,
        chunk_hash: str | None,
    ) -> bool:
        on_error = self._chunk_failed(descriptor)

        def attempt() -> None:
            self._transport.send_chunk(session_id, data, chunk_hash)

        if not self._transport.retries_failed_chunks:
            try:
                attempt()
            except ChunkTransferError as e:
                on_error(e)
                raise
            return True

        return retry_until_success(
            attempt,
            on_error=on_error,
            cancel_check=self._cancel_check,
            delay=self._retry_delay,
            sleep=self._sleep,
        )


class AsyncChunkPipeline(_PipelineBase):
    """Awaitable chunk pipeline. Suspends only on sends and retry waits."""

    def __init__(
        self,
        transport: AsyncChunkTransport,
        events: EventChannel | None = None,
        with_chunk_hashing: bool = True,
        cancel_check: CancelCheck | None = None,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        sleep: AsyncSleep = asyncio.sleep,
    ) -> None:
        super().__init__(events, with_chunk_hashing, cancel_check, retry_delay)
        self._transport = transport
        self._sleep = sleep

    async def open_transport(self, session_id: str) -> None:
        """Open the transport for session_id. See ChunkPipeline.open_transport."""
        try:
            await self._transport.open(session_id)
        except ChunkTransferError as e:
            self._emit(UploadFailed(error=e, envelope=e.envelope))
            raise

    async def run(
        self,
        session: AsyncUploadSession,
        stream: BinaryIO,
        total_length: int,
        chunk_size: int,
    ) -> bool:
        """Send total_length bytes from stream. See ChunkPipeline.run."""
        plan = plan_chunks(total_length, chunk_size)
        for descriptor in plan:
            if self.cancel_requested():
                logger.info(f"Cancelled before chunk {descriptor.number}/{len(plan)}")
                return False
            data, chunk_hash = self._prepare(stream, descriptor)
            session.begin_upload()
            if not await self._send(session.session_id, descriptor, data, chunk_hash):
                return False
            self._chunk_done(descriptor, chunk_hash, len(plan))
        return True

    async def _send(
        self,
        session_id: str,
        descriptor: ChunkDescriptor,
        data: bytes,
        chunk_hash: str | None,
    ) -> bool:
        on_error = self._chunk_failed(descriptor)

        def attempt() -> Awaitable[None]:
            return self._transport.send_chunk(session_id, data, chunk_hash)

        if not self._transport.retries_failed_chunks:
            try:
                await attempt()
            except ChunkTransferError as e:
                on_error(e)
                raise
            return True

        return await async_retry_until_success(
            attempt,
            on_error=on_error,
            cancel_check=self._cancel_check,
            delay=self._retry_delay,
            sleep=self._sleep,
        )
