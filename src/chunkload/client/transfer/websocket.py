"""WebSocket chunk transport.

This module provides:
- WebSocketChunkTransport: blocking transport on websockets.sync
- AsyncWebSocketChunkTransport: awaitable transport on websockets.asyncio

Protocol on {server}/ws:
    client -> "[Client] Connected"
    server -> prompt for the session id (text)
    client -> session id (text)
    server -> readiness confirmation (text)
    client -> one binary frame per chunk, in order
    client -> close (1000, normal closure)

Known limitation: chunks carry no per-chunk digest and a failed frame is
not retried; a dropped socket fails the whole upload. Session open and
finalize still go over HTTP, so the whole-content digest is still checked.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import ssl
from typing import TYPE_CHECKING

from websockets.asyncio.client import connect as async_connect
from websockets.exceptions import WebSocketException
from websockets.sync.client import connect

from chunkload.client.errors import ChunkTransferError

if TYPE_CHECKING:
    from websockets.asyncio.client import ClientConnection as AsyncClientConnection
    from websockets.sync.client import ClientConnection

    from chunkload.core.config import TransferConfig

logger = logging.getLogger(__name__)

CLIENT_HELLO = "[Client] Connected"
NORMAL_CLOSURE = 1000

# Errors that end the socket
SOCKET_ERRORS: tuple[type[Exception], ...] = (WebSocketException, OSError, TimeoutError)


def build_ssl_context(config: TransferConfig) -> ssl.SSLContext | None:
    """TLS context for wss:// URLs, honoring verify_ssl."""
    if not config.ws_url.startswith("wss://"):
        return None
    ssl_context = ssl.create_default_context()
    if not config.verify_ssl:
        ssl_context.check_hostname = False
        ssl_context.verify_mode = ssl.CERT_NONE
    return ssl_context


def _expect_text(message: str | bytes, step: str) -> str:
    if not isinstance(message, str):
        raise ChunkTransferError(f"Expected a text frame during {step}, got binary")
    logger.debug(f"WebSocket {step}: {message}")
    return message


class WebSocketChunkTransport:
    """Streams chunks as binary frames over one blocking WebSocket."""

    retries_failed_chunks = False

    def __init__(self, config: TransferConfig) -> None:
        self._config = config
        self._ws: ClientConnection | None = None

    @property
    def connected(self) -> bool:
        return self._ws is not None

    def open(self, session_id: str) -> None:
        """Connect and run the session handshake.

        Raises:
            ChunkTransferError: If the socket cannot be opened or the
                handshake fails.
        """
        timeout = self._config.timeout
        try:
            self._ws = connect(
                self._config.ws_url,
                ssl=build_ssl_context(self._config),
                open_timeout=timeout,
            )
            self._ws.send(CLIENT_HELLO)
            _expect_text(self._ws.recv(timeout=timeout), "session prompt")
            self._ws.send(session_id)
            _expect_text(self._ws.recv(timeout=timeout), "ready confirmation")
        except SOCKET_ERRORS as e:
            self.close()
            raise ChunkTransferError(f"WebSocket handshake failed: {e}") from e
        except ChunkTransferError:
            self.close()
            raise
        logger.info(f"WebSocket ready for session {session_id}")

    def send_chunk(self, session_id: str, data: bytes, chunk_hash: str | None = None) -> None:
        """Send one chunk as a binary frame. The chunk digest is not sent.

        Raises:
            ChunkTransferError: If the socket is closed or the send fails.
        """
        if self._ws is None:
            raise ChunkTransferError(f"WebSocket for session {session_id} is not open")
        try:
            self._ws.send(data)
        except SOCKET_ERRORS as e:
            raise ChunkTransferError(f"WebSocket send failed: {e}") from e

    def close(self) -> None:
        """Close the socket with a normal-closure frame."""
        if self._ws is None:
            return
        with contextlib.suppress(*SOCKET_ERRORS):
            self._ws.close(code=NORMAL_CLOSURE)
        self._ws = None


class AsyncWebSocketChunkTransport:
    """Streams chunks as binary frames over one asyncio WebSocket."""

    retries_failed_chunks = False

    def __init__(self, config: TransferConfig) -> None:
        self._config = config
        self._ws: AsyncClientConnection | None = None

    @property
    def connected(self) -> bool:
        return self._ws is not None

    async def open(self, session_id: str) -> None:
        """Connect and run the session handshake. See WebSocketChunkTransport.open."""
        timeout = self._config.timeout
        try:
            self._ws = await async_connect(
                self._config.ws_url,
                ssl=build_ssl_context(self._config),
                open_timeout=timeout,
            )
            await self._ws.send(CLIENT_HELLO)
            _expect_text(await asyncio.wait_for(self._ws.recv(), timeout), "session prompt")
            await self._ws.send(session_id)
            _expect_text(await asyncio.wait_for(self._ws.recv(), timeout), "ready confirmation")
        except SOCKET_ERRORS as e:
            await self.close()
            raise ChunkTransferError(f"WebSocket handshake failed: {e}") from e
        except ChunkTransferError:
            await self.close()
            raise
        logger.info(f"WebSocket ready for session {session_id}")

    async def send_chunk(
        self, session_id: str, data: bytes, chunk_hash: str | None = None
    ) -> None:
        """Send one chunk as a binary frame. See WebSocketChunkTransport.send_chunk."""
        if self._ws is None:
            raise ChunkTransferError(f"WebSocket for session {session_id} is not open")
        try:
            await self._ws.send(data)
        except SOCKET_ERRORS as e:
            raise ChunkTransferError(f"WebSocket send failed: {e}") from e

    async def close(self) -> None:
        """Close the socket with a normal-closure frame."""
        if self._ws is None:
            return
        with contextlib.suppress(*SOCKET_ERRORS):
            await self._ws.close(code=NORMAL_CLOSURE)
        self._ws = None
