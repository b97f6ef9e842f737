"""Tests for the WebSocket chunk transports."""

import ssl
from unittest.mock import AsyncMock, MagicMock, call, patch

import pytest
from websockets.exceptions import ConnectionClosedError

from chunkload.client.errors import ChunkTransferError
from chunkload.client.transfer.websocket import (
    AsyncWebSocketChunkTransport,
    WebSocketChunkTransport,
    build_ssl_context,
)
from chunkload.core.config import TransferConfig


def make_config(server_url: str = "http://test", **kwargs) -> TransferConfig:  # type: ignore[no-untyped-def]
    """Create a TransferConfig for testing."""
    return TransferConfig(server_url=server_url, transport="websocket", **kwargs)  # type: ignore[arg-type]


def handshake_socket() -> MagicMock:
    ws = MagicMock()
    ws.recv.side_effect = ["[Server] Send session id", "[Server] Ready"]
    return ws


class TestBuildSSLContext:
    """Tests for build_ssl_context."""

    def test_plain_ws(self) -> None:
        """ws:// needs no TLS context."""
        assert build_ssl_context(make_config()) is None

    def test_wss_verified(self) -> None:
        """wss:// verifies certificates by default."""
        context = build_ssl_context(make_config("https://example.com"))
        assert context is not None
        assert context.verify_mode == ssl.CERT_REQUIRED

    def test_wss_unverified(self) -> None:
        """verify_ssl=False disables certificate checks."""
        context = build_ssl_context(make_config("https://example.com", verify_ssl=False))
        assert context is not None
        assert context.check_hostname is False
        assert context.verify_mode == ssl.CERT_NONE


class TestWebSocketChunkTransport:
    """Tests for WebSocketChunkTransport."""

    def test_handshake_and_frames(self) -> None:
        """Handshake exchanges the session id, then chunks go as binary frames."""
        ws = handshake_socket()
        transport = WebSocketChunkTransport(make_config())

        with patch("chunkload.client.transfer.websocket.connect", return_value=ws):
            transport.open("s1")
        transport.send_chunk("s1", b"chunk", "ignored-digest")
        transport.close()

        assert ws.send.call_args_list == [call("[Client] Connected"), call("s1"), call(b"chunk")]
        ws.close.assert_called_once_with(code=1000)
        assert not transport.connected
        assert transport.retries_failed_chunks is False

    def test_connect_failure(self) -> None:
        """A refused connection raises ChunkTransferError."""
        transport = WebSocketChunkTransport(make_config())

        with patch(
            "chunkload.client.transfer.websocket.connect",
            side_effect=ConnectionRefusedError("refused"),
        ), pytest.raises(ChunkTransferError):
            transport.open("s1")

        assert not transport.connected

    def test_binary_prompt_rejected(self) -> None:
        """The handshake expects text frames."""
        ws = MagicMock()
        ws.recv.return_value = b"\x00"
        transport = WebSocketChunkTransport(make_config())

        with patch("chunkload.client.transfer.websocket.connect", return_value=ws), pytest.raises(
            ChunkTransferError
        ):
            transport.open("s1")

        ws.close.assert_called_once()

    def test_send_failure(self) -> None:
        """A closed socket fails the chunk."""
        ws = handshake_socket()
        transport = WebSocketChunkTransport(make_config())
        with patch("chunkload.client.transfer.websocket.connect", return_value=ws):
            transport.open("s1")
        ws.send.side_effect = ConnectionClosedError(None, None)

        with pytest.raises(ChunkTransferError):
            transport.send_chunk("s1", b"chunk")

    def test_send_before_open(self) -> None:
        """Sending needs an open socket."""
        with pytest.raises(ChunkTransferError):
            WebSocketChunkTransport(make_config()).send_chunk("s1", b"chunk")

    def test_close_without_open(self) -> None:
        """close() on an unopened transport is a no-op."""
        WebSocketChunkTransport(make_config()).close()


class TestAsyncWebSocketChunkTransport:
    """Tests for AsyncWebSocketChunkTransport."""

    @pytest.mark.asyncio
    async def test_handshake_and_frames(self) -> None:
        """Same protocol over the asyncio client."""
        ws = AsyncMock()
        ws.recv.side_effect = ["[Server] Send session id", "[Server] Ready"]
        transport = AsyncWebSocketChunkTransport(make_config())

        with patch(
            "chunkload.client.transfer.websocket.async_connect", AsyncMock(return_value=ws)
        ) as connect:
            await transport.open("s1")
        await transport.send_chunk("s1", b"chunk")
        await transport.close()

        assert connect.call_args.args[0] == "ws://test/ws"
        assert ws.send.await_args_list == [call("[Client] Connected"), call("s1"), call(b"chunk")]
        ws.close.assert_awaited_once_with(code=1000)

    @pytest.mark.asyncio
    async def test_connect_failure(self) -> None:
        """A refused connection raises ChunkTransferError."""
        transport = AsyncWebSocketChunkTransport(make_config())

        with patch(
            "chunkload.client.transfer.websocket.async_connect",
            AsyncMock(side_effect=OSError("refused")),
        ), pytest.raises(ChunkTransferError):
            await transport.open("s1")
