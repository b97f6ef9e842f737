"""Shared configuration classes for chunkload.

This module defines the configuration used by the upload and download engines.
"""

from __future__ import annotations

from dataclasses import dataclass

from chunkload.core.chunking import DEFAULT_CHUNK_SIZE
from chunkload.core.types import TransportMode

DEFAULT_TIMEOUT = 30.0  # seconds
DEFAULT_DOWNLOAD_TIMEOUT = 300.0  # seconds
DEFAULT_RETRY_DELAY = 0.5  # seconds between chunk upload attempts


@dataclass
class TransferConfig:
    """Configuration for talking to a chunked-upload server.

    Shared by the HTTP client, the WebSocket chunk transport and the
    downloader so every component builds URLs the same way.

    Attributes:
        server_url: Base URL of the server (e.g., "https://files.example.com").
        chunk_size: Size of each uploaded chunk in bytes.
        with_chunk_hashing: Send a SHA-1 of every chunk so the server can verify it.
        transport: How chunk bytes are sent (one POST per chunk, or a WebSocket).
        timeout: Request timeout in seconds.
        download_timeout: Timeout for streamed downloads in seconds.
        verify_ssl: Whether to verify SSL certificates (default True).
        retry_delay: Fixed wait between failed chunk upload attempts.
    """

    server_url: str
    chunk_size: int = DEFAULT_CHUNK_SIZE
    with_chunk_hashing: bool = True
    transport: TransportMode = TransportMode.HTTP
    timeout: float = DEFAULT_TIMEOUT
    download_timeout: float = DEFAULT_DOWNLOAD_TIMEOUT
    verify_ssl: bool = True
    retry_delay: float = DEFAULT_RETRY_DELAY

    def __post_init__(self) -> None:
        """Normalize server URL and validate sizes."""
        self.server_url = self.server_url.rstrip("/")
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")
        if not isinstance(self.transport, TransportMode):
            self.transport = TransportMode(self.transport)

    @property
    def ws_url(self) -> str:
        """Get WebSocket URL for chunk streaming.

        Returns:
            WebSocket URL of the upload socket.
        """
        url = self.server_url
        if url.startswith("https://"):
            url = "wss://" + url[8:]
        elif url.startswith("http://"):
            url = "ws://" + url[7:]
        return f"{url}/ws"

    @property
    def is_secure(self) -> bool:
        """Check if using HTTPS/WSS.

        Returns:
            True if server uses HTTPS.
        """
        return self.server_url.startswith("https://")

    def download_url(self, locator: str) -> str:
        """Build the public download URL for a finalized upload."""
        return f"{self.server_url}/d/{locator}"
