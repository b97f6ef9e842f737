"""Shared types and dataclasses for transfer operations.

This module provides:
- SessionCreated, ChunkComplete, UploadComplete, UploadFailed: upload notifications
- DownloadProgress: download notification
- UploadCompleted, UploadCancelled: tagged result of an upload
- DownloadResult: result of a download
- Type aliases for callbacks
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from chunkload.client.errors import ErrorEnvelope


@dataclass(frozen=True)
class SessionCreated:
    """An upload session was opened on the server."""

    session_id: str


@dataclass(frozen=True)
class ChunkComplete:
    """A chunk was accepted by the server.

    Attributes:
        chunk_hash: SHA-1 of the chunk, None when chunk hashing is off.
        current_chunk: 1-based number of the chunk just sent.
        total_chunks: Number of chunks in this upload (or in this sink flush).
    """

    chunk_hash: str | None
    current_chunk: int
    total_chunks: int

    @property
    def percent(self) -> float:
        """Get progress percentage."""
        if self.total_chunks == 0:
            return 100.0
        return (self.current_chunk / self.total_chunks) * 100


@dataclass(frozen=True)
class UploadComplete:
    """The session was finalized and the content is downloadable.

    Attributes:
        file_path: Source path for file uploads, None otherwise.
        url: Download URL of the stored content.
    """

    file_path: str | None
    url: str


@dataclass(frozen=True)
class UploadFailed:
    """A transfer step failed.

    Raised for every failed chunk attempt before it is retried, so a
    listener sees transient errors that never reach the caller.

    Attributes:
        error: The exception raised by the failed step.
        envelope: Error details sent by the server, if any.
        chunk_index: 0-based index of the failed chunk, None for non-chunk steps.
    """

    error: Exception
    envelope: ErrorEnvelope | None = None
    chunk_index: int | None = None


@dataclass(frozen=True)
class DownloadProgress:
    """Download progress snapshot.

    Attributes:
        total_size: Declared Content-Length, None if the server omitted it.
        bytes_downloaded: Bytes written to the destination so far.
        percent: Percentage rounded to 2 decimals, None without total_size.
    """

    total_size: int | None
    bytes_downloaded: int
    percent: float | None

    @classmethod
    def create(cls, total_size: int | None, bytes_downloaded: int) -> DownloadProgress:
        """Build a snapshot, computing the percentage when the size is known."""
        percent = None
        if total_size:
            percent = round(bytes_downloaded / total_size * 100, 2)
        elif total_size == 0:
            percent = 100.0
        return cls(total_size=total_size, bytes_downloaded=bytes_downloaded, percent=percent)


TransferEvent = SessionCreated | ChunkComplete | UploadComplete | UploadFailed | DownloadProgress

# Type aliases for event handlers
EventHandler = Callable[[TransferEvent], None]
CancelCheck = Callable[[], bool]
Sleep = Callable[[float], None]
AsyncSleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class UploadCompleted:
    """Upload finished and was finalized."""

    url: str
    session_id: str
    content_hash: str
    size: int
    total_chunks: int

    @property
    def cancelled(self) -> bool:
        return False


@dataclass(frozen=True)
class UploadCancelled:
    """Upload stopped on request before finalize.

    Attributes:
        session_id: Session that was abandoned, None if none was opened.
        chunks_sent: Chunks accepted by the server before cancellation.
        notified: Whether the server acknowledged the cancel notice.
    """

    session_id: str | None
    chunks_sent: int
    notified: bool

    @property
    def cancelled(self) -> bool:
        return True


UploadOutcome = UploadCompleted | UploadCancelled


@dataclass(frozen=True)
class DownloadResult:
    """Result of a download operation."""

    url: str
    bytes_downloaded: int
    total_size: int | None
    cancelled: bool = False
