"""Chunked upload and streamed download.

Architecture:
    UploadItem → ChunkUploader → UploadSession + ChunkPipeline → transport
    producer → ChunkedUploadSink → UploadSession + ChunkPipeline → transport
    URL → Downloader → DownloadItem

Components:
- **UploadSession**: Server session lifecycle (open, finalize, cancel)
- **ChunkPipeline**: Plan, read, hash and send chunks with retry
- **ChunkUploader**: Whole-item upload returning UploadCompleted or UploadCancelled
- **ChunkedUploadSink**: write/flush/finish_upload for producers of unknown size
- **Downloader**: Streamed GET into a file, stream or memory buffer
- **EventChannel**: Session, chunk, completion, failure and progress notifications

Every engine has an Async* twin with the same algorithm.
"""

from chunkload.client.errors import (
    ChunkTransferError,
    DownloadError,
    ErrorEnvelope,
    FinalizeError,
    InvalidInputError,
    SessionCancelError,
    SessionCreateError,
    SessionStateError,
    TransferError,
    UploadError,
)
from chunkload.client.transfer.download import (
    DOWNLOAD_BUFFER_SIZE,
    PROGRESS_READ_INTERVAL,
    AsyncDownloader,
    Downloader,
    normalize_download_url,
)
from chunkload.client.transfer.events import EventChannel
from chunkload.client.transfer.items import (
    DestinationKind,
    DownloadItem,
    SourceKind,
    UploadItem,
    normalize_extension,
)
from chunkload.client.transfer.pipeline import (
    AsyncChunkPipeline,
    AsyncHTTPChunkTransport,
    ChunkPipeline,
    HTTPChunkTransport,
)
from chunkload.client.transfer.retry import async_retry_until_success, retry_until_success
from chunkload.client.transfer.session import AsyncUploadSession, UploadSession
from chunkload.client.transfer.sink import AsyncChunkedUploadSink, ChunkedUploadSink
from chunkload.client.transfer.types import (
    CancelCheck,
    ChunkComplete,
    DownloadProgress,
    DownloadResult,
    EventHandler,
    SessionCreated,
    TransferEvent,
    UploadCancelled,
    UploadComplete,
    UploadCompleted,
    UploadFailed,
    UploadOutcome,
)
from chunkload.client.transfer.upload import AsyncChunkUploader, ChunkUploader
from chunkload.client.transfer.websocket import (
    AsyncWebSocketChunkTransport,
    WebSocketChunkTransport,
)

__all__ = [
    # Errors
    "ChunkTransferError",
    "DownloadError",
    "ErrorEnvelope",
    "FinalizeError",
    "InvalidInputError",
    "SessionCancelError",
    "SessionCreateError",
    "SessionStateError",
    "TransferError",
    "UploadError",
    # Download
    "DOWNLOAD_BUFFER_SIZE",
    "PROGRESS_READ_INTERVAL",
    "AsyncDownloader",
    "Downloader",
    "normalize_download_url",
    # Events
    "EventChannel",
    # Items
    "DestinationKind",
    "DownloadItem",
    "SourceKind",
    "UploadItem",
    "normalize_extension",
    # Pipeline
    "AsyncChunkPipeline",
    "AsyncHTTPChunkTransport",
    "ChunkPipeline",
    "HTTPChunkTransport",
    # Retry
    "async_retry_until_success",
    "retry_until_success",
    # Session
    "AsyncUploadSession",
    "UploadSession",
    # Sink
    "AsyncChunkedUploadSink",
    "ChunkedUploadSink",
    # Types
    "CancelCheck",
    "ChunkComplete",
    "DownloadProgress",
    "DownloadResult",
    "EventHandler",
    "SessionCreated",
    "TransferEvent",
    "UploadCancelled",
    "UploadComplete",
    "UploadCompleted",
    "UploadFailed",
    "UploadOutcome",
    # Upload
    "AsyncChunkUploader",
    "ChunkUploader",
    # WebSocket
    "AsyncWebSocketChunkTransport",
    "WebSocketChunkTransport",
]
