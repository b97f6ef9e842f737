"""Upload sources and download destinations.

This module provides:
- UploadItem: a file path, a byte buffer, or a caller-owned stream to upload
- DownloadItem: a file, a caller-owned stream, or an in-memory accumulator
  to download into

Both are tagged variants: the kind decides which payload field is set, and
every operation dispatches on the kind.
"""

from __future__ import annotations

import io
import logging
import os
import re
from enum import Enum, auto
from pathlib import Path
from typing import BinaryIO, cast

from chunkload.client.errors import InvalidInputError

logger = logging.getLogger(__name__)

NO_EXTENSION = "none"
_EXTENSION_RE = re.compile(r"^[A-Za-z0-9_+\-]+$")


def normalize_extension(extension: str) -> str:
    """Validate an extension, dropping one leading dot.

    Raises:
        InvalidInputError: If the extension is empty or not a plain ASCII token.
    """
    if extension.startswith("."):
        extension = extension[1:]
    if not extension or not _EXTENSION_RE.match(extension):
        raise InvalidInputError(f"Invalid extension: {extension!r}")
    return extension


class SourceKind(Enum):
    """Where upload content comes from."""

    FILE = auto()
    BYTES = auto()
    STREAM = auto()


class DestinationKind(Enum):
    """Where download content goes."""

    FILE = auto()
    STREAM = auto()
    BYTES = auto()


class UploadItem:
    """Content to upload, with its extension and optional display name.

    Build with from_file(), from_bytes() or from_stream().
    """

    def __init__(
        self,
        kind: SourceKind,
        extension: str,
        name: str | None = None,
        *,
        path: Path | None = None,
        data: bytes | None = None,
        stream: BinaryIO | None = None,
    ) -> None:
        payloads = {SourceKind.FILE: path, SourceKind.BYTES: data, SourceKind.STREAM: stream}
        if kind not in payloads:
            raise InvalidInputError(f"Invalid upload type: {kind!r}")
        if payloads[kind] is None or sum(p is not None for p in payloads.values()) != 1:
            raise InvalidInputError(f"{kind.name} upload needs exactly its own payload")
        self.kind = kind
        self.extension = normalize_extension(extension)
        self.name = name
        self._path = path
        self._data = data
        self._stream = stream

    @classmethod
    def from_file(
        cls,
        path: str | os.PathLike[str],
        extension: str | None = None,
        name: str | None = None,
    ) -> UploadItem:
        """Upload a file from disk.

        The extension and display name default to the file name; a file
        without a suffix gets the extension "none". The file is read chunk
        by chunk during the upload, never as a whole.

        Args:
            path: File to upload.
            extension: Overrides the extension taken from the suffix.
            name: Overrides the display name.

        Raises:
            InvalidInputError: If the file does not exist.
        """
        file = Path(path).expanduser().resolve()
        if not file.is_file():
            raise InvalidInputError(
                "The provided file does not exist!"
            ) from FileNotFoundError(f"File not found: {file}")
        if file.suffix and len(file.suffix) > 1:
            default_extension, default_name = file.suffix[1:], file.stem
        else:
            default_extension, default_name = NO_EXTENSION, file.name
        return cls(
            SourceKind.FILE,
            extension or default_extension,
            name or default_name,
            path=file,
        )

    @classmethod
    def from_bytes(cls, data: bytes, extension: str, name: str | None = None) -> UploadItem:
        """Upload an in-memory byte buffer."""
        return cls(SourceKind.BYTES, extension, name, data=bytes(data))

    @classmethod
    def from_stream(cls, stream: BinaryIO, extension: str, name: str | None = None) -> UploadItem:
        """Upload from a caller-owned readable stream.

        The stream must be seekable so its length can be planned; it is
        read from its current position and never closed by the uploader.
        """
        if not stream.readable():
            raise InvalidInputError("The provided stream is not readable!")
        return cls(SourceKind.STREAM, extension, name, stream=stream)

    @property
    def file_path(self) -> Path | None:
        """Source path for file uploads, None otherwise."""
        return self._path

    @property
    def owns_stream(self) -> bool:
        """Whether streams from open_stream() should be closed by the uploader."""
        return self.kind is not SourceKind.STREAM

    def open_stream(self) -> BinaryIO:
        """Return a readable stream over the content.

        File and byte items yield a fresh stream on every call; stream
        items return the caller's stream.
        """
        if self.kind is SourceKind.FILE:
            return open(cast(Path, self._path), "rb")
        if self.kind is SourceKind.BYTES:
            return io.BytesIO(cast(bytes, self._data))
        if self.kind is SourceKind.STREAM:
            return cast(BinaryIO, self._stream)
        raise InvalidInputError(f"Invalid upload type: {self.kind!r}")

    def content_length(self, stream: BinaryIO) -> int:
        """Number of bytes left to read from stream.

        Raises:
            InvalidInputError: If the length cannot be determined.
        """
        if self.kind is SourceKind.FILE:
            return cast(Path, self._path).stat().st_size
        if self.kind is SourceKind.BYTES:
            return len(cast(bytes, self._data))
        if not stream.seekable():
            raise InvalidInputError(
                "Stream uploads need a seekable stream; "
                "use ChunkedUploadSink for streams of unknown length"
            )
        position = stream.tell()
        end = stream.seek(0, io.SEEK_END)
        stream.seek(position)
        return end - position

    def read_bytes(self) -> bytes:
        """Return the whole content as bytes.

        Raises:
            InvalidInputError: For stream items.
        """
        if self.kind is SourceKind.FILE:
            return cast(Path, self._path).read_bytes()
        if self.kind is SourceKind.BYTES:
            return cast(bytes, self._data)
        raise InvalidInputError("Cannot get stream as byte array!")

    def __repr__(self) -> str:
        return f"UploadItem({self.kind.name}, extension={self.extension!r}, name={self.name!r})"


class DownloadItem:
    """Destination for downloaded bytes.

    Build with to_file(), to_stream() or to_bytes(). A file destination is
    opened for writing immediately and closed exactly once by close().
    """

    def __init__(
        self,
        kind: DestinationKind,
        *,
        path: Path | None = None,
        stream: BinaryIO | None = None,
        close_stream: bool = False,
    ) -> None:
        self.kind = kind
        self._path = path
        self._stream = stream
        self._close_stream = close_stream
        self._buffer = bytearray()
        self._file: BinaryIO | None = None
        self._closed = False

        if kind is DestinationKind.FILE:
            if path is None:
                raise InvalidInputError("File destination needs a path")
            try:
                self._file = open(path, "wb")
            except OSError as e:
                raise InvalidInputError(f"Cannot open {path} for writing: {e}") from e
        elif kind is DestinationKind.STREAM:
            if stream is None or not stream.writable():
                raise InvalidInputError("The provided stream is not writable!")
        elif kind is not DestinationKind.BYTES:
            raise InvalidInputError(f"Invalid download type: {kind!r}")

    @classmethod
    def to_file(cls, path: str | os.PathLike[str]) -> DownloadItem:
        """Download into a file, truncating any existing content."""
        return cls(DestinationKind.FILE, path=Path(path).expanduser().resolve())

    @classmethod
    def to_stream(cls, stream: BinaryIO, close_stream: bool = False) -> DownloadItem:
        """Download into a caller-owned writable stream.

        Args:
            stream: Writable binary stream.
            close_stream: Close the stream when the download ends.
        """
        return cls(DestinationKind.STREAM, stream=stream, close_stream=close_stream)

    @classmethod
    def to_bytes(cls) -> DownloadItem:
        """Download into memory; read the result from .data."""
        return cls(DestinationKind.BYTES)

    @property
    def file_path(self) -> Path | None:
        """Destination path for file downloads, None otherwise."""
        return self._path

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def data(self) -> bytes:
        """Accumulated bytes of an in-memory download.

        Raises:
            InvalidInputError: For file and stream destinations.
        """
        if self.kind is not DestinationKind.BYTES:
            raise InvalidInputError("Only in-memory downloads expose data")
        return bytes(self._buffer)

    def write(self, data: bytes) -> None:
        """Append data to the destination."""
        if self._closed:
            raise InvalidInputError("Destination already closed")
        if self.kind is DestinationKind.FILE:
            cast(BinaryIO, self._file).write(data)
        elif self.kind is DestinationKind.STREAM:
            cast(BinaryIO, self._stream).write(data)
        else:
            self._buffer += data

    def close(self) -> None:
        """Release the destination. Later calls are no-ops."""
        if self._closed:
            return
        self._closed = True
        if self.kind is DestinationKind.FILE:
            cast(BinaryIO, self._file).close()
            logger.debug(f"Closed download file {self._path}")
        elif self.kind is DestinationKind.STREAM:
            stream = cast(BinaryIO, self._stream)
            if self._close_stream:
                stream.close()
            else:
                stream.flush()

    def __enter__(self) -> DownloadItem:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"DownloadItem({self.kind.name}, path={self._path!r})"
