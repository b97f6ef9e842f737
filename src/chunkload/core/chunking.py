"""Fixed-size chunking for chunkload.

This module provides the single chunk planner used by every upload path:
- Whole-item uploads (file, bytes, seekable stream)
- Buffer flushes of the streaming upload sink

The plan is a pure function of (total length, chunk size): every chunk is
chunk_size bytes except the last, which holds the remainder.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO

DEFAULT_CHUNK_SIZE = 2 * 1024 * 1024  # 2 MiB


@dataclass(frozen=True)
class ChunkDescriptor:
    """Byte range of one chunk within the content."""

    index: int
    offset: int
    length: int

    @property
    def number(self) -> int:
        """Return the 1-based chunk number used in progress reports."""
        return self.index + 1

    @property
    def end(self) -> int:
        """Return the offset just past the last byte of this chunk."""
        return self.offset + self.length


def chunk_count(total_length: int, chunk_size: int) -> int:
    """Number of chunks needed for total_length bytes.

    Args:
        total_length: Content length in bytes (>= 0).
        chunk_size: Maximum chunk size in bytes (> 0).

    Returns:
        ceil(total_length / chunk_size), 0 for empty content.
    """
    _validate(total_length, chunk_size)
    return -(-total_length // chunk_size)


def plan_chunks(total_length: int, chunk_size: int) -> list[ChunkDescriptor]:
    """Split total_length bytes into consecutive chunk descriptors.

    Args:
        total_length: Content length in bytes (>= 0).
        chunk_size: Maximum chunk size in bytes (> 0).

    Returns:
        Descriptors in content order. Empty for empty content; no
        descriptor ever has length 0.

    Raises:
        ValueError: If total_length is negative or chunk_size is not positive.
    """
    count = chunk_count(total_length, chunk_size)
    return [
        ChunkDescriptor(
            index=index,
            offset=index * chunk_size,
            length=min(chunk_size, total_length - index * chunk_size),
        )
        for index in range(count)
    ]


def read_exactly(stream: BinaryIO, length: int) -> bytes:
    """Read exactly length bytes, looping over short reads.

    Args:
        stream: Readable binary stream positioned at the chunk start.
        length: Number of bytes to assemble.

    Returns:
        The chunk bytes.

    Raises:
        EOFError: If the stream ends before length bytes were read.
    """
    buf = bytearray()
    while len(buf) < length:
        block = stream.read(length - len(buf))
        if not block:
            raise EOFError(
                f"Stream ended after {len(buf)} of {length} expected bytes"
            )
        buf += block
    return bytes(buf)


def _validate(total_length: int, chunk_size: int) -> None:
    if total_length < 0:
        raise ValueError(f"total_length must be >= 0, got {total_length}")
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
