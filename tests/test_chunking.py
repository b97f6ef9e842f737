"""Tests for chunk planning and exact reads."""

import io

import pytest

from chunkload.core.chunking import (
    DEFAULT_CHUNK_SIZE,
    ChunkDescriptor,
    chunk_count,
    plan_chunks,
    read_exactly,
)


class ShortReadStream(io.RawIOBase):
    """Stream that returns at most 3 bytes per read call."""

    def __init__(self, data: bytes) -> None:
        self._buf = io.BytesIO(data)

    def readable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        return self._buf.read(min(size, 3) if size >= 0 else 3)


class TestPlanChunks:
    """Tests for plan_chunks."""

    def test_default_chunk_size(self) -> None:
        """Default chunk size is 2 MiB."""
        assert DEFAULT_CHUNK_SIZE == 2 * 1024 * 1024

    def test_empty_content_produces_no_chunks(self) -> None:
        """Zero-length content has no chunks at all."""
        assert plan_chunks(0, 4) == []
        assert chunk_count(0, 4) == 0

    def test_last_chunk_holds_remainder(self) -> None:
        """The last chunk is total mod chunk size."""
        plan = plan_chunks(10, 4)
        assert [c.length for c in plan] == [4, 4, 2]
        assert [c.offset for c in plan] == [0, 4, 8]
        assert [c.index for c in plan] == [0, 1, 2]

    def test_evenly_divisible_content(self) -> None:
        """The last chunk is a full chunk when sizes divide evenly."""
        assert [c.length for c in plan_chunks(8, 4)] == [4, 4]

    def test_one_byte_over_boundary(self) -> None:
        """1 MiB + 1 at 512 KiB chunks is two full chunks and a 1-byte chunk."""
        plan = plan_chunks(1024 * 1024 + 1, 512 * 1024)
        assert [c.length for c in plan] == [524288, 524288, 1]

    def test_content_smaller_than_chunk(self) -> None:
        """Small content fits in one chunk."""
        assert plan_chunks(3, 1024) == [ChunkDescriptor(index=0, offset=0, length=3)]

    @pytest.mark.parametrize("total", [1, 7, 64, 99, 100, 1000])
    @pytest.mark.parametrize("size", [1, 3, 10, 64])
    def test_lengths_sum_to_total(self, total: int, size: int) -> None:
        """Chunks are contiguous, non-empty and cover the content exactly."""
        plan = plan_chunks(total, size)
        assert len(plan) == chunk_count(total, size) == -(-total // size)
        assert sum(c.length for c in plan) == total
        assert all(c.length > 0 for c in plan)
        for previous, current in zip(plan, plan[1:]):
            assert current.offset == previous.end

    def test_number_is_one_based(self) -> None:
        """number is index + 1."""
        assert plan_chunks(10, 4)[2].number == 3

    def test_rejects_non_positive_chunk_size(self) -> None:
        """A chunk size of zero or less is invalid."""
        with pytest.raises(ValueError):
            plan_chunks(10, 0)

    def test_rejects_negative_length(self) -> None:
        """Negative content length is invalid."""
        with pytest.raises(ValueError):
            plan_chunks(-1, 4)


class TestReadExactly:
    """Tests for read_exactly."""

    def test_assembles_short_reads(self) -> None:
        """Short reads are looped until the chunk is complete."""
        stream = ShortReadStream(b"abcdefghij")
        assert read_exactly(stream, 8) == b"abcdefgh"
        assert read_exactly(stream, 2) == b"ij"

    def test_raises_on_early_end(self) -> None:
        """A stream that ends early raises EOFError."""
        with pytest.raises(EOFError):
            read_exactly(io.BytesIO(b"abc"), 5)

    def test_zero_length(self) -> None:
        """Reading zero bytes returns empty bytes without touching the stream."""
        assert read_exactly(io.BytesIO(b""), 0) == b""
