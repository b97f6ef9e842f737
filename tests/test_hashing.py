"""Tests for SHA-1 content hashing."""

import hashlib
import os

import pytest

from chunkload.core.hashing import ContentHasher, HasherFinalizedError, hash_bytes

EMPTY_SHA1 = "da39a3ee5e6b4b0d3255bfef95601890afd80709"
ABC_SHA1 = "a9993e364706816aba3e25717850c26c9cd0d89d"


class TestContentHasher:
    """Tests for ContentHasher."""

    def test_empty_content(self) -> None:
        """Nothing fed gives the SHA-1 of empty content."""
        assert ContentHasher().finalize() == EMPTY_SHA1

    def test_known_digest(self) -> None:
        """Digest is lowercase hex SHA-1."""
        hasher = ContentHasher()
        hasher.update(b"abc")
        assert hasher.finalize() == ABC_SHA1

    def test_split_updates_match_whole(self) -> None:
        """Feeding in pieces equals hashing the concatenation."""
        data = os.urandom(10_000)
        hasher = ContentHasher()
        for i in range(0, len(data), 333):
            hasher.update(data[i : i + 333])
        assert hasher.finalize() == hashlib.sha1(data).hexdigest()
        assert hasher.bytes_hashed == len(data)

    def test_finalize_twice_fails(self) -> None:
        """finalize() may only be called once."""
        hasher = ContentHasher()
        hasher.finalize()
        assert hasher.finalized
        with pytest.raises(HasherFinalizedError):
            hasher.finalize()

    def test_update_after_finalize_fails(self) -> None:
        """A finalized hasher accepts no more bytes."""
        hasher = ContentHasher()
        hasher.finalize()
        with pytest.raises(HasherFinalizedError):
            hasher.update(b"late")


class TestHashBytes:
    """Tests for hash_bytes."""

    def test_hash_bytes(self) -> None:
        """hash_bytes returns the 40-char hex SHA-1."""
        assert hash_bytes(b"abc") == ABC_SHA1
        assert len(hash_bytes(b"")) == 40
