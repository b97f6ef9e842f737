"""Content hashing for chunkload.

This module provides:
- ContentHasher: streaming SHA-1 over everything fed to it, finalized once
- hash_bytes: one-shot SHA-1 of a single chunk

The server verifies both digests as lowercase hex strings.
"""

from __future__ import annotations

import hashlib


class HasherFinalizedError(RuntimeError):
    """Raised when a finalized ContentHasher is used again."""


class ContentHasher:
    """Running SHA-1 digest over bytes in the order they are fed.

    Used for the whole-content digest sent on finalize. Chunks must be fed
    exactly once each, in content order; retried chunks are not re-fed.
    """

    def __init__(self) -> None:
        self._hash = hashlib.sha1()
        self._bytes_hashed = 0
        self._digest: str | None = None

    @property
    def bytes_hashed(self) -> int:
        """Number of bytes fed so far."""
        return self._bytes_hashed

    @property
    def finalized(self) -> bool:
        """Check if finalize() has been called."""
        return self._digest is not None

    def update(self, data: bytes) -> None:
        """Feed the next bytes of content.

        Raises:
            HasherFinalizedError: If the hasher was already finalized.
        """
        if self._digest is not None:
            raise HasherFinalizedError("Cannot update a finalized hasher")
        self._hash.update(data)
        self._bytes_hashed += len(data)

    def finalize(self) -> str:
        """Finish the digest.

        Returns:
            Lowercase hex SHA-1 of all bytes fed.

        Raises:
            HasherFinalizedError: If called a second time.
        """
        if self._digest is not None:
            raise HasherFinalizedError("Hasher already finalized")
        self._digest = self._hash.hexdigest()
        return self._digest


def hash_bytes(data: bytes) -> str:
    """Compute SHA-1 hash of data.

    Args:
        data: Raw bytes to hash.

    Returns:
        Hex-encoded SHA-1 hash string (40 characters).
    """
    return hashlib.sha1(data).hexdigest()
