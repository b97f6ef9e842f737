"""Core module - Shared chunking, hashing, and configuration."""

from chunkload.core.chunking import (
    DEFAULT_CHUNK_SIZE,
    ChunkDescriptor,
    chunk_count,
    plan_chunks,
    read_exactly,
)
from chunkload.core.config import TransferConfig
from chunkload.core.hashing import ContentHasher, HasherFinalizedError, hash_bytes
from chunkload.core.types import SessionState, TransportMode
from chunkload.core.utils import format_size

__all__ = [
    # Chunking
    "DEFAULT_CHUNK_SIZE",
    "ChunkDescriptor",
    "chunk_count",
    "plan_chunks",
    "read_exactly",
    # Config
    "TransferConfig",
    # Hashing
    "ContentHasher",
    "HasherFinalizedError",
    "hash_bytes",
    # Types
    "SessionState",
    "TransportMode",
    # Utils
    "format_size",
]
