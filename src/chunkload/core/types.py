"""Shared types for chunkload.

This module defines enums used by both the upload engines and the CLI.
"""

from __future__ import annotations

from enum import Enum


class TransportMode(str, Enum):
    """How chunk bytes travel to the server.

    HTTP sends one POST per chunk and retries failed chunks.
    WEBSOCKET streams every chunk over one socket with no retry.
    """

    HTTP = "http"
    WEBSOCKET = "websocket"


class SessionState(str, Enum):
    """Lifecycle state of an upload session.

    Sessions only move forward; a session id is never reused.
    """

    UNOPENED = "unopened"
    OPEN = "open"
    UPLOADING = "uploading"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Check if no further transition is possible."""
        return self in (SessionState.COMPLETED, SessionState.CANCELLED, SessionState.FAILED)
