"""Error taxonomy for chunkload transfers.

This module provides:
- ErrorEnvelope: Error details parsed from a failed server response
- TransferError: Base exception, carries the parsed envelope when there is one
- UploadError and its subclasses for each upload phase
- DownloadError, InvalidInputError
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ErrorEnvelope:
    """Error body returned by the server on a failed request.

    Attributes:
        generic: Generic error code (e.g., "NOT_FOUND").
        field: Name of the offending field (e.g., "ID").
        error: Human readable message (e.g., "File with id not found").
    """

    generic: str | None = None
    field: str | None = None
    error: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ErrorEnvelope:
        """Create from API response dictionary."""
        return cls(
            generic=_optional_str(data.get("generic")),
            field=_optional_str(data.get("field")),
            error=_optional_str(data.get("error")),
        )

    @classmethod
    def from_response(cls, response: httpx.Response | None) -> ErrorEnvelope | None:
        """Parse the envelope from a response body, best effort.

        Returns:
            The envelope, or None if there is no response or the body is
            not a JSON object.
        """
        if response is None:
            return None
        try:
            data = json.loads(response.content)
        except (ValueError, httpx.ResponseNotRead):
            logger.debug(f"Unparsable error body (HTTP {response.status_code})")
            return None
        if not isinstance(data, dict):
            return None
        return cls.from_dict(data)

    def __str__(self) -> str:
        parts = [p for p in (self.generic, self.field, self.error) if p]
        return " ".join(parts) if parts else "no error details"


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


class TransferError(Exception):
    """Base exception for transfer errors."""

    def __init__(self, message: str, envelope: ErrorEnvelope | None = None) -> None:
        super().__init__(message)
        self.envelope = envelope

    def __str__(self) -> str:
        message = super().__str__()
        if self.envelope is not None:
            return f"{message} ({self.envelope})"
        return message


class InvalidInputError(TransferError):
    """Upload source or download destination is unusable."""


class UploadError(TransferError):
    """Failed to upload content."""


class SessionCreateError(UploadError):
    """Server refused to open an upload session, or its reply was unreadable."""


class ChunkTransferError(UploadError):
    """A single chunk could not be sent.

    Transient on the HTTP transport (retried), fatal on the WebSocket one.
    """

    def __init__(
        self,
        message: str,
        envelope: ErrorEnvelope | None = None,
        chunk_index: int | None = None,
    ) -> None:
        super().__init__(message, envelope)
        self.chunk_index = chunk_index


class FinalizeError(UploadError):
    """Finalize request failed; the upload cannot complete."""


class SessionCancelError(UploadError):
    """Cancel notice for a session could not be delivered."""


class SessionStateError(UploadError):
    """Operation not allowed in the session's current state."""


class DownloadError(TransferError):
    """Failed to download content."""
