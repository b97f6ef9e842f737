"""HTTP client for the chunked-upload server API.

This module provides:
- HTTPClient: blocking client for the session endpoints
- AsyncHTTPClient: awaitable twin with the same methods
- Session endpoint helpers shared by both clients

Endpoints:
    POST /c/{extension}[/{name}]      open a session     -> {"stream": "<session id>"}
    POST /u/{session_id}[/{sha1}]     upload one chunk (raw body)
    POST /f/{session_id}/{sha1}       finalize           -> {"id": "<locator>"}
    POST /r/{session_id}              cancel / release a session

No method retries; retry policy belongs to the upload engines.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx

from chunkload.client.errors import (
    ChunkTransferError,
    ErrorEnvelope,
    FinalizeError,
    SessionCancelError,
    SessionCreateError,
)

if TYPE_CHECKING:
    from chunkload.core.config import TransferConfig

logger = logging.getLogger(__name__)

SESSION_ID_KEY = "stream"
LOCATOR_KEY = "id"
CHUNK_HEADERS = {"Content-Type": "application/octet-stream"}


def sanitize_name(name: str | None, extension: str) -> str | None:
    """Strip a trailing ".<extension>" from a display name.

    Callers often pass a full file name; the server adds the extension itself.

    Args:
        name: Optional display name.
        extension: Extension without the leading dot.

    Returns:
        The bare name, or None if nothing is left.
    """
    if not name:
        return None
    suffix = f".{extension}"
    if name.endswith(suffix):
        name = name[: -len(suffix)]
    return name or None


def create_path(extension: str, name: str | None = None) -> str:
    """Build the session-create path."""
    path = f"/c/{quote(extension, safe='')}"
    name = sanitize_name(name, extension)
    if name:
        path += f"/{quote(name, safe='')}"
    return path


def chunk_path(session_id: str, chunk_hash: str | None = None) -> str:
    """Build the chunk-upload path, with the chunk digest when hashing is on."""
    path = f"/u/{session_id}"
    if chunk_hash:
        path += f"/{chunk_hash}"
    return path


def finish_path(session_id: str, content_hash: str) -> str:
    """Build the finalize path."""
    return f"/f/{session_id}/{content_hash}"


def cancel_path(session_id: str) -> str:
    """Build the cancel/release path."""
    return f"/r/{session_id}"


def parse_session_id(response: httpx.Response) -> str:
    """Extract the session id from a session-create response.

    Raises:
        SessionCreateError: On a non-success status or an unreadable body.
    """
    if not response.is_success:
        raise SessionCreateError(
            f"Could not create upload session (HTTP {response.status_code})",
            ErrorEnvelope.from_response(response),
        )
    return _read_key(response, SESSION_ID_KEY, SessionCreateError, "upload session id")


def parse_locator(response: httpx.Response) -> str:
    """Extract the download locator from a finalize response.

    Raises:
        FinalizeError: On a non-success status or an unreadable body.
    """
    if not response.is_success:
        raise FinalizeError(
            f"Failed to finalize upload (HTTP {response.status_code})",
            ErrorEnvelope.from_response(response),
        )
    return _read_key(response, LOCATOR_KEY, FinalizeError, "download id")


def check_chunk_response(response: httpx.Response, session_id: str) -> None:
    """Raise ChunkTransferError unless the chunk was accepted."""
    if not response.is_success:
        raise ChunkTransferError(
            f"Could not upload chunk to session {session_id} (HTTP {response.status_code})",
            ErrorEnvelope.from_response(response),
        )


def check_cancel_response(response: httpx.Response, session_id: str) -> None:
    """Raise SessionCancelError unless the cancel notice was accepted."""
    if not response.is_success:
        raise SessionCancelError(
            f"Could not cancel session {session_id} (HTTP {response.status_code})",
            ErrorEnvelope.from_response(response),
        )


def _read_key(
    response: httpx.Response,
    key: str,
    error_cls: type[SessionCreateError] | type[FinalizeError],
    what: str,
) -> str:
    try:
        value = response.json()[key]
    except (ValueError, KeyError, TypeError) as e:
        raise error_cls(f"Could not parse {what} from response") from e
    if not isinstance(value, str) or not value:
        raise error_cls(f"Server returned an empty {what}")
    return value


class HTTPClient:
    """Blocking HTTP client for the upload session endpoints."""

    def __init__(self, config: TransferConfig) -> None:
        """Initialize the client.

        Args:
            config: Transfer configuration with the server URL and timeouts.
        """
        self._config = config
        self._client = httpx.Client(
            base_url=config.server_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
        )

    @property
    def config(self) -> TransferConfig:
        """Configuration this client was built from."""
        return self._config

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> HTTPClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def create_session(self, extension: str, name: str | None = None) -> str:
        """Open a new upload session.

        Args:
            extension: File extension without the leading dot.
            name: Optional display name (a trailing ".<extension>" is stripped).

        Returns:
            The server-assigned session id.

        Raises:
            SessionCreateError: If the request fails or the reply is unreadable.
        """
        try:
            response = self._client.post(create_path(extension, name))
        except httpx.HTTPError as e:
            raise SessionCreateError(f"Could not create upload session: {e}") from e
        session_id = parse_session_id(response)
        logger.debug(f"Opened session {session_id} for .{extension}")
        return session_id

    def upload_chunk(
        self, session_id: str, data: bytes, chunk_hash: str | None = None
    ) -> None:
        """Send one chunk, single attempt.

        Args:
            session_id: Session the chunk belongs to.
            data: Raw chunk bytes.
            chunk_hash: SHA-1 of data, sent for server-side verification.

        Raises:
            ChunkTransferError: If the request fails or is rejected.
        """
        try:
            response = self._client.post(
                chunk_path(session_id, chunk_hash),
                content=data,
                headers=CHUNK_HEADERS,
            )
        except httpx.HTTPError as e:
            raise ChunkTransferError(f"Could not upload chunk: {e}") from e
        check_chunk_response(response, session_id)

    def finish_session(self, session_id: str, content_hash: str) -> str:
        """Finalize a session with the whole-content digest.

        Returns:
            Download locator of the stored content.

        Raises:
            FinalizeError: If the request fails, the digest is rejected, or
                the reply is unreadable.
        """
        try:
            response = self._client.post(finish_path(session_id, content_hash))
        except httpx.HTTPError as e:
            raise FinalizeError(f"Failed to finalize upload: {e}") from e
        return parse_locator(response)

    def cancel_session(self, session_id: str) -> None:
        """Tell the server the session is abandoned.

        Raises:
            SessionCancelError: If the notice could not be delivered.
        """
        try:
            response = self._client.post(cancel_path(session_id))
        except httpx.HTTPError as e:
            raise SessionCancelError(f"Could not cancel session {session_id}: {e}") from e
        check_cancel_response(response, session_id)


class AsyncHTTPClient:
    """Awaitable HTTP client for the upload session endpoints.

    Same contract as HTTPClient; requests suspend instead of blocking.
    """

    def __init__(self, config: TransferConfig) -> None:
        self._config = config
        self._client = httpx.AsyncClient(
            base_url=config.server_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
        )

    @property
    def config(self) -> TransferConfig:
        """Configuration this client was built from."""
        return self._config

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> AsyncHTTPClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def create_session(self, extension: str, name: str | None = None) -> str:
        """Open a new upload session. See HTTPClient.create_session."""
        try:
            response = await self._client.post(create_path(extension, name))
        except httpx.HTTPError as e:
            raise SessionCreateError(f"Could not create upload session: {e}") from e
        session_id = parse_session_id(response)
        logger.debug(f"Opened session {session_id} for .{extension}")
        return session_id

    async def upload_chunk(
        self, session_id: str, data: bytes, chunk_hash: str | None = None
    ) -> None:
        """Send one chunk, single attempt. See HTTPClient.upload_chunk."""
        try:
            response = await self._client.post(
                chunk_path(session_id, chunk_hash),
                content=data,
                headers=CHUNK_HEADERS,
            )
        except httpx.HTTPError as e:
            raise ChunkTransferError(f"Could not upload chunk: {e}") from e
        check_chunk_response(response, session_id)

    async def finish_session(self, session_id: str, content_hash: str) -> str:
        """Finalize a session. See HTTPClient.finish_session."""
        try:
            response = await self._client.post(finish_path(session_id, content_hash))
        except httpx.HTTPError as e:
            raise FinalizeError(f"Failed to finalize upload: {e}") from e
        return parse_locator(response)

    async def cancel_session(self, session_id: str) -> None:
        """Tell the server the session is abandoned. See HTTPClient.cancel_session."""
        try:
            response = await self._client.post(cancel_path(session_id))
        except httpx.HTTPError as e:
            raise SessionCancelError(f"Could not cancel session {session_id}: {e}") from e
        check_cancel_response(response, session_id)
