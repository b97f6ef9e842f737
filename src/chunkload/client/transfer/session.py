"""Upload session lifecycle.

This module provides:
- UploadSession: blocking session bound to an HTTPClient
- AsyncUploadSession: awaitable twin bound to an AsyncHTTPClient

State machine (forward only, session ids are single-use):

    UNOPENED --open--> OPEN --chunks--> UPLOADING --finalize--> FINALIZING --> COMPLETED
        |               |                  |                        |
        +--> FAILED     +--> CANCELLED     +--> CANCELLED           +--> FAILED
                        +--> FAILED        +--> FAILED
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from chunkload.client.errors import (
    FinalizeError,
    SessionCreateError,
    SessionStateError,
    UploadError,
)
from chunkload.client.transfer.types import SessionCreated, UploadFailed
from chunkload.core.types import SessionState

if TYPE_CHECKING:
    from chunkload.client.api import AsyncHTTPClient, HTTPClient
    from chunkload.client.transfer.events import EventChannel

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.UNOPENED: frozenset({SessionState.OPEN, SessionState.FAILED}),
    SessionState.OPEN: frozenset(
        {SessionState.UPLOADING, SessionState.FINALIZING, SessionState.CANCELLED, SessionState.FAILED}
    ),
    SessionState.UPLOADING: frozenset(
        {SessionState.FINALIZING, SessionState.CANCELLED, SessionState.FAILED}
    ),
    SessionState.FINALIZING: frozenset({SessionState.COMPLETED, SessionState.FAILED}),
    SessionState.COMPLETED: frozenset(),
    SessionState.CANCELLED: frozenset(),
    SessionState.FAILED: frozenset(),
}


class _SessionStateMachine:
    """State tracking shared by the blocking and awaitable sessions."""

    def __init__(
        self,
        extension: str,
        name: str | None = None,
        events: EventChannel | None = None,
    ) -> None:
        self.extension = extension
        self.name = name
        self._events = events
        self._state = SessionState.UNOPENED
        self._session_id: str | None = None

    @property
    def state(self) -> SessionState:
        """Get current session state."""
        return self._state

    @property
    def session_id(self) -> str:
        """Server-assigned id.

        Raises:
            SessionStateError: If the session was never opened.
        """
        if self._session_id is None:
            raise SessionStateError("Session has not been opened")
        return self._session_id

    @property
    def is_open(self) -> bool:
        """Check if chunks may still be sent."""
        return self._state in (SessionState.OPEN, SessionState.UPLOADING)

    def begin_upload(self) -> None:
        """Mark the first chunk send. Repeated calls are no-ops."""
        if self._state is not SessionState.UPLOADING:
            self._transition(SessionState.UPLOADING)

    def fail(self) -> None:
        """Mark the session failed unless it already ended."""
        if not self._state.is_terminal:
            self._transition(SessionState.FAILED)

    def _transition(self, target: SessionState) -> None:
        if target not in ALLOWED_TRANSITIONS[self._state]:
            raise SessionStateError(
                f"Cannot move session from {self._state.value} to {target.value}"
            )
        logger.debug(f"Session {self._session_id}: {self._state.value} -> {target.value}")
        self._state = target

    def _require_state(self, *states: SessionState) -> None:
        if self._state not in states:
            raise SessionStateError(f"Session is {self._state.value}")

    def _opened(self, session_id: str) -> str:
        self._session_id = session_id
        self._transition(SessionState.OPEN)
        logger.info(f"Upload session {session_id} created")
        self._emit(SessionCreated(session_id=session_id))
        return session_id

    def _failed(self, error: UploadError) -> None:
        self.fail()
        self._emit(UploadFailed(error=error, envelope=error.envelope))

    def _begin_finalize(self) -> None:
        self._require_state(SessionState.OPEN, SessionState.UPLOADING)
        self._transition(SessionState.FINALIZING)

    def _finalized(self, locator: str) -> str:
        self._transition(SessionState.COMPLETED)
        logger.info(f"Upload session {self._session_id} finalized")
        return locator

    def _begin_cancel(self) -> None:
        self._require_state(SessionState.OPEN, SessionState.UPLOADING)
        self._transition(SessionState.CANCELLED)
        logger.info(f"Upload session {self._session_id} cancelled")

    def _emit(self, event: SessionCreated | UploadFailed) -> None:
        if self._events is not None:
            self._events.emit(event)


class UploadSession(_SessionStateMachine):
    """One upload session on the server, driven through an HTTPClient."""

    def __init__(
        self,
        client: HTTPClient,
        extension: str,
        name: str | None = None,
        events: EventChannel | None = None,
    ) -> None:
        super().__init__(extension, name, events)
        self._client = client

    def open(self) -> str:
        """Create the session on the server.

        Returns:
            The session id.

        Raises:
            SessionCreateError: If the server refuses or replies unreadably.
        """
        self._require_state(SessionState.UNOPENED)
        try:
            session_id = self._client.create_session(self.extension, self.name)
        except SessionCreateError as e:
            self._failed(e)
            raise
        return self._opened(session_id)

    def finalize(self, content_hash: str) -> str:
        """Redeem the session for a download locator. Single attempt.

        Raises:
            FinalizeError: If the server rejects the digest or the request fails.
        """
        self._begin_finalize()
        try:
            locator = self._client.finish_session(self.session_id, content_hash)
        except FinalizeError as e:
            self._failed(e)
            raise
        return self._finalized(locator)

    def cancel(self) -> None:
        """Abandon the session and notify the server.

        The session is CANCELLED even when the notice fails.

        Raises:
            SessionCancelError: If the notice could not be delivered.
        """
        self._begin_cancel()
        self._client.cancel_session(self.session_id)


class AsyncUploadSession(_SessionStateMachine):
    """One upload session on the server, driven through an AsyncHTTPClient."""

    def __init__(
        self,
        client: AsyncHTTPClient,
        extension: str,
        name: str | None = None,
        events: EventChannel | None = None,
    ) -> None:
        super().__init__(extension, name, events)
        self._client = client

    async def open(self) -> str:
        """Create the session on the server. See UploadSession.open."""
        self._require_state(SessionState.UNOPENED)
        try:
            session_id = await self._client.create_session(self.extension, self.name)
        except SessionCreateError as e:
            self._failed(e)
            raise
        return self._opened(session_id)

    async def finalize(self, content_hash: str) -> str:
        """Redeem the session for a download locator. See UploadSession.finalize."""
        self._begin_finalize()
        try:
            locator = await self._client.finish_session(self.session_id, content_hash)
        except FinalizeError as e:
            self._failed(e)
            raise
        return self._finalized(locator)

    async def cancel(self) -> None:
        """Abandon the session and notify the server. See UploadSession.cancel."""
        self._begin_cancel()
        await self._client.cancel_session(self.session_id)
