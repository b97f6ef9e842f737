"""Tests for the upload session state machine."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from chunkload.client.errors import (
    FinalizeError,
    SessionCancelError,
    SessionCreateError,
    SessionStateError,
)
from chunkload.client.transfer.session import AsyncUploadSession, UploadSession
from chunkload.client.transfer.types import SessionCreated, UploadFailed
from chunkload.core.types import SessionState


class TestUploadSession:
    """Tests for UploadSession."""

    def test_open(self, mock_client: MagicMock, events, recorder) -> None:  # type: ignore[no-untyped-def]
        """Opening stores the id and emits SessionCreated."""
        session = UploadSession(mock_client, "txt", "notes", events)

        assert session.open() == "s1"

        assert session.state is SessionState.OPEN
        assert session.session_id == "s1"
        mock_client.create_session.assert_called_once_with("txt", "notes")
        assert recorder.events == [SessionCreated(session_id="s1")]

    def test_open_failure(self, mock_client: MagicMock, events, recorder) -> None:  # type: ignore[no-untyped-def]
        """A refused session fails and reports the error."""
        error = SessionCreateError("refused")
        mock_client.create_session.side_effect = error
        session = UploadSession(mock_client, "txt", events=events)

        with pytest.raises(SessionCreateError):
            session.open()

        assert session.state is SessionState.FAILED
        assert recorder.of_type(UploadFailed) == [UploadFailed(error=error)]

    def test_session_id_before_open(self, mock_client: MagicMock) -> None:
        """There is no id before open()."""
        with pytest.raises(SessionStateError):
            _ = UploadSession(mock_client, "txt").session_id

    def test_full_lifecycle(self, mock_client: MagicMock) -> None:
        """OPEN -> UPLOADING -> FINALIZING -> COMPLETED."""
        session = UploadSession(mock_client, "txt")
        session.open()
        session.begin_upload()
        session.begin_upload()
        assert session.state is SessionState.UPLOADING

        assert session.finalize("abc") == "loc1"

        assert session.state is SessionState.COMPLETED
        mock_client.finish_session.assert_called_once_with("s1", "abc")

    def test_finalize_empty_content(self, mock_client: MagicMock) -> None:
        """An open session with no chunks can be finalized."""
        session = UploadSession(mock_client, "txt")
        session.open()
        session.finalize("da39a3ee5e6b4b0d3255bfef95601890afd80709")
        assert session.state is SessionState.COMPLETED

    def test_finalize_failure(self, mock_client: MagicMock, events, recorder) -> None:  # type: ignore[no-untyped-def]
        """A failed finalize is terminal."""
        mock_client.finish_session.side_effect = FinalizeError("hash mismatch")
        session = UploadSession(mock_client, "txt", events=events)
        session.open()

        with pytest.raises(FinalizeError):
            session.finalize("abc")

        assert session.state is SessionState.FAILED
        assert len(recorder.of_type(UploadFailed)) == 1

    def test_no_reuse_after_completion(self, mock_client: MagicMock) -> None:
        """Completed sessions reject further actions."""
        session = UploadSession(mock_client, "txt")
        session.open()
        session.finalize("abc")

        with pytest.raises(SessionStateError):
            session.finalize("abc")
        with pytest.raises(SessionStateError):
            session.cancel()
        with pytest.raises(SessionStateError):
            session.begin_upload()
        with pytest.raises(SessionStateError):
            session.open()

    def test_cancel(self, mock_client: MagicMock) -> None:
        """Cancel notifies the server."""
        session = UploadSession(mock_client, "txt")
        session.open()
        session.cancel()

        assert session.state is SessionState.CANCELLED
        mock_client.cancel_session.assert_called_once_with("s1")

    def test_cancel_notice_failure_still_cancels(self, mock_client: MagicMock) -> None:
        """The session is cancelled even if the notice fails."""
        mock_client.cancel_session.side_effect = SessionCancelError("unreachable")
        session = UploadSession(mock_client, "txt")
        session.open()

        with pytest.raises(SessionCancelError):
            session.cancel()

        assert session.state is SessionState.CANCELLED

    def test_cancel_before_open(self, mock_client: MagicMock) -> None:
        """An unopened session cannot be cancelled."""
        with pytest.raises(SessionStateError):
            UploadSession(mock_client, "txt").cancel()
        mock_client.cancel_session.assert_not_called()

    def test_fail_is_idempotent(self, mock_client: MagicMock) -> None:
        """fail() leaves terminal states alone."""
        session = UploadSession(mock_client, "txt")
        session.open()
        session.cancel()
        session.fail()
        assert session.state is SessionState.CANCELLED


class TestAsyncUploadSession:
    """Tests for AsyncUploadSession."""

    @pytest.mark.asyncio
    async def test_lifecycle(self, async_mock_client: AsyncMock) -> None:
        """Awaitable session follows the same states."""
        session = AsyncUploadSession(async_mock_client, "bin")

        assert await session.open() == "s1"
        session.begin_upload()
        assert await session.finalize("abc") == "loc1"

        assert session.state is SessionState.COMPLETED

    @pytest.mark.asyncio
    async def test_cancel(self, async_mock_client: AsyncMock) -> None:
        """Awaitable cancel notifies the server."""
        session = AsyncUploadSession(async_mock_client, "bin")
        await session.open()
        await session.cancel()

        assert session.state is SessionState.CANCELLED
        async_mock_client.cancel_session.assert_awaited_once_with("s1")
