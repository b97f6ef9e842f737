"""Shared fixtures for chunkload tests."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from chunkload.client.api import AsyncHTTPClient, HTTPClient
from chunkload.client.transfer.events import EventChannel
from chunkload.client.transfer.types import TransferEvent


class EventRecorder:
    """Collects every notification emitted on a channel."""

    def __init__(self, channel: EventChannel) -> None:
        self.events: list[TransferEvent] = []
        channel.subscribe_all(self.events.append)

    def of_type(self, event_type: type) -> list:
        return [e for e in self.events if isinstance(e, event_type)]


@pytest.fixture
def events() -> EventChannel:
    """Create a fresh event channel."""
    return EventChannel()


@pytest.fixture
def recorder(events: EventChannel) -> EventRecorder:
    """Record everything emitted on the events fixture."""
    return EventRecorder(events)


@pytest.fixture
def mock_client() -> MagicMock:
    """HTTPClient double that accepts every request."""
    client = MagicMock(spec=HTTPClient)
    client.create_session.return_value = "s1"
    client.finish_session.return_value = "loc1"
    return client


@pytest.fixture
def async_mock_client() -> AsyncMock:
    """AsyncHTTPClient double that accepts every request."""
    client = AsyncMock(spec=AsyncHTTPClient)
    client.create_session.return_value = "s1"
    client.finish_session.return_value = "loc1"
    return client


@pytest.fixture
def sleeps() -> list[float]:
    """Delays requested by a recording sleep function."""
    return []
