"""Event channel for transfer notifications.

This module provides:
- EventChannel: observer registry the engines publish notifications to

Consumers subscribe per notification class (SessionCreated, ChunkComplete,
UploadComplete, UploadFailed, DownloadProgress) or to all of them.
Handlers run synchronously, in subscription order, on the thread (or event
loop) that runs the transfer.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import TypeVar

from chunkload.client.transfer.types import EventHandler, TransferEvent

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=TransferEvent)


class EventChannel:
    """Publish/subscribe hub for transfer notifications.

    Usage:
        events = EventChannel()
        events.subscribe(ChunkComplete, lambda e: print(e.percent))
        uploader = ChunkUploader(config, events=events)
    """

    def __init__(self) -> None:
        self._handlers: dict[type, list[Callable[[TransferEvent], None]]] = {}
        self._catch_all: list[EventHandler] = []
        self._lock = threading.Lock()

    def subscribe(
        self, event_type: type[E], handler: Callable[[E], None]
    ) -> Callable[[], None]:
        """Register a handler for one notification class.

        Args:
            event_type: Notification class to listen for.
            handler: Called with each matching notification.

        Returns:
            A function that removes the subscription.
        """
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)  # type: ignore[arg-type]

        def unsubscribe() -> None:
            with self._lock:
                handlers = self._handlers.get(event_type, [])
                if handler in handlers:
                    handlers.remove(handler)  # type: ignore[arg-type]

        return unsubscribe

    def subscribe_all(self, handler: EventHandler) -> Callable[[], None]:
        """Register a handler for every notification.

        Returns:
            A function that removes the subscription.
        """
        with self._lock:
            self._catch_all.append(handler)

        def unsubscribe() -> None:
            with self._lock:
                if handler in self._catch_all:
                    self._catch_all.remove(handler)

        return unsubscribe

    def emit(self, event: TransferEvent) -> None:
        """Deliver a notification to its subscribers.

        Handler exceptions propagate to the transfer that emitted the event.
        """
        with self._lock:
            handlers = list(self._handlers.get(type(event), ()))
            handlers.extend(self._catch_all)
        logger.debug(f"Emitting {type(event).__name__} to {len(handlers)} handler(s)")
        for handler in handlers:
            handler(event)
