"""Chunk retry with a fixed backoff and no attempt limit.

This module provides:
- retry_until_success: blocking retry loop for one chunk send
- async_retry_until_success: awaitable twin, waits with asyncio.sleep

Failed chunk sends are retried forever with the same bytes and digest,
waiting a fixed delay between attempts. The only way out besides success is
cooperative cancellation, checked after every failure and before the wait.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from chunkload.client.errors import ChunkTransferError
from chunkload.client.transfer.types import AsyncSleep, CancelCheck, Sleep
from chunkload.core.config import DEFAULT_RETRY_DELAY

logger = logging.getLogger(__name__)


def _never_cancelled() -> bool:
    return False


def retry_until_success(
    func: Callable[[], None],
    on_error: Callable[[ChunkTransferError], None],
    cancel_check: CancelCheck | None = None,
    delay: float = DEFAULT_RETRY_DELAY,
    sleep: Sleep = time.sleep,
) -> bool:
    """Call func until it stops raising ChunkTransferError.

    Args:
        func: One send attempt.
        on_error: Called with every failure, before the cancellation check.
        cancel_check: Returns True when the caller wants to stop.
        delay: Seconds to wait between attempts.
        sleep: Wait function (injectable for tests).

    Returns:
        True once func succeeded, False if cancellation stopped the loop.
    """
    cancel_check = cancel_check or _never_cancelled
    attempt = 1
    while True:
        try:
            func()
            return True
        except ChunkTransferError as e:
            on_error(e)
            if cancel_check():
                logger.info(f"Retry abandoned after {attempt} attempt(s): cancelled")
                return False
            logger.warning(f"Attempt {attempt} failed: {e}. Retrying in {delay:.1f}s...")
            sleep(delay)
            attempt += 1


async def async_retry_until_success(
    func: Callable[[], Awaitable[None]],
    on_error: Callable[[ChunkTransferError], None],
    cancel_check: CancelCheck | None = None,
    delay: float = DEFAULT_RETRY_DELAY,
    sleep: AsyncSleep = asyncio.sleep,
) -> bool:
    """Awaitable version of retry_until_success.

    The wait suspends instead of blocking, so other transfers on the same
    event loop keep running.
    """
    cancel_check = cancel_check or _never_cancelled
    attempt = 1
    while True:
        try:
            await func()
            return True
        except ChunkTransferError as e:
            on_error(e)
            if cancel_check():
                logger.info(f"Retry abandoned after {attempt} attempt(s): cancelled")
                return False
            logger.warning(f"Attempt {attempt} failed: {e}. Retrying in {delay:.1f}s...")
            await sleep(delay)
            attempt += 1
