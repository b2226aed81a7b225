"""Cancellation and completion tracking for client operations.

Every backend call made by S3Client runs as a task registered here. Closing
the client cancels the registered tasks and waits for them to finish, so no
work outlives ``close()``.
"""

from __future__ import annotations

import asyncio
from enum import StrEnum
from typing import TYPE_CHECKING, TypeVar

from .exceptions import StorageCancelledError

if TYPE_CHECKING:
    from collections.abc import Awaitable

T = TypeVar("T")


class ClientState(StrEnum):
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


class Lifecycle:
    """Tracks in-flight operations of one client.

    Cancellation coming from ``stop()`` surfaces as StorageCancelledError.
    Cancellation of the awaiting task itself (``task.cancel()``,
    ``asyncio.timeout``) is re-raised as CancelledError untouched.
    """

    def __init__(self) -> None:
        self._pending: set[asyncio.Future[object]] = set()
        self._stopping = False

    @property
    def stopping(self) -> bool:
        return self._stopping

    @property
    def pending(self) -> int:
        """Number of operations currently tracked."""
        return len(self._pending)

    async def run(self, aw: Awaitable[T]) -> T:
        """Run ``aw`` as a tracked task and return its result.

        Raises:
            StorageCancelledError: If the lifecycle is stopped before or
                while ``aw`` runs.
        """
        if self._stopping:
            if asyncio.iscoroutine(aw):
                aw.close()
            raise StorageCancelledError()

        task = asyncio.ensure_future(aw)
        self._pending.add(task)
        try:
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            caller_cancelled = current is not None and current.cancelling() > 0
            if self._stopping and not caller_cancelled:
                raise StorageCancelledError() from None
            raise
        finally:
            self._pending.discard(task)
            if not task.done():
                task.cancel()

    async def stop(self) -> None:
        """Refuse new work, cancel tracked work and wait for it to finish."""
        self._stopping = True
        pending = list(self._pending)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
