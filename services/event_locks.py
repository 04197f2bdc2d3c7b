"""Per-event serialization of mutating entrant operations."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict

from core import get_logger, LockDefaults
from core.exceptions import EventBusyError

logger = get_logger(__name__)


class EventLockRegistry:
    """Hands out one ``asyncio.Lock`` per event id.

    Apply, withdraw, lottery draws and dispatch for the same event run one at
    a time; different events never wait on each other. Acquisition gives up
    after ``timeout`` seconds instead of blocking indefinitely.
    """

    def __init__(self, timeout: float = LockDefaults.TIMEOUT) -> None:
        self.timeout = timeout
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}
        self._locks_lock = asyncio.Lock()

    async def _get_event_lock(self, event_id: str) -> asyncio.Lock:
        """Get or create the lock for a specific event."""
        async with self._locks_lock:
            if event_id not in self._locks:
                self._locks[event_id] = asyncio.Lock()
            self._users[event_id] = self._users.get(event_id, 0) + 1
            return self._locks[event_id]

    def _release_event_lock(self, event_id: str) -> None:
        """Forget the event's lock once nobody holds or awaits it."""
        self._users[event_id] -= 1
        if not self._users[event_id]:
            del self._users[event_id]
            del self._locks[event_id]

    @asynccontextmanager
    async def hold(self, event_id: str, reason: str = "") -> AsyncIterator[None]:
        """Hold the event's lock for the duration of the block.

        Raises:
            EventBusyError: If the lock is not acquired within ``timeout``
        """
        lock = await self._get_event_lock(event_id)
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=self.timeout)
            except asyncio.TimeoutError as exc:
                logger.warning(
                    f"Timed out waiting for event lock ({reason or 'unspecified'})",
                    extra={"event_id": event_id},
                )
                raise EventBusyError(
                    f"Event {event_id} is busy, try again ({reason or 'mutation'})"
                ) from exc
            try:
                yield
            finally:
                lock.release()
        finally:
            self._release_event_lock(event_id)

    @property
    def tracked_events(self) -> int:
        """Number of events with a live lock."""
        return len(self._locks)

    def is_locked(self, event_id: str) -> bool:
        lock = self._locks.get(event_id)
        return lock is not None and lock.locked()
