"""Unit tests for EventLockRegistry."""

import asyncio

import pytest

from core.exceptions import EventBusyError
from services.event_locks import EventLockRegistry


@pytest.mark.asyncio
async def test_hold_times_out_when_event_is_busy():
    locks = EventLockRegistry(timeout=0.05)

    async with locks.hold("e1"):
        assert locks.is_locked("e1")
        with pytest.raises(EventBusyError) as exc_info:
            async with locks.hold("e1", reason="apply"):
                pass

    assert exc_info.value.retryable is True
    assert not locks.is_locked("e1")


@pytest.mark.asyncio
async def test_distinct_events_do_not_block_each_other():
    locks = EventLockRegistry(timeout=0.05)

    async with locks.hold("e1"):
        async with locks.hold("e2"):
            assert locks.is_locked("e1") and locks.is_locked("e2")


@pytest.mark.asyncio
async def test_same_event_runs_serially():
    locks = EventLockRegistry(timeout=1.0)
    active = []
    overlaps = []

    async def worker(n):
        async with locks.hold("e1"):
            if active:
                overlaps.append(n)
            active.append(n)
            await asyncio.sleep(0.01)
            active.remove(n)

    await asyncio.gather(*(worker(n) for n in range(5)))

    assert overlaps == []


@pytest.mark.asyncio
async def test_lock_released_after_error():
    locks = EventLockRegistry(timeout=0.05)

    with pytest.raises(RuntimeError):
        async with locks.hold("e1"):
            raise RuntimeError("boom")

    async with locks.hold("e1"):
        pass
    assert not locks.is_locked("unknown")


@pytest.mark.asyncio
async def test_idle_event_locks_are_dropped():
    locks = EventLockRegistry(timeout=0.05)

    async with locks.hold("e1"):
        with pytest.raises(EventBusyError):
            async with locks.hold("e1"):
                pass
        assert locks.tracked_events == 1

    await asyncio.gather(*(_briefly_hold(locks, f"event-{n % 10}") for n in range(100)))

    assert locks.tracked_events == 0


async def _briefly_hold(locks, event_id):
    async with locks.hold(event_id):
        await asyncio.sleep(0)
