"""Lottery draws moving entrants from an event's waitlist to its chosen set."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import List, Optional

from core import get_logger
from core.constants import Collections, MembershipStatus
from core.exceptions import CapacityExceededError, ValidationError
from database.document_store import DocumentStore, WriteOp
from database.models import LotteryMembership, LotteryRun
from database.repositories import EventRepository, LotteryRunRepository, new_document_id
from services.event_locks import EventLockRegistry
from utils.performance import PerformanceMonitor

logger = get_logger(__name__)


@dataclass
class LotteryResult:
    """Outcome of a single draw."""

    event_id: str
    requested: int
    winner_ids: List[str] = field(default_factory=list)
    run_id: Optional[str] = None
    waitlist_remaining: int = 0

    @property
    def winners_count(self) -> int:
        return len(self.winner_ids)


class LotterySelector:
    """Uniform random selection of winners without replacement.

    The randomness source is injectable so draws can be reproduced with a
    seeded ``random.Random``; by default the OS entropy pool is used through
    ``random.SystemRandom``.
    """

    def __init__(
        self,
        store: DocumentStore,
        locks: EventLockRegistry,
        rng: Optional[random.Random] = None,
        monitor: Optional[PerformanceMonitor] = None,
    ) -> None:
        self.store = store
        self.locks = locks
        self.rng = rng or random.SystemRandom()
        self.monitor = monitor or PerformanceMonitor()
        self.events = EventRepository(store)
        self.runs = LotteryRunRepository(store)

    @staticmethod
    def _validate_count(count: int) -> int:
        if isinstance(count, bool) or not isinstance(count, int):
            raise ValidationError(f"Winner count must be an integer, got {count!r}")
        if count < 0:
            raise ValidationError(f"Winner count must not be negative, got {count}")
        return count

    async def select_winners(self, event_id: str, count: int) -> LotteryResult:
        """Draw up to ``count`` winners from the event's waitlist.

        Selects ``min(count, waitlist size, remaining capacity)`` entrants and
        moves them to the chosen set. A zero count or an empty waitlist yields
        an empty result without touching the event.

        Args:
            event_id: Event to draw for
            count: Number of winners requested

        Returns:
            LotteryResult with the selected ids and the recorded run id

        Raises:
            ValidationError: If count is negative or not an integer
            NotFoundError: If the event does not exist
            CapacityExceededError: If the chosen set already fills the capacity
        """
        self._validate_count(count)

        async with self.locks.hold(event_id, reason="lottery"):
            event = await self.events.require_event(event_id)
            if count == 0:
                return LotteryResult(event_id, requested=0, waitlist_remaining=len(event.waitlist))

            remaining = event.remaining_capacity
            if remaining == 0:
                raise CapacityExceededError(
                    f"Event {event_id} is at capacity ({len(event.chosen)}/{event.capacity})"
                )

            pool = list(event.waitlist)
            if not pool:
                logger.info("Lottery skipped, waitlist is empty", extra={"event_id": event_id})
                return LotteryResult(event_id, requested=count)

            sample_size = min(count, len(pool))
            if remaining is not None and remaining < sample_size:
                logger.info(f"Draw clamped to {remaining} open slots", extra={"event_id": event_id})
                sample_size = remaining

            logger.info(f"Selecting {sample_size} winners from {len(pool)} entrants",
                        extra={"event_id": event_id})
            winners = self.rng.sample(pool, sample_size)
            selected = set(winners)
            event.waitlist = [user_id for user_id in pool if user_id not in selected]
            event.chosen.extend(winners)

            run = LotteryRun(id=new_document_id(), event_id=event_id, requested=count, winner_ids=winners)
            ops = [
                WriteOp.update(Collections.EVENTS, event_id, {
                    "waitlistUserIds": event.waitlist,
                    "chosenUserIds": event.chosen,
                }),
                WriteOp.set(Collections.LOTTERY_RUNS, run.id, run.to_document()),
            ]
            for user_id in winners:
                membership = LotteryMembership(
                    event_id=event_id,
                    user_id=user_id,
                    status=MembershipStatus.CHOSEN,
                    winner_notified=False,
                )
                ops.append(WriteOp.set(Collections.MEMBERSHIPS, membership.id, membership.to_document()))
            await self.store.atomic_batch_write(ops)

        self.monitor.record_draw(len(winners))
        logger.info(f"Selected {len(winners)} winners. Run ID: {run.id}", extra={"event_id": event_id})
        return LotteryResult(
            event_id=event_id,
            requested=count,
            winner_ids=winners,
            run_id=run.id,
            waitlist_remaining=len(event.waitlist),
        )

    async def list_runs(self, event_id: str) -> List[LotteryRun]:
        """Recorded draws for the event, newest first."""
        return await self.runs.list_for_event(event_id)
