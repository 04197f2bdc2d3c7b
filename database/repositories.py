"""Document access layer helpers."""

from __future__ import annotations

import uuid
from typing import Iterable, List, Optional

from core.constants import Collections, MembershipStatus
from core.exceptions import NotFoundError, ValidationError
from database.base_repository import BaseRepository
from database.document_store import FieldFilter, WriteOp
from database.models import Event, LotteryMembership, LotteryRun, NotificationRecord


def new_document_id() -> str:
    return uuid.uuid4().hex


class EventRepository(BaseRepository):
    """Repository for event documents."""

    collection = Collections.EVENTS

    async def create_event(
        self,
        title: str,
        description: str = "",
        organizer: str = "",
        organizer_id: str = "",
        date: str = "",
        tags: Optional[Iterable[str]] = None,
        capacity: Optional[int] = None,
        event_id: Optional[str] = None,
    ) -> Event:
        """Create an event with empty entrant sets.

        Raises:
            ValidationError: If the title is blank or capacity is not a positive integer
        """
        if not title or not title.strip():
            raise ValidationError("Event title must not be empty")
        if capacity is not None and (
            isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1
        ):
            raise ValidationError(f"Capacity must be a positive integer, got {capacity!r}")

        event = Event(
            id=event_id or new_document_id(),
            title=title.strip(),
            description=description,
            organizer=organizer,
            organizer_id=organizer_id,
            date=date,
            tags=list(dict.fromkeys(tags or [])),
            capacity=capacity,
        )
        await self.transaction([WriteOp.set(self.collection, event.id, event.to_document())])
        return event

    async def get_event(self, event_id: str) -> Optional[Event]:
        document = await self.fetch_one(event_id)
        return Event.from_document(document) if document else None

    async def require_event(self, event_id: str) -> Event:
        """Get an event or raise ``NotFoundError``."""
        event = await self.get_event(event_id)
        if event is None:
            raise NotFoundError(f"Event {event_id} does not exist")
        return event

    async def list_events(
        self,
        organizer_id: Optional[str] = None,
        tag: Optional[str] = None,
    ) -> List[Event]:
        conditions = []
        if organizer_id is not None:
            conditions.append(FieldFilter.eq("organizerId", organizer_id))
        if tag is not None:
            conditions.append(FieldFilter.contains("tags", tag))
        return [Event.from_document(doc) for doc in await self.fetch_all(*conditions)]

    async def events_for_entrant(self, user_id: str) -> List[Event]:
        """Events where the user is waitlisted, chosen or cancelled."""
        seen = {}
        for field_name in ("waitlistUserIds", "chosenUserIds", "cancelledUserIds"):
            for doc in await self.fetch_all(FieldFilter.contains(field_name, user_id)):
                seen.setdefault(doc["id"], doc)
        return [Event.from_document(doc) for doc in seen.values()]


class MembershipRepository(BaseRepository):
    """Repository for per-event lottery memberships."""

    collection = Collections.MEMBERSHIPS

    async def list_for_event(
        self,
        event_id: str,
        status: Optional[MembershipStatus] = None,
        winner_notified: Optional[bool] = None,
    ) -> List[LotteryMembership]:
        conditions = [FieldFilter.eq("eventId", event_id)]
        if status is not None:
            conditions.append(FieldFilter.eq("status", status.value))
        if winner_notified is not None:
            conditions.append(FieldFilter.eq("winnerNotified", winner_notified))
        return [LotteryMembership.from_document(doc) for doc in await self.fetch_all(*conditions)]


class NotificationRepository(BaseRepository):
    """Repository for notification documents."""

    collection = Collections.NOTIFICATIONS

    async def get(self, notification_id: str) -> Optional[NotificationRecord]:
        document = await self.fetch_one(notification_id)
        return NotificationRecord.from_document(document) if document else None

    async def list_for_recipient(
        self,
        recipient_id: str,
        unread_only: bool = False,
    ) -> List[NotificationRecord]:
        """Notifications addressed to ``recipient_id``, newest first."""
        conditions = [FieldFilter.eq("recipientId", recipient_id)]
        if unread_only:
            conditions.append(FieldFilter.eq("read", False))
        records = [NotificationRecord.from_document(doc) for doc in await self.fetch_all(*conditions)]
        # Stable sort keeps insertion order for records created in one batch
        return sorted(records, key=lambda record: record.created_at, reverse=True)

    async def list_for_event(self, event_id: str) -> List[NotificationRecord]:
        return [
            NotificationRecord.from_document(doc)
            for doc in await self.fetch_all(FieldFilter.eq("eventId", event_id))
        ]

    async def mark_read(self, notification_id: str) -> NotificationRecord:
        """Flag a notification as read.

        Raises:
            NotFoundError: If the notification does not exist
        """
        record = await self.get(notification_id)
        if record is None:
            raise NotFoundError(f"Notification {notification_id} does not exist")
        if not record.read:
            await self.transaction([WriteOp.update(self.collection, notification_id, {"read": True})])
            record.read = True
        return record


class LotteryRunRepository(BaseRepository):
    """Repository for recorded lottery draws."""

    collection = Collections.LOTTERY_RUNS

    async def list_for_event(self, event_id: str) -> List[LotteryRun]:
        runs = [
            LotteryRun.from_document(doc)
            for doc in await self.fetch_all(FieldFilter.eq("eventId", event_id))
        ]
        return sorted(runs, key=lambda run: run.executed_at, reverse=True)
