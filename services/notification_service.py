"""Winner notification dispatch and the per-user notification inbox."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import List, Optional, Union

from core import get_logger
from core.constants import (
    Collections,
    EntrantGroup,
    EntrantStatus,
    InvitationStatus,
    MembershipStatus,
    NotificationDefaults,
    NotificationType,
)
from core.exceptions import DispatchError, EventBusyError, StoreError, ValidationError
from database.document_store import DocumentStore, WriteOp
from database.models import Event, NotificationRecord, utc_now
from database.repositories import (
    EventRepository,
    MembershipRepository,
    NotificationRepository,
    new_document_id,
)
from services.entrant_status import derive_status
from services.event_locks import EventLockRegistry
from utils.performance import PerformanceMonitor

logger = get_logger(__name__)


@dataclass
class DispatchResult:
    """Entrants notified by one dispatch run."""

    event_id: str
    notified_user_ids: List[str] = field(default_factory=list)
    notification_ids: List[str] = field(default_factory=list)

    @property
    def notified_count(self) -> int:
        return len(self.notified_user_ids)


def _group_members(event: Event, group: EntrantGroup) -> List[str]:
    if group is EntrantGroup.WAITLIST:
        return list(event.waitlist)
    if group is EntrantGroup.CHOSEN:
        return list(event.chosen)
    if group is EntrantGroup.CANCELLED:
        return list(event.cancelled)
    wanted = EntrantStatus.SELECTED if group is EntrantGroup.SELECTED else EntrantStatus.ENROLLED
    return [user_id for user_id in event.chosen if derive_status(event, user_id) == wanted]


class NotificationDispatcher:
    """Creates winner notifications exactly once per chosen entrant.

    The guard is the membership's ``winnerNotified`` flag: it flips in the
    same atomic batch that creates the notification, so a retried dispatch
    finds nothing left to send.
    """

    def __init__(
        self,
        store: DocumentStore,
        locks: EventLockRegistry,
        retry_attempts: int = NotificationDefaults.RETRY_ATTEMPTS,
        retry_delay: float = NotificationDefaults.RETRY_DELAY,
        monitor: Optional[PerformanceMonitor] = None,
    ) -> None:
        self.store = store
        self.locks = locks
        self.monitor = monitor or PerformanceMonitor()
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self.events = EventRepository(store)
        self.memberships = MembershipRepository(store)

        logger.debug(
            f"NotificationDispatcher initialized: "
            f"retry_attempts={retry_attempts}, retry_delay={retry_delay}"
        )

    async def dispatch_winner_notifications(self, event_id: str) -> DispatchResult:
        """Notify every chosen entrant of ``event_id`` that was not notified yet.

        Returns:
            DispatchResult; ``notified_count`` is 0 when nobody was eligible

        Raises:
            NotFoundError: If the event does not exist
            DispatchError: If the store could not read or commit the batch
        """
        async with self.locks.hold(event_id, reason="dispatch"):
            try:
                event = await self.events.require_event(event_id)
                pending = await self.memberships.list_for_event(
                    event_id, status=MembershipStatus.CHOSEN, winner_notified=False
                )
            except StoreError as exc:
                logger.error(f"Failed to load dispatch targets: {exc}", exc_info=True,
                             extra={"event_id": event_id})
                self.monitor.record_dispatch_failure()
                raise DispatchError(f"Could not load winners for event {event_id}") from exc

            targets = [membership for membership in pending if membership.user_id in event.chosen]
            if len(targets) < len(pending):
                logger.warning(
                    f"Skipping {len(pending) - len(targets)} memberships no longer chosen",
                    extra={"event_id": event_id},
                )
            if not targets:
                logger.debug("No winners awaiting notification", extra={"event_id": event_id})
                return DispatchResult(event_id)

            result = DispatchResult(event_id)
            invitation_status = dict(event.invitation_status)
            now = utc_now()
            ops: List[WriteOp] = []
            for membership in targets:
                record = NotificationRecord(
                    id=new_document_id(),
                    recipient_id=membership.user_id,
                    event_id=event_id,
                    title=NotificationDefaults.WINNER_TITLE,
                    message=NotificationDefaults.WINNER_MESSAGE.format(title=event.title or "this event"),
                    type=NotificationType.INVITATION,
                    created_at=now,
                )
                ops.append(WriteOp.set(Collections.NOTIFICATIONS, record.id, record.to_document()))
                ops.append(WriteOp.update(Collections.MEMBERSHIPS, membership.id, {
                    "winnerNotified": True,
                    "status": MembershipStatus.NOTIFIED.value,
                    "updatedAt": now.isoformat(),
                }))
                invitation_status[membership.user_id] = InvitationStatus.PENDING.value
                result.notified_user_ids.append(membership.user_id)
                result.notification_ids.append(record.id)
            ops.append(WriteOp.update(Collections.EVENTS, event_id, {"invitationStatus": invitation_status}))

            try:
                await self.store.atomic_batch_write(ops)
            except StoreError as exc:
                logger.error(f"Failed to commit winner notifications: {exc}", exc_info=True,
                             extra={"event_id": event_id, "count": len(targets)})
                self.monitor.record_dispatch_failure()
                raise DispatchError(f"Winner notifications for event {event_id} were not sent") from exc

        self.monitor.record_notifications(NotificationType.INVITATION.value, result.notified_count)
        logger.info(f"Notified {result.notified_count} winners",
                    extra={"event_id": event_id, "count": result.notified_count})
        return result

    async def dispatch_with_retry(
        self,
        event_id: str,
        attempts: Optional[int] = None,
        delay: Optional[float] = None,
    ) -> DispatchResult:
        """Dispatch, retrying transient failures with exponential backoff.

        Retrying is safe: entrants committed by an earlier attempt are no
        longer eligible.
        """
        attempts = attempts if attempts is not None else self.retry_attempts
        delay = delay if delay is not None else self.retry_delay
        if attempts < 1:
            raise ValidationError("attempts must be at least 1")

        attempt = 0
        while True:
            try:
                return await self.dispatch_winner_notifications(event_id)
            except (DispatchError, EventBusyError) as exc:
                attempt += 1
                if attempt >= attempts:
                    logger.error(f"Dispatch failed after {attempts} attempts: {exc}",
                                 extra={"event_id": event_id})
                    raise
                wait = delay * (2 ** (attempt - 1))
                logger.warning(
                    f"Dispatch attempt {attempt}/{attempts} failed. "
                    f"Retrying in {wait}s. Error: {exc}",
                    extra={"event_id": event_id},
                )
                await asyncio.sleep(wait)

    async def notify_group(
        self,
        event_id: str,
        group: Union[EntrantGroup, str],
        message: str,
        title: Optional[str] = None,
    ) -> int:
        """Send an organizer message to one entrant group of the event.

        Returns:
            Number of notifications created

        Raises:
            ValidationError: If the message is blank or the group unknown
            NotFoundError: If the event does not exist
            DispatchError: If the batch could not be committed
        """
        if not message or not message.strip():
            raise ValidationError("Message must not be empty")
        try:
            group = EntrantGroup(group)
        except ValueError as exc:
            raise ValidationError(f"Unknown entrant group: {group!r}") from exc

        event = await self.events.require_event(event_id)
        recipients = _group_members(event, group)
        if not recipients:
            return 0

        now = utc_now()
        heading = title or NotificationDefaults.GROUP_TITLE.format(title=event.title)
        ops = []
        for user_id in recipients:
            record = NotificationRecord(
                id=new_document_id(),
                recipient_id=user_id,
                event_id=event_id,
                title=heading,
                message=message.strip(),
                type=NotificationType.INFO,
                created_at=now,
            )
            ops.append(WriteOp.set(Collections.NOTIFICATIONS, record.id, record.to_document()))

        try:
            await self.store.atomic_batch_write(ops)
        except StoreError as exc:
            logger.error(f"Failed to send group message: {exc}", exc_info=True,
                         extra={"event_id": event_id})
            raise DispatchError(f"Message to {group.value} of event {event_id} was not sent") from exc

        self.monitor.record_notifications(NotificationType.INFO.value, len(ops))
        logger.info(f"Sent message to {group.value}", extra={"event_id": event_id, "count": len(ops)})
        return len(ops)


class NotificationInbox:
    """Read side of notifications for a single recipient."""

    def __init__(self, store: DocumentStore) -> None:
        self.notifications = NotificationRepository(store)

    async def list_notifications(self, user_id: str, unread_only: bool = False) -> List[NotificationRecord]:
        return await self.notifications.list_for_recipient(user_id, unread_only=unread_only)

    async def unread_count(self, user_id: str) -> int:
        return len(await self.notifications.list_for_recipient(user_id, unread_only=True))

    async def mark_read(self, notification_id: str) -> NotificationRecord:
        """Raises ``NotFoundError`` for an unknown notification id."""
        record = await self.notifications.mark_read(notification_id)
        logger.debug("Notification marked read", extra={"notification_id": notification_id})
        return record

    async def mark_all_read(self, user_id: str) -> int:
        unread = await self.notifications.list_for_recipient(user_id, unread_only=True)
        if not unread:
            return 0
        await self.notifications.transaction([
            WriteOp.update(Collections.NOTIFICATIONS, record.id, {"read": True})
            for record in unread
        ])
        return len(unread)
