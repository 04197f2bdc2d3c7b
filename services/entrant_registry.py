"""Entrant lifecycle per event: applying, withdrawing and invitation responses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from core import get_logger
from core.constants import Collections, EntrantStatus, InvitationStatus, NotificationDefaults, NotificationType
from core.exceptions import ValidationError
from database.document_store import DocumentStore, WriteOp
from database.models import Event, LotteryMembership, NotificationRecord, membership_id
from database.repositories import EventRepository, new_document_id
from services.entrant_status import derive_status
from services.event_locks import EventLockRegistry
from utils.performance import PerformanceMonitor

logger = get_logger(__name__)


@dataclass(frozen=True)
class EntrantCounts:
    """Sizes of an event's entrant sets."""

    waitlisted: int
    chosen: int
    cancelled: int
    enrolled: int

    @property
    def on_waitlist(self) -> int:
        """Count shown as "on waitlist": everyone still in the running."""
        return self.waitlisted + self.chosen


def _require_user_id(user_id: str) -> str:
    if not isinstance(user_id, str) or not user_id.strip():
        raise ValidationError(f"Invalid user id: {user_id!r}")
    return user_id


def _event_sets_update(event: Event) -> WriteOp:
    return WriteOp.update(
        Collections.EVENTS,
        event.id,
        {
            "waitlistUserIds": list(event.waitlist),
            "chosenUserIds": list(event.chosen),
            "cancelledUserIds": list(event.cancelled),
            "invitationStatus": dict(event.invitation_status),
        },
    )


class EntrantRegistry:
    """Tracks who applied to which event and where they stand.

    Every mutation of an event's sets happens under that event's lock and
    is committed as one atomic batch together with the membership record.
    """

    def __init__(
        self,
        store: DocumentStore,
        locks: EventLockRegistry,
        monitor: Optional[PerformanceMonitor] = None,
    ) -> None:
        self.store = store
        self.locks = locks
        self.monitor = monitor or PerformanceMonitor()
        self.events = EventRepository(store)

    async def apply(self, event_id: str, user_id: str) -> bool:
        """Put the user on the event's waitlist.

        Returns:
            True if the user was added, False if already associated with the event

        Raises:
            NotFoundError: If the event does not exist
        """
        _require_user_id(user_id)
        async with self.locks.hold(event_id, reason="apply"):
            event = await self.events.require_event(event_id)
            if event.is_associated(user_id):
                logger.debug("Apply ignored, already associated",
                             extra={"event_id": event_id, "user_id": user_id})
                return False

            event.waitlist.append(user_id)
            membership = LotteryMembership(event_id=event_id, user_id=user_id)
            await self.store.atomic_batch_write([
                WriteOp.update(Collections.EVENTS, event_id, {"waitlistUserIds": event.waitlist}),
                WriteOp.set(Collections.MEMBERSHIPS, membership.id, membership.to_document()),
            ])

        self.monitor.record_transition("apply")
        logger.info(f"User joined waitlist ({len(event.waitlist)} waiting)",
                    extra={"event_id": event_id, "user_id": user_id})
        return True

    async def withdraw(self, event_id: str, user_id: str) -> bool:
        """Remove the user from whichever set holds them.

        Returns:
            True if the user was removed, False if they were not associated

        Raises:
            NotFoundError: If the event does not exist
        """
        _require_user_id(user_id)
        async with self.locks.hold(event_id, reason="withdraw"):
            event = await self.events.require_event(event_id)
            if not event.is_associated(user_id):
                return False

            for id_set in (event.waitlist, event.chosen, event.cancelled):
                if user_id in id_set:
                    id_set.remove(user_id)
            event.invitation_status.pop(user_id, None)
            await self.store.atomic_batch_write([
                _event_sets_update(event),
                WriteOp.delete(Collections.MEMBERSHIPS, membership_id(event_id, user_id)),
            ])

        self.monitor.record_transition("withdraw")
        logger.info("User withdrew", extra={"event_id": event_id, "user_id": user_id})
        return True

    async def status_of(self, event_id: str, user_id: str) -> EntrantStatus:
        """Derived status of the user; unknown events or users are ``NotApplied``."""
        event = await self.events.get_event(event_id)
        return derive_status(event, user_id)

    async def respond_to_invitation(
        self,
        event_id: str,
        user_id: str,
        response: Union[InvitationStatus, str],
    ) -> EntrantStatus:
        """Record a chosen entrant's answer to their invitation.

        Accepting enrolls the entrant. Declining moves them to the cancelled
        set and frees their slot. Repeating the same answer is a no-op.

        Raises:
            ValidationError: If the response is not accepted/declined or no invitation is pending
            NotFoundError: If the event does not exist
        """
        _require_user_id(user_id)
        try:
            answer = InvitationStatus(response)
        except ValueError as exc:
            raise ValidationError(f"Invalid invitation response: {response!r}") from exc
        if answer is InvitationStatus.PENDING:
            raise ValidationError("Invitation response must be accepted or declined")

        async with self.locks.hold(event_id, reason="respond"):
            event = await self.events.require_event(event_id)
            current = event.invitation_status.get(user_id)

            if answer is InvitationStatus.ACCEPTED and user_id in event.chosen \
                    and current == InvitationStatus.ACCEPTED.value:
                return EntrantStatus.ENROLLED
            if answer is InvitationStatus.DECLINED and user_id in event.cancelled \
                    and user_id not in event.chosen:
                return EntrantStatus.DECLINED
            if user_id not in event.chosen or current != InvitationStatus.PENDING.value:
                raise ValidationError(f"User {user_id} has no pending invitation for event {event_id}")

            ops: List[WriteOp] = []
            if answer is InvitationStatus.ACCEPTED:
                event.invitation_status[user_id] = InvitationStatus.ACCEPTED.value
            else:
                event.chosen.remove(user_id)
                event.cancelled.append(user_id)
                event.invitation_status.pop(user_id, None)
                ops.append(WriteOp.delete(Collections.MEMBERSHIPS, membership_id(event_id, user_id)))
            ops.insert(0, _event_sets_update(event))
            await self.store.atomic_batch_write(ops)

        status = derive_status(event, user_id)
        self.monitor.record_transition(answer.value)
        logger.info(f"Invitation {answer.value}", extra={"event_id": event_id, "user_id": user_id})
        return status

    async def cancel_entrant(self, event_id: str, user_id: str) -> bool:
        """Organizer cancellation of a chosen entrant; the entrant is told why.

        Returns:
            True if the entrant was cancelled, False if they were not chosen

        Raises:
            NotFoundError: If the event does not exist
        """
        _require_user_id(user_id)
        async with self.locks.hold(event_id, reason="cancel"):
            event = await self.events.require_event(event_id)
            if user_id not in event.chosen:
                return False

            event.chosen.remove(user_id)
            if user_id not in event.cancelled:
                event.cancelled.append(user_id)
            event.invitation_status.pop(user_id, None)
            notice = NotificationRecord(
                id=new_document_id(),
                recipient_id=user_id,
                event_id=event_id,
                title=NotificationDefaults.CANCELLED_TITLE.format(title=event.title),
                message=NotificationDefaults.CANCELLED_MESSAGE,
                type=NotificationType.INFO,
            )
            await self.store.atomic_batch_write([
                _event_sets_update(event),
                WriteOp.delete(Collections.MEMBERSHIPS, membership_id(event_id, user_id)),
                WriteOp.set(Collections.NOTIFICATIONS, notice.id, notice.to_document()),
            ])

        self.monitor.record_transition("cancel")
        self.monitor.record_notifications(NotificationType.INFO.value, 1)
        logger.info("Entrant cancelled by organizer", extra={"event_id": event_id, "user_id": user_id})
        return True

    async def entrant_counts(self, event_id: str) -> EntrantCounts:
        """Raises ``NotFoundError`` if the event does not exist."""
        event = await self.events.require_event(event_id)
        enrolled = sum(
            1 for user_id in event.chosen
            if event.invitation_status.get(user_id) == InvitationStatus.ACCEPTED.value
        )
        return EntrantCounts(
            waitlisted=len(event.waitlist),
            chosen=len(event.chosen),
            cancelled=len(event.cancelled),
            enrolled=enrolled,
        )

    async def entrants_by_status(self, event_id: str, status: EntrantStatus) -> List[str]:
        event = await self.events.require_event(event_id)
        candidates = dict.fromkeys([*event.waitlist, *event.chosen, *event.cancelled])
        return [user_id for user_id in candidates if derive_status(event, user_id) == status]

    async def entrant_history(self, user_id: str) -> List[Tuple[Event, EntrantStatus]]:
        """Every event the user is associated with, paired with their status."""
        return [
            (event, derive_status(event, user_id))
            for event in await self.events.events_for_entrant(user_id)
        ]
