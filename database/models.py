"""Domain models and their document representations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from core.constants import MembershipStatus, NotificationType


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if not value:
        return utc_now()
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _id_list(value: Any) -> List[str]:
    if not value:
        return []
    # Drop duplicates, keep first-seen order
    return list(dict.fromkeys(str(item) for item in value))


def membership_id(event_id: str, user_id: str) -> str:
    """Document id of the lottery membership of ``user_id`` in ``event_id``."""
    return f"{event_id}:{user_id}"


@dataclass(slots=True)
class Event:
    id: str
    title: str = ""
    description: str = ""
    organizer: str = ""
    organizer_id: str = ""
    date: str = ""
    tags: List[str] = field(default_factory=list)
    capacity: Optional[int] = None
    waitlist: List[str] = field(default_factory=list)
    chosen: List[str] = field(default_factory=list)
    cancelled: List[str] = field(default_factory=list)
    invitation_status: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "Event":
        capacity = document.get("capacity")
        return cls(
            id=str(document["id"]),
            title=document.get("title") or "",
            description=document.get("description") or "",
            organizer=document.get("organizer") or "",
            organizer_id=document.get("organizerId") or "",
            date=document.get("date") or "",
            tags=list(document.get("tags") or []),
            capacity=int(capacity) if capacity is not None else None,
            waitlist=_id_list(document.get("waitlistUserIds")),
            chosen=_id_list(document.get("chosenUserIds")),
            cancelled=_id_list(document.get("cancelledUserIds")),
            invitation_status=dict(document.get("invitationStatus") or {}),
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "organizer": self.organizer,
            "organizerId": self.organizer_id,
            "date": self.date,
            "tags": list(self.tags),
            "capacity": self.capacity,
            "waitlistUserIds": list(self.waitlist),
            "chosenUserIds": list(self.chosen),
            "cancelledUserIds": list(self.cancelled),
            "invitationStatus": dict(self.invitation_status),
        }

    def is_associated(self, user_id: str) -> bool:
        return user_id in self.waitlist or user_id in self.chosen or user_id in self.cancelled

    @property
    def remaining_capacity(self) -> Optional[int]:
        """Open slots, or ``None`` when the event is unlimited."""
        if self.capacity is None:
            return None
        return max(self.capacity - len(self.chosen), 0)


@dataclass(slots=True)
class LotteryMembership:
    event_id: str
    user_id: str
    status: MembershipStatus = MembershipStatus.APPLIED
    winner_notified: bool = False
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def id(self) -> str:
        return membership_id(self.event_id, self.user_id)

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "LotteryMembership":
        return cls(
            event_id=str(document["eventId"]),
            user_id=str(document["userId"]),
            status=MembershipStatus(document.get("status", MembershipStatus.APPLIED.value)),
            winner_notified=bool(document.get("winnerNotified", False)),
            updated_at=_parse_timestamp(document.get("updatedAt")),
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "eventId": self.event_id,
            "userId": self.user_id,
            "status": self.status.value,
            "winnerNotified": self.winner_notified,
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass(slots=True)
class NotificationRecord:
    id: str
    recipient_id: str
    event_id: str
    title: str
    message: str
    type: NotificationType = NotificationType.INFO
    created_at: datetime = field(default_factory=utc_now)
    read: bool = False

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "NotificationRecord":
        return cls(
            id=str(document["id"]),
            recipient_id=str(document["recipientId"]),
            event_id=str(document.get("eventId") or ""),
            title=document.get("title") or "",
            message=document.get("message") or "",
            type=NotificationType(document.get("type", NotificationType.INFO.value)),
            created_at=_parse_timestamp(document.get("createdAt")),
            read=bool(document.get("read", False)),
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "recipientId": self.recipient_id,
            "eventId": self.event_id,
            "title": self.title,
            "message": self.message,
            "type": self.type.value,
            "createdAt": self.created_at.isoformat(),
            "read": self.read,
        }


@dataclass(slots=True)
class LotteryRun:
    id: str
    event_id: str
    requested: int
    winner_ids: List[str]
    executed_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "LotteryRun":
        return cls(
            id=str(document["id"]),
            event_id=str(document["eventId"]),
            requested=int(document.get("requested", 0)),
            winner_ids=list(document.get("winnerIds") or []),
            executed_at=_parse_timestamp(document.get("executedAt")),
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "eventId": self.event_id,
            "requested": self.requested,
            "winnerIds": list(self.winner_ids),
            "executedAt": self.executed_at.isoformat(),
        }
