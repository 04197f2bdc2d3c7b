"""Services package."""

from .entrant_registry import EntrantRegistry, EntrantCounts
from .entrant_status import derive_status
from .event_locks import EventLockRegistry
from .event_search import filter_events
from .lottery import LotterySelector, LotteryResult
from .notification_service import NotificationDispatcher, NotificationInbox, DispatchResult

__all__ = [
    "EntrantRegistry",
    "EntrantCounts",
    "derive_status",
    "EventLockRegistry",
    "filter_events",
    "LotterySelector",
    "LotteryResult",
    "NotificationDispatcher",
    "NotificationInbox",
    "DispatchResult",
]
