"""Application-wide constants and configuration values."""

from __future__ import annotations

from enum import Enum


# Store collections
class Collections:
    """Document store collection names."""
    EVENTS = "events"
    MEMBERSHIPS = "lottery_memberships"
    NOTIFICATIONS = "notifications"
    LOTTERY_RUNS = "lottery_runs"


# Database constants
class DatabaseDefaults:
    """Default database configuration."""
    PATH = "data/ballerevents.sqlite"
    POOL_SIZE = 5
    BUSY_TIMEOUT = 5000  # milliseconds


# Concurrency constants
class LockDefaults:
    """Per-event serialization configuration."""
    TIMEOUT = 5.0  # seconds


# Lottery constants
class LotteryDefaults:
    """Lottery configuration."""
    DATE_FORMAT = "%d %B, %Y"  # e.g. "05 December, 2025"


# Notification settings
class NotificationDefaults:
    """Notification service defaults."""
    WINNER_TITLE = "You won the lottery!"
    WINNER_MESSAGE = (
        "You have been selected for {title}. "
        "Please accept or decline your invitation."
    )
    CANCELLED_TITLE = "Event Update: {title}"
    CANCELLED_MESSAGE = "Your invitation has been cancelled."
    GROUP_TITLE = "Update: {title}"
    RETRY_ATTEMPTS = 3
    RETRY_DELAY = 0.5  # seconds, doubled per attempt


# Status enums
class InvitationStatus(str, Enum):
    """Entrant response to a lottery invitation."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class MembershipStatus(str, Enum):
    """Lottery membership progress; only moves forward."""
    APPLIED = "applied"
    CHOSEN = "chosen"
    NOTIFIED = "notified"


class EntrantStatus(str, Enum):
    """Human-facing entrant status derived from the event sets."""
    NOT_APPLIED = "NotApplied"
    WAITLISTED = "Waitlisted"
    SELECTED = "Selected"
    ENROLLED = "Enrolled"
    DECLINED = "Declined"


class EntrantGroup(str, Enum):
    """Recipient groups for organizer messages."""
    WAITLIST = "waitlist"
    CHOSEN = "chosen"
    SELECTED = "selected"
    ENROLLED = "enrolled"
    CANCELLED = "cancelled"


class NotificationType(str, Enum):
    """Notification kinds."""
    INVITATION = "invitation"
    INFO = "info"
