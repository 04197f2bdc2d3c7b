"""Core application components."""

# ApplicationInitializer lives in core.app_initializer; it imports the
# database and services packages, which depend on this package.
from core.logger import setup_logger, get_logger
from core.constants import (
    Collections,
    DatabaseDefaults,
    LockDefaults,
    LotteryDefaults,
    NotificationDefaults,
    InvitationStatus,
    MembershipStatus,
    EntrantStatus,
    EntrantGroup,
    NotificationType,
)
from core.exceptions import (
    ApplicationError,
    ConfigurationError,
    DatabaseError,
    StoreError,
    NotFoundError,
    ValidationError,
    ServiceError,
    EventBusyError,
    LotteryError,
    CapacityExceededError,
    DispatchError,
)

__all__ = [
    # Logging
    'setup_logger',
    'get_logger',
    # Constants
    'Collections',
    'DatabaseDefaults',
    'LockDefaults',
    'LotteryDefaults',
    'NotificationDefaults',
    'InvitationStatus',
    'MembershipStatus',
    'EntrantStatus',
    'EntrantGroup',
    'NotificationType',
    # Exceptions
    'ApplicationError',
    'ConfigurationError',
    'DatabaseError',
    'StoreError',
    'NotFoundError',
    'ValidationError',
    'ServiceError',
    'EventBusyError',
    'LotteryError',
    'CapacityExceededError',
    'DispatchError',
]
