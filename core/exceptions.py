"""Application-wide exception classes."""

from __future__ import annotations


class ApplicationError(Exception):
    """Base exception for all application errors."""

    retryable = False


class ConfigurationError(ApplicationError):
    """Raised when configuration is invalid."""
    pass


class DatabaseError(ApplicationError):
    """Base exception for database-related errors."""
    pass


class ConnectionPoolError(DatabaseError):
    """Raised when database connection pool has issues."""
    pass


class StoreError(DatabaseError):
    """Raised when a document store read or atomic batch write fails."""

    retryable = True


class NotFoundError(ApplicationError):
    """Raised when a referenced event or notification does not exist."""
    pass


class ValidationError(ApplicationError):
    """Raised when input validation fails."""
    pass


class ServiceError(ApplicationError):
    """Base exception for service-level errors."""
    pass


class EventBusyError(ServiceError):
    """Raised when the per-event lock cannot be acquired in time."""

    retryable = True


class LotteryError(ServiceError):
    """Base exception for lottery operations."""
    pass


class CapacityExceededError(LotteryError):
    """Raised when a draw would exceed the event's declared capacity."""
    pass


class DispatchError(ServiceError):
    """Raised when winner notifications could not be committed."""

    retryable = True
