"""Application configuration module.

Reads settings from environment variables (optionally seeded from a ``.env``
file) with defaults suitable for a single host process.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from core.constants import DatabaseDefaults, LockDefaults, NotificationDefaults
from core.exceptions import ConfigurationError


def _get_bool(name: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


def _get_int(name: str, default: int) -> int:
    """Get integer from environment variable with fallback."""
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float(name: str, default: float) -> float:
    """Get float from environment variable with fallback."""
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_str(name: str, default: str = "") -> str:
    """Get string from environment variable."""
    return os.getenv(name, default)


@dataclass(frozen=True)
class Config:
    environment: str
    debug: bool
    database_path: str
    db_pool_size: int
    db_busy_timeout: int
    lock_timeout: float
    log_level: str
    log_file: Optional[str]
    dispatch_retry_attempts: int
    dispatch_retry_delay: float

    def validate(self) -> None:
        """Reject values the store and services cannot work with."""
        if self.db_pool_size < 1:
            raise ConfigurationError("DB_POOL_SIZE must be at least 1")
        if self.db_busy_timeout < 0:
            raise ConfigurationError("DB_BUSY_TIMEOUT must not be negative")
        if self.lock_timeout <= 0:
            raise ConfigurationError("LOCK_TIMEOUT must be positive")
        if self.dispatch_retry_attempts < 1:
            raise ConfigurationError("DISPATCH_RETRY_ATTEMPTS must be at least 1")
        if self.dispatch_retry_delay < 0:
            raise ConfigurationError("DISPATCH_RETRY_DELAY must not be negative")
        if not self.database_path:
            raise ConfigurationError("DATABASE_PATH must not be empty")


def load_config(env_file: Optional[str] = None) -> Config:
    """Load application configuration from environment variables.

    Args:
        env_file: Optional explicit ``.env`` path; the default lookup is used otherwise

    Returns:
        Config: Application configuration with validated values

    Raises:
        ConfigurationError: If a value is out of range
    """
    load_dotenv(env_file)

    config = Config(
        environment=_get_str("ENVIRONMENT", "development"),
        debug=_get_bool("DEBUG", False),
        database_path=_get_str("DATABASE_PATH", DatabaseDefaults.PATH),
        db_pool_size=_get_int("DB_POOL_SIZE", DatabaseDefaults.POOL_SIZE),
        db_busy_timeout=_get_int("DB_BUSY_TIMEOUT", DatabaseDefaults.BUSY_TIMEOUT),
        lock_timeout=_get_float("LOCK_TIMEOUT", LockDefaults.TIMEOUT),
        log_level=_get_str("LOG_LEVEL", "INFO"),
        log_file=_get_str("LOG_FILE", "") or None,
        dispatch_retry_attempts=_get_int(
            "DISPATCH_RETRY_ATTEMPTS", NotificationDefaults.RETRY_ATTEMPTS
        ),
        dispatch_retry_delay=_get_float(
            "DISPATCH_RETRY_DELAY", NotificationDefaults.RETRY_DELAY
        ),
    )

    config.validate()
    return config
