"""Application initialization orchestrator."""

from __future__ import annotations

import random
from typing import Optional

from config import Config, load_config
from core.logger import get_logger, setup_logger
from database import OptimizedSQLitePool, SQLiteDocumentStore, run_migrations
from database.repositories import EventRepository
from services.entrant_registry import EntrantRegistry
from services.event_locks import EventLockRegistry
from services.lottery import LotterySelector
from services.notification_service import NotificationDispatcher, NotificationInbox
from utils.performance import PerformanceMonitor

logger = get_logger(__name__)


class ApplicationInitializer:
    """Owns the store handle and wires the entrant services around it.

    The hosting process creates one instance, awaits ``initialize`` (or uses
    it as an async context manager) and closes it on shutdown.
    """

    def __init__(self, config: Optional[Config] = None, rng: Optional[random.Random] = None):
        self.config = config or load_config()
        self.rng = rng
        self.monitor = PerformanceMonitor()
        self.db_pool: Optional[OptimizedSQLitePool] = None
        self.store: Optional[SQLiteDocumentStore] = None
        self.locks: Optional[EventLockRegistry] = None
        self.events: Optional[EventRepository] = None
        self.registry: Optional[EntrantRegistry] = None
        self.lottery: Optional[LotterySelector] = None
        self.dispatcher: Optional[NotificationDispatcher] = None
        self.inbox: Optional[NotificationInbox] = None

    def setup_logging(self) -> None:
        """Configure the application logger from the loaded config."""
        setup_logger(
            level=self.config.log_level,
            log_file=self.config.log_file,
            colored=self.config.debug,
        )

    async def initialize(self) -> None:
        """Initialize all application components."""
        await self._init_database()
        self._init_services()
        logger.info(f"Entrant services ready ({self.config.environment})")

    async def _init_database(self) -> None:
        self.db_pool = OptimizedSQLitePool(
            database_path=self.config.database_path,
            pool_size=self.config.db_pool_size,
            busy_timeout_ms=self.config.db_busy_timeout,
        )
        await self.db_pool.init_pool()
        await run_migrations(self.db_pool)
        self.monitor.record_db_pool(self.db_pool.size)
        self.store = SQLiteDocumentStore(self.db_pool, monitor=self.monitor)
        logger.info(f"Document store opened at {self.config.database_path}")

    def _init_services(self) -> None:
        self.locks = EventLockRegistry(timeout=self.config.lock_timeout)
        self.events = EventRepository(self.store)
        self.registry = EntrantRegistry(self.store, self.locks, monitor=self.monitor)
        self.lottery = LotterySelector(self.store, self.locks, rng=self.rng, monitor=self.monitor)
        self.dispatcher = NotificationDispatcher(
            self.store,
            self.locks,
            retry_attempts=self.config.dispatch_retry_attempts,
            retry_delay=self.config.dispatch_retry_delay,
            monitor=self.monitor,
        )
        self.inbox = NotificationInbox(self.store)

    async def close(self) -> None:
        """Release the connection pool."""
        if self.db_pool is not None:
            await self.db_pool.close()
            self.db_pool = None
            logger.info("Document store closed")

    async def __aenter__(self) -> "ApplicationInitializer":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
