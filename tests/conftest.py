"""Pytest configuration and fixtures."""

import random

import pytest
import pytest_asyncio

from config import Config
from core.app_initializer import ApplicationInitializer


@pytest.fixture
def test_config(tmp_path):
    """Configuration pointing at a throwaway SQLite file."""
    return Config(
        environment="test",
        debug=False,
        database_path=str(tmp_path / "test_ballerevents.sqlite"),
        db_pool_size=4,
        db_busy_timeout=5000,
        lock_timeout=5.0,
        log_level="DEBUG",
        log_file=None,
        dispatch_retry_attempts=3,
        dispatch_retry_delay=0.0,
    )


@pytest_asyncio.fixture
async def app(test_config):
    """Fully wired application with a seeded lottery."""
    application = ApplicationInitializer(test_config, rng=random.Random(2025))
    await application.initialize()
    yield application
    await application.close()


@pytest.fixture
def store(app):
    return app.store


@pytest.fixture
def registry(app):
    return app.registry


@pytest.fixture
def lottery(app):
    return app.lottery


@pytest.fixture
def dispatcher(app):
    return app.dispatcher


@pytest.fixture
def inbox(app):
    return app.inbox


@pytest_asyncio.fixture
async def event(app):
    """An unlimited-capacity event."""
    return await app.events.create_event(
        title="Summer Music Night",
        description="Live bands by the lake",
        organizer="Baller Org",
        organizer_id="org-1",
        date="05 December, 2025",
        tags=["Music", "Outdoor"],
    )


@pytest_asyncio.fixture
async def populated_event(app, event):
    """The event with five entrants on its waitlist."""
    for user_id in ("u1", "u2", "u3", "u4", "u5"):
        await app.registry.apply(event.id, user_id)
    return event
