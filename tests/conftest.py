# ==============================================================================
# Shared Test Fixtures
# ==============================================================================
"""
Pytest fixtures shared across all test modules.

Provides:
- fakeredis-backed ValkeyCache and RunStatusTracker instances
- In-memory stores and a fully wired Pipeline around them
- Factories for events and goals
"""

from datetime import UTC, datetime

import fakeredis
import pytest

from webanalytics.core.models import Event, Goal, Website
from webanalytics.infrastructure.cache import ValkeyCache
from webanalytics.infrastructure.repositories.memory import (
    InMemoryConversionStore,
    InMemoryEventStore,
    InMemoryGoalStore,
    InMemoryStatStore,
    InMemoryWebsiteStore,
)
from webanalytics.infrastructure.run_status import RunStatusTracker
from webanalytics.pipeline.factory import Stores, build_pipeline
from webanalytics.utils.config import Settings, StorageSettings, ValkeySettings

WEBSITE_ID = "web_test"
OWNER_ID = 1
EVENT_TIME = datetime(2026, 3, 14, 12, 0, tzinfo=UTC)


@pytest.fixture()
def fake_redis():
    """A clean fakeredis instance for each test.

    Uses decode_responses=True to match the real ValkeyCache behavior.
    """
    server = fakeredis.FakeServer()
    client = fakeredis.FakeRedis(server=server, decode_responses=True)
    yield client
    client.flushall()
    client.close()


@pytest.fixture()
def fake_cache(fake_redis):
    """A ValkeyCache with its internal client replaced by fakeredis.

    This avoids needing a real Valkey/Redis server for unit tests while
    exercising the full ValkeyCache API surface.
    """
    cache = ValkeyCache.__new__(ValkeyCache)
    cache._client = fake_redis
    cache._url = "redis://fake:6379"
    return cache


@pytest.fixture()
def tracker(fake_cache):
    """A RunStatusTracker backed by fakeredis."""
    return RunStatusTracker(cache=fake_cache)


@pytest.fixture()
def settings():
    """Settings for the in-memory backend with Valkey tracking disabled."""
    return Settings(
        storage=StorageSettings(backend="memory"),
        valkey=ValkeySettings(enabled=False),
    )


@pytest.fixture()
def stores():
    """Fresh in-memory stores with one registered website (WEBSITE_ID, OWNER_ID)."""
    stores = Stores(
        events=InMemoryEventStore(),
        goals=InMemoryGoalStore(),
        conversions=InMemoryConversionStore(),
        stats=InMemoryStatStore(),
        websites=InMemoryWebsiteStore(),
    )
    stores.websites.add(Website(id=WEBSITE_ID, owner_id=OWNER_ID, name="Test", domain="x.com"))
    return stores


@pytest.fixture()
def pipeline(settings, stores, tracker):
    """Pipeline over the in-memory stores, recording runs to fakeredis."""
    return build_pipeline(settings, stores=stores, tracker=tracker)


@pytest.fixture()
def make_event():
    """Factory for events of WEBSITE_ID at EVENT_TIME unless overridden."""

    def _make(**fields) -> Event:
        data = {
            "website_id": WEBSITE_ID,
            "url": "https://x.com/",
            "session_id": "sess_1",
            "timestamp": EVENT_TIME,
        }
        data.update(fields)
        return Event(**data)

    return _make


@pytest.fixture()
def make_goal():
    """Factory for active goals of WEBSITE_ID; pass id=None for unsaved goals."""

    def _make(goal_type="url_destination", conditions=None, **fields) -> Goal:
        data = {
            "id": 1,
            "website_id": WEBSITE_ID,
            "owner_id": OWNER_ID,
            "name": "Goal",
            "goal_type": goal_type,
            "conditions": conditions or {},
        }
        data.update(fields)
        return Goal(**data)

    return _make
