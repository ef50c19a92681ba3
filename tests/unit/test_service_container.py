"""
Unit Tests for ServiceContainer
===============================

Purpose
-------
Verify that the container wires the store, catalogs, clock and services
and exposes them only after initialization.

Test Coverage
-------------
- Guarded properties before initialize()
- Injected collaborators are used as-is
- Catalogs load from config when not injected
- Health check and shutdown

Testing Strategy
----------------
- In-memory store and FixedClock injected
- AAA pattern (Arrange, Act, Assert)
"""

import pytest

from questline.core.services import ServiceContainer
from questline.core.store.memory import InMemoryDocumentStore
from questline.modules.daily.service import DailyChallengeService
from questline.modules.progression.service import ProgressionService


@pytest.fixture
async def container(store, clock, event_bus):
    container = ServiceContainer(event_bus=event_bus, store=store, clock=clock)
    await container.initialize()
    yield container
    await container.shutdown()


@pytest.mark.unit
class TestServiceContainer:
    def test_services_unavailable_before_initialize(self):
        container = ServiceContainer()

        with pytest.raises(RuntimeError):
            _ = container.progression
        with pytest.raises(RuntimeError):
            _ = container.daily

    async def test_initialize_wires_services(self, container, store):
        assert isinstance(container.progression, ProgressionService)
        assert isinstance(container.daily, DailyChallengeService)
        assert len(container.quest_catalog) == 9
        assert len(container.badge_catalog) == 21

    async def test_services_share_the_store(self, container, store):
        await container.progression.on_login("u-1")
        await container.daily.get_or_create_daily_challenge("u-1")

        assert store.keys() == ["daily_challenge:u-1:2026-03-14", "progression:u-1"]

    async def test_health_check(self, container):
        health = await container.health_check()

        assert health["initialized"] is True
        assert health["store"] == "memory"
        assert health["store_healthy"] is True
        assert health["service_count"] == 4

    async def test_default_store_from_config(self, clock):
        container = ServiceContainer(clock=clock)

        await container.initialize()

        assert isinstance(container._store, InMemoryDocumentStore)
        await container.shutdown()

    async def test_double_initialize_is_noop(self, container):
        progression = container.progression

        await container.initialize()

        assert container.progression is progression

    async def test_shutdown_guards_services(self, store, clock):
        container = ServiceContainer(store=store, clock=clock)
        await container.initialize()

        await container.shutdown()

        with pytest.raises(RuntimeError):
            _ = container.progression
