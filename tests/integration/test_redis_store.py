"""
Integration Tests for RedisDocumentStore
========================================

Purpose
-------
Verify the document store contract against a real Redis server, including
optimistic WATCH/MULTI/EXEC transactions under contention.

Test Coverage
-------------
- Connection lifecycle and health check
- get / set / delete round trips
- update_atomic writes, no-op updates and error propagation
- Concurrent increments across two clients never lose an update
- Conflict retries and StoreConflictError when retries are exhausted
- ProgressionService end to end on Redis

Testing Strategy
----------------
- testcontainers Redis (session scoped), flushed per test
- AAA pattern (Arrange, Act, Assert)
"""

import asyncio

import pytest
from redis import Redis as SyncRedis

from questline.core.exceptions import StoreConflictError, StoreUnavailableError
from questline.core.logging.logger import get_logger
from questline.core.store.redis_store import RedisDocumentStore
from questline.modules.progression.service import ProgressionService
from tests.conftest import perfect_attempt

pytestmark = pytest.mark.integration


@pytest.fixture
async def redis_store(redis_url):
    store = RedisDocumentStore(redis_url)
    await store.initialize()
    await store._client.flushdb()
    yield store
    await store.shutdown()


class TestLifecycle:
    async def test_health_check(self, redis_store):
        assert await redis_store.health_check() is True

    async def test_unreachable_server(self):
        store = RedisDocumentStore("redis://127.0.0.1:1/0")

        with pytest.raises(StoreUnavailableError):
            await store.initialize()

    async def test_operations_before_initialize(self, redis_url):
        store = RedisDocumentStore(redis_url)

        with pytest.raises(StoreUnavailableError):
            await store.get("k")


class TestDocuments:
    async def test_set_get_delete(self, redis_store):
        await redis_store.set("progression:u-1", {"xp": 10, "badges": ["first_quest"]})

        assert await redis_store.get("progression:u-1") == {"xp": 10, "badges": ["first_quest"]}
        assert await redis_store.delete("progression:u-1") is True
        assert await redis_store.get("progression:u-1") is None

    async def test_non_json_value_is_unavailable(self, redis_store):
        await redis_store._client.set("garbage", "not json")

        with pytest.raises(StoreUnavailableError):
            await redis_store.get("garbage")


class TestUpdateAtomic:
    async def test_creates_and_updates(self, redis_store):
        # Arrange
        def increment(doc):
            doc = doc or {"xp": 0}
            return {"xp": doc["xp"] + 5}

        # Act
        await redis_store.update_atomic("k", increment)
        stored = await redis_store.update_atomic("k", increment)

        # Assert
        assert stored == {"xp": 10}

    async def test_none_means_no_write(self, redis_store):
        await redis_store.set("k", {"xp": 1})

        stored = await redis_store.update_atomic("k", lambda doc: None)

        assert stored == {"xp": 1}

    async def test_update_error_propagates(self, redis_store):
        await redis_store.set("k", {"xp": 1})

        def reject(doc):
            raise ValueError("rejected")

        with pytest.raises(ValueError):
            await redis_store.update_atomic("k", reject)

        assert await redis_store.get("k") == {"xp": 1}

    async def test_concurrent_increments_across_clients(self, redis_store, redis_url):
        # Arrange
        other = RedisDocumentStore(redis_url, max_retries=100)
        await other.initialize()
        redis_store._max_retries = 100

        def increment(doc):
            doc = doc or {"xp": 0}
            return {"xp": doc["xp"] + 1}

        # Act
        try:
            await asyncio.gather(
                *(store.update_atomic("counter", increment) for store in [redis_store, other] * 15)
            )
        finally:
            await other.shutdown()

        # Assert
        assert await redis_store.get("counter") == {"xp": 30}

    async def test_conflict_is_retried(self, redis_store, redis_url):
        # Arrange
        intruder = SyncRedis.from_url(redis_url, decode_responses=True)
        seen = []

        def update(doc):
            seen.append(doc)
            if len(seen) == 1:
                # another writer commits between WATCH and EXEC
                intruder.set("k", '{"xp": 100}')
            return {"xp": doc["xp"] + 1}

        await redis_store.set("k", {"xp": 0})

        # Act
        try:
            stored = await redis_store.update_atomic("k", update)
        finally:
            intruder.close()

        # Assert
        assert seen == [{"xp": 0}, {"xp": 100}]
        assert stored == {"xp": 101}
        assert await redis_store.get("k") == {"xp": 101}

    async def test_exhausted_retries_raise_conflict(self, redis_url):
        store = RedisDocumentStore(redis_url, max_retries=2)
        await store.initialize()
        intruder = SyncRedis.from_url(redis_url, decode_responses=True)

        def always_interfere(doc):
            intruder.set("contended", '{"xp": -1}')
            return {"xp": 1}

        try:
            with pytest.raises(StoreConflictError) as exc_info:
                await store.update_atomic("contended", always_interfere)
        finally:
            intruder.close()
            await store.shutdown()

        assert exc_info.value.attempts == 2
        assert store.get_metrics()["conflicts"] == 2


class TestProgressionOnRedis:
    async def test_concurrent_submissions(
        self, redis_store, quest_catalog, badge_catalog, clock, event_bus, config_manager
    ):
        # Arrange
        service = ProgressionService(
            config_manager=config_manager,
            event_bus=event_bus,
            logger=get_logger("tests.ProgressionService"),
            store=redis_store,
            quest_catalog=quest_catalog,
            badge_catalog=badge_catalog,
            clock=clock,
        )
        redis_store._max_retries = 50
        quests = [quest for quest in quest_catalog if not quest.is_premium]

        # Act
        results = await asyncio.gather(
            *(service.on_quest_submit("u-redis", q.id, perfect_attempt(q)) for q in quests)
        )
        state, persisted = await service.get_state("u-redis")

        # Assert
        assert persisted is True
        assert all(result.persisted for result in results)
        assert state.xp == sum(result.score.final_score for result in results)
        assert state.quests_completed == len(quests)
        assert len(state.badges) == len(set(state.badges))
