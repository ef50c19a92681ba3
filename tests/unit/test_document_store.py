"""
Unit Tests for the In-Memory Document Store
===========================================

Purpose
-------
Verify the DocumentStore contract on the in-process backend used by tests
and single-process deployments.

Test Coverage
-------------
- get / set / delete with deep-copy isolation
- update_atomic writes, no-op (None) updates and exception propagation
- Concurrent read-modify-write never loses an update
- Per-key locks are dropped once no writer holds them
- create_store backend selection and key helpers

Testing Strategy
----------------
- Real InMemoryDocumentStore, asyncio.gather for concurrency
- AAA pattern (Arrange, Act, Assert)
"""

import asyncio

import pytest

from questline.core.store import (
    InMemoryDocumentStore,
    RedisDocumentStore,
    create_store,
    daily_challenge_key,
    progression_key,
)


@pytest.mark.unit
class TestBasicOperations:
    async def test_get_missing_returns_none(self, store):
        assert await store.get("progression:nobody") is None

    async def test_set_then_get(self, store):
        await store.set("k", {"xp": 10})

        assert await store.get("k") == {"xp": 10}

    async def test_returned_documents_are_copies(self, store):
        # Arrange
        original = {"badges": ["first_quest"]}
        await store.set("k", original)

        # Act
        original["badges"].append("mutated")
        fetched = await store.get("k")
        fetched["badges"].append("mutated-again")

        # Assert
        assert await store.get("k") == {"badges": ["first_quest"]}

    async def test_delete(self, store):
        await store.set("k", {"xp": 1})

        assert await store.delete("k") is True
        assert await store.delete("k") is False
        assert await store.get("k") is None

    async def test_keys_listing(self, store):
        await store.set("b", {})
        await store.set("a", {})

        assert store.keys() == ["a", "b"]

    async def test_health_check(self, store):
        assert await store.health_check() is True


@pytest.mark.unit
class TestUpdateAtomic:
    async def test_creates_missing_document(self, store):
        stored = await store.update_atomic("k", lambda doc: {"xp": (doc or {}).get("xp", 0) + 5})

        assert stored == {"xp": 5}
        assert await store.get("k") == {"xp": 5}

    async def test_none_means_no_write(self, store):
        await store.set("k", {"xp": 3})

        stored = await store.update_atomic("k", lambda doc: None)

        assert stored == {"xp": 3}
        assert await store.get("k") == {"xp": 3}

    async def test_none_on_missing_document_writes_nothing(self, store):
        assert await store.update_atomic("k", lambda doc: None) is None
        assert store.keys() == []

    async def test_exception_in_update_leaves_document_untouched(self, store):
        await store.set("k", {"xp": 3})

        def boom(doc):
            raise ValueError("rejected")

        with pytest.raises(ValueError):
            await store.update_atomic("k", boom)

        assert await store.get("k") == {"xp": 3}

    async def test_concurrent_increments_are_not_lost(self, store):
        # Arrange
        def increment(doc):
            doc = doc or {"xp": 0}
            return {"xp": doc["xp"] + 1}

        # Act
        await asyncio.gather(*(store.update_atomic("counter", increment) for _ in range(50)))

        # Assert
        assert await store.get("counter") == {"xp": 50}

    async def test_per_key_locks_are_not_retained(self, store):
        # Arrange
        keys = [daily_challenge_key(f"u-{n}", "2026-03-14") for n in range(20)]

        # Act
        for key in keys:
            await store.update_atomic(key, lambda doc: {"status": "active"})
        await store.set("progression:u-1", {"xp": 1})
        await store.delete(keys[0])

        # Assert
        assert len(store._locks) == 0
        assert len(store.keys()) == 20


@pytest.mark.unit
class TestStoreFactory:
    def test_default_backend_is_memory(self):
        assert isinstance(create_store(), InMemoryDocumentStore)

    def test_redis_backend(self):
        store = create_store("redis")

        assert isinstance(store, RedisDocumentStore)
        assert store.name == "redis"

    def test_unknown_backend_rejected(self):
        with pytest.raises(ValueError):
            create_store("sqlite")

    def test_key_helpers(self):
        assert progression_key("u-1") == "progression:u-1"
        assert daily_challenge_key("u-1", "2026-03-14") == "daily_challenge:u-1:2026-03-14"
