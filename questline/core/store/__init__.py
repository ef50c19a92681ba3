"""
Document store infrastructure.

Public API:
    DocumentStore          - abstract get / set / update_atomic contract
    InMemoryDocumentStore  - per-key asyncio.Lock, deep copies
    RedisDocumentStore     - WATCH/MULTI/EXEC optimistic transactions
    create_store           - build the store named by Config.STORE_BACKEND
"""

from __future__ import annotations

from typing import Optional

from questline.core.config.config import Config, StoreBackend
from questline.core.store.base import (
    Document,
    DocumentStore,
    UpdateFn,
    daily_challenge_key,
    progression_key,
)
from questline.core.store.memory import InMemoryDocumentStore
from questline.core.store.redis_store import RedisDocumentStore


def create_store(backend: Optional[str] = None) -> DocumentStore:
    if StoreBackend(backend or Config.STORE_BACKEND) is StoreBackend.REDIS:
        return RedisDocumentStore()
    return InMemoryDocumentStore()


__all__ = [
    "Document",
    "DocumentStore",
    "UpdateFn",
    "InMemoryDocumentStore",
    "RedisDocumentStore",
    "create_store",
    "daily_challenge_key",
    "progression_key",
]
