"""
In-process document store.

Used for development, tests and single-process deployments. Documents are
deep-copied on the way in and out, so callers can never mutate stored state
by reference. `update_atomic` serialises writers per key with an
`asyncio.Lock`; locks are held weakly and disappear once no writer uses them.
"""

from __future__ import annotations

import asyncio
import copy
import weakref
from typing import Dict, Optional

from questline.core.logging.logger import get_logger
from questline.core.store.base import Document, DocumentStore, UpdateFn

logger = get_logger(__name__)


class InMemoryDocumentStore(DocumentStore):
    name = "memory"

    def __init__(self) -> None:
        self._documents: Dict[str, Document] = {}
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    async def get(self, key: str) -> Optional[Document]:
        doc = self._documents.get(key)
        return copy.deepcopy(doc) if doc is not None else None

    async def set(self, key: str, value: Document) -> None:
        async with self._lock_for(key):
            self._documents[key] = copy.deepcopy(value)

    async def update_atomic(self, key: str, fn: UpdateFn) -> Optional[Document]:
        async with self._lock_for(key):
            current = self._documents.get(key)
            updated = fn(copy.deepcopy(current) if current is not None else None)
            if updated is None:
                return copy.deepcopy(current) if current is not None else None
            self._documents[key] = copy.deepcopy(updated)
            logger.debug("Document updated", extra={"key": key, "store": self.name})
            return copy.deepcopy(updated)

    async def delete(self, key: str) -> bool:
        async with self._lock_for(key):
            return self._documents.pop(key, None) is not None

    def keys(self) -> list[str]:
        return sorted(self._documents)
