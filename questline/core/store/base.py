"""
Document store contract.

Purpose
-------
Keyed JSON-document persistence with one atomic read-modify-write primitive.
Every state mutation in the engine goes through `update_atomic`, so a
user's progression document is never written from a stale read.

Contract
--------
- `get(key)` returns a deep copy of the stored document, or None.
- `set(key, value)` replaces the document.
- `update_atomic(key, fn)` calls `fn(current_or_None)` and writes the
  returned document atomically with respect to other writers of `key`.
  `fn` must be pure; it may be called more than once on conflict.
  Returning None from `fn` means "no change" and nothing is written.
- Transport failures surface as `StoreUnavailableError`; exhausted
  optimistic retries as `StoreConflictError`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

Document = Dict[str, Any]
UpdateFn = Callable[[Optional[Document]], Optional[Document]]


def progression_key(user_id: str) -> str:
    return f"progression:{user_id}"


def daily_challenge_key(user_id: str, day: str) -> str:
    return f"daily_challenge:{user_id}:{day}"


class DocumentStore(ABC):
    """Abstract keyed document store."""

    name: str = "abstract"

    @abstractmethod
    async def get(self, key: str) -> Optional[Document]:
        ...

    @abstractmethod
    async def set(self, key: str, value: Document) -> None:
        ...

    @abstractmethod
    async def update_atomic(self, key: str, fn: UpdateFn) -> Optional[Document]:
        """
        Apply `fn` to the current document and persist the result.

        Returns:
            The document now stored under `key` (the unchanged current
            document when `fn` returned None)
        """

    @abstractmethod
    async def delete(self, key: str) -> bool:
        ...

    async def initialize(self) -> None:
        """Open connections; no-op for stores without any."""

    async def shutdown(self) -> None:
        """Release connections; no-op for stores without any."""

    async def health_check(self) -> bool:
        return True
