"""
RedisDocumentStore: JSON documents in Redis with optimistic transactions.

Purpose
-------
Persist progression and daily-challenge documents as JSON strings and give
`update_atomic` real cross-process atomicity using WATCH/MULTI/EXEC.

Responsibilities
----------------
- Own one `redis.asyncio` client (connection pool) per store instance
- Serialise documents as compact JSON
- Retry optimistic transactions that lose to a concurrent writer
- Translate redis-py failures into `StoreUnavailableError`

Non-Responsibilities
--------------------
- Business logic of any kind
- Network-level retries (the caller degrades instead)

Configuration Keys
------------------
- store.redis.url                  : str (falls back to Config.REDIS_URL)
- store.redis.socket_timeout       : float (falls back to Config.REDIS_SOCKET_TIMEOUT)
- store.redis.max_connections      : int (default 20)
- store.max_retries                : int (default 5)
- store.retry_backoff_seconds      : float (default 0.01)

Architecture Notes
------------------
- WATCH key, read, compute `fn(doc)`, MULTI, SET, EXEC. A WatchError means
  another writer committed first; the whole read-compute-write is retried
  with the fresh document.
- Backoff between conflicting attempts is exponential with jitter.
"""

from __future__ import annotations

import asyncio
import json
import random
import time
from typing import Any, Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError, WatchError

from questline.core.config import ConfigManager
from questline.core.config.config import Config
from questline.core.exceptions import StoreConflictError, StoreUnavailableError
from questline.core.logging.logger import get_logger
from questline.core.store.base import Document, DocumentStore, UpdateFn

logger = get_logger(__name__)


def _encode(value: Document) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, sort_keys=True)


def _decode(raw: Any, key: str) -> Optional[Document]:
    if raw is None:
        return None
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    try:
        doc = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.error(
            "Stored document is not valid JSON",
            extra={"key": key, "error": str(exc)},
        )
        raise StoreUnavailableError("decode", key, exc) from exc
    if not isinstance(doc, dict):
        raise StoreUnavailableError("decode", key, TypeError(f"expected object, got {type(doc).__name__}"))
    return doc


class RedisDocumentStore(DocumentStore):
    """
    Document store backed by Redis.

    Args:
        url: Redis URL; defaults to config
        client: Pre-built client (tests); the store will not close it
        max_retries: Optimistic retry limit; defaults to config
    """

    name = "redis"

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        client: Optional[Redis] = None,
        max_retries: Optional[int] = None,
    ) -> None:
        self._url = url or ConfigManager.get("store.redis.url") or Config.REDIS_URL
        self._client: Optional[Redis] = client
        self._owns_client = client is None
        self._max_retries = int(
            max_retries if max_retries is not None else ConfigManager.get("store.max_retries", 5)
        )
        self._backoff = float(ConfigManager.get("store.retry_backoff_seconds", 0.01))
        self._conflicts = 0

    # ═══════════════════════════════════════════════════════════════════════
    # LIFECYCLE
    # ═══════════════════════════════════════════════════════════════════════

    async def initialize(self) -> None:
        if self._client is None:
            self._client = Redis.from_url(
                self._url,
                socket_timeout=float(
                    ConfigManager.get("store.redis.socket_timeout", Config.REDIS_SOCKET_TIMEOUT)
                ),
                max_connections=int(ConfigManager.get("store.redis.max_connections", 20)),
                decode_responses=True,
            )

        start_time = time.monotonic()
        try:
            await self._client.ping()
        except RedisError as exc:
            logger.critical(
                "Failed to connect RedisDocumentStore",
                extra={
                    "url_scheme": self._url.split("://")[0] if "://" in self._url else "unknown",
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
                exc_info=True,
            )
            raise StoreUnavailableError("connect", self._url, exc) from exc

        logger.info(
            "RedisDocumentStore initialized",
            extra={
                "url_scheme": self._url.split("://")[0] if "://" in self._url else "unknown",
                "max_retries": self._max_retries,
                "initialization_time_ms": round((time.monotonic() - start_time) * 1000, 2),
            },
        )

    async def shutdown(self) -> None:
        client, self._client = self._client, None
        if client is not None and self._owns_client:
            await client.aclose()
            logger.info("RedisDocumentStore closed")

    async def health_check(self) -> bool:
        if self._client is None:
            return False
        try:
            return bool(await self._client.ping())
        except RedisError as exc:
            logger.warning("Redis health check failed", extra={"error": str(exc)})
            return False

    def _require_client(self, operation: str, key: str) -> Redis:
        if self._client is None:
            raise StoreUnavailableError(operation, key, RuntimeError("store not initialized"))
        return self._client

    # ═══════════════════════════════════════════════════════════════════════
    # DOCUMENT OPERATIONS
    # ═══════════════════════════════════════════════════════════════════════

    async def get(self, key: str) -> Optional[Document]:
        client = self._require_client("get", key)
        try:
            raw = await client.get(key)
        except RedisError as exc:
            logger.error(
                "Redis GET failed",
                extra={"key": key, "error": str(exc), "error_type": type(exc).__name__},
            )
            raise StoreUnavailableError("get", key, exc) from exc
        return _decode(raw, key)

    async def set(self, key: str, value: Document) -> None:
        client = self._require_client("set", key)
        try:
            await client.set(key, _encode(value))
        except RedisError as exc:
            logger.error(
                "Redis SET failed",
                extra={"key": key, "error": str(exc), "error_type": type(exc).__name__},
            )
            raise StoreUnavailableError("set", key, exc) from exc

    async def delete(self, key: str) -> bool:
        client = self._require_client("delete", key)
        try:
            return bool(await client.delete(key))
        except RedisError as exc:
            raise StoreUnavailableError("delete", key, exc) from exc

    async def update_atomic(self, key: str, fn: UpdateFn) -> Optional[Document]:
        client = self._require_client("update_atomic", key)
        attempts = 0

        try:
            async with client.pipeline(transaction=True) as pipe:
                while attempts < self._max_retries:
                    attempts += 1
                    try:
                        await pipe.watch(key)
                        current = _decode(await pipe.get(key), key)
                        updated = fn(current)
                        if updated is None:
                            await pipe.unwatch()
                            return current

                        pipe.multi()
                        pipe.set(key, _encode(updated))
                        await pipe.execute()
                        if attempts > 1:
                            logger.info(
                                "Atomic update committed after retry",
                                extra={"key": key, "attempts": attempts},
                            )
                        return updated
                    except WatchError:
                        self._conflicts += 1
                        logger.debug(
                            "Optimistic transaction conflict",
                            extra={"key": key, "attempt": attempts},
                        )
                        await pipe.reset()
                        await asyncio.sleep(self._delay(attempts))
        except RedisError as exc:
            logger.error(
                "Redis atomic update failed",
                extra={
                    "key": key,
                    "attempts": attempts,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            raise StoreUnavailableError("update_atomic", key, exc) from exc

        logger.warning(
            "Atomic update gave up after repeated conflicts",
            extra={"key": key, "attempts": attempts},
        )
        raise StoreConflictError(key, attempts)

    def _delay(self, attempt: int) -> float:
        if self._backoff <= 0:
            return 0.0
        delay = min(self._backoff * (2 ** (attempt - 1)), 1.0)
        return delay * random.uniform(0.5, 1.0)

    def get_metrics(self) -> dict[str, Any]:
        return {"store": self.name, "conflicts": self._conflicts, "max_retries": self._max_retries}
