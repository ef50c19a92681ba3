"""
Questline EventBus (2025): async pub/sub with tiered listener execution.

Purpose
-------
Decouple the progression services from whatever reacts to their outcomes
(notifications, analytics, UI push) by publishing named events such as
`progression.badge_unlocked` or `daily.challenge_completed`.

Responsibilities
----------------
- Register/unregister listeners with priorities
- Publish to exact-name and wildcard (`progression.*`) subscribers
- Execute listeners per tier:
  * CRITICAL / HIGH: sequential, awaited with timeout
  * NORMAL: concurrent (gather), awaited
  * LOW: fire-and-forget background tasks
- Error isolation (one failing listener never blocks others or the publisher)

Design Decisions
----------------
- Instance-based; the service container owns one bus, tests build their own.
- Listener timeouts come from ConfigManager (`core.event.listener_timeout_seconds`).
- Sync callbacks run in the default executor so they never block the loop.
"""

from __future__ import annotations

import asyncio
import inspect
from collections import Counter
from fnmatch import fnmatchcase
from typing import Any, Optional

from questline.core.config.manager import ConfigManager
from questline.core.event.types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
)
from questline.core.exceptions import EventBusError
from questline.core.logging.logger import get_logger

logger = get_logger(__name__)


class EventBus:
    """
    Async EventBus with tiered concurrency.

    Examples
    --------
    >>> bus = EventBus()
    >>> bus.subscribe("progression.level_up", on_level_up, priority=ListenerPriority.HIGH)
    >>> await bus.publish("progression.level_up", {"user_id": "u-1", "new_level": "Expert"})
    """

    def __init__(
        self,
        config_manager: Optional[type[ConfigManager]] = None,
        *,
        listener_timeout_seconds: Optional[float] = None,
    ) -> None:
        self._listeners: dict[str, list[EventListener]] = {}
        self._background_tasks: set[asyncio.Task[Any]] = set()
        self._published: Counter[str] = Counter()
        self._errors: Counter[str] = Counter()

        if listener_timeout_seconds is not None:
            self._timeout = float(listener_timeout_seconds)
        elif config_manager is not None:
            self._timeout = float(
                config_manager.get("core.event.listener_timeout_seconds", 5.0)
            )
        else:
            self._timeout = 5.0

        logger.debug("EventBus initialized", extra={"listener_timeout_seconds": self._timeout})

    # ------------------------------------------------------------------ #
    # Subscription API
    # ------------------------------------------------------------------ #

    @staticmethod
    def _validate_callback_signature(event_name: str, callback: CallbackType) -> None:
        try:
            sig = inspect.signature(callback)
        except (TypeError, ValueError):
            # Built-ins may not expose a signature; trust the caller.
            return

        if len(sig.parameters) != 1:
            name = getattr(callback, "__qualname__", repr(callback))
            raise EventBusError(
                event_name,
                f"listener '{name}' must accept exactly 1 parameter, got {len(sig.parameters)}",
            )

    def subscribe(
        self,
        event_name: str,
        callback: CallbackType,
        *,
        priority: ListenerPriority = ListenerPriority.NORMAL,
        identifier: Optional[str] = None,
        once: bool = False,
    ) -> str:
        """
        Subscribe a callback to an event name or wildcard pattern.

        Returns
        -------
        str:
            The listener identifier (for unsubscribing later).

        Raises
        ------
        EventBusError:
            If the callback does not take exactly one parameter.
        """
        self._validate_callback_signature(event_name, callback)

        listener = EventListener.from_callback(
            event_name=event_name,
            callback=callback,
            priority=priority,
            identifier=identifier,
            once=once,
        )
        bucket = self._listeners.setdefault(event_name, [])

        if any(existing.identifier == listener.identifier for existing in bucket):
            logger.warning(
                "EventBus: duplicate listener prevented",
                extra={"event_name": event_name, "listener_id": listener.identifier},
            )
            return listener.identifier

        bucket.append(listener)
        logger.debug(
            "EventBus: subscribed listener",
            extra={
                "event_name": event_name,
                "listener_id": listener.identifier,
                "priority": listener.priority.name,
            },
        )
        return listener.identifier

    def unsubscribe(self, event_name: str, identifier: str) -> bool:
        bucket = self._listeners.get(event_name, [])
        remaining = [lst for lst in bucket if lst.identifier != identifier]
        removed = len(remaining) != len(bucket)
        if remaining:
            self._listeners[event_name] = remaining
        else:
            self._listeners.pop(event_name, None)
        return removed

    def clear(self) -> None:
        self._listeners.clear()

    def _extract_listeners(self, event_name: str) -> list[EventListener]:
        matched: list[EventListener] = []
        for pattern in list(self._listeners):
            if pattern != event_name and not fnmatchcase(event_name, pattern):
                continue
            bucket = self._listeners[pattern]
            matched.extend(bucket)
            kept = [lst for lst in bucket if not lst.once]
            if kept:
                self._listeners[pattern] = kept
            else:
                del self._listeners[pattern]
        # sort is stable, so registration order holds within a tier
        matched.sort(key=lambda lst: lst.priority.value)
        return matched

    # ------------------------------------------------------------------ #
    # Publish API
    # ------------------------------------------------------------------ #

    async def publish(self, event_name: str, data: EventPayload) -> list[Any]:
        """
        Publish an event to every matching listener.

        Returns
        -------
        list[Any]:
            Results from CRITICAL/HIGH/NORMAL listeners (None for listeners
            that failed or timed out). LOW listeners are not awaited.
        """
        self._published[event_name] += 1
        listeners = self._extract_listeners(event_name)

        logger.debug(
            "EventBus: publishing event",
            extra={
                "event_name": event_name,
                "payload_keys": sorted(data.keys()),
                "listener_count": len(listeners),
            },
        )

        results: list[Any] = []
        for listener in listeners:
            if listener.priority in (ListenerPriority.CRITICAL, ListenerPriority.HIGH):
                results.append(await self._run_with_timeout(listener, event_name, data))

        normal = [lst for lst in listeners if lst.priority is ListenerPriority.NORMAL]
        if normal:
            results.extend(
                await asyncio.gather(
                    *(self._run_listener(lst, event_name, data) for lst in normal)
                )
            )

        for listener in listeners:
            if listener.priority is ListenerPriority.LOW:
                task = asyncio.get_running_loop().create_task(
                    self._run_listener(listener, event_name, data),
                    name=f"eventbus-low-{event_name}-{listener.identifier}",
                )
                self._background_tasks.add(task)
                task.add_done_callback(self._background_tasks.discard)

        return results

    async def _run_with_timeout(
        self, listener: EventListener, event_name: str, payload: EventPayload
    ) -> Any:
        if self._timeout <= 0:
            return await self._run_listener(listener, event_name, payload)
        try:
            return await asyncio.wait_for(
                self._run_listener(listener, event_name, payload), timeout=self._timeout
            )
        except asyncio.TimeoutError:
            self._errors[event_name] += 1
            logger.error(
                "EventBus listener timeout",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "timeout_seconds": self._timeout,
                },
            )
            return None

    async def _run_listener(
        self, listener: EventListener, event_name: str, payload: EventPayload
    ) -> Any:
        try:
            if inspect.iscoroutinefunction(listener.callback):
                return await listener.callback(payload)
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, listener.callback, payload)
        except Exception as exc:
            self._errors[event_name] += 1
            logger.error(
                "EventBus listener failed",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
                exc_info=True,
            )
            return None

    async def drain(self) -> None:
        """Await all in-flight LOW-priority listeners."""
        if self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def get_listener_count(self, event_name: Optional[str] = None) -> int:
        if event_name is None:
            return sum(len(bucket) for bucket in self._listeners.values())
        return sum(
            len(bucket)
            for pattern, bucket in self._listeners.items()
            if pattern == event_name or fnmatchcase(event_name, pattern)
        )

    def get_metrics_summary(self) -> dict[str, Any]:
        total = sum(self._published.values())
        errors = sum(self._errors.values())
        return {
            "total_events_published": total,
            "events_by_type": dict(self._published),
            "total_errors": errors,
            "errors_by_event": dict(self._errors),
            "total_listeners": self.get_listener_count(),
        }
