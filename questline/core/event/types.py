"""
Core Event Types for the Questline EventBus (2025).

Purpose
-------
Type definitions shared by the event system: payload alias, listener
priorities, callback union and the immutable listener record.

Priority Levels
---------------
- CRITICAL (0): Sequential, awaited, timeout-protected.
- HIGH (10): Sequential, awaited, timeout-protected.
- NORMAL (50): Concurrent, awaited.
- LOW (100): Fire-and-forget.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

EventPayload = dict[str, Any]


class ListenerPriority(Enum):
    """Lower values run earlier."""

    CRITICAL = 0
    HIGH = 10
    NORMAL = 50
    LOW = 100


CallbackType = Union[
    Callable[[EventPayload], Any],
    Callable[[EventPayload], Awaitable[Any]],
]


@dataclass(slots=True, frozen=True)
class EventListener:
    """
    A registered event listener.

    Attributes
    ----------
    callback:
        Async or sync callable invoked with the event payload.
    priority:
        Determines execution order and concurrency tier.
    identifier:
        Unique id used for deduplication and unsubscription.
    once:
        Remove the listener before its first execution.
    """

    callback: CallbackType
    priority: ListenerPriority
    identifier: str
    once: bool = False

    @classmethod
    def from_callback(
        cls,
        event_name: str,
        callback: CallbackType,
        priority: ListenerPriority,
        identifier: Optional[str],
        once: bool,
    ) -> EventListener:
        """
        Build a listener, deriving the identifier from the callback when absent.

        >>> EventListener.from_callback(
        ...     "progression.badge_unlocked", notify, ListenerPriority.NORMAL, None, False
        ... ).identifier
        'app.notifications.notify@progression.badge_unlocked'
        """
        if identifier is None:
            module = getattr(callback, "__module__", None) or "unknown"
            name = getattr(callback, "__qualname__", None) or repr(callback)
            identifier = f"{module}.{name}@{event_name}"
        return cls(callback=callback, priority=priority, identifier=identifier, once=once)
