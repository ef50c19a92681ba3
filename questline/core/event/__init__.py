"""
Event system for Questline (2025).

Instance-based EventBus; the ServiceContainer owns the runtime instance.

Event names
-----------
- progression.streak_updated
- progression.quest_completed
- progression.xp_awarded
- progression.level_up
- progression.badge_unlocked
- daily.challenge_created
- daily.challenge_rerolled
- daily.challenge_completed
"""

from questline.core.event.bus import EventBus
from questline.core.event.types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
)

__all__ = [
    "EventBus",
    "EventPayload",
    "ListenerPriority",
    "EventListener",
    "CallbackType",
]
