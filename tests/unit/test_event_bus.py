"""
Unit Tests for the EventBus
===========================

Purpose
-------
Verify subscription, tiered publishing and error isolation of the async
EventBus used for progression and daily-challenge events.

Test Coverage
-------------
- Exact and wildcard subscriptions
- Priority ordering and once-listeners
- Listener failures never reach the publisher
- Callback signature validation
- Metrics summary

Testing Strategy
----------------
- Real EventBus with plain async/sync callables
- AAA pattern (Arrange, Act, Assert)
"""

import pytest

from questline.core.event.bus import EventBus
from questline.core.event.types import ListenerPriority
from questline.core.exceptions import EventBusError


@pytest.fixture
def bus():
    return EventBus(listener_timeout_seconds=1.0)


@pytest.mark.unit
class TestSubscribeAndPublish:
    async def test_exact_subscription_receives_payload(self, bus):
        # Arrange
        received = []

        async def on_level_up(payload):
            received.append(payload)

        bus.subscribe("progression.level_up", on_level_up)

        # Act
        await bus.publish("progression.level_up", {"user_id": "u-1", "new_level": "Expert"})

        # Assert
        assert received == [{"user_id": "u-1", "new_level": "Expert"}]

    async def test_wildcard_subscription(self, bus):
        received = []

        async def on_any(payload):
            received.append(payload["n"])

        bus.subscribe("progression.*", on_any)

        await bus.publish("progression.badge_unlocked", {"n": 1})
        await bus.publish("daily.challenge_created", {"n": 2})

        assert received == [1]

    async def test_sync_callbacks_supported(self, bus):
        received = []
        bus.subscribe("daily.challenge_completed", lambda payload: received.append(payload))

        await bus.publish("daily.challenge_completed", {"xp": 100})

        assert received == [{"xp": 100}]

    async def test_priority_order(self, bus):
        order = []

        async def normal(payload):
            order.append("normal")

        async def critical(payload):
            order.append("critical")

        async def high(payload):
            order.append("high")

        bus.subscribe("e", normal)
        bus.subscribe("e", critical, priority=ListenerPriority.CRITICAL)
        bus.subscribe("e", high, priority=ListenerPriority.HIGH)

        await bus.publish("e", {})

        assert order == ["critical", "high", "normal"]

    async def test_low_priority_runs_in_background(self, bus):
        received = []

        async def low(payload):
            received.append(payload)

        bus.subscribe("e", low, priority=ListenerPriority.LOW)

        await bus.publish("e", {"x": 1})
        await bus.drain()

        assert received == [{"x": 1}]

    async def test_once_listener_removed_after_first_event(self, bus):
        calls = []

        async def once(payload):
            calls.append(payload)

        bus.subscribe("e", once, once=True)

        await bus.publish("e", {})
        await bus.publish("e", {})

        assert len(calls) == 1
        assert bus.get_listener_count("e") == 0

    async def test_unsubscribe(self, bus):
        async def listener(payload):
            return payload

        identifier = bus.subscribe("e", listener)

        assert bus.unsubscribe("e", identifier) is True
        assert bus.get_listener_count() == 0

    async def test_duplicate_identifier_ignored(self, bus):
        async def listener(payload):
            return payload

        bus.subscribe("e", listener, identifier="same")
        bus.subscribe("e", listener, identifier="same")

        assert bus.get_listener_count("e") == 1


@pytest.mark.unit
class TestErrorIsolation:
    async def test_failing_listener_does_not_block_others(self, bus):
        # Arrange
        received = []

        async def broken(payload):
            raise RuntimeError("listener bug")

        async def healthy(payload):
            received.append(payload)

        bus.subscribe("e", broken)
        bus.subscribe("e", healthy)

        # Act
        results = await bus.publish("e", {"ok": True})

        # Assert
        assert received == [{"ok": True}]
        assert None in results
        assert bus.get_metrics_summary()["errors_by_event"] == {"e": 1}

    def test_wrong_signature_rejected(self, bus):
        async def two_args(payload, extra):
            return None

        with pytest.raises(EventBusError):
            bus.subscribe("e", two_args)

    async def test_metrics_count_published_events(self, bus):
        await bus.publish("a", {})
        await bus.publish("a", {})
        await bus.publish("b", {})

        summary = bus.get_metrics_summary()

        assert summary["total_events_published"] == 3
        assert summary["events_by_type"] == {"a": 2, "b": 1}

    def test_timeout_read_from_config(self, config_manager):
        config_manager.override("core.event.listener_timeout_seconds", 2.5)

        bus = EventBus(config_manager)

        assert bus._timeout == 2.5
