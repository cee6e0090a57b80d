"""
Tests for the Tasker event bus.
"""

import asyncio

import pytest

from tasker.events import Event, EventBus


class TestEvent:
    """Tests for Event dataclass."""

    def test_event_creation(self):
        event = Event(name="interpret.completed", payload={"tasks": 1})
        assert event.name == "interpret.completed"
        assert event.payload == {"tasks": 1}
        assert event.timestamp > 0
        assert len(event.event_id) == 36  # UUID length

    def test_event_str(self):
        event = Event(name="interpret.completed")
        assert "interpret.completed" in str(event)


class TestEventBus:
    """Tests for EventBus class."""

    @pytest.fixture
    def bus(self):
        return EventBus(handler_timeout=5.0)

    @pytest.mark.asyncio
    async def test_subscribe_and_emit(self, bus: EventBus):
        received = []

        async def handler(event: Event):
            received.append(event)

        bus.subscribe("interpret.completed", handler)
        event = await bus.emit("interpret.completed", {"tasks": 2})

        assert len(received) == 1
        assert received[0] is event
        assert received[0].payload == {"tasks": 2}

    @pytest.mark.asyncio
    async def test_multiple_handlers_run_in_order(self, bus: EventBus):
        results = []

        async def handler1(event: Event):
            results.append("handler1")

        async def handler2(event: Event):
            results.append("handler2")

        bus.subscribe("interpret.fallback", handler1)
        bus.subscribe("interpret.fallback", handler2)
        await bus.emit("interpret.fallback")

        assert results == ["handler1", "handler2"]

    @pytest.mark.asyncio
    async def test_wildcard_subscription(self, bus: EventBus):
        received = []

        async def handler(event: Event):
            received.append(event.name)

        bus.subscribe("interpret.*", handler)
        await bus.emit("interpret.completed")
        await bus.emit("interpret.degraded")
        await bus.emit("clarification.opened")

        assert received == ["interpret.completed", "interpret.degraded"]

    @pytest.mark.asyncio
    async def test_global_wildcard(self, bus: EventBus):
        received = []

        async def handler(event: Event):
            received.append(event.name)

        bus.subscribe("*", handler)
        await bus.emit("interpret.completed")
        await bus.emit("clarification.resolved")

        assert len(received) == 2

    @pytest.mark.asyncio
    async def test_unsubscribe(self, bus: EventBus):
        received = []

        async def handler(event: Event):
            received.append(event)

        bus.subscribe("interpret.completed", handler)
        assert bus.unsubscribe("interpret.completed", handler) is True
        await bus.emit("interpret.completed")

        assert received == []

    def test_unsubscribe_not_found(self, bus: EventBus):
        async def handler(event: Event):
            pass

        assert bus.unsubscribe("nonexistent", handler) is False

    @pytest.mark.asyncio
    async def test_handler_error_isolation(self, bus: EventBus):
        results = []

        async def bad_handler(event: Event):
            raise ValueError("Handler error")

        async def good_handler(event: Event):
            results.append("success")

        bus.subscribe("interpret.completed", bad_handler)
        bus.subscribe("interpret.completed", good_handler)
        await bus.emit("interpret.completed")

        assert results == ["success"]

    @pytest.mark.asyncio
    async def test_handler_timeout(self):
        bus = EventBus(handler_timeout=0.05)
        results = []

        async def slow_handler(event: Event):
            await asyncio.sleep(10)

        async def fast_handler(event: Event):
            results.append("fast")

        bus.subscribe("interpret.completed", slow_handler)
        bus.subscribe("interpret.completed", fast_handler)
        await bus.emit("interpret.completed")

        assert results == ["fast"]
