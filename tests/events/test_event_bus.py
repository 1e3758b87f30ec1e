"""Tests for event bus functionality."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from ledgerdash.events import EventBus, EventHandlerError, PublishReport


class TestEventBus:
    """Test EventBus core functionality."""

    @pytest.fixture
    def event_bus(self):
        """Create event bus for testing."""
        return EventBus(name="unit")

    @pytest.mark.asyncio
    async def test_publish_without_handlers(self, event_bus):
        """Publishing with no subscribers settles with an empty report."""
        report = await event_bus.publish("invoice.created", {"key": "value"})

        assert isinstance(report, PublishReport)
        assert report.event_name == "invoice.created"
        assert report.handler_count == 0
        assert report.all_succeeded

    @pytest.mark.asyncio
    async def test_subscribe_and_handle(self, event_bus):
        """Test subscribing to and handling events."""
        received = []

        async def test_handler(payload):
            received.append(payload)

        event_bus.subscribe("test.event", test_handler)
        report = await event_bus.publish("test.event", {"test": "data"})

        assert received == [{"test": "data"}]
        assert report.handler_count == 1
        assert report.succeeded == 1

    @pytest.mark.asyncio
    async def test_multiple_handlers_same_event(self, event_bus):
        """Every handler registered for a name receives the payload."""
        first = AsyncMock()
        second = AsyncMock()
        sync_handler = MagicMock()

        event_bus.subscribe("test.event", first)
        event_bus.subscribe("test.event", second)
        event_bus.subscribe("test.event", sync_handler)

        await event_bus.publish("test.event", "payload")

        first.assert_awaited_once_with("payload")
        second.assert_awaited_once_with("payload")
        sync_handler.assert_called_once_with("payload")

    @pytest.mark.asyncio
    async def test_handlers_only_receive_their_event(self, event_bus):
        created = AsyncMock()
        deleted = AsyncMock()
        event_bus.subscribe("invoice.created", created)
        event_bus.subscribe("invoice.deleted", deleted)

        await event_bus.publish("invoice.created", "payload")

        created.assert_awaited_once()
        deleted.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_handler_failure_is_isolated(self, event_bus):
        """A failing handler neither stops its siblings nor reaches the publisher."""
        sibling = AsyncMock()

        async def failing_handler(payload):
            raise RuntimeError("boom")

        event_bus.subscribe("test.event", failing_handler)
        event_bus.subscribe("test.event", sibling)

        report = await event_bus.publish("test.event", {"x": 1})

        sibling.assert_awaited_once_with({"x": 1})
        assert report.handler_count == 2
        assert report.succeeded == 1
        assert not report.all_succeeded
        assert len(report.failures) == 1

        failure = report.failures[0]
        assert isinstance(failure, EventHandlerError)
        assert failure.event_name == "test.event"
        assert "failing_handler" in failure.handler_name
        assert isinstance(failure.cause, RuntimeError)

    @pytest.mark.asyncio
    async def test_sync_handler_failure_is_isolated(self, event_bus):
        def failing_handler(payload):
            raise ValueError("bad payload")

        event_bus.subscribe("test.event", failing_handler)

        report = await event_bus.publish("test.event", None)

        assert len(report.failures) == 1
        assert isinstance(report.failures[0].cause, ValueError)

    @pytest.mark.asyncio
    async def test_handlers_run_concurrently(self, event_bus):
        """Handlers of one publish overlap instead of running one after another."""
        started = asyncio.Event()
        order = []

        async def waits_for_sibling(payload):
            order.append("waiter-start")
            await asyncio.wait_for(started.wait(), timeout=1)
            order.append("waiter-end")

        async def signals(payload):
            order.append("signal")
            started.set()

        event_bus.subscribe("test.event", waits_for_sibling)
        event_bus.subscribe("test.event", signals)

        report = await event_bus.publish("test.event", None)

        assert report.all_succeeded
        assert order == ["waiter-start", "signal", "waiter-end"]

    @pytest.mark.asyncio
    async def test_unsubscribe(self, event_bus):
        handler = AsyncMock()
        event_bus.subscribe("test.event", handler)

        assert event_bus.unsubscribe("test.event", handler) is True
        assert event_bus.unsubscribe("test.event", handler) is False

        await event_bus.publish("test.event", None)
        handler.assert_not_awaited()

    def test_handlers_for_returns_copy(self, event_bus):
        handler = AsyncMock()
        event_bus.subscribe("test.event", handler)

        handlers = event_bus.handlers_for("test.event")
        handlers.clear()

        assert event_bus.handlers_for("test.event") == [handler]

    def test_clear(self, event_bus):
        event_bus.subscribe("a", AsyncMock())
        event_bus.subscribe("b", AsyncMock())

        event_bus.clear()

        assert event_bus.handlers_for("a") == []
        assert event_bus.handlers_for("b") == []


class TestBusIsolation:
    """Independent bus instances share no state."""

    @pytest.mark.asyncio
    async def test_separate_buses_do_not_share_handlers(self):
        bus_a = EventBus(name="a")
        bus_b = EventBus(name="b")
        handler = AsyncMock()
        bus_a.subscribe("test.event", handler)

        report = await bus_b.publish("test.event", None)

        assert report.handler_count == 0
        handler.assert_not_awaited()
