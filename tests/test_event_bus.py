"""Tests for the async EventBus."""

import logging

import pytest

from sitegen_stream.events.bus import ALL_EVENTS, EventBus
from sitegen_stream.types import (
    IDLE_VIEW,
    ClientViewState,
    EventType,
    GenerationEvent,
    Phase,
)


@pytest.fixture
def bus():
    return EventBus()


class TestDelivery:
    @pytest.mark.asyncio
    async def test_async_and_sync_handlers(self, bus: EventBus):
        received = []

        async def async_handler(event: GenerationEvent):
            received.append(("async", event.type))

        bus.subscribe(EventType.GENERATION_PHASE, async_handler)
        bus.subscribe(EventType.GENERATION_PHASE, lambda e: received.append(("sync", e.type)))
        await bus.emit(GenerationEvent(type=EventType.GENERATION_PHASE))

        assert ("async", EventType.GENERATION_PHASE) in received
        assert ("sync", EventType.GENERATION_PHASE) in received

    @pytest.mark.asyncio
    async def test_no_cross_delivery(self, bus: EventBus):
        received = []
        bus.subscribe(EventType.GENERATION_COMPLETED, received.append)
        await bus.emit(GenerationEvent(type=EventType.GENERATION_FAILED))
        assert received == []

    @pytest.mark.asyncio
    async def test_string_topic_matches_enum(self, bus: EventBus):
        received = []
        bus.subscribe("generation.markup", received.append)
        await bus.emit(GenerationEvent(type=EventType.GENERATION_MARKUP))
        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_all_events(self, bus: EventBus):
        received = []
        bus.subscribe(ALL_EVENTS, lambda e: received.append(e.type))
        await bus.emit(GenerationEvent(type=EventType.GENERATION_STARTED))
        await bus.emit(GenerationEvent(type=EventType.GENERATION_CANCELLED))
        assert received == [EventType.GENERATION_STARTED, EventType.GENERATION_CANCELLED]


class TestUnsubscribe:
    @pytest.mark.asyncio
    async def test_unsubscribe(self, bus: EventBus):
        received = []
        bus.subscribe(EventType.GENERATION_MARKUP, received.append)
        await bus.emit(GenerationEvent(type=EventType.GENERATION_MARKUP))
        bus.unsubscribe(EventType.GENERATION_MARKUP, received.append)
        await bus.emit(GenerationEvent(type=EventType.GENERATION_MARKUP))
        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_returned_remover(self, bus: EventBus):
        received = []
        remove = bus.subscribe(ALL_EVENTS, received.append)
        remove()
        await bus.emit(GenerationEvent(type=EventType.GENERATION_STARTED))
        assert received == []

    def test_unsubscribe_unknown_handler(self, bus: EventBus):
        bus.unsubscribe(EventType.GENERATION_MARKUP, print)


class TestHistory:
    @pytest.mark.asyncio
    async def test_history_limit(self):
        bus = EventBus(max_history=3)
        for i in range(6):
            await bus.emit(GenerationEvent(type=EventType.GENERATION_REASONING, data={"i": i}))
        assert [e.data["i"] for e in bus.history] == [3, 4, 5]

    @pytest.mark.asyncio
    async def test_latest_view(self, bus: EventBus):
        assert bus.latest_view == IDLE_VIEW
        view = ClientViewState(active=True, phase=Phase.DESIGNING)
        await bus.emit(GenerationEvent(type=EventType.GENERATION_PHASE, view=view))
        assert bus.latest_view.phase is Phase.DESIGNING

    @pytest.mark.asyncio
    async def test_clear(self, bus: EventBus):
        received = []
        bus.subscribe(ALL_EVENTS, received.append)
        await bus.emit(GenerationEvent(type=EventType.GENERATION_STARTED))
        bus.clear()
        await bus.emit(GenerationEvent(type=EventType.GENERATION_FAILED))
        assert len(received) == 1
        assert [e.type for e in bus.history] == [EventType.GENERATION_FAILED]


class TestErrorHandling:
    @pytest.mark.asyncio
    async def test_handler_exception_is_logged(self, bus: EventBus, caplog):
        async def bad_handler(event: GenerationEvent):
            raise ValueError("boom")

        received = []
        bus.subscribe(EventType.GENERATION_FAILED, bad_handler)
        bus.subscribe(EventType.GENERATION_FAILED, received.append)

        with caplog.at_level(logging.ERROR, logger="sitegen_stream.events.bus"):
            await bus.emit(GenerationEvent(type=EventType.GENERATION_FAILED))

        assert len(received) == 1
        assert "bad_handler" in caplog.text
