"""Pub/sub for generation view updates.

The stream consumer publishes one :class:`GenerationEvent` per view change.
A renderer subscribes to the event types it draws (or ``"*"`` for all of
them) and may attach late: :attr:`EventBus.latest_view` is the view carried
by the newest event.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import defaultdict, deque
from typing import Any, Callable

from sitegen_stream.types import IDLE_VIEW, ClientViewState, EventType, GenerationEvent

_logger = logging.getLogger(__name__)

ALL_EVENTS = "*"

Handler = Callable[[GenerationEvent], Any]


def _topic(event_type: EventType | str) -> str:
    return event_type.value if isinstance(event_type, EventType) else str(event_type)


async def _deliver(handler: Handler, event: GenerationEvent) -> None:
    try:
        result = handler(event)
        if inspect.isawaitable(result):
            await result
    except Exception:
        _logger.exception(
            "Handler %s failed on %s",
            getattr(handler, "__name__", handler), event.type.value,
        )


class EventBus:
    """Fans each generation event out to its subscribers.

    Handlers may be plain functions or coroutines.  A failing handler is
    logged and never interrupts the stream being rendered.  ``emit()``
    returns once every handler has run, so events reach a handler in the
    order they were emitted.
    """

    def __init__(self, max_history: int = 200) -> None:
        self._subscribers: defaultdict[str, list[Handler]] = defaultdict(list)
        self._recent: deque[GenerationEvent] = deque(maxlen=max_history)

    def subscribe(
        self, event_type: EventType | str, handler: Handler,
    ) -> Callable[[], None]:
        """Call *handler* for *event_type*.

        Returns a function that removes the subscription again.
        """
        self._subscribers[_topic(event_type)].append(handler)
        return lambda: self.unsubscribe(event_type, handler)

    def unsubscribe(self, event_type: EventType | str, handler: Handler) -> None:
        handlers = self._subscribers.get(_topic(event_type))
        if handlers and handler in handlers:
            handlers.remove(handler)

    async def emit(self, event: GenerationEvent) -> None:
        self._recent.append(event)
        targets = [
            *self._subscribers.get(event.type.value, ()),
            *self._subscribers.get(ALL_EVENTS, ()),
        ]
        if targets:
            await asyncio.gather(*(_deliver(h, event) for h in targets))

    @property
    def history(self) -> list[GenerationEvent]:
        """Most recent events, oldest first."""
        return list(self._recent)

    @property
    def latest_view(self) -> ClientViewState:
        return self._recent[-1].view if self._recent else IDLE_VIEW

    def clear(self) -> None:
        self._subscribers.clear()
        self._recent.clear()
