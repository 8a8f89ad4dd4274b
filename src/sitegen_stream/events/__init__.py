"""Event bus for generation view updates."""

from sitegen_stream.events.bus import ALL_EVENTS, EventBus, Handler

__all__ = ["ALL_EVENTS", "EventBus", "Handler"]
