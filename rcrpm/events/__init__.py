"""Event bus and registered handlers."""

from rcrpm.events import identity, notifications  # noqa: F401
from rcrpm.events.bus import Event, EventBus, EventPublisher, HandlerContext, event_bus, get_event_publisher

__all__ = [
    "Event",
    "EventBus",
    "EventPublisher",
    "HandlerContext",
    "event_bus",
    "get_event_publisher",
]
