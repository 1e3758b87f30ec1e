"""In-process publish/subscribe used by the invoice write path."""

from ledgerdash.events.bus import EventBus, EventHandler, PublishReport
from ledgerdash.events.exceptions import EventError, EventHandlerError

__all__ = [
    "EventBus",
    "EventHandler",
    "PublishReport",
    "EventError",
    "EventHandlerError",
]
