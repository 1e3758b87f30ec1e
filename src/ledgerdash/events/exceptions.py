"""Event bus exceptions."""


class EventError(Exception):
    """Base exception for event bus errors."""


class EventHandlerError(EventError):
    """A subscribed handler raised while processing a payload."""

    def __init__(self, event_name: str, handler_name: str, cause: Exception) -> None:
        self.event_name = event_name
        self.handler_name = handler_name
        self.cause = cause
        super().__init__(f"Handler {handler_name} failed for {event_name}: {cause}")
