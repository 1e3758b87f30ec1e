"""
In-process event bus.

Handlers are registered per event name on an explicitly constructed bus
instance. Publishing fans the payload out to every handler concurrently;
each handler runs isolated so a failure is logged and reported without
cancelling its siblings or reaching the publisher.
"""

import asyncio
import inspect
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import structlog

from ledgerdash.events.exceptions import EventHandlerError

logger = structlog.get_logger(__name__)

EventHandler = Callable[[Any], Awaitable[None] | None]


@dataclass
class PublishReport:
    """Outcome of one publish call once every handler has settled."""

    event_name: str
    handler_count: int = 0
    failures: list[EventHandlerError] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return self.handler_count - len(self.failures)

    @property
    def all_succeeded(self) -> bool:
        return not self.failures


class EventBus:
    """
    Publish/subscribe fan-out for a single process.

    Delivery is at-most-once: there is no persistence, retry or
    cross-process propagation. Create one bus per application (or per test)
    and pass it to publishers and subscribers.
    """

    def __init__(self, name: str = "default") -> None:
        self.name = name
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_name: str, handler: EventHandler) -> None:
        """
        Register a handler for an event name.

        Args:
            event_name: Event name such as ``invoice.created``
            handler: Sync or async callable receiving the payload
        """
        self._handlers[event_name].append(handler)
        logger.debug(
            "event_bus.subscribed",
            bus=self.name,
            event_name=event_name,
            handler=_handler_name(handler),
            handler_count=len(self._handlers[event_name]),
        )

    def unsubscribe(self, event_name: str, handler: EventHandler) -> bool:
        """Remove a handler; returns False when it was not registered."""
        handlers = self._handlers.get(event_name, [])
        if handler not in handlers:
            return False
        handlers.remove(handler)
        return True

    def handlers_for(self, event_name: str) -> list[EventHandler]:
        """Return a copy of the handlers registered for an event name."""
        return list(self._handlers.get(event_name, []))

    def clear(self) -> None:
        """Drop every subscription."""
        self._handlers.clear()

    async def publish(self, event_name: str, payload: Any) -> PublishReport:
        """
        Deliver a payload to every handler registered for ``event_name``.

        Resolves once all handlers have settled. Never raises because of a
        handler failure.
        """
        handlers = self.handlers_for(event_name)
        report = PublishReport(event_name=event_name, handler_count=len(handlers))

        if not handlers:
            logger.debug("event_bus.no_handlers", bus=self.name, event_name=event_name)
            return report

        results = await asyncio.gather(
            *(self._run_handler(event_name, handler, payload) for handler in handlers)
        )
        report.failures = [result for result in results if result is not None]

        logger.debug(
            "event_bus.published",
            bus=self.name,
            event_name=event_name,
            handler_count=report.handler_count,
            failed=len(report.failures),
        )
        return report

    async def _run_handler(
        self, event_name: str, handler: EventHandler, payload: Any
    ) -> EventHandlerError | None:
        """Run one handler in isolation, turning any exception into a report entry."""
        handler_name = _handler_name(handler)
        try:
            result = handler(payload)
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            logger.error(
                "event_bus.handler_failed",
                bus=self.name,
                event_name=event_name,
                handler=handler_name,
                event_id=getattr(payload, "event_id", None),
                error=str(exc),
                exc_info=True,
            )
            return EventHandlerError(event_name=event_name, handler_name=handler_name, cause=exc)
        return None


def _handler_name(handler: EventHandler) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)
