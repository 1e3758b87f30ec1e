"""
Revenue event handler.

Subscribes to invoice lifecycle events and routes each one to the revenue
service. Every failure is logged and swallowed here; nothing escapes to
the event bus.
"""

from typing import Any, assert_never

from pydantic import ValidationError

from ledgerdash.events import EventBus
from ledgerdash.invoices.events import InvoiceEvents
from ledgerdash.invoices.models import (
    AnyInvoiceEvent,
    InvoiceCreatedEvent,
    InvoiceDeletedEvent,
    InvoiceUpdatedEvent,
    parse_invoice_event,
)
from ledgerdash.logging import get_logger
from ledgerdash.revenues.eligibility import is_invoice_eligible
from ledgerdash.revenues.handlers import MutationPlan
from ledgerdash.revenues.periods import extract_period_from_invoice
from ledgerdash.revenues.service import RevenueService

logger = get_logger(__name__)


class RevenueEventHandler:
    """Keeps revenue aggregates in step with invoice events."""

    EVENT_NAMES = (
        InvoiceEvents.INVOICE_CREATED,
        InvoiceEvents.INVOICE_UPDATED,
        InvoiceEvents.INVOICE_DELETED,
    )

    def __init__(self, event_bus: EventBus, service: RevenueService):
        self.event_bus = event_bus
        self.service = service
        for event_name in self.EVENT_NAMES:
            event_bus.subscribe(event_name, self.handle)
        logger.info("Revenue event handler subscribed", events=list(self.EVENT_NAMES))

    def close(self) -> None:
        """Unsubscribe from the bus."""
        for event_name in self.EVENT_NAMES:
            self.event_bus.unsubscribe(event_name, self.handle)

    async def handle(self, payload: AnyInvoiceEvent | dict[str, Any]) -> list[MutationPlan]:
        """
        Process one invoice event.

        Returns the plans that were applied (empty when the event was
        skipped or failed).
        """
        try:
            event = parse_invoice_event(payload) if isinstance(payload, dict) else payload
        except ValidationError as e:
            logger.error("Malformed invoice event payload", errors=e.errors(include_url=False))
            return []

        try:
            return await self._dispatch(event)
        except Exception as e:
            logger.error(
                "Error processing invoice event",
                event_id=event.event_id,
                operation=event.operation.value,
                invoice_id=event.invoice.id,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return []

    async def _dispatch(self, event: AnyInvoiceEvent) -> list[MutationPlan]:
        if isinstance(event, InvoiceCreatedEvent):
            return await self._handle_created(event)
        elif isinstance(event, InvoiceUpdatedEvent):
            return await self._handle_updated(event)
        elif isinstance(event, InvoiceDeletedEvent):
            return await self._handle_deleted(event)
        else:
            assert_never(event)

    async def _handle_created(self, event: InvoiceCreatedEvent) -> list[MutationPlan]:
        period = extract_period_from_invoice(event.invoice)
        if period is None:
            logger.warning(
                "Skipping created invoice without period",
                event_id=event.event_id,
                invoice_id=event.invoice.id,
            )
            return []
        if not is_invoice_eligible(event.invoice):
            return []
        return [await self.service.apply_created(event, period)]

    async def _handle_deleted(self, event: InvoiceDeletedEvent) -> list[MutationPlan]:
        period = extract_period_from_invoice(event.invoice)
        if period is None:
            logger.warning(
                "Skipping deleted invoice without period",
                event_id=event.event_id,
                invoice_id=event.invoice.id,
            )
            return []
        if not is_invoice_eligible(event.invoice):
            return []
        return [await self.service.apply_deleted(event, period)]

    async def _handle_updated(self, event: InvoiceUpdatedEvent) -> list[MutationPlan]:
        period = extract_period_from_invoice(event.invoice)
        if period is None:
            logger.warning(
                "Skipping updated invoice without period",
                event_id=event.event_id,
                invoice_id=event.invoice.id,
            )
            return []

        previous_period = extract_period_from_invoice(event.previous_invoice)
        if previous_period is not None and previous_period != period:
            return await self.service.apply_period_move(event, previous_period, period)
        return [await self.service.apply_updated(event, period)]


__all__ = ["RevenueEventHandler"]
