"""
Invoice event types and event emission helpers.

The invoice write path calls these helpers after a successful commit so that
subscribers (revenue aggregation among them) can react to the change.
"""

from typing import TYPE_CHECKING, assert_never

import structlog

from ledgerdash.invoices.models import (
    AnyInvoiceEvent,
    InvoiceCreatedEvent,
    InvoiceDeletedEvent,
    InvoiceSnapshot,
    InvoiceUpdatedEvent,
)

if TYPE_CHECKING:
    from ledgerdash.events import EventBus, PublishReport

logger = structlog.get_logger(__name__)


class InvoiceEvents:
    """Invoice event name constants."""

    INVOICE_CREATED = "invoice.created"
    INVOICE_UPDATED = "invoice.updated"
    INVOICE_DELETED = "invoice.deleted"


def event_name_for(event: AnyInvoiceEvent) -> str:
    """Return the bus event name for an invoice event variant."""
    if isinstance(event, InvoiceCreatedEvent):
        return InvoiceEvents.INVOICE_CREATED
    if isinstance(event, InvoiceUpdatedEvent):
        return InvoiceEvents.INVOICE_UPDATED
    if isinstance(event, InvoiceDeletedEvent):
        return InvoiceEvents.INVOICE_DELETED
    assert_never(event)


async def publish_invoice_event(event_bus: "EventBus", event: AnyInvoiceEvent) -> "PublishReport":
    """Publish an already built invoice event on the given bus."""
    event_name = event_name_for(event)
    report = await event_bus.publish(event_name, event)

    logger.info(
        "Invoice event emitted",
        event_name=event_name,
        event_id=event.event_id,
        invoice_id=event.invoice.id,
        handlers=report.handler_count,
        failed_handlers=len(report.failures),
    )
    return report


async def emit_invoice_created(
    event_bus: "EventBus",
    invoice: InvoiceSnapshot,
    event_id: str | None = None,
) -> InvoiceCreatedEvent:
    """
    Emit invoice created event.

    Args:
        event_bus: Event bus instance
        invoice: Snapshot of the new invoice
        event_id: Explicit event id (generated when omitted)
    """
    event = (
        InvoiceCreatedEvent(invoice=invoice, event_id=event_id)
        if event_id
        else InvoiceCreatedEvent(invoice=invoice)
    )
    await publish_invoice_event(event_bus, event)
    return event


async def emit_invoice_updated(
    event_bus: "EventBus",
    invoice: InvoiceSnapshot,
    previous_invoice: InvoiceSnapshot,
    event_id: str | None = None,
) -> InvoiceUpdatedEvent:
    """
    Emit invoice updated event.

    Args:
        event_bus: Event bus instance
        invoice: Snapshot after the update
        previous_invoice: Snapshot before the update
        event_id: Explicit event id (generated when omitted)
    """
    if event_id:
        event = InvoiceUpdatedEvent(
            invoice=invoice, previous_invoice=previous_invoice, event_id=event_id
        )
    else:
        event = InvoiceUpdatedEvent(invoice=invoice, previous_invoice=previous_invoice)
    await publish_invoice_event(event_bus, event)
    return event


async def emit_invoice_deleted(
    event_bus: "EventBus",
    invoice: InvoiceSnapshot,
    event_id: str | None = None,
) -> InvoiceDeletedEvent:
    """
    Emit invoice deleted event.

    Args:
        event_bus: Event bus instance
        invoice: Last known snapshot of the deleted invoice
        event_id: Explicit event id (generated when omitted)
    """
    event = (
        InvoiceDeletedEvent(invoice=invoice, event_id=event_id)
        if event_id
        else InvoiceDeletedEvent(invoice=invoice)
    )
    await publish_invoice_event(event_bus, event)
    return event
