"""Invoice snapshots and the lifecycle events published by the invoice write path."""

from ledgerdash.invoices.events import (
    InvoiceEvents,
    emit_invoice_created,
    emit_invoice_deleted,
    emit_invoice_updated,
    event_name_for,
    publish_invoice_event,
)
from ledgerdash.invoices.models import (
    AnyInvoiceEvent,
    InvoiceCreatedEvent,
    InvoiceDeletedEvent,
    InvoiceEvent,
    InvoiceOperation,
    InvoiceSnapshot,
    InvoiceStatus,
    InvoiceUpdatedEvent,
    parse_invoice_event,
)

__all__ = [
    "AnyInvoiceEvent",
    "InvoiceCreatedEvent",
    "InvoiceDeletedEvent",
    "InvoiceEvent",
    "InvoiceEvents",
    "InvoiceOperation",
    "InvoiceSnapshot",
    "InvoiceStatus",
    "InvoiceUpdatedEvent",
    "emit_invoice_created",
    "emit_invoice_deleted",
    "emit_invoice_updated",
    "event_name_for",
    "parse_invoice_event",
    "publish_invoice_event",
]
