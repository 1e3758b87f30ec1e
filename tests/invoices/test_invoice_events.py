"""
Tests for invoice event types and emission helpers.
"""

from datetime import date
from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError

from ledgerdash.events import EventBus, PublishReport
from ledgerdash.invoices import (
    InvoiceCreatedEvent,
    InvoiceDeletedEvent,
    InvoiceEvents,
    InvoiceOperation,
    InvoiceSnapshot,
    InvoiceStatus,
    InvoiceUpdatedEvent,
    emit_invoice_created,
    emit_invoice_deleted,
    emit_invoice_updated,
    event_name_for,
    parse_invoice_event,
)


def _snapshot(**overrides) -> InvoiceSnapshot:
    values = {
        "id": "inv-1",
        "customer_id": "cust-1",
        "amount": 2500,
        "date": "2024-05-10",
        "status": "pending",
    }
    values.update(overrides)
    return InvoiceSnapshot(**values)


class TestInvoiceEvents:
    """Test InvoiceEvents constant class."""

    def test_invoice_event_names(self):
        assert InvoiceEvents.INVOICE_CREATED == "invoice.created"
        assert InvoiceEvents.INVOICE_UPDATED == "invoice.updated"
        assert InvoiceEvents.INVOICE_DELETED == "invoice.deleted"


class TestInvoiceSnapshot:
    """Snapshot normalization."""

    def test_date_objects_become_iso_strings(self):
        snapshot = _snapshot(date=date(2024, 5, 10))
        assert snapshot.date == "2024-05-10"

    def test_status_is_normalized(self):
        assert _snapshot(status=" PAID ").status == "paid"
        assert _snapshot(status=InvoiceStatus.PENDING).status == "pending"

    def test_unknown_status_is_kept(self):
        assert _snapshot(status="disputed").status == "disputed"

    def test_snapshot_is_immutable(self):
        snapshot = _snapshot()
        with pytest.raises(ValidationError):
            snapshot.amount = 1


class TestEventModels:
    """Event variants and the operation discriminator."""

    def test_events_get_ids_and_timestamps(self):
        event = InvoiceCreatedEvent(invoice=_snapshot())
        other = InvoiceCreatedEvent(invoice=_snapshot())

        assert event.event_id != other.event_id
        assert event.timestamp.tzinfo is not None
        assert event.operation is InvoiceOperation.CREATED

    def test_dedupe_key(self):
        event = InvoiceDeletedEvent(invoice=_snapshot(id="inv-9"), event_id="evt-1")
        assert event.dedupe_key == "inv-9:deleted:evt-1"

    def test_parse_created(self):
        event = parse_invoice_event(
            {"event_id": "evt-1", "operation": "created", "invoice": _snapshot().model_dump()}
        )
        assert isinstance(event, InvoiceCreatedEvent)
        assert event.event_id == "evt-1"

    def test_parse_updated_requires_previous_invoice(self):
        with pytest.raises(ValidationError):
            parse_invoice_event({"operation": "updated", "invoice": _snapshot().model_dump()})

        event = parse_invoice_event(
            {
                "operation": "updated",
                "invoice": _snapshot(status="paid").model_dump(),
                "previous_invoice": _snapshot().model_dump(),
            }
        )
        assert isinstance(event, InvoiceUpdatedEvent)
        assert event.previous_invoice.status == "pending"

    def test_parse_rejects_unknown_operation(self):
        with pytest.raises(ValidationError):
            parse_invoice_event({"operation": "archived", "invoice": _snapshot().model_dump()})

    def test_event_name_for(self):
        snapshot = _snapshot()
        assert event_name_for(InvoiceCreatedEvent(invoice=snapshot)) == "invoice.created"
        assert (
            event_name_for(InvoiceUpdatedEvent(invoice=snapshot, previous_invoice=snapshot))
            == "invoice.updated"
        )
        assert event_name_for(InvoiceDeletedEvent(invoice=snapshot)) == "invoice.deleted"

    def test_event_name_for_rejects_other_types(self):
        with pytest.raises(AssertionError):
            event_name_for({"operation": "deleted", "invoice": _snapshot().model_dump()})


class TestEmitInvoiceEvents:
    """Test emission helpers publish on the injected bus."""

    @pytest.fixture
    def event_bus(self):
        bus = EventBus(name="invoices")
        bus.publish = AsyncMock(return_value=PublishReport(event_name="invoice.created"))
        return bus

    @pytest.mark.asyncio
    async def test_emit_invoice_created(self, event_bus):
        invoice = _snapshot()

        event = await emit_invoice_created(event_bus, invoice, event_id="evt-created")

        event_bus.publish.assert_awaited_once_with("invoice.created", event)
        assert event.event_id == "evt-created"
        assert event.invoice == invoice

    @pytest.mark.asyncio
    async def test_emit_invoice_updated(self, event_bus):
        previous = _snapshot()
        current = _snapshot(status="paid")

        event = await emit_invoice_updated(event_bus, current, previous)

        event_bus.publish.assert_awaited_once_with("invoice.updated", event)
        assert event.previous_invoice == previous
        assert event.invoice == current

    @pytest.mark.asyncio
    async def test_emit_invoice_deleted(self, event_bus):
        event = await emit_invoice_deleted(event_bus, _snapshot())

        event_bus.publish.assert_awaited_once_with("invoice.deleted", event)
        assert isinstance(event, InvoiceDeletedEvent)

    @pytest.mark.asyncio
    async def test_emit_delivers_to_subscribers(self):
        bus = EventBus(name="real")
        handler = AsyncMock()
        bus.subscribe(InvoiceEvents.INVOICE_CREATED, handler)

        event = await emit_invoice_created(bus, _snapshot())

        handler.assert_awaited_once_with(event)
