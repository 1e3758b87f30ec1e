"""
Invoice snapshots and lifecycle events.

Snapshots are captured by the invoice write path at the moment of a change
and never mutated afterwards. Events form a closed union of the three
lifecycle operations.
"""

from datetime import UTC, date, datetime
from enum import Enum
from typing import Annotated, Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


class InvoiceStatus(str, Enum):
    """Known invoice statuses. Snapshots may carry other values."""

    PENDING = "pending"
    PAID = "paid"
    DRAFT = "draft"
    VOID = "void"
    CANCELED = "canceled"


class InvoiceOperation(str, Enum):
    """Lifecycle operation carried by an invoice event."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


class InvoiceSnapshot(BaseModel):
    """Immutable view of an invoice at the time an event was captured."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(description="Invoice identifier")
    customer_id: str = Field(description="Customer reference")
    amount: int = Field(description="Amount in minor currency units (e.g. cents)")
    date: str = Field(description="Issue date, ISO formatted (YYYY-MM-DD or YYYY-MM)")
    status: str = Field(description="Invoice status (pending, paid or other)")

    @field_validator("date", mode="before")
    @classmethod
    def coerce_date(cls, v: object) -> object:
        """Accept date objects from the write path and store them as ISO strings."""
        if isinstance(v, datetime | date):
            return v.isoformat()
        return v

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v: object) -> object:
        if isinstance(v, InvoiceStatus):
            return v.value
        if isinstance(v, str):
            return v.strip().lower()
        return v


class _InvoiceEventBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    event_id: str = Field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    invoice: InvoiceSnapshot

    @property
    def dedupe_key(self) -> str:
        """Idempotency key: invoice id, operation and event id."""
        return f"{self.invoice.id}:{self.operation.value}:{self.event_id}"  # type: ignore[attr-defined]


class InvoiceCreatedEvent(_InvoiceEventBase):
    """An invoice was created."""

    operation: Literal[InvoiceOperation.CREATED] = InvoiceOperation.CREATED


class InvoiceUpdatedEvent(_InvoiceEventBase):
    """An invoice was updated; carries the snapshot before the change."""

    operation: Literal[InvoiceOperation.UPDATED] = InvoiceOperation.UPDATED
    previous_invoice: InvoiceSnapshot


class InvoiceDeletedEvent(_InvoiceEventBase):
    """An invoice was deleted; ``invoice`` is the last known snapshot."""

    operation: Literal[InvoiceOperation.DELETED] = InvoiceOperation.DELETED


AnyInvoiceEvent = InvoiceCreatedEvent | InvoiceUpdatedEvent | InvoiceDeletedEvent

InvoiceEvent = Annotated[AnyInvoiceEvent, Field(discriminator="operation")]

_invoice_event_adapter: TypeAdapter[AnyInvoiceEvent] = TypeAdapter(InvoiceEvent)


def parse_invoice_event(data: dict[str, Any]) -> AnyInvoiceEvent:
    """Build the matching event variant from a plain payload."""
    return _invoice_event_adapter.validate_python(data)
