"""
Revenue eligibility policy.

Single source of truth for which invoices count toward revenue. Status
values outside the allowlist are ineligible, including statuses this
module has never seen.
"""

from dataclasses import dataclass

import structlog

from ledgerdash.invoices.models import InvoiceSnapshot, InvoiceStatus
from ledgerdash.revenues.periods import extract_period_from_invoice

logger = structlog.get_logger(__name__)

ELIGIBLE_STATUSES: frozenset[str] = frozenset({InvoiceStatus.PENDING.value, InvoiceStatus.PAID.value})


def is_eligible(status: str | InvoiceStatus | None) -> bool:
    """Return True when an invoice status counts toward revenue."""
    if status is None:
        return False
    if isinstance(status, InvoiceStatus):
        status = status.value
    return status.strip().lower() in ELIGIBLE_STATUSES


def is_counted(invoice: InvoiceSnapshot) -> bool:
    """Whether a snapshot contributes to its period's aggregate row."""
    return is_eligible(invoice.status) and invoice.amount > 0


@dataclass(frozen=True)
class EligibilityResult:
    valid: bool
    reason: str | None = None


def validate_invoice_for_revenue(invoice: InvoiceSnapshot | None) -> EligibilityResult:
    """Check that an invoice carries everything needed to place it in a period."""
    if invoice is None:
        return EligibilityResult(False, "Invoice is missing")
    if not invoice.id:
        return EligibilityResult(False, "Invoice ID is missing")
    if not invoice.date:
        return EligibilityResult(False, "Invoice date is missing")
    if not invoice.status:
        return EligibilityResult(False, "Invoice status is missing")
    if extract_period_from_invoice(invoice) is None:
        return EligibilityResult(False, "Could not extract a valid period from the invoice date")
    return EligibilityResult(True)


def is_invoice_eligible(invoice: InvoiceSnapshot | None) -> bool:
    """
    Full eligibility check used for created and deleted events.

    An invoice counts when it is well formed, has a positive amount and an
    eligible status.
    """
    if invoice is None:
        logger.info("Invoice not eligible for revenue", invoice_id=None, reason="Invoice is missing")
        return False

    result = validate_invoice_for_revenue(invoice)
    if not result.valid:
        logger.info("Invoice not eligible for revenue", invoice_id=invoice.id, reason=result.reason)
        return False

    if invoice.amount <= 0:
        logger.info("Invoice has zero or negative amount, skipping", invoice_id=invoice.id)
        return False

    if not is_eligible(invoice.status):
        logger.info(
            "Invoice status not eligible for revenue",
            invoice_id=invoice.id,
            status=invoice.status,
        )
        return False

    return True
