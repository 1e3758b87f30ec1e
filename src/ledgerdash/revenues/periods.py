"""
Period helpers.

A period is a ``datetime.date`` pinned to the first day of its calendar
month and is the natural key of an aggregate row.
"""

import re
from datetime import date, datetime

import structlog

from ledgerdash.invoices.models import InvoiceSnapshot
from ledgerdash.revenues.exceptions import RevenueValidationError

logger = structlog.get_logger(__name__)

_YEAR_MONTH = re.compile(r"^(\d{4})-(\d{2})$")

MONTH_ORDER: tuple[str, ...] = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)


def to_period(value: date | datetime | str) -> date:
    """
    Normalize a date-like value to the first day of its month.

    Accepts ``date``/``datetime`` objects, ISO dates or datetimes
    (``YYYY-MM-DD``, ``YYYY-MM-DDTHH:MM:SS``) and ``YYYY-MM`` strings.

    Raises:
        RevenueValidationError: When the value cannot be parsed
    """
    if isinstance(value, datetime):
        return date(value.year, value.month, 1)
    if isinstance(value, date):
        return date(value.year, value.month, 1)
    if not isinstance(value, str) or not value.strip():
        raise RevenueValidationError("Period value is missing", context={"value": repr(value)})

    text = value.strip()
    match = _YEAR_MONTH.match(text)
    try:
        if match:
            return date(int(match.group(1)), int(match.group(2)), 1)
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as exc:
        raise RevenueValidationError(
            f"Invalid period value: {text}", context={"value": text}
        ) from exc
    return date(parsed.year, parsed.month, 1)


def period_key(period: date) -> str:
    """Return the ``YYYY-MM`` key of a period."""
    return f"{period.year:04d}-{period.month:02d}"


def add_months(period: date, months: int) -> date:
    """Shift a period by a (possibly negative) number of months."""
    index = period.year * 12 + (period.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def last_day_of_month(period: date) -> date:
    """Last calendar day of the period's month."""
    return date.fromordinal(add_months(period, 1).toordinal() - 1)


def extract_period_from_invoice(invoice: InvoiceSnapshot | None) -> date | None:
    """Safely extract the period of an invoice; returns None when the date is unusable."""
    if invoice is None or not invoice.date:
        return None
    try:
        return to_period(invoice.date)
    except RevenueValidationError:
        logger.warning(
            "Failed to extract period from invoice",
            invoice_id=invoice.id,
            invoice_date=invoice.date,
        )
        return None


def month_abbreviation(period: date) -> str:
    return MONTH_ORDER[period.month - 1]
