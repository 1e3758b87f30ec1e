"""
Full recalculation of revenue aggregates from source invoices.

Repairs drift left by lost or raced events. Rows are rebuilt for every
period in the window; periods without eligible invoices lose their row.
"""

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime

from ledgerdash.invoices.models import InvoiceSnapshot
from ledgerdash.logging import get_logger
from ledgerdash.revenues.calculations import AggregateTotals, totals_after_add
from ledgerdash.revenues.eligibility import is_invoice_eligible
from ledgerdash.revenues.models import CalculationSource, RevenueCreate
from ledgerdash.revenues.periods import add_months, extract_period_from_invoice, period_key, to_period
from ledgerdash.revenues.service import RevenueService
from ledgerdash.revenues.template import calculate_date_range

logger = get_logger(__name__)


@dataclass
class RecalculationResult:
    start_period: date
    end_period: date
    invoices_counted: int = 0
    periods_written: list[str] = field(default_factory=list)
    periods_deleted: list[str] = field(default_factory=list)


def aggregate_invoices(
    invoices: Iterable[InvoiceSnapshot], start: date, end: date
) -> dict[date, AggregateTotals]:
    """Sum eligible invoices per period within ``start..end``."""
    totals: dict[date, AggregateTotals] = defaultdict(AggregateTotals)
    for invoice in invoices:
        if not is_invoice_eligible(invoice):
            continue
        period = extract_period_from_invoice(invoice)
        if period is None or not start <= period <= end:
            continue
        totals[period] = totals_after_add(totals[period], invoice.amount, invoice.status)
    return dict(totals)


class RevenueRecalculationService:
    """Rebuilds aggregate rows through the revenue service's locks and repository."""

    def __init__(self, service: RevenueService):
        self.service = service
        self.repository = service.repository

    async def recalculate(
        self,
        invoices: Iterable[InvoiceSnapshot],
        start: date | None = None,
        end: date | None = None,
        now: date | datetime | None = None,
    ) -> RecalculationResult:
        """
        Rebuild rows for ``start..end`` (defaults to the rolling year).

        Args:
            invoices: Every invoice snapshot that may fall in the window
            start: First period to rebuild
            end: Last period to rebuild
            now: Reference time for the default window
        """
        if start is None or end is None:
            date_range = calculate_date_range(now)
            start = start or date_range.start_date
            end = end or date_range.end_date
        start_period, end_period = to_period(start), to_period(end)

        per_period = aggregate_invoices(invoices, start_period, end_period)
        result = RecalculationResult(start_period=start_period, end_period=end_period)

        period = start_period
        while period <= end_period:
            async with self.service.period_lock(period):
                totals = per_period.get(period)
                if totals is None or totals.is_empty:
                    if await self.repository.delete_by_period(period):
                        result.periods_deleted.append(period_key(period))
                else:
                    await self.repository.upsert(
                        RevenueCreate(
                            period=period,
                            invoice_count=totals.invoice_count,
                            total_amount=totals.total_amount,
                            total_paid_amount=totals.total_paid_amount,
                            total_pending_amount=totals.total_pending_amount,
                            calculation_source=CalculationSource.ROLLING_CALCULATION,
                        )
                    )
                    result.invoices_counted += totals.invoice_count
                    result.periods_written.append(period_key(period))
            period = add_months(period, 1)

        logger.info(
            "Revenue recalculation completed",
            start_period=period_key(start_period),
            end_period=period_key(end_period),
            invoices_counted=result.invoices_counted,
            periods_written=len(result.periods_written),
            periods_deleted=len(result.periods_deleted),
        )
        return result


__all__ = ["RecalculationResult", "aggregate_invoices", "RevenueRecalculationService"]
