"""
Pure aggregate arithmetic.

Every function takes current totals and returns new totals; nothing here
touches the store. Amounts are integer minor units.
"""

from dataclasses import dataclass, replace

from ledgerdash.invoices.models import InvoiceStatus


@dataclass(frozen=True)
class AggregateTotals:
    """Counter and amounts of one aggregate row."""

    invoice_count: int = 0
    total_amount: int = 0
    total_paid_amount: int = 0
    total_pending_amount: int = 0

    @property
    def is_empty(self) -> bool:
        return self.invoice_count <= 0

    @property
    def is_consistent(self) -> bool:
        """True when totals are non-negative and the buckets add up to the total."""
        return (
            self.invoice_count >= 0
            and self.total_amount >= 0
            and self.total_paid_amount >= 0
            and self.total_pending_amount >= 0
            and self.total_amount == self.total_paid_amount + self.total_pending_amount
        )

    def reconciled(self) -> "AggregateTotals":
        """Clamp everything at zero and rebuild the total from the buckets."""
        paid = max(0, self.total_paid_amount)
        pending = max(0, self.total_pending_amount)
        return AggregateTotals(
            invoice_count=max(0, self.invoice_count),
            total_amount=paid + pending,
            total_paid_amount=paid,
            total_pending_amount=pending,
        )


def apply_delta_to_bucket(totals: AggregateTotals, status: str, delta: int) -> AggregateTotals:
    """Add ``delta`` to the paid or pending bucket matching ``status`` (floor 0)."""
    if status == InvoiceStatus.PAID.value:
        return replace(totals, total_paid_amount=max(0, totals.total_paid_amount + delta))
    if status == InvoiceStatus.PENDING.value:
        return replace(totals, total_pending_amount=max(0, totals.total_pending_amount + delta))
    return totals


def move_between_buckets(
    totals: AggregateTotals,
    from_status: str,
    to_status: str,
    previous_amount: int,
    current_amount: int,
) -> AggregateTotals:
    """Take the previous amount out of one bucket and put the current amount in another."""
    drained = apply_delta_to_bucket(totals, from_status, -previous_amount)
    return apply_delta_to_bucket(drained, to_status, current_amount)


def seed_totals(amount: int, status: str) -> AggregateTotals:
    """Totals of a fresh row holding a single invoice."""
    return apply_delta_to_bucket(AggregateTotals(invoice_count=1, total_amount=amount), status, amount)


def totals_after_add(totals: AggregateTotals, amount: int, status: str) -> AggregateTotals:
    """One more eligible invoice joins the period."""
    added = replace(
        totals,
        invoice_count=totals.invoice_count + 1,
        total_amount=totals.total_amount + amount,
    )
    return apply_delta_to_bucket(added, status, amount)


def totals_after_removal(totals: AggregateTotals, amount: int, status: str) -> AggregateTotals:
    """An eligible invoice leaves the period (deleted or turned ineligible)."""
    removed = replace(
        totals,
        invoice_count=max(0, totals.invoice_count - 1),
        total_amount=max(0, totals.total_amount - amount),
    )
    return apply_delta_to_bucket(removed, status, -amount)


def totals_after_amount_change(
    totals: AggregateTotals, previous_amount: int, current_amount: int, status: str
) -> AggregateTotals:
    """An invoice kept its eligible status but its amount changed."""
    delta = current_amount - previous_amount
    changed = replace(totals, total_amount=max(0, totals.total_amount + delta))
    return apply_delta_to_bucket(changed, status, delta)


def totals_after_status_change(
    totals: AggregateTotals,
    previous_status: str,
    current_status: str,
    previous_amount: int,
    current_amount: int,
) -> AggregateTotals:
    """
    An invoice moved between pending and paid.

    The count is unchanged. The total only moves when the amount changed in
    the same update; for a pure status flip it stays as it was.
    """
    delta = current_amount - previous_amount
    changed = replace(totals, total_amount=max(0, totals.total_amount + delta))
    return move_between_buckets(
        changed, previous_status, current_status, previous_amount, current_amount
    )
