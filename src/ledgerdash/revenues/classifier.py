"""
Change classification for invoice updates.

Names the effect an update has on the aggregate of its period so the
matching mutation handler can apply an exact delta without re-scanning
invoices.
"""

from enum import Enum

from ledgerdash.invoices.models import InvoiceSnapshot
from ledgerdash.revenues.eligibility import is_counted
from ledgerdash.revenues.models import RevenueEntity


class ChangeType(str, Enum):
    """Kinds of invoice update, in classification priority order."""

    NO_EXISTING_ROW = "no-existing-row"
    ELIGIBLE_TO_INELIGIBLE = "eligible-to-ineligible"
    INELIGIBLE_TO_ELIGIBLE = "ineligible-to-eligible"
    AMOUNT_CHANGE = "eligible-amount-change"
    STATUS_CHANGE = "eligible-status-change"
    NONE = "none"


def classify_change(
    previous: InvoiceSnapshot,
    current: InvoiceSnapshot,
    existing: RevenueEntity | None,
) -> ChangeType:
    """
    Classify an invoice update against the aggregate row of its period.

    A missing row takes precedence over every other classification: the
    update is then treated as an insert of the current snapshot.

    Args:
        previous: Snapshot before the update
        current: Snapshot after the update
        existing: Aggregate row for the period, if any

    Returns:
        The change type selecting the mutation handler
    """
    if existing is None:
        return ChangeType.NO_EXISTING_ROW

    # Counted means an eligible status and a positive amount
    was_counted = is_counted(previous)
    now_counted = is_counted(current)

    if was_counted and not now_counted:
        return ChangeType.ELIGIBLE_TO_INELIGIBLE
    if not was_counted and now_counted:
        return ChangeType.INELIGIBLE_TO_ELIGIBLE
    if not (was_counted and now_counted):
        return ChangeType.NONE

    status_changed = previous.status != current.status
    amount_changed = previous.amount != current.amount

    if amount_changed and not status_changed:
        return ChangeType.AMOUNT_CHANGE
    if status_changed:
        return ChangeType.STATUS_CHANGE
    return ChangeType.NONE
