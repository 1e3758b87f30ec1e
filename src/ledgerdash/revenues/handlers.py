"""
Mutation handlers for revenue aggregates.

Each handler turns one kind of invoice change into a ``MutationPlan`` for the
aggregate row of the invoice's period, implementing the Strategy Pattern.
Handlers never touch the store; the revenue service applies the plan.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from enum import Enum

import structlog

from ledgerdash.invoices.models import InvoiceSnapshot
from ledgerdash.revenues.calculations import (
    AggregateTotals,
    seed_totals,
    totals_after_add,
    totals_after_amount_change,
    totals_after_removal,
    totals_after_status_change,
)
from ledgerdash.revenues.classifier import ChangeType
from ledgerdash.revenues.eligibility import is_counted
from ledgerdash.revenues.models import RevenueEntity

logger = structlog.get_logger(__name__)


class PlanAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    NOOP = "noop"


@dataclass(frozen=True)
class MutationPlan:
    """What to do with the aggregate row of ``period``."""

    action: PlanAction
    period: date
    totals: AggregateTotals | None = None
    row_id: str | None = None
    reason: str = ""

    @classmethod
    def noop(cls, period: date, reason: str) -> "MutationPlan":
        return cls(action=PlanAction.NOOP, period=period, reason=reason)

    @property
    def is_noop(self) -> bool:
        return self.action is PlanAction.NOOP


def totals_of(entity: RevenueEntity) -> AggregateTotals:
    return AggregateTotals(
        invoice_count=entity.invoice_count,
        total_amount=entity.total_amount,
        total_paid_amount=entity.total_paid_amount,
        total_pending_amount=entity.total_pending_amount,
    )


def plan_for_totals(
    existing: RevenueEntity | None, period: date, totals: AggregateTotals, reason: str
) -> MutationPlan:
    """Create, update or delete depending on the row and the resulting count."""
    if not totals.is_consistent:
        # Floors hit on a drifted row; the buckets are authoritative
        logger.warning(
            "Revenue totals reconciled from buckets",
            period=period.isoformat(),
            total_amount=totals.total_amount,
            total_paid_amount=totals.total_paid_amount,
            total_pending_amount=totals.total_pending_amount,
        )
        totals = totals.reconciled()

    if existing is None:
        if totals.is_empty:
            return MutationPlan.noop(period, reason)
        return MutationPlan(action=PlanAction.CREATE, period=period, totals=totals, reason=reason)

    if totals.is_empty:
        return MutationPlan(
            action=PlanAction.DELETE, period=period, row_id=existing.id, reason=reason
        )
    return MutationPlan(
        action=PlanAction.UPDATE, period=period, totals=totals, row_id=existing.id, reason=reason
    )


class UpdateMutationHandler(ABC):
    """Base handler for a classified invoice update."""

    change_type: ChangeType

    @abstractmethod
    def plan(
        self,
        existing: RevenueEntity | None,
        previous: InvoiceSnapshot,
        current: InvoiceSnapshot,
        period: date,
    ) -> MutationPlan:
        """
        Compute the mutation for this kind of change.

        Args:
            existing: Aggregate row for the period (None only for NO_EXISTING_ROW)
            previous: Snapshot before the update
            current: Snapshot after the update
            period: Period of the current snapshot

        Returns:
            Plan for the aggregate row
        """
        raise NotImplementedError


class NoExistingRowHandler(UpdateMutationHandler):
    """No row for the period: treat the update as an insert of the current snapshot."""

    change_type = ChangeType.NO_EXISTING_ROW

    def plan(
        self,
        existing: RevenueEntity | None,
        previous: InvoiceSnapshot,
        current: InvoiceSnapshot,
        period: date,
    ) -> MutationPlan:
        if not is_counted(current):
            return MutationPlan.noop(period, "current invoice not eligible and no row exists")
        return plan_for_totals(
            None, period, seed_totals(current.amount, current.status), self.change_type.value
        )


class EligibleToIneligibleHandler(UpdateMutationHandler):
    change_type = ChangeType.ELIGIBLE_TO_INELIGIBLE

    def plan(
        self,
        existing: RevenueEntity | None,
        previous: InvoiceSnapshot,
        current: InvoiceSnapshot,
        period: date,
    ) -> MutationPlan:
        totals = totals_after_removal(totals_of(existing), previous.amount, previous.status)
        return plan_for_totals(existing, period, totals, self.change_type.value)


class IneligibleToEligibleHandler(UpdateMutationHandler):
    change_type = ChangeType.INELIGIBLE_TO_ELIGIBLE

    def plan(
        self,
        existing: RevenueEntity | None,
        previous: InvoiceSnapshot,
        current: InvoiceSnapshot,
        period: date,
    ) -> MutationPlan:
        totals = totals_after_add(totals_of(existing), current.amount, current.status)
        return plan_for_totals(existing, period, totals, self.change_type.value)


class AmountChangeHandler(UpdateMutationHandler):
    change_type = ChangeType.AMOUNT_CHANGE

    def plan(
        self,
        existing: RevenueEntity | None,
        previous: InvoiceSnapshot,
        current: InvoiceSnapshot,
        period: date,
    ) -> MutationPlan:
        totals = totals_after_amount_change(
            totals_of(existing), previous.amount, current.amount, current.status
        )
        return plan_for_totals(existing, period, totals, self.change_type.value)


class StatusChangeHandler(UpdateMutationHandler):
    """Pending <-> paid. Moves the amount between buckets."""

    change_type = ChangeType.STATUS_CHANGE

    def plan(
        self,
        existing: RevenueEntity | None,
        previous: InvoiceSnapshot,
        current: InvoiceSnapshot,
        period: date,
    ) -> MutationPlan:
        totals = totals_after_status_change(
            totals_of(existing),
            previous.status,
            current.status,
            previous.amount,
            current.amount,
        )
        return plan_for_totals(existing, period, totals, self.change_type.value)


class NoChangeHandler(UpdateMutationHandler):
    change_type = ChangeType.NONE

    def plan(
        self,
        existing: RevenueEntity | None,
        previous: InvoiceSnapshot,
        current: InvoiceSnapshot,
        period: date,
    ) -> MutationPlan:
        logger.info(
            "No revenue-relevant change in invoice update",
            invoice_id=current.id,
            previous_status=previous.status,
            current_status=current.status,
        )
        return MutationPlan.noop(period, "no revenue-relevant change")


UPDATE_HANDLERS: dict[ChangeType, UpdateMutationHandler] = {
    ChangeType.NO_EXISTING_ROW: NoExistingRowHandler(),
    ChangeType.ELIGIBLE_TO_INELIGIBLE: EligibleToIneligibleHandler(),
    ChangeType.INELIGIBLE_TO_ELIGIBLE: IneligibleToEligibleHandler(),
    ChangeType.AMOUNT_CHANGE: AmountChangeHandler(),
    ChangeType.STATUS_CHANGE: StatusChangeHandler(),
    ChangeType.NONE: NoChangeHandler(),
}


def get_update_handler(change_type: ChangeType) -> UpdateMutationHandler:
    return UPDATE_HANDLERS[change_type]


class CreateMutationHandler:
    """An eligible invoice was created."""

    def plan(
        self, existing: RevenueEntity | None, invoice: InvoiceSnapshot, period: date
    ) -> MutationPlan:
        if existing is None:
            return plan_for_totals(
                None, period, seed_totals(invoice.amount, invoice.status), "created"
            )
        totals = totals_after_add(totals_of(existing), invoice.amount, invoice.status)
        return plan_for_totals(existing, period, totals, "created")


class DeleteMutationHandler:
    """An eligible invoice was deleted. The matching bucket is decremented as well."""

    def plan(
        self, existing: RevenueEntity | None, invoice: InvoiceSnapshot, period: date
    ) -> MutationPlan:
        if existing is None:
            logger.info(
                "No revenue record for deleted invoice period",
                invoice_id=invoice.id,
                period=period.isoformat(),
            )
            return MutationPlan.noop(period, "no revenue record for period")
        totals = totals_after_removal(totals_of(existing), invoice.amount, invoice.status)
        return plan_for_totals(existing, period, totals, "deleted")


__all__ = [
    "PlanAction",
    "MutationPlan",
    "totals_of",
    "plan_for_totals",
    "UpdateMutationHandler",
    "NoExistingRowHandler",
    "EligibleToIneligibleHandler",
    "IneligibleToEligibleHandler",
    "AmountChangeHandler",
    "StatusChangeHandler",
    "NoChangeHandler",
    "UPDATE_HANDLERS",
    "get_update_handler",
    "CreateMutationHandler",
    "DeleteMutationHandler",
]
