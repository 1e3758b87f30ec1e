"""
Revenue service.

The single writer of aggregate rows. Every invoice event ends up here as a
``MutationPlan`` computed under the lock of the affected period, so two
events touching the same period never interleave their read-modify-write.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date

from cachetools import TTLCache

from ledgerdash.invoices.models import (
    InvoiceCreatedEvent,
    InvoiceDeletedEvent,
    InvoiceSnapshot,
    InvoiceUpdatedEvent,
)
from ledgerdash.logging import get_logger
from ledgerdash.revenues.classifier import classify_change
from ledgerdash.revenues.eligibility import is_counted
from ledgerdash.revenues.exceptions import RevenueValidationError
from ledgerdash.revenues.handlers import (
    CreateMutationHandler,
    DeleteMutationHandler,
    MutationPlan,
    PlanAction,
    get_update_handler,
)
from ledgerdash.revenues.models import (
    CalculationSource,
    RevenueCreate,
    RevenueEntity,
    RevenueUpdate,
)
from ledgerdash.revenues.periods import period_key
from ledgerdash.revenues.repository import RevenueRepositoryInterface
from ledgerdash.settings import settings

logger = get_logger(__name__)


class RevenueService:
    """Applies invoice events to per-period aggregates."""

    def __init__(
        self,
        repository: RevenueRepositoryInterface,
        dedupe_cache_size: int | None = None,
        dedupe_ttl_seconds: int | None = None,
        serialize_period_writes: bool | None = None,
    ):
        self.repository = repository
        self._applied_keys: TTLCache = TTLCache(
            maxsize=dedupe_cache_size or settings.revenue.dedupe_cache_size,
            ttl=dedupe_ttl_seconds or settings.revenue.dedupe_ttl_seconds,
        )
        self.serialize_period_writes = (
            settings.revenue.serialize_period_writes
            if serialize_period_writes is None
            else serialize_period_writes
        )
        self._locks: dict[date, asyncio.Lock] = {}
        self._lock_users: dict[date, int] = {}
        self._create_handler = CreateMutationHandler()
        self._delete_handler = DeleteMutationHandler()

    # ==================== Locking and idempotency ====================

    @asynccontextmanager
    async def period_lock(self, *periods: date) -> AsyncIterator[None]:
        """Hold the writer lock of every given period, acquired in period order."""
        if not self.serialize_period_writes:
            yield
            return

        ordered = sorted(set(periods))
        locks = []
        for period in ordered:
            locks.append(self._locks.setdefault(period, asyncio.Lock()))
            self._lock_users[period] = self._lock_users.get(period, 0) + 1

        acquired: list[asyncio.Lock] = []
        try:
            for lock in locks:
                await lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            # Drop locks nobody holds or waits on
            for period in ordered:
                self._lock_users[period] -= 1
                if self._lock_users[period] == 0:
                    del self._lock_users[period]
                    del self._locks[period]

    def _seen(self, key: str, existing: RevenueEntity | None) -> bool:
        if key in self._applied_keys:
            return True
        return existing is not None and existing.last_event_key == key

    def _mark_applied(self, key: str) -> None:
        self._applied_keys[key] = True

    # ==================== Event application ====================

    async def apply_created(self, event: InvoiceCreatedEvent, period: date) -> MutationPlan:
        """Add an eligible created invoice to its period."""
        key = event.dedupe_key
        async with self.period_lock(period):
            existing = await self.repository.find_by_period(period)
            if self._seen(key, existing):
                return self._duplicate(key, period)
            plan = self._create_handler.plan(existing, event.invoice, period)
            await self._apply_plan(plan, key)
            self._mark_applied(key)
        return plan

    async def apply_deleted(self, event: InvoiceDeletedEvent, period: date) -> MutationPlan:
        """Remove an eligible deleted invoice from its period."""
        key = event.dedupe_key
        async with self.period_lock(period):
            existing = await self.repository.find_by_period(period)
            if self._seen(key, existing):
                return self._duplicate(key, period)
            plan = self._delete_handler.plan(existing, event.invoice, period)
            await self._apply_plan(plan, key)
            self._mark_applied(key)
        return plan

    async def apply_updated(self, event: InvoiceUpdatedEvent, period: date) -> MutationPlan:
        """Classify an update within one period and apply the matching delta."""
        key = event.dedupe_key
        async with self.period_lock(period):
            existing = await self.repository.find_by_period(period)
            if self._seen(key, existing):
                return self._duplicate(key, period)

            change_type = classify_change(event.previous_invoice, event.invoice, existing)
            logger.info(
                "Invoice update classified",
                invoice_id=event.invoice.id,
                event_id=event.event_id,
                change_type=change_type.value,
                period=period_key(period),
            )
            plan = get_update_handler(change_type).plan(
                existing, event.previous_invoice, event.invoice, period
            )
            await self._apply_plan(plan, key)
            self._mark_applied(key)
        return plan

    async def apply_period_move(
        self, event: InvoiceUpdatedEvent, previous_period: date, period: date
    ) -> list[MutationPlan]:
        """
        An update moved the invoice to another month.

        The previous snapshot leaves its old period and the current snapshot
        joins the new one, each only when eligible.
        """
        key = event.dedupe_key
        async with self.period_lock(previous_period, period):
            old_row = await self.repository.find_by_period(previous_period)
            new_row = await self.repository.find_by_period(period)
            if self._seen(key, old_row) or self._seen(key, new_row):
                return [self._duplicate(key, period)]

            plans = [
                self._removal_plan(old_row, event.previous_invoice, previous_period),
                self._addition_plan(new_row, event.invoice, period),
            ]
            for plan in plans:
                await self._apply_plan(plan, key)
            self._mark_applied(key)

        logger.info(
            "Invoice moved between revenue periods",
            invoice_id=event.invoice.id,
            event_id=event.event_id,
            from_period=period_key(previous_period),
            to_period=period_key(period),
        )
        return plans

    def _removal_plan(
        self, existing: RevenueEntity | None, invoice: InvoiceSnapshot, period: date
    ) -> MutationPlan:
        if not is_counted(invoice):
            return MutationPlan.noop(period, "previous invoice was not counted")
        return self._delete_handler.plan(existing, invoice, period)

    def _addition_plan(
        self, existing: RevenueEntity | None, invoice: InvoiceSnapshot, period: date
    ) -> MutationPlan:
        if not is_counted(invoice):
            return MutationPlan.noop(period, "current invoice is not eligible")
        return self._create_handler.plan(existing, invoice, period)

    def _duplicate(self, key: str, period: date) -> MutationPlan:
        logger.info("Duplicate invoice event ignored", dedupe_key=key, period=period_key(period))
        return MutationPlan.noop(period, "duplicate event")

    async def _apply_plan(self, plan: MutationPlan, event_key: str) -> RevenueEntity | None:
        """Make a plan durable through the repository."""
        period = period_key(plan.period)

        if plan.action is PlanAction.NOOP:
            logger.debug("Revenue plan is a no-op", period=period, reason=plan.reason)
            return None

        if plan.action is PlanAction.DELETE:
            if plan.row_id is None:
                raise _incomplete_plan(plan, "row_id")
            await self.repository.delete(plan.row_id)
            logger.info("Revenue record deleted", period=period, reason=plan.reason)
            return None

        if plan.totals is None:
            raise _incomplete_plan(plan, "totals")
        if plan.action is PlanAction.CREATE:
            entity = await self.repository.create(
                RevenueCreate(
                    period=plan.period,
                    invoice_count=plan.totals.invoice_count,
                    total_amount=plan.totals.total_amount,
                    total_paid_amount=plan.totals.total_paid_amount,
                    total_pending_amount=plan.totals.total_pending_amount,
                    calculation_source=CalculationSource.INVOICE_EVENT,
                    last_event_key=event_key,
                )
            )
            logger.info(
                "Revenue record created",
                period=period,
                invoice_count=entity.invoice_count,
                total_amount=entity.total_amount,
                reason=plan.reason,
            )
            return entity

        if plan.row_id is None:
            raise _incomplete_plan(plan, "row_id")
        entity = await self.repository.update(
            plan.row_id,
            RevenueUpdate(
                invoice_count=plan.totals.invoice_count,
                total_amount=plan.totals.total_amount,
                total_paid_amount=plan.totals.total_paid_amount,
                total_pending_amount=plan.totals.total_pending_amount,
                calculation_source=CalculationSource.INVOICE_EVENT,
                last_event_key=event_key,
            ),
        )
        logger.info(
            "Revenue record updated",
            period=period,
            invoice_count=entity.invoice_count,
            total_amount=entity.total_amount,
            reason=plan.reason,
        )
        return entity


def _incomplete_plan(plan: MutationPlan, missing: str) -> RevenueValidationError:
    return RevenueValidationError(
        f"Revenue plan {plan.action.value} is missing {missing}",
        context={"period": period_key(plan.period), "reason": plan.reason},
    )


__all__ = ["RevenueService"]
