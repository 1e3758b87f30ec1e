"""
Aggregate store adapter.

The only component that touches persistence. One row per period; lookups
for a period without a row return ``None``.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import UTC, date, datetime
from typing import Any
from uuid import uuid4

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ledgerdash.db import get_session_maker
from ledgerdash.revenues.exceptions import (
    RevenueNotFoundError,
    RevenueStoreError,
    RevenueValidationError,
)
from ledgerdash.revenues.mappers import entity_from_row
from ledgerdash.revenues.models import RevenueCreate, RevenueEntity, RevenueTable, RevenueUpdate
from ledgerdash.revenues.periods import period_key, to_period

logger = structlog.get_logger(__name__)

_AMOUNT_FIELDS = ("invoice_count", "total_amount", "total_paid_amount", "total_pending_amount")


def check_row_values(values: dict[str, Any]) -> None:
    """Reject negative values, rows without invoices, or total != paid + pending."""
    for field in _AMOUNT_FIELDS:
        if values.get(field, 0) < 0:
            raise RevenueValidationError(f"{field} must be >= 0", context={field: values[field]})
    # Empty periods are deleted, never stored
    if values.get("invoice_count", 0) == 0:
        raise RevenueValidationError(
            "invoice_count must be > 0", context={"invoice_count": values.get("invoice_count", 0)}
        )
    total = values.get("total_amount", 0)
    paid = values.get("total_paid_amount", 0)
    pending = values.get("total_pending_amount", 0)
    if total != paid + pending:
        raise RevenueValidationError(
            "total_amount must equal total_paid_amount + total_pending_amount",
            context={"total_amount": total, "total_paid_amount": paid, "total_pending_amount": pending},
        )


class RevenueRepositoryInterface(ABC):
    """Store contract for per-period revenue aggregates."""

    @abstractmethod
    async def create(self, data: RevenueCreate) -> RevenueEntity:
        """Insert a new row. Fails if the period already has one."""

    @abstractmethod
    async def read(self, revenue_id: str) -> RevenueEntity | None:
        """Fetch a row by id."""

    @abstractmethod
    async def update(self, revenue_id: str, data: RevenueUpdate) -> RevenueEntity:
        """Apply the set fields of ``data``. Raises RevenueNotFoundError for an unknown id."""

    @abstractmethod
    async def delete(self, revenue_id: str) -> None:
        """Delete a row by id. Raises RevenueNotFoundError for an unknown id."""

    @abstractmethod
    async def upsert(self, data: RevenueCreate) -> RevenueEntity:
        """Insert the row for ``data.period`` or overwrite the existing one."""

    @abstractmethod
    async def upsert_by_period(self, period: date, data: RevenueUpdate) -> RevenueEntity:
        """Merge ``data`` into the row of ``period``, creating it from zero values if absent."""

    @abstractmethod
    async def find_by_period(self, period: date) -> RevenueEntity | None:
        """Row for ``period`` or None."""

    @abstractmethod
    async def find_by_date_range(self, start: date, end: date) -> list[RevenueEntity]:
        """Rows with ``start <= period <= end``, ordered by period."""

    async def delete_by_period(self, period: date) -> bool:
        """Delete the row of ``period`` if present. Returns True when a row was removed."""
        existing = await self.find_by_period(period)
        if existing is None:
            return False
        await self.delete(existing.id)
        return True


class SQLAlchemyRevenueRepository(RevenueRepositoryInterface):
    """Aggregate store backed by the ``revenues`` table."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession] | Callable[[], AsyncSession] | None = None,
    ):
        self._session_maker = session_maker or get_session_maker()

    async def create(self, data: RevenueCreate) -> RevenueEntity:
        values = data.model_dump()
        values["period"] = to_period(data.period)
        values["calculation_source"] = data.calculation_source.value
        check_row_values(values)

        try:
            async with self._session_maker() as session:
                row = RevenueTable(id=str(uuid4()), **values)
                session.add(row)
                await session.commit()
                await session.refresh(row)
                return entity_from_row(row)
        except SQLAlchemyError as e:
            raise self._store_error("create", values["period"], e) from e

    async def read(self, revenue_id: str) -> RevenueEntity | None:
        try:
            async with self._session_maker() as session:
                row = await session.get(RevenueTable, revenue_id)
                return entity_from_row(row) if row else None
        except SQLAlchemyError as e:
            raise self._store_error("read", None, e) from e

    async def update(self, revenue_id: str, data: RevenueUpdate) -> RevenueEntity:
        changes = self._changes(data)
        try:
            async with self._session_maker() as session:
                row = await session.get(RevenueTable, revenue_id)
                if row is None:
                    raise RevenueNotFoundError(
                        f"Revenue record {revenue_id} not found", revenue_id=revenue_id
                    )
                self._apply(row, changes)
                await session.commit()
                await session.refresh(row)
                return entity_from_row(row)
        except SQLAlchemyError as e:
            raise self._store_error("update", None, e) from e

    async def delete(self, revenue_id: str) -> None:
        try:
            async with self._session_maker() as session:
                result = await session.execute(
                    delete(RevenueTable).where(RevenueTable.id == revenue_id)
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise self._store_error("delete", None, e) from e

        if result.rowcount == 0:
            raise RevenueNotFoundError(
                f"Revenue record {revenue_id} not found", revenue_id=revenue_id
            )

    async def upsert(self, data: RevenueCreate) -> RevenueEntity:
        values = data.model_dump(exclude={"period"})
        values["calculation_source"] = data.calculation_source.value
        return await self._merge(to_period(data.period), values, "upsert")

    async def upsert_by_period(self, period: date, data: RevenueUpdate) -> RevenueEntity:
        return await self._merge(to_period(period), self._changes(data), "upsert_by_period")

    async def find_by_period(self, period: date) -> RevenueEntity | None:
        target = to_period(period)
        try:
            async with self._session_maker() as session:
                result = await session.execute(
                    select(RevenueTable).where(RevenueTable.period == target)
                )
                row = result.scalar_one_or_none()
                return entity_from_row(row) if row else None
        except SQLAlchemyError as e:
            raise self._store_error("find_by_period", target, e) from e

    async def find_by_date_range(self, start: date, end: date) -> list[RevenueEntity]:
        try:
            async with self._session_maker() as session:
                result = await session.execute(
                    select(RevenueTable)
                    .where(RevenueTable.period >= start, RevenueTable.period <= end)
                    .order_by(RevenueTable.period)
                )
                return [entity_from_row(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise self._store_error("find_by_date_range", None, e) from e

    async def _merge(self, period: date, changes: dict[str, Any], operation: str) -> RevenueEntity:
        try:
            async with self._session_maker() as session:
                result = await session.execute(
                    select(RevenueTable).where(RevenueTable.period == period)
                )
                row = result.scalar_one_or_none()
                if row is None:
                    values = dict.fromkeys(_AMOUNT_FIELDS, 0) | changes
                    check_row_values(values)
                    row = RevenueTable(id=str(uuid4()), period=period, **values)
                    session.add(row)
                else:
                    self._apply(row, changes)
                await session.commit()
                await session.refresh(row)
                return entity_from_row(row)
        except SQLAlchemyError as e:
            raise self._store_error(operation, period, e) from e

    @staticmethod
    def _changes(data: RevenueUpdate) -> dict[str, Any]:
        changes = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        if "calculation_source" in changes:
            changes["calculation_source"] = data.calculation_source.value
        return changes

    @staticmethod
    def _apply(row: RevenueTable, changes: dict[str, Any]) -> None:
        merged = {field: getattr(row, field) for field in _AMOUNT_FIELDS}
        merged.update({k: v for k, v in changes.items() if k in _AMOUNT_FIELDS})
        check_row_values(merged)
        for field, value in changes.items():
            setattr(row, field, value)

    @staticmethod
    def _store_error(operation: str, period: date | None, error: Exception) -> RevenueStoreError:
        key = period_key(period) if period else None
        logger.error(
            "Revenue store operation failed", operation=operation, period=key, error=str(error)
        )
        return RevenueStoreError(
            f"Revenue store {operation} failed", operation=operation, period=key, cause=error
        )


class InMemoryRevenueRepository(RevenueRepositoryInterface):
    """Dict-backed store keyed by period, for tests and single-process use."""

    def __init__(self) -> None:
        self._rows: dict[date, RevenueEntity] = {}

    async def create(self, data: RevenueCreate) -> RevenueEntity:
        period = to_period(data.period)
        if period in self._rows:
            raise RevenueStoreError(
                "Revenue record already exists for period",
                operation="create",
                period=period_key(period),
            )
        values = data.model_dump(exclude={"period"})
        check_row_values(values)
        entity = RevenueEntity(period=period, **values)
        self._rows[period] = entity
        return entity

    async def read(self, revenue_id: str) -> RevenueEntity | None:
        for entity in self._rows.values():
            if entity.id == revenue_id:
                return entity
        return None

    async def update(self, revenue_id: str, data: RevenueUpdate) -> RevenueEntity:
        existing = await self.read(revenue_id)
        if existing is None:
            raise RevenueNotFoundError(
                f"Revenue record {revenue_id} not found", revenue_id=revenue_id
            )
        return self._store_merged(existing, data.model_dump(exclude_unset=True))

    async def delete(self, revenue_id: str) -> None:
        existing = await self.read(revenue_id)
        if existing is None:
            raise RevenueNotFoundError(
                f"Revenue record {revenue_id} not found", revenue_id=revenue_id
            )
        del self._rows[existing.period]

    async def upsert(self, data: RevenueCreate) -> RevenueEntity:
        period = to_period(data.period)
        existing = self._rows.get(period)
        if existing is None:
            return await self.create(data)
        return self._store_merged(existing, data.model_dump(exclude={"period"}), drop_none=False)

    async def upsert_by_period(self, period: date, data: RevenueUpdate) -> RevenueEntity:
        target = to_period(period)
        changes = data.model_dump(exclude_unset=True)
        existing = self._rows.get(target)
        if existing is None:
            values = dict.fromkeys(_AMOUNT_FIELDS, 0) | changes
            check_row_values(values)
            entity = RevenueEntity(period=target, **values)
            self._rows[target] = entity
            return entity
        return self._store_merged(existing, changes)

    async def find_by_period(self, period: date) -> RevenueEntity | None:
        return self._rows.get(to_period(period))

    async def find_by_date_range(self, start: date, end: date) -> list[RevenueEntity]:
        return [self._rows[p] for p in sorted(self._rows) if start <= p <= end]

    def _store_merged(
        self, existing: RevenueEntity, changes: dict[str, Any], drop_none: bool = True
    ) -> RevenueEntity:
        if drop_none:
            changes = {k: v for k, v in changes.items() if v is not None}
        values = existing.model_dump() | changes
        check_row_values(values)
        values["updated_at"] = datetime.now(UTC)
        entity = RevenueEntity(**values)
        self._rows[entity.period] = entity
        return entity


__all__ = [
    "RevenueRepositoryInterface",
    "SQLAlchemyRevenueRepository",
    "InMemoryRevenueRepository",
    "check_row_values",
]
