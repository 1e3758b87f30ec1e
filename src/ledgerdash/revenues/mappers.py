"""
Data mappers for revenue aggregates.

Transforms between table rows, domain entities and display entities.
"""

from ledgerdash.revenues.models import RevenueDisplayEntity, RevenueEntity, RevenueTable
from ledgerdash.revenues.money import MoneyHandler, money_handler
from ledgerdash.revenues.periods import month_abbreviation


def entity_from_row(row: RevenueTable) -> RevenueEntity:
    return RevenueEntity.model_validate(row)


def to_display_entity(
    entity: RevenueEntity,
    currency: str | None = None,
    handler: MoneyHandler | None = None,
) -> RevenueDisplayEntity:
    """Convert an aggregate row to major currency units for presentation."""
    money = handler or money_handler
    code = (currency or money.default_currency.code).upper()
    return RevenueDisplayEntity(
        id=entity.id,
        period=entity.period,
        month=month_abbreviation(entity.period),
        month_number=entity.period.month,
        year=entity.period.year,
        invoice_count=entity.invoice_count,
        total_amount=money.to_major_units(entity.total_amount, code),
        total_paid_amount=money.to_major_units(entity.total_paid_amount, code),
        total_pending_amount=money.to_major_units(entity.total_pending_amount, code),
        currency=code,
        formatted_total=money.format_minor_units(entity.total_amount, code),
        calculation_source=entity.calculation_source,
    )

