"""
Rolling-year template and merge.

The template is a fixed, ordered list of the months ending at the current
one, independent of whether any revenue was recorded. Stored aggregates are
merged into it by exact period; gaps become zero-valued defaults.
"""

from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Literal

import structlog

from ledgerdash.revenues.exceptions import RevenueValidationError
from ledgerdash.revenues.models import (
    CalculationSource,
    RevenueDisplayEntity,
    RollingMonth,
    TemplateAndPeriods,
)
from ledgerdash.revenues.money import money_handler
from ledgerdash.revenues.periods import (
    MONTH_ORDER,
    add_months,
    last_day_of_month,
    month_abbreviation,
    to_period,
)
from ledgerdash.settings import settings

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class DateRange:
    """Window of the rolling year. ``end_date`` is the last day of the current month."""

    start_date: date
    end_date: date
    duration: Literal["year"] = "year"


def _today(now: date | datetime | None) -> date:
    if now is None:
        return datetime.now(UTC).date()
    if isinstance(now, datetime):
        return now.date()
    return now


def calculate_date_range(now: date | datetime | None = None, months: int | None = None) -> DateRange:
    """
    Window covering ``months`` months ending with the current month.

    Args:
        now: Reference time (defaults to the current UTC date)
        months: Window length (defaults to the configured rolling window)
    """
    window = months or settings.revenue.rolling_window_months
    current = to_period(_today(now))
    return DateRange(
        start_date=add_months(current, -(window - 1)),
        end_date=last_day_of_month(current),
    )


def generate_months_template(start: date, months: int = 12) -> list[RollingMonth]:
    """Ordered template entries for ``months`` consecutive months from ``start``."""
    first = to_period(start)
    template = []
    for index in range(months):
        period = add_months(first, index)
        template.append(
            RollingMonth(
                display_order=index,
                month=month_abbreviation(period),
                month_number=period.month,
                year=period.year,
                period=period,
            )
        )
    return template


def _check_template_entry(entry: RollingMonth | None, position: str) -> None:
    if entry is None:
        raise RevenueValidationError(f"Template {position} entry is missing")
    if entry.month not in MONTH_ORDER or entry.period.day != 1:
        raise RevenueValidationError(
            f"Template {position} entry is malformed",
            context={"month": entry.month, "period": entry.period.isoformat()},
        )


def build_template_and_periods(
    now: date | datetime | None = None, months: int | None = None
) -> TemplateAndPeriods:
    """
    Generate the rolling-year template and validate its boundaries.

    Raises:
        RevenueValidationError: When generation yields nothing or a boundary
            entry is malformed
    """
    date_range = calculate_date_range(now, months)
    window = months or settings.revenue.rolling_window_months
    template = generate_months_template(date_range.start_date, window)

    if not template:
        raise RevenueValidationError(
            "Failed to generate months template",
            context={"start_date": date_range.start_date.isoformat()},
        )

    _check_template_entry(template[0], "first")
    _check_template_entry(template[-1], "last")

    return TemplateAndPeriods(
        template=template,
        start_period=template[0].period,
        end_period=template[-1].period,
    )


def create_default_revenue_data(month: RollingMonth, currency: str | None = None) -> RevenueDisplayEntity:
    """Zero-valued display entity for a template slot without stored data."""
    code = (currency or settings.revenue.default_currency).upper()
    return RevenueDisplayEntity(
        id=f"template-{month.period.isoformat()}",
        period=month.period,
        month=month.month,
        month_number=month.month_number,
        year=month.year,
        currency=code,
        formatted_total=money_handler.format_minor_units(0, code),
        calculation_source=CalculationSource.TEMPLATE,
    )


def merge_with_template(
    template: list[RollingMonth],
    entities: list[RevenueDisplayEntity],
    currency: str | None = None,
) -> list[RevenueDisplayEntity]:
    """
    Lay stored values onto the template.

    Output has the template's length and order. A slot takes the entity whose
    period matches exactly; otherwise a zero-valued default.
    """
    by_period = {entity.period: entity for entity in entities}
    merged = []
    for month in template:
        entity = by_period.get(month.period)
        merged.append(entity if entity is not None else create_default_revenue_data(month, currency))

    unmatched = len(by_period.keys() - {month.period for month in template})
    if unmatched:
        logger.warning("Revenue entities outside the template were dropped", count=unmatched)
    return merged


def build_defaults_from_fresh_template(
    now: date | datetime | None = None, currency: str | None = None
) -> list[RevenueDisplayEntity]:
    """All-default series for the current rolling year."""
    template_and_periods = build_template_and_periods(now)
    return [
        create_default_revenue_data(month, currency)
        for month in template_and_periods.template
    ]


__all__ = [
    "DateRange",
    "calculate_date_range",
    "generate_months_template",
    "build_template_and_periods",
    "create_default_revenue_data",
    "merge_with_template",
    "build_defaults_from_fresh_template",
]
