"""
Rolling-year read path and summary statistics.

The read path never raises to its caller: it degrades from live data to an
all-default series and, as a last resort, to an empty list.
"""

from collections.abc import Callable
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal

from ledgerdash.logging import get_logger
from ledgerdash.revenues.mappers import to_display_entity
from ledgerdash.revenues.models import RevenueChartData, RevenueDisplayEntity, RevenueStatistics
from ledgerdash.revenues.money import MoneyHandler, money_handler
from ledgerdash.revenues.periods import last_day_of_month, period_key
from ledgerdash.revenues.repository import RevenueRepositoryInterface
from ledgerdash.revenues.template import (
    build_defaults_from_fresh_template,
    build_template_and_periods,
    merge_with_template,
)

logger = get_logger(__name__)


def compute_statistics(
    entities: list[RevenueDisplayEntity], precision: int = 2
) -> RevenueStatistics:
    """
    Summarize a display series.

    Minimum, maximum and average only consider months with revenue
    (total > 0); the total sums every month.
    """
    with_data = [entity.total_amount for entity in entities if entity.total_amount > 0]
    if not with_data:
        return RevenueStatistics()

    total = sum((entity.total_amount for entity in entities), Decimal("0"))
    quantum = Decimal(1).scaleb(-precision)
    average = (sum(with_data, Decimal("0")) / len(with_data)).quantize(quantum, ROUND_HALF_UP)

    return RevenueStatistics(
        minimum=min(with_data),
        maximum=max(with_data),
        average=average,
        total=total,
        months_with_data=len(with_data),
    )


class RevenueStatisticsService:
    """Builds the rolling-year series and its statistics for reporting."""

    def __init__(
        self,
        repository: RevenueRepositoryInterface,
        clock: Callable[[], datetime] | None = None,
        currency: str | None = None,
        money: MoneyHandler | None = None,
    ):
        self.repository = repository
        self.clock = clock or (lambda: datetime.now(UTC))
        self.money = money or money_handler
        self.currency = (currency or self.money.default_currency.code).upper()

    async def calculate_for_rolling_year(self) -> list[RevenueDisplayEntity]:
        """Display series for the rolling year, one entry per month in order."""
        now = self.clock()
        try:
            template_and_periods = build_template_and_periods(now)
            rows = await self.repository.find_by_date_range(
                template_and_periods.start_period,
                last_day_of_month(template_and_periods.end_period),
            )
            entities = [to_display_entity(row, self.currency, self.money) for row in rows]
            merged = merge_with_template(template_and_periods.template, entities, self.currency)

            logger.debug(
                "Rolling year revenue calculated",
                start_period=period_key(template_and_periods.start_period),
                end_period=period_key(template_and_periods.end_period),
                stored_months=len(rows),
            )
            return merged
        except Exception as e:
            logger.error(
                "Failed to calculate rolling year revenue, using template defaults",
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )

        try:
            return build_defaults_from_fresh_template(now, self.currency)
        except Exception as e:
            logger.error(
                "Failed to build default revenue template",
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return []

    def calculate_statistics(self, entities: list[RevenueDisplayEntity]) -> RevenueStatistics:
        return compute_statistics(entities, self.money.get_currency_precision(self.currency))

    async def get_chart_data(self) -> RevenueChartData:
        """Series, statistics and target year in one payload."""
        monthly_data = await self.calculate_for_rolling_year()
        statistics = self.calculate_statistics(monthly_data)
        year = monthly_data[-1].year if monthly_data else self.clock().year

        logger.info(
            "Revenue chart data prepared",
            year=year,
            months=len(monthly_data),
            months_with_data=statistics.months_with_data,
        )
        return RevenueChartData(monthly_data=monthly_data, statistics=statistics, year=year)


__all__ = ["compute_statistics", "RevenueStatisticsService"]
