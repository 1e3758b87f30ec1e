"""
Tests for the rolling-year template and merge.
"""

from datetime import UTC, date, datetime
from decimal import Decimal

import pytest
from freezegun import freeze_time

from ledgerdash.revenues.exceptions import RevenueValidationError
from ledgerdash.revenues.models import CalculationSource, RevenueDisplayEntity
from ledgerdash.revenues.template import (
    build_defaults_from_fresh_template,
    build_template_and_periods,
    calculate_date_range,
    create_default_revenue_data,
    generate_months_template,
    merge_with_template,
)


def _display(period: date, total: str) -> RevenueDisplayEntity:
    return RevenueDisplayEntity(
        id=f"row-{period.isoformat()}",
        period=period,
        month="x",
        month_number=period.month,
        year=period.year,
        invoice_count=1,
        total_amount=Decimal(total),
        total_paid_amount=Decimal(total),
        calculation_source=CalculationSource.INVOICE_EVENT,
    )


@pytest.mark.unit
class TestDateRange:
    def test_window_ends_with_current_month(self):
        date_range = calculate_date_range(date(2024, 6, 18))

        assert date_range.start_date == date(2023, 7, 1)
        assert date_range.end_date == date(2024, 6, 30)
        assert date_range.duration == "year"

    def test_uses_current_time_by_default(self):
        with freeze_time("2025-01-10 08:00:00"):
            date_range = calculate_date_range()

        assert date_range.start_date == date(2024, 2, 1)
        assert date_range.end_date == date(2025, 1, 31)

    def test_accepts_datetime(self):
        date_range = calculate_date_range(datetime(2024, 12, 31, 23, 0, tzinfo=UTC))
        assert date_range.start_date == date(2024, 1, 1)


@pytest.mark.unit
class TestMonthsTemplate:
    def test_twelve_chronological_entries(self):
        template = generate_months_template(date(2023, 7, 1), 12)

        assert len(template) == 12
        assert [entry.display_order for entry in template] == list(range(12))
        assert template[0].month == "Jul"
        assert template[0].year == 2023
        assert template[5].month == "Dec"
        assert template[6].month == "Jan"
        assert template[6].year == 2024
        assert template[-1].period == date(2024, 6, 1)
        assert all(entry.period.day == 1 for entry in template)

    def test_build_template_and_periods(self):
        result = build_template_and_periods(date(2024, 6, 18))

        assert result.start_period == date(2023, 7, 1)
        assert result.end_period == date(2024, 6, 1)
        assert len(result.template) == 12

    def test_build_fails_when_generation_yields_nothing(self, monkeypatch):
        monkeypatch.setattr(
            "ledgerdash.revenues.template.generate_months_template", lambda start, months: []
        )

        with pytest.raises(RevenueValidationError):
            build_template_and_periods(date(2024, 6, 18))


@pytest.mark.unit
class TestMergeWithTemplate:
    @pytest.fixture
    def template(self):
        return generate_months_template(date(2023, 7, 1), 12)

    def test_subset_is_merged_in_template_order(self, template):
        fetched = [_display(date(2024, 2, 1), "25.00"), _display(date(2023, 8, 1), "10.50")]

        merged = merge_with_template(template, fetched)

        assert len(merged) == 12
        assert [entry.period for entry in merged] == [entry.period for entry in template]
        assert merged[1] is fetched[1]
        assert merged[7] is fetched[0]
        for index, entry in enumerate(merged):
            if index not in (1, 7):
                assert entry.total_amount == Decimal("0")
                assert entry.invoice_count == 0
                assert entry.calculation_source is CalculationSource.TEMPLATE

    def test_empty_fetch_gives_all_defaults(self, template):
        merged = merge_with_template(template, [])

        assert len(merged) == 12
        assert all(entry.total_amount == 0 for entry in merged)
        assert merged[0].month == "Jul"

    def test_entities_outside_template_are_dropped(self, template):
        merged = merge_with_template(template, [_display(date(2022, 1, 1), "99.00")])

        assert len(merged) == 12
        assert all(entry.total_amount == 0 for entry in merged)


@pytest.mark.unit
class TestDefaults:
    def test_create_default_revenue_data(self):
        month = generate_months_template(date(2024, 3, 1), 1)[0]

        default = create_default_revenue_data(month, "eur")

        assert default.period == date(2024, 3, 1)
        assert default.month == "Mar"
        assert default.currency == "EUR"
        assert default.total_amount == Decimal("0")
        assert default.formatted_total == "€0.00"

    def test_build_defaults_from_fresh_template(self):
        with freeze_time("2024-06-18"):
            defaults = build_defaults_from_fresh_template()

        assert len(defaults) == 12
        assert defaults[0].period == date(2023, 7, 1)
        assert defaults[-1].period == date(2024, 6, 1)
