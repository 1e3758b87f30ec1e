"""
Revenue aggregation.

Per-period aggregates maintained from invoice events, plus the rolling-year
read path used by reporting.
"""

from ledgerdash.revenues.classifier import ChangeType, classify_change
from ledgerdash.revenues.eligibility import (
    ELIGIBLE_STATUSES,
    is_counted,
    is_eligible,
    is_invoice_eligible,
)
from ledgerdash.revenues.event_handler import RevenueEventHandler
from ledgerdash.revenues.exceptions import (
    RevenueError,
    RevenueNotFoundError,
    RevenueStoreError,
    RevenueValidationError,
)
from ledgerdash.revenues.handlers import MutationPlan, PlanAction
from ledgerdash.revenues.models import (
    CalculationSource,
    RevenueChartData,
    RevenueCreate,
    RevenueDisplayEntity,
    RevenueEntity,
    RevenueStatistics,
    RevenueTable,
    RevenueUpdate,
    RollingMonth,
    TemplateAndPeriods,
)
from ledgerdash.revenues.recalculation import RecalculationResult, RevenueRecalculationService
from ledgerdash.revenues.repository import (
    InMemoryRevenueRepository,
    RevenueRepositoryInterface,
    SQLAlchemyRevenueRepository,
)
from ledgerdash.revenues.service import RevenueService
from ledgerdash.revenues.statistics import RevenueStatisticsService, compute_statistics
from ledgerdash.revenues.template import (
    build_defaults_from_fresh_template,
    build_template_and_periods,
    calculate_date_range,
    generate_months_template,
    merge_with_template,
)

__all__ = [
    # Policy and classification
    "ELIGIBLE_STATUSES",
    "is_eligible",
    "is_counted",
    "is_invoice_eligible",
    "ChangeType",
    "classify_change",
    "MutationPlan",
    "PlanAction",
    # Models
    "CalculationSource",
    "RevenueTable",
    "RevenueEntity",
    "RevenueCreate",
    "RevenueUpdate",
    "RevenueDisplayEntity",
    "RevenueStatistics",
    "RevenueChartData",
    "RollingMonth",
    "TemplateAndPeriods",
    # Store
    "RevenueRepositoryInterface",
    "SQLAlchemyRevenueRepository",
    "InMemoryRevenueRepository",
    # Services
    "RevenueService",
    "RevenueEventHandler",
    "RevenueStatisticsService",
    "RevenueRecalculationService",
    "RecalculationResult",
    "compute_statistics",
    # Template
    "calculate_date_range",
    "generate_months_template",
    "build_template_and_periods",
    "merge_with_template",
    "build_defaults_from_fresh_template",
    # Errors
    "RevenueError",
    "RevenueValidationError",
    "RevenueStoreError",
    "RevenueNotFoundError",
]
