"""
Revenue aggregate models.

``RevenueTable`` is the persisted aggregate row (one per period).
``RevenueEntity`` is the domain view of a row, ``RevenueDisplayEntity`` the
presentation view derived on every read.
"""

from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator
from sqlalchemy import BigInteger, CheckConstraint, Date, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ledgerdash.db import Base, TimestampMixin


class CalculationSource(str, Enum):
    """Provenance of an aggregate row."""

    SEED = "seed"
    INVOICE_EVENT = "invoice_event"
    ROLLING_CALCULATION = "rolling_calculation"
    TEMPLATE = "template"


class RevenueTable(TimestampMixin, Base):
    """SQLAlchemy table for per-period revenue aggregates."""

    __tablename__ = "revenues"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    period: Mapped[date] = mapped_column(Date, nullable=False, unique=True)

    invoice_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    total_paid_amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    total_pending_amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    calculation_source: Mapped[str] = mapped_column(
        String(32), nullable=False, default=CalculationSource.INVOICE_EVENT.value
    )
    # invoice_id:operation:event_id of the last event applied to this row
    last_event_key: Mapped[str | None] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        CheckConstraint("invoice_count >= 0", name="ck_revenues_invoice_count_non_negative"),
        CheckConstraint("total_amount >= 0", name="ck_revenues_total_non_negative"),
        CheckConstraint("total_paid_amount >= 0", name="ck_revenues_paid_non_negative"),
        CheckConstraint("total_pending_amount >= 0", name="ck_revenues_pending_non_negative"),
    )


class RevenueEntity(BaseModel):
    """Aggregate row as seen by the domain. Amounts are minor units."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    period: date
    invoice_count: int = Field(ge=0)
    total_amount: int = Field(ge=0)
    total_paid_amount: int = Field(ge=0)
    total_pending_amount: int = Field(ge=0)
    calculation_source: CalculationSource = CalculationSource.INVOICE_EVENT
    last_event_key: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @model_validator(mode="after")
    def check_buckets(self) -> "RevenueEntity":
        if self.total_amount != self.total_paid_amount + self.total_pending_amount:
            raise ValueError(
                "total_amount must equal total_paid_amount + total_pending_amount "
                f"({self.total_amount} != {self.total_paid_amount} + {self.total_pending_amount})"
            )
        return self


class RevenueCreate(BaseModel):
    """Values for a new aggregate row."""

    period: date
    invoice_count: int = Field(ge=0)
    total_amount: int = Field(ge=0)
    total_paid_amount: int = Field(0, ge=0)
    total_pending_amount: int = Field(0, ge=0)
    calculation_source: CalculationSource = CalculationSource.INVOICE_EVENT
    last_event_key: str | None = None


class RevenueUpdate(BaseModel):
    """Partial update of an aggregate row; unset fields are left untouched."""

    invoice_count: int | None = Field(None, ge=0)
    total_amount: int | None = Field(None, ge=0)
    total_paid_amount: int | None = Field(None, ge=0)
    total_pending_amount: int | None = Field(None, ge=0)
    calculation_source: CalculationSource | None = None
    last_event_key: str | None = None


class RollingMonth(BaseModel):
    """One slot of the rolling-year template, independent of stored data."""

    model_config = ConfigDict(frozen=True)

    display_order: int = Field(ge=0)
    month: str
    month_number: int = Field(ge=1, le=12)
    year: int
    period: date


class TemplateAndPeriods(BaseModel):
    """Validated template plus the first and last period it covers."""

    model_config = ConfigDict(frozen=True)

    template: list[RollingMonth]
    start_period: date
    end_period: date


class RevenueDisplayEntity(BaseModel):
    """Per-period values converted for presentation. Never persisted."""

    model_config = ConfigDict(frozen=True)

    id: str
    period: date
    month: str
    month_number: int
    year: int
    invoice_count: int = 0
    total_amount: Decimal = Decimal("0")
    total_paid_amount: Decimal = Decimal("0")
    total_pending_amount: Decimal = Decimal("0")
    currency: str = "USD"
    formatted_total: str | None = None
    calculation_source: CalculationSource = CalculationSource.TEMPLATE


class RevenueStatistics(BaseModel):
    """Summary over the rolling year, in major currency units."""

    minimum: Decimal = Decimal("0")
    maximum: Decimal = Decimal("0")
    average: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    months_with_data: int = 0


class RevenueChartData(BaseModel):
    """Rolling-year series and statistics handed to reporting."""

    monthly_data: list[RevenueDisplayEntity]
    statistics: RevenueStatistics
    year: int
