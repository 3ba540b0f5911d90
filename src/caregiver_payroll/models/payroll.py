"""Payroll record model."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, DateTime, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from caregiver_payroll.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from caregiver_payroll.calculators.engine import CaregiverCalculationResult

HOURS = Numeric(10, 4)
MONEY = Numeric(12, 2)

# Columns a recalculation replaces wholesale
FIGURE_COLUMNS = (
    "hourly_rate",
    "total_hours",
    "regular_hours",
    "overtime_hours",
    "weekend_hours",
    "night_hours",
    "pto_hours",
    "paid_pto_hours",
    "total_miles",
    "regular_pay",
    "overtime_pay",
    "weekend_pay",
    "night_pay",
    "pto_pay",
    "mileage_reimbursement",
    "taxable_wages",
    "gross_pay",
    "federal_tax",
    "state_tax",
    "social_security",
    "medicare",
    "total_deductions",
    "net_pay",
)


class PayrollRecord(Base, TimestampMixin):
    """One caregiver's pay for one pay period."""

    __tablename__ = "payroll_record"

    payroll_record_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    caregiver_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")

    # Hour buckets
    hourly_rate: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    total_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=Decimal("0"))
    regular_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=Decimal("0"))
    overtime_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=Decimal("0"))
    weekend_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=Decimal("0"))
    night_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=Decimal("0"))
    pto_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=Decimal("0"))
    paid_pto_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=Decimal("0"))
    total_miles: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=Decimal("0"))

    # Pay components
    regular_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    overtime_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    weekend_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    night_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    pto_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    mileage_reimbursement: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    taxable_wages: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    gross_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))

    # Withholdings
    federal_tax: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    state_tax: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    social_security: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    medicare: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    total_deductions: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    net_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))

    # Lifecycle
    check_number: Mapped[int | None] = mapped_column(Integer, nullable=True, unique=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String, nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    processed_by: Mapped[str | None] = mapped_column(String, nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Traceability
    calculation_id: Mapped[UUID] = mapped_column(nullable=False)
    inputs_fingerprint: Mapped[str] = mapped_column(String(32), nullable=False)
    settings_fingerprint: Mapped[str] = mapped_column(String(32), nullable=False)
    recalculation_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint(
            "caregiver_id", "period_start", "period_end",
            name="payroll_record_caregiver_period_key",
        ),
        CheckConstraint(
            "status IN ('draft', 'approved', 'processed', 'paid')",
            name="payroll_record_status_check",
        ),
        CheckConstraint("period_end >= period_start", name="payroll_record_period_check"),
    )

    @staticmethod
    def figure_values(result: CaregiverCalculationResult) -> dict[str, Any]:
        """Column values carried by a calculation result."""
        values = {name: getattr(result.figures, name) for name in FIGURE_COLUMNS}
        values["calculation_id"] = result.calculation_id
        values["inputs_fingerprint"] = result.inputs_fingerprint
        values["settings_fingerprint"] = result.settings_fingerprint
        return values

    @classmethod
    def from_result(
        cls, result: CaregiverCalculationResult, period_start: date, period_end: date
    ) -> PayrollRecord:
        """Build a new draft record from a calculation result."""
        return cls(
            payroll_record_id=uuid4(),
            caregiver_id=result.caregiver_id,
            period_start=period_start,
            period_end=period_end,
            status="draft",
            recalculation_count=0,
            **cls.figure_values(result),
        )
