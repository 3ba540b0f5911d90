"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from caregiver_payroll.calculators.types import (
    MINUTES_PER_UNIT,
    CaregiverPayrollInput,
    MileageEntry,
    PTOEntry,
    PTOStatus,
    PTOType,
    ShiftRecord,
)


# ============================================================================
# Input feeds
# ============================================================================


class ShiftIn(BaseModel):
    """One shift from the time-tracking feed."""

    shift_id: UUID | None = None
    client_id: UUID
    scheduled_start: datetime
    scheduled_end: datetime
    allotted_minutes: int | None = Field(default=None, ge=0)
    allotted_units: int | None = Field(default=None, ge=0)
    actual_clock_in: datetime | None = None
    actual_clock_out: datetime | None = None
    is_weekend: bool = False
    is_night: bool = False

    @model_validator(mode="after")
    def _units_to_minutes(self) -> "ShiftIn":
        if self.allotted_units is not None:
            minutes = self.allotted_units * MINUTES_PER_UNIT
            if self.allotted_minutes is not None and self.allotted_minutes != minutes:
                raise ValueError("allotted_minutes disagrees with allotted_units")
            self.allotted_minutes = minutes
        return self

    def to_record(self, caregiver_id: UUID) -> ShiftRecord:
        return ShiftRecord(
            shift_id=self.shift_id,
            caregiver_id=caregiver_id,
            client_id=self.client_id,
            scheduled_start=self.scheduled_start,
            scheduled_end=self.scheduled_end,
            allotted_minutes=self.allotted_minutes,
            actual_clock_in=self.actual_clock_in,
            actual_clock_out=self.actual_clock_out,
            is_weekend=self.is_weekend,
            is_night=self.is_night,
        )


class MileageIn(BaseModel):
    date: date
    miles: Decimal = Field(ge=0)
    from_location: str | None = None
    to_location: str | None = None
    notes: str | None = None


class PTOIn(BaseModel):
    type: PTOType
    start_date: date
    end_date: date
    hours: Decimal = Field(ge=0)
    status: PTOStatus = PTOStatus.APPROVED


class CaregiverIn(BaseModel):
    """Everything fetched for one caregiver."""

    caregiver_id: UUID
    hourly_rate: Decimal | None = None
    shifts: list[ShiftIn] = Field(default_factory=list)
    mileage: list[MileageIn] = Field(default_factory=list)
    pto: list[PTOIn] = Field(default_factory=list)

    def to_input(self) -> CaregiverPayrollInput:
        return CaregiverPayrollInput(
            caregiver_id=self.caregiver_id,
            hourly_rate=self.hourly_rate,
            shifts=[s.to_record(self.caregiver_id) for s in self.shifts],
            mileage=[
                MileageEntry(caregiver_id=self.caregiver_id, **m.model_dump())
                for m in self.mileage
            ],
            pto=[
                PTOEntry(caregiver_id=self.caregiver_id, **p.model_dump())
                for p in self.pto
            ],
        )


class PayrollSettingsIn(BaseModel):
    """Overrides for the configured payroll settings (omitted fields keep their value)."""

    overtime_threshold: Decimal | None = None
    overtime_rate: Decimal | None = None
    daily_overtime_enabled: bool | None = None
    daily_overtime_threshold: Decimal | None = None
    weekend_differential: Decimal | None = None
    night_differential: Decimal | None = None
    mileage_rate: Decimal | None = None
    federal_tax_rate: Decimal | None = None
    state_tax_rate: Decimal | None = None
    social_security_rate: Decimal | None = None
    medicare_rate: Decimal | None = None
    default_hourly_rate: Decimal | None = None


# ============================================================================
# Calculation
# ============================================================================


class CalculateRequest(BaseModel):
    """Calculate (or recalculate) a pay period."""

    period_start: date
    period_end: date
    settings: PayrollSettingsIn | None = None
    force: bool = False
    caregivers: list[CaregiverIn]


class PayrollRecordResponse(BaseModel):
    """Schema for payroll record response."""

    model_config = ConfigDict(from_attributes=True)

    payroll_record_id: UUID
    caregiver_id: UUID
    period_start: date
    period_end: date
    status: str

    hourly_rate: Decimal
    total_hours: Decimal
    regular_hours: Decimal
    overtime_hours: Decimal
    weekend_hours: Decimal
    night_hours: Decimal
    pto_hours: Decimal
    paid_pto_hours: Decimal
    total_miles: Decimal

    regular_pay: Decimal
    overtime_pay: Decimal
    weekend_pay: Decimal
    night_pay: Decimal
    pto_pay: Decimal
    mileage_reimbursement: Decimal
    taxable_wages: Decimal
    gross_pay: Decimal

    federal_tax: Decimal
    state_tax: Decimal
    social_security: Decimal
    medicare: Decimal
    total_deductions: Decimal
    net_pay: Decimal

    check_number: int | None = None
    approved_at: datetime | None = None
    approved_by: str | None = None
    processed_at: datetime | None = None
    processed_by: str | None = None
    paid_at: datetime | None = None

    calculation_id: UUID
    inputs_fingerprint: str
    settings_fingerprint: str
    recalculation_count: int


class CalculationFailureResponse(BaseModel):
    caregiver_id: UUID
    reason: str


class IncompleteShiftResponse(BaseModel):
    caregiver_id: UUID
    shift_id: UUID | None
    client_id: UUID
    scheduled_start: datetime
    status: str


class BatchTotalsResponse(BaseModel):
    total_hours: Decimal
    overtime_hours: Decimal
    total_miles: Decimal
    gross_pay: Decimal
    total_deductions: Decimal
    net_pay: Decimal
    mileage_reimbursement: Decimal


class CalculateResponse(BaseModel):
    """Records for the period after the merge.

    records holds every record written by this run; kept holds records whose
    status protected them from being overwritten.
    """

    period_start: date
    period_end: date
    settings_fingerprint: str
    records: list[PayrollRecordResponse]
    kept: list[PayrollRecordResponse]
    failures: list[CalculationFailureResponse]
    incomplete_shifts: list[IncompleteShiftResponse]
    totals: BatchTotalsResponse


class PayrollRecordListResponse(BaseModel):
    items: list[PayrollRecordResponse]
    total: int


# ============================================================================
# Lifecycle
# ============================================================================


class TransitionRequest(BaseModel):
    actor: str | None = None


class ApproveAllRequest(BaseModel):
    period_start: date
    period_end: date
    actor: str | None = None


class ApproveAllResponse(BaseModel):
    approved: list[PayrollRecordResponse]
    skipped: list[PayrollRecordResponse]


# ============================================================================
# Discrepancy report
# ============================================================================


class DiscrepancyRequest(BaseModel):
    period_start: date
    period_end: date
    min_discrepancy: int = Field(default=5, ge=0)
    caregivers: list[CaregiverIn]


class DiscrepancyEntryResponse(BaseModel):
    caregiver_id: UUID
    client_id: UUID
    shift_id: UUID | None
    actual_clock_in: datetime
    actual_clock_out: datetime
    worked_minutes: int
    allotted_minutes: int
    billable_minutes: int
    discrepancy_minutes: int
    late_minutes: int
    flagged: bool
    billable_pay: Decimal
    actual_pay: Decimal
    overage_cost: Decimal


class DiscrepancyTotalsResponse(BaseModel):
    total_shifts: int
    total_actual_hours: Decimal
    total_allotted_hours: Decimal
    total_billable_hours: Decimal
    total_overage_cost: Decimal
    overage_count: int
    underage_count: int


class InvalidShiftResponse(BaseModel):
    caregiver_id: UUID
    shift_id: UUID | None
    client_id: UUID
    reason: str


class DiscrepancyResponse(BaseModel):
    period_start: date
    period_end: date
    discrepancies: list[DiscrepancyEntryResponse]
    totals: DiscrepancyTotalsResponse
    incomplete_shift_count: int
    invalid_shifts: list[InvalidShiftResponse] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Schema for error responses."""

    detail: str
    code: str | None = None
    errors: list[Any] | None = None
