"""Type definitions for calculation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

# 1 authorized service unit = 15 minutes
MINUTES_PER_UNIT = 15


class ShiftStatus(str, Enum):
    """Where a shift is in the time-tracking lifecycle."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class PTOType(str, Enum):
    """Leave categories."""

    VACATION = "vacation"
    SICK = "sick"
    PERSONAL = "personal"
    BEREAVEMENT = "bereavement"
    JURY_DUTY = "jury_duty"
    UNPAID = "unpaid"

    @property
    def is_paid(self) -> bool:
        return self is not PTOType.UNPAID


class PTOStatus(str, Enum):
    """Approval state of a leave request. Only approved leave is paid."""

    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


@dataclass
class ShiftRecord:
    """One scheduled/worked visit, as supplied by the time-tracking subsystem.

    The reconciler writes billable_minutes, discrepancy_minutes and
    overage_cost back onto the record; everything else is read-only here.
    """

    caregiver_id: UUID
    client_id: UUID
    scheduled_start: datetime
    scheduled_end: datetime
    allotted_minutes: int | None = None  # None = no authorization on file
    actual_clock_in: datetime | None = None
    actual_clock_out: datetime | None = None
    is_weekend: bool = False
    is_night: bool = False
    shift_id: UUID | None = None

    # Written back by the reconciler
    billable_minutes: int | None = None
    discrepancy_minutes: int | None = None
    overage_cost: Decimal | None = None

    @classmethod
    def from_units(cls, allotted_units: int, **kwargs: Any) -> ShiftRecord:
        """Build a shift whose allotment is given in authorized service units."""
        return cls(allotted_minutes=allotted_units * MINUTES_PER_UNIT, **kwargs)

    @property
    def status(self) -> ShiftStatus:
        if self.actual_clock_in is None:
            return ShiftStatus.SCHEDULED
        if self.actual_clock_out is None:
            return ShiftStatus.IN_PROGRESS
        return ShiftStatus.COMPLETED

    @property
    def service_date(self) -> date:
        """Calendar day the shift counts toward (clock-in day, else scheduled day)."""
        start = self.actual_clock_in or self.scheduled_start
        return start.date()


@dataclass(frozen=True)
class MileageEntry:
    """Miles driven by a caregiver on one day."""

    caregiver_id: UUID
    date: date
    miles: Decimal
    from_location: str | None = None
    to_location: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class PTOEntry:
    """A block of leave."""

    caregiver_id: UUID
    type: PTOType
    start_date: date
    end_date: date
    hours: Decimal
    status: PTOStatus = PTOStatus.APPROVED


@dataclass
class CaregiverPayrollInput:
    """Everything the pipeline needs for one caregiver, already fetched."""

    caregiver_id: UUID
    hourly_rate: Decimal | None = None  # None = settings.default_hourly_rate
    shifts: list[ShiftRecord] = field(default_factory=list)
    mileage: list[MileageEntry] = field(default_factory=list)
    pto: list[PTOEntry] = field(default_factory=list)


@dataclass(frozen=True)
class ShiftReconciliation:
    """Allotted vs. actual comparison for one completed shift."""

    worked_minutes: int
    allotted_minutes: int | None
    billable_minutes: int
    discrepancy_minutes: int | None  # Signed: positive = over, negative = short
    late_minutes: int
    effective_end: datetime
    flagged: bool
    billable_pay: Decimal
    actual_pay: Decimal
    overage_cost: Decimal
    shift_id: UUID | None = None

    @property
    def is_overage(self) -> bool:
        return self.discrepancy_minutes is not None and self.discrepancy_minutes > 0

    @property
    def is_shortfall(self) -> bool:
        return self.discrepancy_minutes is not None and self.discrepancy_minutes < 0


@dataclass
class AggregatedHours:
    """Hour buckets for one caregiver over one period.

    weekend_hours and night_hours are subsets of total_hours, not extras.
    """

    caregiver_id: UUID
    period_start: date
    period_end: date
    total_hours: Decimal = Decimal("0")
    regular_hours: Decimal = Decimal("0")
    overtime_hours: Decimal = Decimal("0")
    weekend_hours: Decimal = Decimal("0")
    night_hours: Decimal = Decimal("0")
    shift_count: int = 0
    reconciliations: list[ShiftReconciliation] = field(default_factory=list)
    incomplete_shifts: list[ShiftRecord] = field(default_factory=list)


@dataclass
class PayrollFigures:
    """Calculated pay for one caregiver and one period, before persistence."""

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
