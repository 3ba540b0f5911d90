"""Allotted vs. actual shift reconciliation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable
from uuid import UUID

from caregiver_payroll.calculators.types import (
    ShiftReconciliation,
    ShiftRecord,
    ShiftStatus,
)

CENTS = Decimal("0.01")
MINUTES_PER_HOUR = Decimal("60")


class IncompleteShiftError(Exception):
    """Raised when a shift is missing its clock-in or clock-out."""

    def __init__(self, shift: ShiftRecord):
        self.shift = shift
        self.status = shift.status
        super().__init__(
            f"Shift {shift.shift_id or '(unsaved)'} for caregiver {shift.caregiver_id} "
            f"is {shift.status.value}; both clock-in and clock-out are required"
        )


def minutes_between(start, end) -> int:
    """Whole minutes from start to end, rounded half up."""
    seconds = Decimal(str((end - start).total_seconds()))
    return int((seconds / 60).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def pay_for_minutes(minutes: int, hourly_rate: Decimal) -> Decimal:
    """Unrounded wage for a number of minutes."""
    return Decimal(minutes) / MINUTES_PER_HOUR * hourly_rate


class DiscrepancyReconciler:
    """Compares each shift's authorized minutes with the time actually worked.

    For a completed shift:
    1) worked = clock_out - clock_in (whole minutes)
    2) a late arrival shifts the allotment window forward, so the caregiver
       is still entitled to the full allotment from the moment they arrived
    3) billable = min(worked, allotted)
    4) discrepancy = worked - allotted (signed)
    5) flagged when |discrepancy| >= tolerance
    6) overage cost = wage for worked time that cannot be billed

    Shifts with no allotment on file are billable in full and never flagged.
    """

    DEFAULT_TOLERANCE_MINUTES = 5

    def __init__(self, tolerance_minutes: int = DEFAULT_TOLERANCE_MINUTES):
        if tolerance_minutes < 0:
            raise ValueError("tolerance_minutes cannot be negative")
        self.tolerance_minutes = tolerance_minutes

    def reconcile(self, shift: ShiftRecord, hourly_rate: Decimal) -> ShiftReconciliation:
        """Reconcile one shift and write the computed fields back onto it.

        Raises:
            IncompleteShiftError: If the shift has no clock-in or clock-out.
        """
        if shift.status is not ShiftStatus.COMPLETED:
            raise IncompleteShiftError(shift)

        clock_in = shift.actual_clock_in
        clock_out = shift.actual_clock_out
        if clock_out < clock_in:
            raise ValueError(
                f"Shift {shift.shift_id or '(unsaved)'} clocks out at {clock_out} "
                f"before clocking in at {clock_in}"
            )

        worked = minutes_between(clock_in, clock_out)
        late = max(0, minutes_between(shift.scheduled_start, clock_in))
        allotted = shift.allotted_minutes

        if allotted is None:
            billable = worked
            discrepancy = None
            flagged = False
            effective_end = clock_out
        else:
            billable = min(worked, allotted)
            discrepancy = worked - allotted
            flagged = abs(discrepancy) >= self.tolerance_minutes
            effective_end = clock_in + timedelta(minutes=allotted)

        billable_pay = pay_for_minutes(billable, hourly_rate)
        actual_pay = pay_for_minutes(worked, hourly_rate)
        overage_cost = max(Decimal("0"), actual_pay - billable_pay)

        result = ShiftReconciliation(
            worked_minutes=worked,
            allotted_minutes=allotted,
            billable_minutes=billable,
            discrepancy_minutes=discrepancy,
            late_minutes=late,
            effective_end=effective_end,
            flagged=flagged,
            billable_pay=billable_pay.quantize(CENTS, rounding=ROUND_HALF_UP),
            actual_pay=actual_pay.quantize(CENTS, rounding=ROUND_HALF_UP),
            overage_cost=overage_cost.quantize(CENTS, rounding=ROUND_HALF_UP),
            shift_id=shift.shift_id,
        )

        shift.billable_minutes = result.billable_minutes
        shift.discrepancy_minutes = result.discrepancy_minutes
        shift.overage_cost = result.overage_cost
        return result


@dataclass(frozen=True)
class DiscrepancyReportEntry:
    """One shift on the discrepancy report."""

    caregiver_id: UUID
    client_id: UUID
    shift: ShiftRecord
    reconciliation: ShiftReconciliation


@dataclass(frozen=True)
class InvalidShift:
    """A shift whose clock times cannot be reconciled."""

    shift: ShiftRecord
    reason: str


@dataclass
class DiscrepancyTotals:
    total_shifts: int = 0
    total_actual_hours: Decimal = Decimal("0")
    total_allotted_hours: Decimal = Decimal("0")
    total_billable_hours: Decimal = Decimal("0")
    total_overage_cost: Decimal = Decimal("0")
    overage_count: int = 0
    underage_count: int = 0


@dataclass
class DiscrepancyReport:
    """Shifts whose worked time differs from the allotment, largest first."""

    entries: list[DiscrepancyReportEntry] = field(default_factory=list)
    totals: DiscrepancyTotals = field(default_factory=DiscrepancyTotals)
    incomplete_shifts: list[ShiftRecord] = field(default_factory=list)
    invalid_shifts: list[InvalidShift] = field(default_factory=list)


def build_discrepancy_report(
    shifts: Iterable[tuple[ShiftRecord, Decimal]],
    min_discrepancy: int = DiscrepancyReconciler.DEFAULT_TOLERANCE_MINUTES,
    reconciler: DiscrepancyReconciler | None = None,
) -> DiscrepancyReport:
    """Reconcile (shift, hourly_rate) pairs and keep those off by min_discrepancy or more.

    Shifts with no allotment on file have nothing to compare against and are
    left off the report. Shifts that cannot be reconciled are listed on the
    report instead of failing it.
    """
    reconciler = reconciler or DiscrepancyReconciler()
    report = DiscrepancyReport()

    for shift, hourly_rate in shifts:
        try:
            rec = reconciler.reconcile(shift, hourly_rate)
        except IncompleteShiftError:
            report.incomplete_shifts.append(shift)
            continue
        except ValueError as e:
            report.invalid_shifts.append(InvalidShift(shift=shift, reason=str(e)))
            continue

        if rec.discrepancy_minutes is None or abs(rec.discrepancy_minutes) < min_discrepancy:
            continue

        report.entries.append(
            DiscrepancyReportEntry(
                caregiver_id=shift.caregiver_id,
                client_id=shift.client_id,
                shift=shift,
                reconciliation=rec,
            )
        )

        totals = report.totals
        totals.total_shifts += 1
        totals.total_actual_hours += Decimal(rec.worked_minutes) / MINUTES_PER_HOUR
        totals.total_allotted_hours += Decimal(rec.allotted_minutes) / MINUTES_PER_HOUR
        totals.total_billable_hours += Decimal(rec.billable_minutes) / MINUTES_PER_HOUR
        totals.total_overage_cost += rec.overage_cost
        if rec.is_overage:
            totals.overage_count += 1
        elif rec.is_shortfall:
            totals.underage_count += 1

    report.entries.sort(
        key=lambda e: abs(e.reconciliation.discrepancy_minutes), reverse=True
    )
    totals = report.totals
    totals.total_actual_hours = totals.total_actual_hours.quantize(CENTS, rounding=ROUND_HALF_UP)
    totals.total_allotted_hours = totals.total_allotted_hours.quantize(CENTS, rounding=ROUND_HALF_UP)
    totals.total_billable_hours = totals.total_billable_hours.quantize(CENTS, rounding=ROUND_HALF_UP)
    return report
