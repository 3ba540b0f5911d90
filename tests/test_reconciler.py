"""Tests for allotted vs. actual shift reconciliation."""

from datetime import datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from caregiver_payroll.calculators.reconciler import (
    DiscrepancyReconciler,
    IncompleteShiftError,
    build_discrepancy_report,
    minutes_between,
)
from caregiver_payroll.calculators.types import ShiftRecord, ShiftStatus

RATE = Decimal("20")
NINE_AM = datetime(2026, 3, 3, 9, 0)


class TestMinutesBetween:
    """Test whole-minute rounding of clock times."""

    def test_exact_minutes(self):
        assert minutes_between(NINE_AM, NINE_AM + timedelta(minutes=75)) == 75

    def test_half_minute_rounds_up(self):
        assert minutes_between(NINE_AM, NINE_AM + timedelta(seconds=90)) == 2
        assert minutes_between(NINE_AM, NINE_AM + timedelta(seconds=30)) == 1

    def test_under_half_minute_rounds_down(self):
        assert minutes_between(NINE_AM, NINE_AM + timedelta(seconds=89)) == 1


class TestDiscrepancyReconciler:
    """Test single-shift reconciliation."""

    def test_overage(self, make_shift):
        """Worked 75 of 60 allotted: capped at 60, 15 minutes of unbillable wage."""
        shift = make_shift(NINE_AM, worked_minutes=75, allotted_minutes=60)

        rec = DiscrepancyReconciler().reconcile(shift, RATE)

        assert rec.worked_minutes == 75
        assert rec.billable_minutes == 60
        assert rec.discrepancy_minutes == 15
        assert rec.flagged is True
        assert rec.is_overage is True
        assert rec.billable_pay == Decimal("20.00")
        assert rec.actual_pay == Decimal("25.00")
        assert rec.overage_cost == Decimal("5.00")  # 15/60 x $20

    def test_shortfall(self, make_shift):
        """Worked 50 of 60 allotted: billed for what was worked, no overage."""
        shift = make_shift(NINE_AM, worked_minutes=50, allotted_minutes=60)

        rec = DiscrepancyReconciler().reconcile(shift, RATE)

        assert rec.billable_minutes == 50
        assert rec.discrepancy_minutes == -10
        assert rec.flagged is True
        assert rec.is_shortfall is True
        assert rec.overage_cost == Decimal("0.00")

    def test_exact_match_not_flagged(self, make_shift):
        shift = make_shift(NINE_AM, worked_minutes=60, allotted_minutes=60)

        rec = DiscrepancyReconciler().reconcile(shift, RATE)

        assert rec.billable_minutes == 60
        assert rec.discrepancy_minutes == 0
        assert rec.flagged is False
        assert rec.is_overage is False
        assert rec.is_shortfall is False

    def test_tolerance_boundary(self, make_shift):
        """A discrepancy equal to the tolerance is flagged; one below is not."""
        reconciler = DiscrepancyReconciler(tolerance_minutes=5)

        assert reconciler.reconcile(make_shift(NINE_AM, 65), RATE).flagged is True
        assert reconciler.reconcile(make_shift(NINE_AM, 55), RATE).flagged is True
        assert reconciler.reconcile(make_shift(NINE_AM, 64), RATE).flagged is False
        assert reconciler.reconcile(make_shift(NINE_AM, 56), RATE).flagged is False

    def test_negative_tolerance_rejected(self):
        with pytest.raises(ValueError):
            DiscrepancyReconciler(tolerance_minutes=-1)

    def test_late_arrival_shifts_window(self, make_shift):
        """A caregiver who arrives late may still work the full allotment."""
        shift = make_shift(NINE_AM, worked_minutes=60, allotted_minutes=60, late_minutes=10)

        rec = DiscrepancyReconciler().reconcile(shift, RATE)

        assert rec.late_minutes == 10
        assert rec.billable_minutes == 60
        assert rec.discrepancy_minutes == 0
        assert rec.effective_end == NINE_AM + timedelta(minutes=70)

    def test_early_arrival_is_not_late(self, make_shift):
        shift = make_shift(NINE_AM, worked_minutes=60, late_minutes=-5)

        assert DiscrepancyReconciler().reconcile(shift, RATE).late_minutes == 0

    def test_no_allotment_bills_everything(self, make_shift):
        """With no authorization on file there is nothing to cap against."""
        shift = make_shift(NINE_AM, worked_minutes=90, allotted_minutes=None)

        rec = DiscrepancyReconciler().reconcile(shift, RATE)

        assert rec.billable_minutes == 90
        assert rec.discrepancy_minutes is None
        assert rec.flagged is False
        assert rec.overage_cost == Decimal("0.00")

    def test_writes_back_onto_shift(self, make_shift):
        shift = make_shift(NINE_AM, worked_minutes=75, allotted_minutes=60)

        DiscrepancyReconciler().reconcile(shift, RATE)

        assert shift.billable_minutes == 60
        assert shift.discrepancy_minutes == 15
        assert shift.overage_cost == Decimal("5.00")

    def test_overage_never_negative_with_zero_rate(self, make_shift):
        shift = make_shift(NINE_AM, worked_minutes=75, allotted_minutes=60)

        rec = DiscrepancyReconciler().reconcile(shift, Decimal("0"))

        assert rec.overage_cost == Decimal("0.00")

    def test_allotment_from_units(self):
        """One authorized unit is 15 minutes."""
        shift = ShiftRecord.from_units(
            4,
            caregiver_id=uuid4(),
            client_id=uuid4(),
            scheduled_start=NINE_AM,
            scheduled_end=NINE_AM + timedelta(hours=1),
        )
        assert shift.allotted_minutes == 60


class TestIncompleteShifts:
    """Shifts without both clock times are not reconciled."""

    def _shift(self, clock_in=None, clock_out=None) -> ShiftRecord:
        return ShiftRecord(
            caregiver_id=uuid4(),
            client_id=uuid4(),
            scheduled_start=NINE_AM,
            scheduled_end=NINE_AM + timedelta(hours=1),
            allotted_minutes=60,
            actual_clock_in=clock_in,
            actual_clock_out=clock_out,
        )

    def test_scheduled_shift_raises(self):
        shift = self._shift()
        assert shift.status == ShiftStatus.SCHEDULED

        with pytest.raises(IncompleteShiftError) as exc_info:
            DiscrepancyReconciler().reconcile(shift, RATE)

        assert exc_info.value.status == ShiftStatus.SCHEDULED
        assert shift.billable_minutes is None

    def test_in_progress_shift_raises(self):
        shift = self._shift(clock_in=NINE_AM)
        assert shift.status == ShiftStatus.IN_PROGRESS

        with pytest.raises(IncompleteShiftError):
            DiscrepancyReconciler().reconcile(shift, RATE)

    def test_clock_out_before_clock_in_rejected(self):
        shift = self._shift(clock_in=NINE_AM, clock_out=NINE_AM - timedelta(minutes=5))

        with pytest.raises(ValueError):
            DiscrepancyReconciler().reconcile(shift, RATE)


class TestDiscrepancyReport:
    """Test the period discrepancy report."""

    def test_report_filters_sorts_and_totals(self, make_shift):
        over = make_shift(NINE_AM, worked_minutes=75)
        short = make_shift(NINE_AM + timedelta(days=1), worked_minutes=50)
        close = make_shift(NINE_AM + timedelta(days=2), worked_minutes=63)
        unallotted = make_shift(NINE_AM + timedelta(days=3), worked_minutes=120, allotted_minutes=None)
        incomplete = make_shift(NINE_AM + timedelta(days=4), worked_minutes=60)
        incomplete.actual_clock_out = None

        report = build_discrepancy_report(
            [(s, RATE) for s in (short, close, over, unallotted, incomplete)],
            min_discrepancy=5,
        )

        assert [e.reconciliation.discrepancy_minutes for e in report.entries] == [15, -10]
        assert report.entries[0].shift is over
        assert report.incomplete_shifts == [incomplete]

        totals = report.totals
        assert totals.total_shifts == 2
        assert totals.total_actual_hours == Decimal("2.08")  # 125 min
        assert totals.total_allotted_hours == Decimal("2.00")
        assert totals.total_billable_hours == Decimal("1.83")  # 110 min
        assert totals.total_overage_cost == Decimal("5.00")
        assert totals.overage_count == 1
        assert totals.underage_count == 1

    def test_min_discrepancy_threshold(self, make_shift):
        shifts = [(make_shift(NINE_AM, worked_minutes=63), RATE)]

        assert build_discrepancy_report(shifts, min_discrepancy=5).entries == []
        assert len(build_discrepancy_report(shifts, min_discrepancy=3).entries) == 1

    def test_empty_report(self):
        report = build_discrepancy_report([])

        assert report.entries == []
        assert report.totals.total_shifts == 0
        assert report.totals.total_overage_cost == Decimal("0")

    def test_unreconcilable_shift_listed_not_fatal(self, make_shift):
        good = make_shift(NINE_AM, worked_minutes=75)
        backwards = make_shift(NINE_AM + timedelta(days=1), worked_minutes=60)
        backwards.actual_clock_out = backwards.actual_clock_in - timedelta(minutes=30)

        report = build_discrepancy_report([(good, RATE), (backwards, RATE)])

        assert [e.shift for e in report.entries] == [good]
        assert [i.shift for i in report.invalid_shifts] == [backwards]
        assert report.invalid_shifts[0].reason
        assert report.totals.total_shifts == 1
        assert report.totals.total_overage_cost == Decimal("5.00")
