"""Hour aggregation for a caregiver over a pay period."""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable
from uuid import UUID

from caregiver_payroll.calculators.reconciler import (
    DiscrepancyReconciler,
    IncompleteShiftError,
)
from caregiver_payroll.calculators.settings import PayrollSettings
from caregiver_payroll.calculators.types import AggregatedHours, ShiftRecord

HOURS_PRECISION = Decimal("0.0001")  # 4 decimal places for internal calculations
MINUTES_PER_HOUR = Decimal("60")


def minutes_to_hours(minutes: Decimal | int) -> Decimal:
    return (Decimal(minutes) / MINUTES_PER_HOUR).quantize(
        HOURS_PRECISION, rounding=ROUND_HALF_UP
    )


class HourAggregator:
    """Sums billable time into regular/overtime/weekend/night buckets.

    Weekly rule: the whole period is measured against overtime_threshold;
    regular = min(total, threshold) and overtime = total - regular.

    Daily rule (daily_overtime_enabled): days are walked in order. Each day's
    overtime is the greater of
    - the day's hours above daily_overtime_threshold, and
    - the share of the period's weekly-rule overtime that accrued on that day.
    The per-day figures are summed for the period.

    A shift counts toward the day it was clocked into, even if it runs past
    midnight.
    """

    def __init__(
        self,
        settings: PayrollSettings,
        reconciler: DiscrepancyReconciler | None = None,
    ):
        self.settings = settings
        self.reconciler = reconciler or DiscrepancyReconciler()

    def aggregate(
        self,
        caregiver_id: UUID,
        period_start: date,
        period_end: date,
        shifts: Iterable[ShiftRecord],
        hourly_rate: Decimal = Decimal("0"),
    ) -> AggregatedHours:
        """Aggregate the caregiver's shifts that fall within [period_start, period_end].

        Shifts for other caregivers or outside the period are ignored.
        Incomplete shifts are excluded and listed on the result.
        """
        result = AggregatedHours(
            caregiver_id=caregiver_id,
            period_start=period_start,
            period_end=period_end,
        )

        minutes_by_day: dict[date, int] = defaultdict(int)
        weekend_minutes = 0
        night_minutes = 0

        for shift in shifts:
            if shift.caregiver_id != caregiver_id:
                continue
            if not (period_start <= shift.service_date <= period_end):
                continue

            try:
                rec = self.reconciler.reconcile(shift, hourly_rate)
            except IncompleteShiftError:
                result.incomplete_shifts.append(shift)
                continue

            result.reconciliations.append(rec)
            result.shift_count += 1
            minutes_by_day[shift.service_date] += rec.billable_minutes
            if shift.is_weekend:
                weekend_minutes += rec.billable_minutes
            if shift.is_night:
                night_minutes += rec.billable_minutes

        total_minutes = sum(minutes_by_day.values())
        overtime_minutes = self._overtime_minutes(minutes_by_day)

        result.total_hours = minutes_to_hours(total_minutes)
        result.overtime_hours = minutes_to_hours(overtime_minutes)
        result.regular_hours = result.total_hours - result.overtime_hours
        result.weekend_hours = minutes_to_hours(weekend_minutes)
        result.night_hours = minutes_to_hours(night_minutes)
        return result

    def _overtime_minutes(self, minutes_by_day: dict[date, int]) -> Decimal:
        weekly_threshold = self.settings.overtime_threshold * MINUTES_PER_HOUR
        total = Decimal(sum(minutes_by_day.values()))

        if not self.settings.daily_overtime_enabled:
            return max(Decimal("0"), total - weekly_threshold)

        daily_threshold = self.settings.daily_overtime_threshold * MINUTES_PER_HOUR
        overtime = Decimal("0")
        cumulative = Decimal("0")

        for day in sorted(minutes_by_day):
            day_minutes = Decimal(minutes_by_day[day])
            before = cumulative
            cumulative += day_minutes

            weekly_share = max(Decimal("0"), cumulative - weekly_threshold) - max(
                Decimal("0"), before - weekly_threshold
            )
            daily = max(Decimal("0"), day_minutes - daily_threshold)
            overtime += max(weekly_share, daily)

        return overtime
