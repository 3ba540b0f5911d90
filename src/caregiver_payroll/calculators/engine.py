"""Payroll calculation engine - main orchestrator."""

from __future__ import annotations

import hashlib
import json
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Iterable
from uuid import UUID

from caregiver_payroll.calculators.aggregator import HourAggregator
from caregiver_payroll.calculators.pay_calculator import PayCalculator
from caregiver_payroll.calculators.reconciler import DiscrepancyReconciler
from caregiver_payroll.calculators.settings import PayrollSettings
from caregiver_payroll.calculators.types import (
    CaregiverPayrollInput,
    MileageEntry,
    PayrollFigures,
    PTOEntry,
    PTOStatus,
    ShiftReconciliation,
    ShiftRecord,
)
from caregiver_payroll.config import get_settings

logger = logging.getLogger(__name__)


@dataclass
class CaregiverCalculationResult:
    """Result of calculating pay for one caregiver."""

    caregiver_id: UUID
    calculation_id: UUID
    figures: PayrollFigures
    reconciliations: list[ShiftReconciliation]
    incomplete_shifts: list[ShiftRecord]
    inputs_fingerprint: str
    settings_fingerprint: str


@dataclass
class CalculationFailure:
    """A caregiver whose pay could not be calculated."""

    caregiver_id: UUID
    reason: str


@dataclass
class BatchTotals:
    total_hours: Decimal = Decimal("0")
    overtime_hours: Decimal = Decimal("0")
    total_miles: Decimal = Decimal("0")
    gross_pay: Decimal = Decimal("0")
    total_deductions: Decimal = Decimal("0")
    net_pay: Decimal = Decimal("0")
    mileage_reimbursement: Decimal = Decimal("0")


@dataclass
class BatchCalculationResult:
    """Result of calculating a whole pay period."""

    period_start: date
    period_end: date
    settings_fingerprint: str
    results: dict[UUID, CaregiverCalculationResult] = field(default_factory=dict)
    failures: list[CalculationFailure] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.failures)

    @property
    def totals(self) -> BatchTotals:
        totals = BatchTotals()
        for result in self.results.values():
            f = result.figures
            totals.total_hours += f.total_hours
            totals.overtime_hours += f.overtime_hours
            totals.total_miles += f.total_miles
            totals.gross_pay += f.gross_pay
            totals.total_deductions += f.total_deductions
            totals.net_pay += f.net_pay
            totals.mileage_reimbursement += f.mileage_reimbursement
        return totals


class PayrollEngine:
    """Main payroll calculation engine.

    Calculation pipeline (stable order per caregiver):
    1) Reconcile each completed shift (billable minutes)
    2) Aggregate billable time into hour buckets
    3) Total the period's mileage and leave
    4) Calculate pay, withholdings and net

    Caregivers are independent of one another. With max_workers > 1 they are
    calculated on a thread pool; settings are shared read-only.
    """

    def __init__(
        self,
        settings: PayrollSettings,
        engine_version: str | None = None,
        reconciler: DiscrepancyReconciler | None = None,
    ):
        self.settings = settings
        self.engine_version = engine_version or get_settings().engine_version
        self.reconciler = reconciler or DiscrepancyReconciler()
        self.aggregator = HourAggregator(settings, self.reconciler)
        self.pay_calculator = PayCalculator(settings)

    def calculate_batch(
        self,
        inputs: Iterable[CaregiverPayrollInput],
        period_start: date,
        period_end: date,
        max_workers: int = 1,
    ) -> BatchCalculationResult:
        """Calculate pay for every caregiver in the batch.

        Raises:
            InvalidSettingsError: Before any record is produced, if the
                settings are unusable.
            ValueError: If the period is inverted.
        """
        self.settings.validate()
        if period_end < period_start:
            raise ValueError(f"Period end {period_end} is before period start {period_start}")

        inputs = list(inputs)
        batch = BatchCalculationResult(
            period_start=period_start,
            period_end=period_end,
            settings_fingerprint=self.settings.fingerprint(),
        )
        logger.info(
            "Calculating payroll for %d caregiver(s), period %s to %s",
            len(inputs), period_start, period_end,
        )

        if max_workers > 1 and len(inputs) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as pool:
                outcomes = list(
                    pool.map(lambda i: self._calculate_isolated(i, period_start, period_end), inputs)
                )
        else:
            outcomes = [self._calculate_isolated(i, period_start, period_end) for i in inputs]

        for outcome in outcomes:
            if isinstance(outcome, CalculationFailure):
                batch.failures.append(outcome)
            elif outcome.caregiver_id in batch.results:
                logger.warning(
                    "Duplicate payroll input for caregiver %s; keeping the first",
                    outcome.caregiver_id,
                )
                batch.failures.append(
                    CalculationFailure(
                        caregiver_id=outcome.caregiver_id,
                        reason=f"Duplicate input for caregiver {outcome.caregiver_id}",
                    )
                )
            else:
                batch.results[outcome.caregiver_id] = outcome

        logger.info(
            "Payroll calculated: %d record(s), %d failure(s)",
            len(batch.results), batch.error_count,
        )
        return batch

    def _calculate_isolated(
        self, caregiver: CaregiverPayrollInput, period_start: date, period_end: date
    ) -> CaregiverCalculationResult | CalculationFailure:
        try:
            return self.calculate_caregiver(caregiver, period_start, period_end)
        except Exception as e:
            # One caregiver's bad data must not stop the rest of the batch
            logger.warning(
                "Payroll calculation failed for caregiver %s: %s", caregiver.caregiver_id, e
            )
            return CalculationFailure(caregiver_id=caregiver.caregiver_id, reason=str(e))

    def calculate_caregiver(
        self, caregiver: CaregiverPayrollInput, period_start: date, period_end: date
    ) -> CaregiverCalculationResult:
        """Calculate pay for a single caregiver."""
        hourly_rate = (
            caregiver.hourly_rate
            if caregiver.hourly_rate is not None
            else self.settings.default_hourly_rate
        )

        hours = self.aggregator.aggregate(
            caregiver.caregiver_id,
            period_start,
            period_end,
            caregiver.shifts,
            hourly_rate,
        )

        mileage = self._mileage_in_period(caregiver, period_start, period_end)
        mileage_total = sum((m.miles for m in mileage), Decimal("0"))
        pto = self._pto_in_period(caregiver, period_start, period_end)

        figures = self.pay_calculator.calculate(hours, mileage_total, pto, hourly_rate)

        inputs_fingerprint = self._compute_inputs_fingerprint(
            caregiver, hourly_rate, mileage, pto, period_start, period_end
        )
        settings_fingerprint = self.settings.fingerprint()

        return CaregiverCalculationResult(
            caregiver_id=caregiver.caregiver_id,
            calculation_id=self._generate_calculation_id(
                caregiver.caregiver_id,
                period_start,
                period_end,
                inputs_fingerprint,
                settings_fingerprint,
            ),
            figures=figures,
            reconciliations=hours.reconciliations,
            incomplete_shifts=hours.incomplete_shifts,
            inputs_fingerprint=inputs_fingerprint,
            settings_fingerprint=settings_fingerprint,
        )

    @staticmethod
    def _mileage_in_period(
        caregiver: CaregiverPayrollInput, period_start: date, period_end: date
    ) -> list[MileageEntry]:
        return [
            m
            for m in caregiver.mileage
            if m.caregiver_id == caregiver.caregiver_id
            and period_start <= m.date <= period_end
        ]

    @staticmethod
    def _pto_in_period(
        caregiver: CaregiverPayrollInput, period_start: date, period_end: date
    ) -> list[PTOEntry]:
        """Approved leave counts toward a period only when it lies entirely inside it."""
        return [
            p
            for p in caregiver.pto
            if p.caregiver_id == caregiver.caregiver_id
            and p.status is PTOStatus.APPROVED
            and p.start_date >= period_start
            and p.end_date <= period_end
        ]

    def _generate_calculation_id(
        self,
        caregiver_id: UUID,
        period_start: date,
        period_end: date,
        inputs_fingerprint: str,
        settings_fingerprint: str,
    ) -> UUID:
        """Generate deterministic calculation ID."""
        data = {
            "caregiver_id": str(caregiver_id),
            "period_start": str(period_start),
            "period_end": str(period_end),
            "engine_version": self.engine_version,
            "inputs_fingerprint": inputs_fingerprint,
            "settings_fingerprint": settings_fingerprint,
        }
        json_str = json.dumps(data, sort_keys=True)
        hash_bytes = hashlib.sha256(json_str.encode()).digest()
        return UUID(bytes=hash_bytes[:16])

    def _compute_inputs_fingerprint(
        self,
        caregiver: CaregiverPayrollInput,
        hourly_rate: Decimal,
        mileage: list[MileageEntry],
        pto: list[PTOEntry],
        period_start: date,
        period_end: date,
    ) -> str:
        """Compute fingerprint of all inputs used in calculation."""
        inputs_data: list[dict[str, Any]] = [{"type": "rate", "hourly_rate": str(hourly_rate)}]

        for shift in caregiver.shifts:
            if shift.caregiver_id != caregiver.caregiver_id:
                continue
            if not (period_start <= shift.service_date <= period_end):
                continue
            inputs_data.append({
                "type": "shift",
                "id": str(shift.shift_id) if shift.shift_id else None,
                "scheduled_start": shift.scheduled_start.isoformat(),
                "allotted_minutes": shift.allotted_minutes,
                "clock_in": shift.actual_clock_in.isoformat() if shift.actual_clock_in else None,
                "clock_out": shift.actual_clock_out.isoformat() if shift.actual_clock_out else None,
                "weekend": shift.is_weekend,
                "night": shift.is_night,
            })
        for m in mileage:
            inputs_data.append({"type": "mileage", "date": str(m.date), "miles": str(m.miles)})
        for p in pto:
            inputs_data.append({
                "type": "pto",
                "pto_type": p.type.value,
                "start": str(p.start_date),
                "end": str(p.end_date),
                "hours": str(p.hours),
            })

        inputs_data.sort(key=lambda d: json.dumps(d, sort_keys=True))
        json_str = json.dumps(inputs_data, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]
