"""Payroll calculation engine."""

from caregiver_payroll.calculators.aggregator import HourAggregator
from caregiver_payroll.calculators.engine import (
    BatchCalculationResult,
    CalculationFailure,
    CaregiverCalculationResult,
    PayrollEngine,
)
from caregiver_payroll.calculators.pay_calculator import PayCalculator
from caregiver_payroll.calculators.reconciler import (
    DiscrepancyReconciler,
    IncompleteShiftError,
    InvalidShift,
    build_discrepancy_report,
)
from caregiver_payroll.calculators.settings import InvalidSettingsError, PayrollSettings

__all__ = [
    "BatchCalculationResult",
    "CalculationFailure",
    "CaregiverCalculationResult",
    "DiscrepancyReconciler",
    "HourAggregator",
    "IncompleteShiftError",
    "InvalidSettingsError",
    "InvalidShift",
    "PayCalculator",
    "PayrollEngine",
    "PayrollSettings",
    "build_discrepancy_report",
]
