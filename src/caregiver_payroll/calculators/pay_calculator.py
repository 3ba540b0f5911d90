"""Gross-to-net pay calculation."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from caregiver_payroll.calculators.settings import InvalidSettingsError, PayrollSettings
from caregiver_payroll.calculators.types import AggregatedHours, PayrollFigures, PTOEntry

OUTPUT_PRECISION = Decimal("0.01")  # 2 decimal places for persistence


def round_to_cents(amount: Decimal) -> Decimal:
    """Round amount to 2 decimal places (cents)."""
    return amount.quantize(OUTPUT_PRECISION, rounding=ROUND_HALF_UP)


class PayCalculator:
    """Turns aggregated hours, mileage and leave into pay components.

    Pipeline:
    1) Earnings: regular, overtime, weekend/night differentials, paid leave
    2) Taxable wages = earnings (mileage is a reimbursement, not wages)
    3) Withholdings: federal, state, social security, medicare on taxable wages
    4) Gross = taxable wages + mileage reimbursement
    5) Net = taxable wages - withholdings + mileage reimbursement

    Each component is rounded to cents before it is summed.
    """

    def __init__(self, settings: PayrollSettings):
        self.settings = settings

    def calculate(
        self,
        hours: AggregatedHours,
        mileage_total: Decimal,
        pto_entries: Iterable[PTOEntry],
        hourly_rate: Decimal,
    ) -> PayrollFigures:
        """Calculate pay figures for one caregiver.

        Raises:
            InvalidSettingsError: If the settings or the hourly rate are unusable.
        """
        self.settings.validate()
        if hourly_rate < 0:
            raise InvalidSettingsError([f"hourly_rate cannot be negative, got {hourly_rate}"])
        if mileage_total < 0:
            raise ValueError(f"Mileage total cannot be negative: {mileage_total}")

        s = self.settings
        pto_entries = list(pto_entries)
        pto_hours = sum((e.hours for e in pto_entries), Decimal("0"))
        paid_pto_hours = sum(
            (e.hours for e in pto_entries if e.type.is_paid), Decimal("0")
        )

        regular_pay = round_to_cents(hours.regular_hours * hourly_rate)
        overtime_pay = round_to_cents(hours.overtime_hours * hourly_rate * s.overtime_rate)
        weekend_pay = round_to_cents(hours.weekend_hours * s.weekend_differential)
        night_pay = round_to_cents(hours.night_hours * s.night_differential)
        pto_pay = round_to_cents(paid_pto_hours * hourly_rate)
        mileage_reimbursement = round_to_cents(mileage_total * s.mileage_rate)

        taxable_wages = regular_pay + overtime_pay + weekend_pay + night_pay + pto_pay

        federal_tax = round_to_cents(taxable_wages * s.federal_tax_rate)
        state_tax = round_to_cents(taxable_wages * s.state_tax_rate)
        social_security = round_to_cents(taxable_wages * s.social_security_rate)
        medicare = round_to_cents(taxable_wages * s.medicare_rate)
        total_deductions = federal_tax + state_tax + social_security + medicare

        return PayrollFigures(
            hourly_rate=hourly_rate,
            total_hours=hours.total_hours,
            regular_hours=hours.regular_hours,
            overtime_hours=hours.overtime_hours,
            weekend_hours=hours.weekend_hours,
            night_hours=hours.night_hours,
            pto_hours=pto_hours,
            paid_pto_hours=paid_pto_hours,
            total_miles=mileage_total,
            regular_pay=regular_pay,
            overtime_pay=overtime_pay,
            weekend_pay=weekend_pay,
            night_pay=night_pay,
            pto_pay=pto_pay,
            mileage_reimbursement=mileage_reimbursement,
            taxable_wages=taxable_wages,
            gross_pay=taxable_wages + mileage_reimbursement,
            federal_tax=federal_tax,
            state_tax=state_tax,
            social_security=social_security,
            medicare=medicare,
            total_deductions=total_deductions,
            net_pay=taxable_wages - total_deductions + mileage_reimbursement,
        )
