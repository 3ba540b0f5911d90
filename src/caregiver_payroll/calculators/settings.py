"""Payroll calculation settings.

Settings are an explicit value handed to every calculator. Nothing in the
calculation pipeline reads them from module state, so a run is reproducible
from its inputs and the settings it was given.
"""

from __future__ import annotations

import hashlib
import json
import os
from dataclasses import asdict, dataclass, fields, replace
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from dotenv import load_dotenv


class InvalidSettingsError(Exception):
    """Raised when payroll settings cannot be used for a calculation run."""

    def __init__(self, problems: list[str]):
        self.problems = problems
        super().__init__("Invalid payroll settings: " + "; ".join(problems))


# Fractional rates applied to taxable wages
TAX_RATE_FIELDS = (
    "federal_tax_rate",
    "state_tax_rate",
    "social_security_rate",
    "medicare_rate",
)

NON_NEGATIVE_FIELDS = (
    "overtime_rate",
    "weekend_differential",
    "night_differential",
    "mileage_rate",
    "default_hourly_rate",
) + TAX_RATE_FIELDS


@dataclass(frozen=True)
class PayrollSettings:
    """Thresholds and rates for one calculation run.

    Attributes:
        overtime_threshold: Hours per week before overtime applies.
        overtime_rate: Multiplier on the hourly rate for overtime hours.
        daily_overtime_enabled: Evaluate overtime per calendar day as well.
        daily_overtime_threshold: Hours per day before daily overtime applies.
        weekend_differential: Flat $/hr add-on for weekend hours.
        night_differential: Flat $/hr add-on for night hours.
        mileage_rate: Reimbursement in $/mile.
        federal_tax_rate, state_tax_rate, social_security_rate, medicare_rate:
            Fractional withholding rates applied to taxable wages.
        default_hourly_rate: Rate used for caregivers with no rate on file.
    """

    overtime_threshold: Decimal = Decimal("40")
    overtime_rate: Decimal = Decimal("1.5")
    daily_overtime_enabled: bool = False
    daily_overtime_threshold: Decimal = Decimal("8")
    weekend_differential: Decimal = Decimal("0")
    night_differential: Decimal = Decimal("0")
    mileage_rate: Decimal = Decimal("0.67")
    federal_tax_rate: Decimal = Decimal("0.22")
    state_tax_rate: Decimal = Decimal("0.0765")
    social_security_rate: Decimal = Decimal("0.062")
    medicare_rate: Decimal = Decimal("0.0145")
    default_hourly_rate: Decimal = Decimal("15")

    def problems(self) -> list[str]:
        """Return a list of validation problems (empty if usable)."""
        errors: list[str] = []

        if self.overtime_threshold <= 0:
            errors.append(
                f"overtime_threshold must be positive, got {self.overtime_threshold}"
            )
        if self.daily_overtime_enabled and self.daily_overtime_threshold <= 0:
            errors.append(
                "daily_overtime_threshold must be positive when daily overtime "
                f"is enabled, got {self.daily_overtime_threshold}"
            )

        for name in NON_NEGATIVE_FIELDS:
            value = getattr(self, name)
            if value < 0:
                errors.append(f"{name} cannot be negative, got {value}")

        for name in TAX_RATE_FIELDS:
            value = getattr(self, name)
            if value > 1:
                errors.append(f"{name} is a fraction and cannot exceed 1, got {value}")

        return errors

    def validate(self) -> None:
        """Raise InvalidSettingsError if these settings cannot be used."""
        errors = self.problems()
        if errors:
            raise InvalidSettingsError(errors)

    def fingerprint(self) -> str:
        """Deterministic hash of the settings, recorded on each payroll record."""
        data = {k: str(v) for k, v in asdict(self).items()}
        json_str = json.dumps(data, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]

    def with_overrides(self, overrides: Mapping[str, Any]) -> PayrollSettings:
        """Return a copy with the given fields replaced (None values ignored)."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **_coerce(changes))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> PayrollSettings:
        """Build settings from a plain mapping, using defaults for missing keys."""
        return cls().with_overrides(data)

    @classmethod
    def from_env(cls) -> PayrollSettings:
        """Load settings from PAYROLL_* environment variables."""
        load_dotenv()

        data: dict[str, Any] = {}
        for f in fields(cls):
            raw = os.getenv(f"PAYROLL_{f.name.upper()}")
            if raw is not None:
                data[f.name] = raw
        return cls.from_mapping(data)


def _coerce(data: Mapping[str, Any]) -> dict[str, Any]:
    """Convert raw values to the declared field types."""
    known = {f.name for f in fields(PayrollSettings)}
    result: dict[str, Any] = {}
    errors: list[str] = []

    for name, value in data.items():
        if name not in known:
            errors.append(f"unknown setting '{name}'")
            continue

        if name == "daily_overtime_enabled":
            if isinstance(value, str):
                result[name] = value.strip().lower() in ("1", "true", "yes", "on")
            else:
                result[name] = bool(value)
            continue

        try:
            # str() first so floats keep their short repr (0.67, not 0.6700000000000000399...)
            result[name] = Decimal(str(value))
        except InvalidOperation:
            errors.append(f"{name} must be numeric, got {value!r}")
            continue
        if not result[name].is_finite():
            errors.append(f"{name} must be finite, got {value!r}")

    if errors:
        raise InvalidSettingsError(errors)
    return result
