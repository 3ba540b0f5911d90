"""ORM models."""

from caregiver_payroll.models.base import Base, TimestampMixin
from caregiver_payroll.models.payroll import FIGURE_COLUMNS, PayrollRecord

__all__ = ["Base", "FIGURE_COLUMNS", "PayrollRecord", "TimestampMixin"]
