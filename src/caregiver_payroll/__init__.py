"""Caregiver payroll: pay calculation and shift reconciliation for home-care agencies."""

__version__ = "1.0.0"
