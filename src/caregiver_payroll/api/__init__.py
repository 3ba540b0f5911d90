"""HTTP API for caregiver payroll."""
