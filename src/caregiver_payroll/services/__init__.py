"""Caregiver payroll services."""

from caregiver_payroll.services.check_numbers import (
    CheckNumberAuthority,
    SequentialCheckNumberAuthority,
)
from caregiver_payroll.services.payroll_record_service import (
    BulkApprovalResult,
    MergeSummary,
    PayrollRecordService,
    RecordNotFoundError,
)
from caregiver_payroll.services.state_machine import (
    InvalidTransitionError,
    PayrollRecordStateMachine,
    PayrollRecordStatus,
)

__all__ = [
    "BulkApprovalResult",
    "CheckNumberAuthority",
    "InvalidTransitionError",
    "MergeSummary",
    "PayrollRecordService",
    "PayrollRecordStateMachine",
    "PayrollRecordStatus",
    "RecordNotFoundError",
    "SequentialCheckNumberAuthority",
]
