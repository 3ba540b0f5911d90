"""Payroll record state machine with transition validation."""

from __future__ import annotations

from enum import Enum


class PayrollRecordStatus(str, Enum):
    """Payroll record status values."""

    DRAFT = "draft"
    APPROVED = "approved"
    PROCESSED = "processed"
    PAID = "paid"


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class PayrollRecordStateMachine:
    """State machine for payroll record status transitions.

    Allowed transitions:
    - draft → approved
    - approved → processed (check number assigned, figures frozen)
    - processed → paid

    There are no backward transitions.
    """

    # Define valid transitions: {from_status: [allowed_to_statuses]}
    VALID_TRANSITIONS: dict[str, list[str]] = {
        PayrollRecordStatus.DRAFT.value: [PayrollRecordStatus.APPROVED.value],
        PayrollRecordStatus.APPROVED.value: [PayrollRecordStatus.PROCESSED.value],
        PayrollRecordStatus.PROCESSED.value: [PayrollRecordStatus.PAID.value],
        PayrollRecordStatus.PAID.value: [],  # Terminal state
    }

    # Statuses a routine recalculation may overwrite
    RECALCULATION_ALLOWED = {PayrollRecordStatus.DRAFT.value}

    # Statuses a forced recalculation may overwrite
    FORCE_RECALCULATION_ALLOWED = {
        PayrollRecordStatus.DRAFT.value,
        PayrollRecordStatus.APPROVED.value,
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def can_recalculate(cls, status: str, force: bool = False) -> bool:
        """Check if a recalculation may overwrite a record in this status."""
        allowed = cls.FORCE_RECALCULATION_ALLOWED if force else cls.RECALCULATION_ALLOWED
        return status in allowed
