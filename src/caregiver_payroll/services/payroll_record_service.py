"""Payroll record service - persistence and lifecycle for calculated pay."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Iterable
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from caregiver_payroll.calculators.engine import BatchCalculationResult, PayrollEngine
from caregiver_payroll.calculators.settings import PayrollSettings
from caregiver_payroll.calculators.types import CaregiverPayrollInput
from caregiver_payroll.models import PayrollRecord
from caregiver_payroll.services.check_numbers import (
    CheckNumberAuthority,
    SequentialCheckNumberAuthority,
)
from caregiver_payroll.services.state_machine import (
    InvalidTransitionError,
    PayrollRecordStateMachine,
    PayrollRecordStatus,
)

logger = logging.getLogger(__name__)


class RecordNotFoundError(Exception):
    """Raised when a payroll record does not exist."""

    def __init__(self, record_id: UUID):
        self.record_id = record_id
        super().__init__(f"Payroll record {record_id} not found")


@dataclass
class MergeSummary:
    """Outcome of merging a calculation batch into stored records."""

    created: list[PayrollRecord] = field(default_factory=list)
    updated: list[PayrollRecord] = field(default_factory=list)
    unchanged: list[PayrollRecord] = field(default_factory=list)
    skipped: list[PayrollRecord] = field(default_factory=list)


@dataclass
class BulkApprovalResult:
    approved: list[PayrollRecord] = field(default_factory=list)
    skipped: list[PayrollRecord] = field(default_factory=list)


class PayrollRecordService:
    """Stores calculated pay and moves records through their lifecycle.

    Operations:
    - save_batch: status-gated merge of a calculation batch
    - recalculate_period: calculate and merge in one step
    - approve / approve_all: draft → approved
    - process: approved → processed, assigning a check number
    - mark_paid: processed → paid

    Every write is a compare-and-set on the status the record was read in,
    so a recalculation cannot overwrite a record that a concurrent approve
    or process has already moved on, and vice versa.
    """

    def __init__(
        self,
        session: AsyncSession,
        check_numbers: CheckNumberAuthority | None = None,
    ):
        self.session = session
        self.check_numbers = check_numbers or SequentialCheckNumberAuthority()

    async def get_record(self, record_id: UUID) -> PayrollRecord:
        """Load a record, raising RecordNotFoundError if it does not exist."""
        record = await self.session.get(PayrollRecord, record_id, populate_existing=True)
        if record is None:
            raise RecordNotFoundError(record_id)
        return record

    async def list_records(
        self,
        period_start: date | None = None,
        period_end: date | None = None,
        status: str | None = None,
        caregiver_id: UUID | None = None,
    ) -> list[PayrollRecord]:
        """List records, optionally for one period, status and/or caregiver.

        A single caregiver's records come back newest period first.
        """
        query = select(PayrollRecord)
        if period_start is not None:
            query = query.where(PayrollRecord.period_start == period_start)
        if period_end is not None:
            query = query.where(PayrollRecord.period_end == period_end)
        if status is not None:
            query = query.where(PayrollRecord.status == status)
        if caregiver_id is not None:
            query = query.where(PayrollRecord.caregiver_id == caregiver_id).order_by(
                PayrollRecord.period_end.desc()
            )
        else:
            query = query.order_by(PayrollRecord.period_start, PayrollRecord.caregiver_id)

        result = await self.session.execute(query.execution_options(populate_existing=True))
        return list(result.scalars().all())

    # === Calculation merge ===

    async def save_batch(
        self, batch: BatchCalculationResult, force: bool = False
    ) -> MergeSummary:
        """Merge a calculated batch into stored records.

        - No record yet: insert as draft.
        - Draft record: overwrite its figures.
        - Approved record: overwrite and return to draft only when force=True.
        - Processed/paid record: never overwritten.
        """
        summary = MergeSummary()

        for result in batch.results.values():
            existing = await self._find_record(
                result.caregiver_id, batch.period_start, batch.period_end
            )

            if existing is None:
                record = PayrollRecord.from_result(result, batch.period_start, batch.period_end)
                self.session.add(record)
                await self.session.flush()
                summary.created.append(record)
                continue

            if not PayrollRecordStateMachine.can_recalculate(existing.status, force):
                logger.info(
                    "Keeping %s payroll record %s for caregiver %s; not recalculated",
                    existing.status, existing.payroll_record_id, existing.caregiver_id,
                )
                summary.skipped.append(existing)
                continue

            if (
                existing.status == PayrollRecordStatus.DRAFT
                and existing.calculation_id == result.calculation_id
            ):
                summary.unchanged.append(existing)
                continue

            values: dict[str, Any] = PayrollRecord.figure_values(result)
            values["status"] = PayrollRecordStatus.DRAFT.value
            values["recalculation_count"] = existing.recalculation_count + 1
            values["approved_at"] = None
            values["approved_by"] = None

            written = await self._compare_and_set(existing, existing.status, values)
            if written:
                summary.updated.append(existing)
            else:
                logger.warning(
                    "Payroll record %s changed status during recalculation; left as is",
                    existing.payroll_record_id,
                )
                summary.skipped.append(existing)

        logger.info(
            "Merged payroll batch %s to %s: %d created, %d updated, %d unchanged, %d kept",
            batch.period_start, batch.period_end, len(summary.created),
            len(summary.updated), len(summary.unchanged), len(summary.skipped),
        )
        return summary

    async def recalculate_period(
        self,
        inputs: Iterable[CaregiverPayrollInput],
        period_start: date,
        period_end: date,
        settings: PayrollSettings,
        force: bool = False,
        max_workers: int = 1,
    ) -> tuple[BatchCalculationResult, MergeSummary]:
        """Calculate a period with the given settings and merge the results.

        Re-applying edited settings goes through here, so only draft records
        (and approved ones when force=True) pick up the new figures.
        """
        engine = PayrollEngine(settings)
        batch = engine.calculate_batch(inputs, period_start, period_end, max_workers=max_workers)
        summary = await self.save_batch(batch, force=force)
        return batch, summary

    # === Lifecycle transitions ===

    async def approve(self, record_id: UUID, actor: str | None = None) -> PayrollRecord:
        """Approve a draft record."""
        return await self._transition(
            record_id,
            PayrollRecordStatus.APPROVED,
            {"approved_at": datetime.now(timezone.utc), "approved_by": actor},
        )

    async def approve_all(
        self, period_start: date, period_end: date, actor: str | None = None
    ) -> BulkApprovalResult:
        """Approve every draft record in the period; other records are left alone."""
        outcome = BulkApprovalResult()

        for record in await self.list_records(period_start, period_end):
            if record.status != PayrollRecordStatus.DRAFT:
                outcome.skipped.append(record)
                continue
            try:
                outcome.approved.append(await self.approve(record.payroll_record_id, actor))
            except InvalidTransitionError:
                # Moved on by someone else since it was listed
                outcome.skipped.append(await self.get_record(record.payroll_record_id))

        logger.info(
            "Bulk approval %s to %s: %d approved, %d skipped",
            period_start, period_end, len(outcome.approved), len(outcome.skipped),
        )
        return outcome

    async def process(self, record_id: UUID, actor: str | None = None) -> PayrollRecord:
        """Process an approved record, assigning its check number."""
        record = await self.get_record(record_id)
        PayrollRecordStateMachine.validate_transition(
            record.status, PayrollRecordStatus.PROCESSED.value
        )

        check_number = await self.check_numbers.next_check_number(self.session)
        return await self._transition(
            record_id,
            PayrollRecordStatus.PROCESSED,
            {
                "check_number": check_number,
                "processed_at": datetime.now(timezone.utc),
                "processed_by": actor,
            },
        )

    async def mark_paid(self, record_id: UUID) -> PayrollRecord:
        """Record payment confirmation for a processed record."""
        return await self._transition(
            record_id,
            PayrollRecordStatus.PAID,
            {"paid_at": datetime.now(timezone.utc)},
        )

    async def _transition(
        self,
        record_id: UUID,
        to_status: PayrollRecordStatus,
        values: dict[str, Any],
    ) -> PayrollRecord:
        """Move a record to to_status, raising InvalidTransitionError if not allowed."""
        record = await self.get_record(record_id)
        from_status = record.status
        PayrollRecordStateMachine.validate_transition(from_status, to_status.value)

        written = await self._compare_and_set(
            record, from_status, {"status": to_status.value, **values}
        )
        if not written:
            current = await self.get_record(record_id)
            raise InvalidTransitionError(
                current.status, to_status.value, "status changed concurrently"
            )

        logger.info(
            "Payroll record %s: %s -> %s", record_id, from_status, to_status.value
        )
        return record

    async def _compare_and_set(
        self,
        record: PayrollRecord,
        expected_status: str,
        values: dict[str, Any],
    ) -> bool:
        """Update the record only if it is still in expected_status."""
        result = await self.session.execute(
            update(PayrollRecord)
            .where(
                PayrollRecord.payroll_record_id == record.payroll_record_id,
                PayrollRecord.status == expected_status,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if (result.rowcount or 0) == 0:
            return False

        await self.session.refresh(record)
        return True

    async def _find_record(
        self, caregiver_id: UUID, period_start: date, period_end: date
    ) -> PayrollRecord | None:
        result = await self.session.execute(
            select(PayrollRecord)
            .where(
                PayrollRecord.caregiver_id == caregiver_id,
                PayrollRecord.period_start == period_start,
                PayrollRecord.period_end == period_end,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()
