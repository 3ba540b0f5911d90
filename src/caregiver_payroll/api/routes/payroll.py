"""Payroll API endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from caregiver_payroll.api.dependencies import ConfiguredSettings, DbSession, RecordService
from caregiver_payroll.api.schemas import (
    ApproveAllRequest,
    ApproveAllResponse,
    BatchTotalsResponse,
    CalculateRequest,
    CalculateResponse,
    CalculationFailureResponse,
    DiscrepancyEntryResponse,
    DiscrepancyRequest,
    DiscrepancyResponse,
    DiscrepancyTotalsResponse,
    ErrorResponse,
    IncompleteShiftResponse,
    InvalidShiftResponse,
    PayrollRecordListResponse,
    PayrollRecordResponse,
    TransitionRequest,
)
from caregiver_payroll.calculators.reconciler import build_discrepancy_report
from caregiver_payroll.config import get_settings

router = APIRouter(prefix="/payroll", tags=["payroll"])


# ============================================================================
# Calculation
# ============================================================================


@router.post(
    "/calculate",
    response_model=CalculateResponse,
    responses={422: {"model": ErrorResponse}},
)
async def calculate_payroll(
    db: DbSession,
    service: RecordService,
    configured: ConfiguredSettings,
    payload: CalculateRequest,
) -> CalculateResponse:
    """Calculate a pay period and merge the results into stored records.

    Only draft records are overwritten unless force is set.
    """
    settings = configured
    if payload.settings is not None:
        settings = configured.with_overrides(payload.settings.model_dump())

    batch, summary = await service.recalculate_period(
        [c.to_input() for c in payload.caregivers],
        payload.period_start,
        payload.period_end,
        settings,
        force=payload.force,
        max_workers=get_settings().calculation_workers,
    )
    await db.commit()

    totals = batch.totals
    return CalculateResponse(
        period_start=batch.period_start,
        period_end=batch.period_end,
        settings_fingerprint=batch.settings_fingerprint,
        records=[
            PayrollRecordResponse.model_validate(r)
            for r in summary.created + summary.updated + summary.unchanged
        ],
        kept=[PayrollRecordResponse.model_validate(r) for r in summary.skipped],
        failures=[
            CalculationFailureResponse(caregiver_id=f.caregiver_id, reason=f.reason)
            for f in batch.failures
        ],
        incomplete_shifts=[
            IncompleteShiftResponse(
                caregiver_id=shift.caregiver_id,
                shift_id=shift.shift_id,
                client_id=shift.client_id,
                scheduled_start=shift.scheduled_start,
                status=shift.status.value,
            )
            for result in batch.results.values()
            for shift in result.incomplete_shifts
        ],
        totals=BatchTotalsResponse(**vars(totals)),
    )


# ============================================================================
# Records
# ============================================================================


@router.get("/records", response_model=PayrollRecordListResponse)
async def list_records(
    service: RecordService,
    period_start: date | None = None,
    period_end: date | None = None,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    caregiver_id: UUID | None = None,
) -> PayrollRecordListResponse:
    """List payroll records with optional period, status and caregiver filters.

    With only caregiver_id set this is the caregiver's payroll history, newest first.
    """
    records = await service.list_records(
        period_start, period_end, status_filter, caregiver_id=caregiver_id
    )
    return PayrollRecordListResponse(
        items=[PayrollRecordResponse.model_validate(r) for r in records],
        total=len(records),
    )


@router.get(
    "/records/{record_id}",
    response_model=PayrollRecordResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_record(
    service: RecordService,
    record_id: Annotated[UUID, Path()],
) -> PayrollRecordResponse:
    """Get a single payroll record."""
    return PayrollRecordResponse.model_validate(await service.get_record(record_id))


# ============================================================================
# Lifecycle
# ============================================================================


@router.post(
    "/records/{record_id}/approve",
    response_model=PayrollRecordResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def approve_record(
    db: DbSession,
    service: RecordService,
    record_id: Annotated[UUID, Path()],
    payload: TransitionRequest | None = None,
) -> PayrollRecordResponse:
    """Approve a draft record."""
    record = await service.approve(record_id, actor=payload.actor if payload else None)
    await db.commit()
    return PayrollRecordResponse.model_validate(record)


@router.post(
    "/records/{record_id}/process",
    response_model=PayrollRecordResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def process_record(
    db: DbSession,
    service: RecordService,
    record_id: Annotated[UUID, Path()],
    payload: TransitionRequest | None = None,
) -> PayrollRecordResponse:
    """Process an approved record and assign its check number."""
    record = await service.process(record_id, actor=payload.actor if payload else None)
    await db.commit()
    return PayrollRecordResponse.model_validate(record)


@router.post(
    "/records/{record_id}/mark-paid",
    response_model=PayrollRecordResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def mark_record_paid(
    db: DbSession,
    service: RecordService,
    record_id: Annotated[UUID, Path()],
) -> PayrollRecordResponse:
    """Mark a processed record as paid."""
    record = await service.mark_paid(record_id)
    await db.commit()
    return PayrollRecordResponse.model_validate(record)


@router.post(
    "/approve-all",
    response_model=ApproveAllResponse,
    status_code=status.HTTP_200_OK,
)
async def approve_all_records(
    db: DbSession,
    service: RecordService,
    payload: ApproveAllRequest,
) -> ApproveAllResponse:
    """Approve every draft record in a period."""
    outcome = await service.approve_all(payload.period_start, payload.period_end, payload.actor)
    await db.commit()
    return ApproveAllResponse(
        approved=[PayrollRecordResponse.model_validate(r) for r in outcome.approved],
        skipped=[PayrollRecordResponse.model_validate(r) for r in outcome.skipped],
    )


# ============================================================================
# Discrepancy report
# ============================================================================


@router.post("/discrepancies", response_model=DiscrepancyResponse)
async def discrepancy_report(
    configured: ConfiguredSettings,
    payload: DiscrepancyRequest,
) -> DiscrepancyResponse:
    """Shifts whose worked time differs from the allotment by min_discrepancy or more."""
    pairs = []
    for caregiver in payload.caregivers:
        rate = caregiver.hourly_rate
        if rate is None:
            rate = configured.default_hourly_rate
        for shift in caregiver.to_input().shifts:
            if payload.period_start <= shift.service_date <= payload.period_end:
                pairs.append((shift, rate))

    report = build_discrepancy_report(pairs, min_discrepancy=payload.min_discrepancy)

    return DiscrepancyResponse(
        period_start=payload.period_start,
        period_end=payload.period_end,
        discrepancies=[
            DiscrepancyEntryResponse(
                caregiver_id=e.caregiver_id,
                client_id=e.client_id,
                shift_id=e.shift.shift_id,
                actual_clock_in=e.shift.actual_clock_in,
                actual_clock_out=e.shift.actual_clock_out,
                worked_minutes=e.reconciliation.worked_minutes,
                allotted_minutes=e.reconciliation.allotted_minutes,
                billable_minutes=e.reconciliation.billable_minutes,
                discrepancy_minutes=e.reconciliation.discrepancy_minutes,
                late_minutes=e.reconciliation.late_minutes,
                flagged=e.reconciliation.flagged,
                billable_pay=e.reconciliation.billable_pay,
                actual_pay=e.reconciliation.actual_pay,
                overage_cost=e.reconciliation.overage_cost,
            )
            for e in report.entries
        ],
        totals=DiscrepancyTotalsResponse(**vars(report.totals)),
        incomplete_shift_count=len(report.incomplete_shifts),
        invalid_shifts=[
            InvalidShiftResponse(
                caregiver_id=i.shift.caregiver_id,
                shift_id=i.shift.shift_id,
                client_id=i.shift.client_id,
                reason=i.reason,
            )
            for i in report.invalid_shifts
        ],
    )
