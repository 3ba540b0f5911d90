"""Pytest fixtures for caregiver payroll tests."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import AsyncGenerator
from uuid import UUID, uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from caregiver_payroll.calculators import PayrollEngine, PayrollSettings
from caregiver_payroll.calculators.types import CaregiverPayrollInput, ShiftRecord
from caregiver_payroll.models import Base

# Use in-memory SQLite for tests (with async support)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Monday; the week runs 2026-03-02 through 2026-03-08
PERIOD_START = date(2026, 3, 2)
PERIOD_END = date(2026, 3, 8)


@pytest.fixture
def settings() -> PayrollSettings:
    """Default payroll settings."""
    return PayrollSettings()


@pytest.fixture
def caregiver_id() -> UUID:
    return uuid4()


@pytest.fixture
def client_id() -> UUID:
    return uuid4()


@pytest.fixture
def make_shift(caregiver_id: UUID, client_id: UUID):
    """Factory for completed shifts.

    start is the scheduled start; the caregiver clocks in late_minutes after
    it and works worked_minutes. allotted_minutes=None means no
    authorization is on file.
    """

    def _make(
        start: datetime,
        worked_minutes: int,
        allotted_minutes: int | None = 60,
        late_minutes: int = 0,
        caregiver: UUID | None = None,
        is_weekend: bool = False,
        is_night: bool = False,
    ) -> ShiftRecord:
        clock_in = start + timedelta(minutes=late_minutes)
        return ShiftRecord(
            shift_id=uuid4(),
            caregiver_id=caregiver or caregiver_id,
            client_id=client_id,
            scheduled_start=start,
            scheduled_end=start + timedelta(minutes=allotted_minutes or worked_minutes),
            allotted_minutes=allotted_minutes,
            actual_clock_in=clock_in,
            actual_clock_out=clock_in + timedelta(minutes=worked_minutes),
            is_weekend=is_weekend,
            is_night=is_night,
        )

    return _make


@pytest.fixture
def make_week(make_shift):
    """Factory for a caregiver input with one fully-billed shift per day.

    hours_per_day lists the billable hours for consecutive days starting at
    PERIOD_START.
    """

    def _make(
        hours_per_day: list[int],
        caregiver: UUID | None = None,
        hourly_rate: Decimal | None = Decimal("20"),
    ) -> CaregiverPayrollInput:
        cid = caregiver or uuid4()
        shifts = []
        for offset, hours in enumerate(hours_per_day):
            start = datetime.combine(PERIOD_START + timedelta(days=offset), datetime.min.time())
            start = start.replace(hour=7)
            shifts.append(
                make_shift(start, hours * 60, allotted_minutes=hours * 60, caregiver=cid)
            )
        return CaregiverPayrollInput(caregiver_id=cid, hourly_rate=hourly_rate, shifts=shifts)

    return _make


@pytest.fixture
def payroll_engine(settings: PayrollSettings) -> PayrollEngine:
    return PayrollEngine(settings, engine_version="test")


@pytest.fixture
async def engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()
