"""Check number assignment."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from caregiver_payroll.models import PayrollRecord


@runtime_checkable
class CheckNumberAuthority(Protocol):
    """Issues the check number for a record being processed."""

    async def next_check_number(self, session: AsyncSession) -> int:
        ...


class SequentialCheckNumberAuthority:
    """Numbers checks one past the highest number already issued.

    The first check is first_number. check_number is unique in the table, so
    two processes racing for the same number cannot both commit it.
    """

    def __init__(self, first_number: int = 1001):
        self.first_number = first_number

    async def next_check_number(self, session: AsyncSession) -> int:
        highest = await session.scalar(select(func.max(PayrollRecord.check_number)))
        if highest is None:
            return self.first_number
        return max(highest + 1, self.first_number)
