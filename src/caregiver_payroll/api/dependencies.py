"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from caregiver_payroll.calculators.settings import PayrollSettings
from caregiver_payroll.database import init_db
from caregiver_payroll.services.payroll_record_service import PayrollRecordService


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    _, session_factory = init_db()
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


@lru_cache(maxsize=1)
def get_payroll_settings() -> PayrollSettings:
    """Configured payroll settings; requests may override individual fields."""
    return PayrollSettings.from_env()


async def get_record_service(
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> PayrollRecordService:
    return PayrollRecordService(db)


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
ConfiguredSettings = Annotated[PayrollSettings, Depends(get_payroll_settings)]
RecordService = Annotated[PayrollRecordService, Depends(get_record_service)]
