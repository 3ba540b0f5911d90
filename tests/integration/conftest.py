"""Integration test fixtures: the API wired to an in-memory database."""

from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from caregiver_payroll.api.app import create_app
from caregiver_payroll.api.dependencies import get_db_session, get_payroll_settings
from caregiver_payroll.calculators.settings import PayrollSettings


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    app = create_app(create_tables=False)

    async def _session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = _session
    app.dependency_overrides[get_payroll_settings] = lambda: PayrollSettings()

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
