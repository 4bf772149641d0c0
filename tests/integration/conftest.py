"""Integration test fixtures: the API wired to the per-test database session."""

from collections.abc import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from settlement_engine.api.app import create_app
from settlement_engine.api.dependencies import get_db_session
from settlement_engine.services.schema_contract import SchemaContract


@pytest_asyncio.fixture
async def client(session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing.

    The transport does not run the lifespan, so the schema contract is
    verified here against the test database instead.
    """
    app = create_app()
    app.state.schema_report = await SchemaContract().verify(session)

    async def _session_override() -> AsyncGenerator[AsyncSession, None]:
        yield session

    app.dependency_overrides[get_db_session] = _session_override
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
