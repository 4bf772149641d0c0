"""Pytest fixtures for settlement engine tests."""

from __future__ import annotations

from datetime import date, time
from decimal import Decimal
from typing import Any, AsyncGenerator, Awaitable, Callable
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from settlement_engine.config import Settings
from settlement_engine.database import build_engine, create_schema, make_session_factory
from settlement_engine.models import Employee, Invoice, Project, Tenant, TimeEntry

# In-memory SQLite with async support; one fresh schema per test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# A Tuesday
WEEKDAY = date(2025, 3, 4)
SATURDAY = date(2025, 3, 8)


@pytest.fixture
def settings() -> Settings:
    """Deterministic settings independent of the environment."""
    return Settings(
        database_url=TEST_DATABASE_URL,
        engine_version="test",
        host="127.0.0.1",
        port=8000,
        debug=False,
        log_level="DEBUG",
        default_project_rate=Decimal("360"),
        default_hourly_rate=Decimal("360"),
        overtime_threshold_hours=Decimal("160"),
        settlement_max_attempts=2,
        currency="SEK",
    )


@pytest.fixture
async def engine():
    """Create test database engine with a fresh schema."""
    engine = build_engine(TEST_DATABASE_URL)
    await create_schema(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
async def session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with make_session_factory(engine)() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def tenant(session: AsyncSession) -> Tenant:
    """Create a test tenant."""
    tenant = Tenant(tenant_id=uuid4(), name="Bygg AB", status="active")
    session.add(tenant)
    await session.flush()
    return tenant


@pytest.fixture
async def admin(session: AsyncSession, tenant: Tenant) -> Employee:
    """Create an administrator of the test tenant."""
    employee = Employee(
        employee_id=uuid4(),
        tenant_id=tenant.tenant_id,
        full_name="Anna Admin",
        personal_number="19800101-1234",
        role="admin",
        employment_type="full_time",
        hourly_rate=Decimal("400"),
        status="active",
    )
    session.add(employee)
    await session.flush()
    return employee


@pytest.fixture
async def worker(session: AsyncSession, tenant: Tenant) -> Employee:
    """Create a non-administrator employee with base rate 360."""
    employee = Employee(
        employee_id=uuid4(),
        tenant_id=tenant.tenant_id,
        full_name="Bertil Bygg",
        personal_number="19900202-5678",
        role="employee",
        employment_type="full_time",
        hourly_rate=Decimal("360"),
        status="active",
    )
    session.add(employee)
    await session.flush()
    return employee


@pytest.fixture
async def project(session: AsyncSession, tenant: Tenant) -> Project:
    """Create a project billed at 420 per hour."""
    project = Project(
        project_id=uuid4(),
        tenant_id=tenant.tenant_id,
        name="Kv. Eken",
        customer_name="Eken Fastigheter",
        hourly_rate=Decimal("420"),
        status="active",
    )
    session.add(project)
    await session.flush()
    return project


@pytest.fixture
async def invoice(session: AsyncSession, tenant: Tenant, project: Project) -> Invoice:
    """Create a draft invoice for the project with a caller estimate."""
    invoice = Invoice(
        invoice_id=uuid4(),
        tenant_id=tenant.tenant_id,
        project_id=project.project_id,
        customer_name=project.customer_name,
        amount=Decimal("1000.00"),
        status="draft",
    )
    session.add(invoice)
    await session.flush()
    return invoice


@pytest.fixture
async def other_tenant(session: AsyncSession) -> dict[str, Any]:
    """A second tenant with its own administrator and project."""
    tenant = Tenant(tenant_id=uuid4(), name="Other AB", status="active")
    session.add(tenant)
    await session.flush()
    admin = Employee(
        employee_id=uuid4(),
        tenant_id=tenant.tenant_id,
        full_name="Olle Other",
        role="admin",
        status="active",
    )
    project = Project(
        project_id=uuid4(),
        tenant_id=tenant.tenant_id,
        name="Other project",
        hourly_rate=Decimal("500"),
    )
    session.add_all([admin, project])
    await session.flush()
    return {"tenant": tenant, "admin": admin, "project": project}


EntryFactory = Callable[..., Awaitable[TimeEntry]]


@pytest.fixture
def make_entry(session: AsyncSession, tenant: Tenant, worker: Employee) -> EntryFactory:
    """Factory inserting a time entry; pending and unbilled unless told otherwise."""

    async def _make(
        hours: str | Decimal = "8",
        work_date: date = WEEKDAY,
        start_time: time | None = None,
        end_time: time | None = None,
        premium_category: str = "work",
        approval_status: str = "pending",
        billed: bool = False,
        project: Project | None = None,
        employee: Employee | None = None,
        description: str | None = None,
        tenant_id=None,
    ) -> TimeEntry:
        entry = TimeEntry(
            time_entry_id=uuid4(),
            tenant_id=tenant_id or tenant.tenant_id,
            employee_id=(employee or worker).employee_id,
            project_id=project.project_id if project is not None else None,
            work_date=work_date,
            start_time=start_time,
            end_time=end_time,
            premium_category=premium_category,
            hours_total=Decimal(hours),
            description=description,
            approval_status=approval_status,
            billed=billed,
        )
        session.add(entry)
        await session.flush()
        return entry

    return _make


@pytest.fixture
def reload(session: AsyncSession) -> Callable[..., Awaitable[Any]]:
    """Reload a row from the database, bypassing the identity map."""

    async def _reload(model: type, pk) -> Any:
        return await session.get(model, pk, populate_existing=True)

    return _reload
