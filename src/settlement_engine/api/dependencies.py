"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from settlement_engine.database import init_db
from settlement_engine.services.schema_contract import FULL_SCHEMA, SchemaReport


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency; routes commit explicitly."""
    _, session_factory = init_db()
    async with session_factory() as session:
        yield session


def get_schema_report(request: Request) -> SchemaReport:
    """Schema report verified at startup."""
    return getattr(request.app.state, "schema_report", FULL_SCHEMA)


def _parse_header_uuid(name: str, value: str | None) -> UUID:
    if not value:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{name} header is required",
        )
    try:
        return UUID(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {name} format",
        )


async def get_tenant_id(
    x_tenant_id: Annotated[str | None, Header()] = None
) -> UUID:
    """Extract the already-resolved tenant ID from header."""
    return _parse_header_uuid("X-Tenant-ID", x_tenant_id)


async def get_actor_id(
    x_actor_id: Annotated[str | None, Header()] = None
) -> UUID:
    """Extract the authenticated actor (employee) ID from header."""
    return _parse_header_uuid("X-Actor-ID", x_actor_id)


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
TenantId = Annotated[UUID, Depends(get_tenant_id)]
ActorId = Annotated[UUID, Depends(get_actor_id)]
Schema = Annotated[SchemaReport, Depends(get_schema_report)]
