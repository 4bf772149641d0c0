"""Project endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path

from settlement_engine.api.dependencies import ActorId, DbSession, Schema, TenantId
from settlement_engine.api.schemas import ErrorResponse, UnbilledHoursResponse
from settlement_engine.services.settlement_service import SettlementEngine

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get(
    "/{project_id}/unbilled",
    response_model=UnbilledHoursResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def unbilled_hours(
    db: DbSession,
    schema: Schema,
    tenant_id: TenantId,
    actor_id: ActorId,
    project_id: Annotated[UUID, Path()],
) -> UnbilledHoursResponse:
    """Approved, unbilled time of the project and its value at the project rate."""
    preview = await SettlementEngine(db, schema).preview(tenant_id, project_id, actor_id)
    return UnbilledHoursResponse.from_preview(preview)
