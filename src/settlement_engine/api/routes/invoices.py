"""Invoice settlement endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query

from settlement_engine.api.dependencies import ActorId, DbSession, Schema, TenantId
from settlement_engine.api.schemas import ErrorResponse, SettlementResponse
from settlement_engine.services.settlement_service import SettlementEngine

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.post(
    "/{invoice_id}/settle",
    response_model=SettlementResponse,
    responses={
        207: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)
async def settle_invoice(
    db: DbSession,
    schema: Schema,
    tenant_id: TenantId,
    actor_id: ActorId,
    invoice_id: Annotated[UUID, Path()],
    project_id: Annotated[UUID, Query()],
) -> SettlementResponse:
    """Settle the project's approved, unbilled time entries onto the invoice."""
    engine = SettlementEngine(db, schema)
    result = await engine.settle(tenant_id, project_id, invoice_id, actor_id)
    await db.commit()
    return SettlementResponse.from_result(result)
