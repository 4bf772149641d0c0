"""Payroll aggregation endpoints."""

from fastapi import APIRouter

from settlement_engine.api.dependencies import ActorId, DbSession, TenantId
from settlement_engine.api.schemas import (
    ErrorResponse,
    PayrollAggregateRequest,
    PayrollAggregateResponse,
    PayrollPeriodResponse,
)
from settlement_engine.services.payroll_service import PayrollAggregator

router = APIRouter(prefix="/payroll", tags=["payroll"])


@router.post(
    "/aggregate",
    response_model=PayrollAggregateResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def aggregate_payroll(
    db: DbSession,
    tenant_id: TenantId,
    actor_id: ActorId,
    payload: PayrollAggregateRequest,
) -> PayrollAggregateResponse:
    """Aggregate approved hours into payroll periods (display-only net estimate)."""
    periods = await PayrollAggregator(db).aggregate(
        tenant_id,
        payload.employee_ids,
        payload.date_range,
        payload.options.to_options(),
        actor_id=actor_id,
    )
    return PayrollAggregateResponse(
        start=payload.start,
        end=payload.end,
        periods=[PayrollPeriodResponse.from_period(p) for p in periods.values()],
    )
