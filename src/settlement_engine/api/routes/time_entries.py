"""Time entry submission and approval endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from settlement_engine.api.dependencies import ActorId, DbSession, Schema, TenantId
from settlement_engine.api.schemas import (
    ApprovalResponse,
    ErrorResponse,
    TimeEntryCreate,
    TimeEntryResponse,
)
from settlement_engine.calculators.types import DateRange
from settlement_engine.services.approval_service import ApprovalService
from settlement_engine.services.submission_service import SubmissionService

router = APIRouter(prefix="/time-entries", tags=["time-entries"])


@router.post(
    "",
    response_model=TimeEntryResponse,
    status_code=status.HTTP_201_CREATED,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def submit_time_entry(
    db: DbSession,
    schema: Schema,
    tenant_id: TenantId,
    actor_id: ActorId,
    payload: TimeEntryCreate,
) -> TimeEntryResponse:
    """Submit a time entry; it is always created pending."""
    service = SubmissionService(db, schema)
    entry = await service.submit(tenant_id, actor_id, payload.model_dump(exclude_unset=True))
    response = TimeEntryResponse.from_entry(entry, schema)
    await db.commit()
    return response


@router.post(
    "/approve-all",
    response_model=ApprovalResponse,
    responses={403: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def approve_all_time_entries(
    db: DbSession,
    schema: Schema,
    tenant_id: TenantId,
    actor_id: ActorId,
    start: Annotated[date | None, Query()] = None,
    end: Annotated[date | None, Query()] = None,
) -> ApprovalResponse:
    """Approve every pending entry of the tenant, optionally within a date range."""
    date_range = DateRange(start, end) if start or end else None
    result = await ApprovalService(db, schema).approve_all(tenant_id, actor_id, date_range)
    await db.commit()
    return ApprovalResponse.from_result(result)


@router.post(
    "/{entry_id}/approve",
    response_model=ApprovalResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def approve_time_entry(
    db: DbSession,
    schema: Schema,
    tenant_id: TenantId,
    actor_id: ActorId,
    entry_id: Annotated[UUID, Path()],
) -> ApprovalResponse:
    """Approve one time entry; already approved entries are left as they are."""
    result = await ApprovalService(db, schema).approve_one(tenant_id, entry_id, actor_id)
    await db.commit()
    return ApprovalResponse.from_result(result)
