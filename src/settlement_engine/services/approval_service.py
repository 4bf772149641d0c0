"""Approval operations: approve one entry or every pending entry of a tenant."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from settlement_engine.calculators.types import DateRange
from settlement_engine.errors import NotFound, ValidationError
from settlement_engine.models import TimeEntry, utcnow
from settlement_engine.services.audit import AuditRecorder
from settlement_engine.services.authorization import AuthorizationService
from settlement_engine.services.schema_contract import FULL_SCHEMA, SchemaReport
from settlement_engine.services.state_machine import ApprovalStateMachine, ApprovalStatus

logger = logging.getLogger(__name__)

APPROVED = ApprovalStatus.APPROVED.value
# Statuses that may move to approved
APPROVABLE = ApprovalStateMachine.transition_sources(APPROVED)


@dataclass
class ApprovalResult:
    """Entries actually transitioned by one call; zero is a valid outcome."""

    transitioned_ids: list[UUID] = field(default_factory=list)
    method: str = "conditional"

    @property
    def count(self) -> int:
        return len(self.transitioned_ids)


class ApprovalService:
    """Moves time entries from pending to approved.

    Every transition is a single conditional UPDATE guarded by
    ``approval_status <> 'approved'``, so concurrent calls over overlapping
    entries each transition a disjoint subset and repeated calls transition
    nothing.
    """

    def __init__(self, session: AsyncSession, schema: SchemaReport | None = None):
        self.session = session
        self.schema = schema or FULL_SCHEMA
        self.auth = AuthorizationService(session)
        self.audit = AuditRecorder(session)

    def _approval_values(self, actor_id: UUID, approved_at: datetime) -> dict[str, Any]:
        return self.schema.writable(
            "time_entry",
            {
                "approval_status": APPROVED,
                "approved_at": approved_at,
                "approved_by": actor_id,
            },
        )

    @staticmethod
    def pending_predicate(tenant_id: UUID, date_range: DateRange | None = None) -> list[Any]:
        """Filter shared by the fast path and the fallback of approve_all."""
        criteria = [
            TimeEntry.tenant_id == tenant_id,
            TimeEntry.approval_status.in_(APPROVABLE),
        ]
        if date_range is not None and date_range.start is not None:
            criteria.append(TimeEntry.work_date >= date_range.start)
        if date_range is not None and date_range.end is not None:
            criteria.append(TimeEntry.work_date <= date_range.end)
        return criteria

    async def approve_one(
        self,
        tenant_id: UUID,
        entry_id: UUID,
        actor_id: UUID,
    ) -> ApprovalResult:
        """Approve a single entry; approving an approved entry is a no-op.

        Raises:
            NotFound: tenant or entry absent from the tenant
            Forbidden: actor is not an administrator of the tenant
            ValidationError: entry is in a status that cannot move to approved
        """
        await self.auth.require_tenant(tenant_id)
        await self.auth.require_admin(tenant_id, actor_id)

        result = await self.session.execute(
            update(TimeEntry)
            .where(
                TimeEntry.tenant_id == tenant_id,
                TimeEntry.time_entry_id == entry_id,
                TimeEntry.approval_status.in_(APPROVABLE),
            )
            .values(**self._approval_values(actor_id, utcnow()))
        )

        if result.rowcount == 0:
            current = await self.session.scalar(
                select(TimeEntry.approval_status).where(
                    TimeEntry.tenant_id == tenant_id,
                    TimeEntry.time_entry_id == entry_id,
                )
            )
            if current is None:
                raise NotFound("TimeEntry", entry_id)
            if not ApprovalStateMachine.is_noop(current, APPROVED):
                raise ValidationError(
                    f"Time entry cannot be approved from status '{current}'",
                    {"time_entry_id": str(entry_id), "approval_status": current},
                )
            logger.info("Time entry %s already approved; nothing to do", entry_id)
            return ApprovalResult()

        self.audit.record(
            tenant_id=tenant_id,
            entity_type="time_entry",
            entity_id=entry_id,
            action="approved",
            actor_id=actor_id,
        )
        logger.info("Approved time entry %s (tenant %s)", entry_id, tenant_id)
        return ApprovalResult(transitioned_ids=[entry_id])

    async def approve_all(
        self,
        tenant_id: UUID,
        actor_id: UUID,
        date_range: DateRange | None = None,
    ) -> ApprovalResult:
        """Approve every pending entry of the tenant, optionally within a date range.

        The fast path is one UPDATE ... RETURNING. If it fails at the
        persistence layer, the same predicate is applied once more through a
        plain UPDATE restricted to the ids it selects.

        Raises:
            NotFound: tenant absent
            Forbidden: actor is not an administrator of the tenant
            ValidationError: end date before start date
        """
        await self.auth.require_tenant(tenant_id)
        await self.auth.require_admin(tenant_id, actor_id)

        if date_range is not None and not date_range.is_valid():
            raise ValidationError(
                "End date must not be before start date",
                {"start": str(date_range.start), "end": str(date_range.end)},
            )

        predicate = self.pending_predicate(tenant_id, date_range)
        approved_at = utcnow()
        values = self._approval_values(actor_id, approved_at)

        try:
            async with self.session.begin_nested():
                ids = await self._approve_conditional(predicate, values)
            method = "conditional"
        except SQLAlchemyError as exc:
            logger.warning(
                "Bulk approval fast path failed for tenant %s, retrying with plain update: %s",
                tenant_id,
                exc,
            )
            ids = await self._approve_fallback(predicate, values, actor_id, approved_at)
            method = "fallback"

        if ids:
            self.audit.record(
                tenant_id=tenant_id,
                entity_type="tenant",
                entity_id=tenant_id,
                action="time_entries_approved",
                actor_id=actor_id,
                details={
                    "count": len(ids),
                    "start": date_range.start if date_range else None,
                    "end": date_range.end if date_range else None,
                    "method": method,
                },
            )
        logger.info(
            "Approved %d time entries for tenant %s via %s path", len(ids), tenant_id, method
        )
        return ApprovalResult(transitioned_ids=ids, method=method)

    async def _approve_conditional(
        self, predicate: list[Any], values: dict[str, Any]
    ) -> list[UUID]:
        result = await self.session.execute(
            update(TimeEntry)
            .where(*predicate)
            .values(**values)
            .returning(TimeEntry.time_entry_id)
        )
        return list(result.scalars().all())

    async def _approve_fallback(
        self,
        predicate: list[Any],
        values: dict[str, Any],
        actor_id: UUID,
        approved_at: datetime,
    ) -> list[UUID]:
        candidates = list(
            (await self.session.scalars(select(TimeEntry.time_entry_id).where(*predicate))).all()
        )
        if not candidates:
            return []

        result = await self.session.execute(
            update(TimeEntry)
            .where(*predicate, TimeEntry.time_entry_id.in_(candidates))
            .values(**values)
        )
        if result.rowcount == len(candidates):
            return candidates

        # A concurrent approval took some candidates; keep only our stamps
        if self.schema.has("time_entry", "approved_at") and self.schema.has(
            "time_entry", "approved_by"
        ):
            return list(
                (
                    await self.session.scalars(
                        select(TimeEntry.time_entry_id).where(
                            TimeEntry.time_entry_id.in_(candidates),
                            TimeEntry.approved_by == actor_id,
                            TimeEntry.approved_at == approved_at,
                        )
                    )
                ).all()
            )
        logger.warning(
            "Fallback approval transitioned %d of %d candidates; ids cannot be attributed",
            result.rowcount,
            len(candidates),
        )
        return candidates[: result.rowcount]
