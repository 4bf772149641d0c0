"""Payroll period aggregation over approved time entries."""

from __future__ import annotations

import logging
from collections import defaultdict
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from settlement_engine.calculators.pay_calculator import PayCalculator
from settlement_engine.calculators.types import (
    DateRange,
    EmployeeRateSnapshot,
    PayrollOptions,
    PayrollPeriod,
    PremiumCategory,
)
from settlement_engine.config import Settings, get_settings
from settlement_engine.errors import Forbidden, NotFound, ValidationError
from settlement_engine.models import Employee, TimeEntry
from settlement_engine.services.authorization import AuthorizationService
from settlement_engine.services.state_machine import ApprovalStateMachine

logger = logging.getLogger(__name__)


class PayrollAggregator:
    """Builds per-employee PayrollPeriods from approved time entries.

    Hours are summed in the database, partitioned by premium category.
    Employees excluded by the employment-type filter never reach the
    aggregation query. Employees with no approved hours in range still get
    a zero period.
    """

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()
        self.auth = AuthorizationService(session)

    async def aggregate(
        self,
        tenant_id: UUID,
        employee_ids: Iterable[UUID],
        date_range: DateRange,
        options: PayrollOptions | None = None,
        actor_id: UUID | None = None,
    ) -> dict[UUID, PayrollPeriod]:
        """Aggregate approved hours and pay for each requested employee.

        When ``actor_id`` is given, a non-administrator may only aggregate
        their own payslip.

        Raises:
            NotFound: tenant or a requested employee absent from the tenant
            Forbidden: non-administrator requesting another employee
            ValidationError: open or inverted date range
        """
        await self.auth.require_tenant(tenant_id)
        options = options or PayrollOptions()
        requested = list(dict.fromkeys(employee_ids))

        if not date_range.is_bounded or not date_range.is_valid():
            raise ValidationError(
                "Payroll aggregation requires a start date on or before the end date",
                {"start": str(date_range.start), "end": str(date_range.end)},
            )

        if actor_id is not None:
            actor = await self.auth.get_actor(tenant_id, actor_id)
            if not actor.is_admin and any(eid != actor.employee_id for eid in requested):
                raise Forbidden(
                    "Employees may only view their own pay",
                    {"actor_id": str(actor_id)},
                )

        employees = await self._load_employees(tenant_id, requested, options)
        hours = await self._hours_by_category(tenant_id, list(employees), date_range)

        threshold = (
            options.overtime_threshold_hours
            if options.overtime_threshold_hours is not None
            else self.settings.overtime_threshold_hours
        )

        periods: dict[UUID, PayrollPeriod] = {}
        for snapshot in sorted(employees.values(), key=lambda s: (s.full_name, str(s.employee_id))):
            by_category, entry_count = hours.get(snapshot.employee_id, ({}, 0))
            periods[snapshot.employee_id] = PayCalculator.build_period(
                snapshot,
                date_range.start,
                date_range.end,
                by_category,
                options,
                overtime_threshold=threshold,
                entry_count=entry_count,
            )

        logger.info(
            "Aggregated payroll for %d employees (tenant %s, %s to %s)",
            len(periods),
            tenant_id,
            date_range.start,
            date_range.end,
        )
        return periods

    async def _load_employees(
        self,
        tenant_id: UUID,
        employee_ids: list[UUID],
        options: PayrollOptions,
    ) -> dict[UUID, EmployeeRateSnapshot]:
        """Snapshot rates of requested employees, filtered by employment type."""
        if not employee_ids:
            return {}

        result = await self.session.scalars(
            select(Employee).where(
                Employee.tenant_id == tenant_id,
                Employee.employee_id.in_(employee_ids),
            )
        )
        found = {employee.employee_id: employee for employee in result.all()}

        missing = [eid for eid in employee_ids if eid not in found]
        if missing:
            raise NotFound("Employee", missing[0])

        allowed = (
            {str(getattr(t, "value", t)) for t in options.employment_types}
            if options.employment_types is not None
            else None
        )

        snapshots: dict[UUID, EmployeeRateSnapshot] = {}
        for employee in found.values():
            if allowed is not None and employee.employment_type not in allowed:
                continue
            snapshots[employee.employee_id] = EmployeeRateSnapshot(
                employee_id=employee.employee_id,
                full_name=employee.full_name,
                personal_number=employee.personal_number,
                employment_type=employee.employment_type,
                base_rate=(
                    Decimal(employee.hourly_rate)
                    if employee.hourly_rate is not None
                    else self.settings.default_hourly_rate
                ),
            )
        return snapshots

    async def _hours_by_category(
        self,
        tenant_id: UUID,
        employee_ids: list[UUID],
        date_range: DateRange,
    ) -> dict[UUID, tuple[dict[PremiumCategory, Decimal], int]]:
        if not employee_ids:
            return {}

        result = await self.session.execute(
            select(
                TimeEntry.employee_id,
                TimeEntry.premium_category,
                func.sum(TimeEntry.hours_total),
                func.count(TimeEntry.time_entry_id),
            )
            .where(
                TimeEntry.tenant_id == tenant_id,
                TimeEntry.employee_id.in_(employee_ids),
                TimeEntry.approval_status.in_(ApprovalStateMachine.consumable_values()),
                TimeEntry.work_date >= date_range.start,
                TimeEntry.work_date <= date_range.end,
            )
            .group_by(TimeEntry.employee_id, TimeEntry.premium_category)
        )

        hours: dict[UUID, dict[PremiumCategory, Decimal]] = defaultdict(dict)
        counts: dict[UUID, int] = defaultdict(int)
        for employee_id, category, total, count in result.all():
            hours[employee_id][PremiumCategory(category)] = Decimal(str(total or 0))
            counts[employee_id] += count
        return {employee_id: (hours[employee_id], counts[employee_id]) for employee_id in hours}
