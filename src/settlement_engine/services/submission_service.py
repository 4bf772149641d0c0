"""Time entry submission."""

from __future__ import annotations

import logging
from datetime import date, time
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping
from uuid import UUID, uuid4

from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from settlement_engine.calculators.pay_calculator import round_to_cents
from settlement_engine.calculators.premium import PremiumPayClassifier
from settlement_engine.calculators.types import PremiumCategory
from settlement_engine.config import get_settings
from settlement_engine.errors import Forbidden, NotFound, ValidationError
from settlement_engine.models import Employee, Project, TimeEntry
from settlement_engine.services.authorization import AuthorizationService
from settlement_engine.services.schema_contract import FULL_SCHEMA, SchemaReport
from settlement_engine.services.state_machine import ApprovalStateMachine

logger = logging.getLogger(__name__)

MAX_HOURS_PER_ENTRY = Decimal("24")


def _parse_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError("Invalid work_date", {"work_date": str(value)})


def _parse_time(field: str, value: Any) -> time | None:
    if value is None or value == "":
        return None
    if isinstance(value, time):
        return value
    try:
        return time.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f"Invalid {field}", {field: str(value)})


def _parse_uuid(field: str, value: Any) -> UUID | None:
    if value is None or isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise ValidationError(f"Invalid {field}", {field: str(value)})


class SubmissionService:
    """Creates time entries in the initial ``pending`` state.

    Approval and settlement fields on the request are stripped; the entry is
    never updated through this path after creation.
    """

    def __init__(self, session: AsyncSession, schema: SchemaReport | None = None):
        self.session = session
        self.schema = schema or FULL_SCHEMA
        self.auth = AuthorizationService(session)
        self.classifier = PremiumPayClassifier()

    async def submit(
        self,
        tenant_id: UUID,
        actor_id: UUID,
        request: Mapping[str, Any],
    ) -> TimeEntry:
        """Validate and insert one time entry.

        Raises:
            NotFound: tenant, employee or project absent from the tenant
            Forbidden: non-administrator submitting for another employee
            ValidationError: malformed date/time or hours outside (0, 24]
        """
        await self.auth.require_tenant(tenant_id)
        actor = await self.auth.get_actor(tenant_id, actor_id)

        payload = ApprovalStateMachine.sanitize_submission(request)

        employee_id = _parse_uuid("employee_id", payload.get("employee_id")) or actor.employee_id
        if employee_id != actor.employee_id and not actor.is_admin:
            raise Forbidden(
                "Only administrators can submit time for other employees",
                {"actor_id": str(actor_id), "employee_id": str(employee_id)},
            )

        employee = await self.session.scalar(
            select(Employee).where(
                Employee.employee_id == employee_id,
                Employee.tenant_id == tenant_id,
            )
        )
        if employee is None:
            raise NotFound("Employee", employee_id)

        project_id = _parse_uuid("project_id", payload.get("project_id"))
        if project_id is not None:
            project = await self.session.scalar(
                select(Project.project_id).where(
                    Project.project_id == project_id,
                    Project.tenant_id == tenant_id,
                )
            )
            if project is None:
                raise NotFound("Project", project_id)

        work_date = _parse_date(payload.get("work_date"))
        start_time = _parse_time("start_time", payload.get("start_time"))
        end_time = _parse_time("end_time", payload.get("end_time"))
        break_minutes = int(payload.get("break_minutes") or 0)
        if break_minutes < 0:
            raise ValidationError("break_minutes must not be negative")

        hours = self._resolve_hours(payload.get("hours_total"), start_time, end_time, break_minutes)
        category = self._resolve_category(
            work_date, start_time, end_time, payload.get("premium_category")
        )

        settings = get_settings()
        base_rate = (
            Decimal(employee.hourly_rate)
            if employee.hourly_rate is not None
            else settings.default_hourly_rate
        )
        amount = round_to_cents(hours * base_rate * self.classifier.multiplier(category))

        entry_id = uuid4()
        values = self.schema.writable(
            "time_entry",
            {
                "time_entry_id": entry_id,
                "tenant_id": tenant_id,
                "employee_id": employee_id,
                "project_id": project_id,
                "work_date": work_date,
                "start_time": start_time,
                "end_time": end_time,
                "break_minutes": break_minutes,
                "premium_category": category.value,
                "hours_total": hours,
                "amount": amount,
                "description": payload.get("description"),
                "approval_status": ApprovalStateMachine.INITIAL_STATUS.value,
                "billed": False,
            },
        )
        await self.session.execute(insert(TimeEntry).values(**values))

        logger.info(
            "Submitted time entry %s: %s h %s on %s for employee %s",
            entry_id,
            hours,
            category.value,
            work_date,
            employee_id,
        )

        return (
            await self.session.scalars(
                select(TimeEntry)
                .options(*self.schema.deferred(TimeEntry))
                .where(TimeEntry.time_entry_id == entry_id)
            )
        ).one()

    def _resolve_hours(
        self,
        supplied: Any,
        start_time: time | None,
        end_time: time | None,
        break_minutes: int,
    ) -> Decimal:
        if supplied is not None and supplied != "":
            try:
                hours = Decimal(str(supplied))
                if not hours.is_finite():
                    raise InvalidOperation
                hours = hours.quantize(Decimal("0.01"))
            except InvalidOperation:
                raise ValidationError("Invalid hours_total", {"hours_total": str(supplied)})
        elif start_time is not None and end_time is not None:
            hours = self.classifier.calculate_hours(start_time, end_time, break_minutes)
        else:
            raise ValidationError("Either hours_total or start_time and end_time are required")

        if hours <= 0 or hours > MAX_HOURS_PER_ENTRY:
            raise ValidationError(
                "hours_total must be greater than 0 and at most 24",
                {"hours_total": str(hours)},
            )
        return hours

    def _resolve_category(
        self,
        work_date: date,
        start_time: time | None,
        end_time: time | None,
        supplied: Any,
    ) -> PremiumCategory:
        if start_time is not None:
            return self.classifier.classify(work_date, start_time, end_time)
        if self.classifier.is_weekend(work_date):
            return PremiumCategory.WEEKEND
        if supplied:
            try:
                return PremiumCategory(supplied)
            except ValueError:
                raise ValidationError(
                    "Unknown premium category", {"premium_category": str(supplied)}
                )
        return PremiumCategory.WORK
