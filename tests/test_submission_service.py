"""Tests for time entry submission."""

from datetime import date, time
from decimal import Decimal
from uuid import uuid4

import pytest

from settlement_engine.errors import Forbidden, NotFound, ValidationError
from settlement_engine.services.submission_service import SubmissionService


class TestSubmit:
    """Test entry creation."""

    async def test_created_pending_with_derived_hours(self, session, tenant, worker, project):
        entry = await SubmissionService(session).submit(
            tenant.tenant_id,
            worker.employee_id,
            {
                "project_id": project.project_id,
                "work_date": "2025-03-04",
                "start_time": "07:00",
                "end_time": "16:00",
                "break_minutes": 30,
                "description": "Formwork",
            },
        )

        assert entry.employee_id == worker.employee_id
        assert entry.approval_status == "pending"
        assert entry.billed is False
        assert entry.hours_total == Decimal("8.50")
        assert entry.premium_category == "work"
        assert entry.amount == Decimal("3060.00")

    async def test_approval_fields_are_stripped(self, session, tenant, worker):
        entry = await SubmissionService(session).submit(
            tenant.tenant_id,
            worker.employee_id,
            {
                "work_date": date(2025, 3, 4),
                "hours_total": "4",
                "approval_status": "approved",
                "approved_by": worker.employee_id,
                "billed": True,
            },
        )

        assert entry.approval_status == "pending"
        assert entry.approved_by is None
        assert entry.billed is False

    async def test_evening_span_classified(self, session, tenant, worker):
        entry = await SubmissionService(session).submit(
            tenant.tenant_id,
            worker.employee_id,
            {"work_date": "2025-03-04", "start_time": time(17, 0), "end_time": time(20, 0)},
        )

        assert entry.premium_category == "evening"
        # 3h * 360 * 1.5
        assert entry.amount == Decimal("1620.00")

    async def test_weekend_forces_category(self, session, tenant, worker):
        entry = await SubmissionService(session).submit(
            tenant.tenant_id,
            worker.employee_id,
            {"work_date": "2025-03-08", "hours_total": "5", "premium_category": "evening"},
        )

        assert entry.premium_category == "weekend"

    async def test_untimed_keeps_supplied_category(self, session, tenant, worker):
        entry = await SubmissionService(session).submit(
            tenant.tenant_id,
            worker.employee_id,
            {"work_date": "2025-03-04", "hours_total": "2", "premium_category": "night"},
        )

        assert entry.premium_category == "night"

    async def test_admin_submits_for_employee(self, session, tenant, admin, worker):
        entry = await SubmissionService(session).submit(
            tenant.tenant_id,
            admin.employee_id,
            {"employee_id": str(worker.employee_id), "work_date": "2025-03-04", "hours_total": "1"},
        )

        assert entry.employee_id == worker.employee_id

    async def test_zero_rate_is_not_replaced_by_default(self, session, tenant, worker):
        worker.hourly_rate = Decimal("0")
        await session.flush()

        entry = await SubmissionService(session).submit(
            tenant.tenant_id,
            worker.employee_id,
            {"work_date": "2025-03-04", "hours_total": "8"},
        )

        assert entry.amount == Decimal("0.00")


class TestSubmitValidation:
    """Test rejected submissions."""

    async def test_employee_cannot_submit_for_others(self, session, tenant, admin, worker):
        with pytest.raises(Forbidden):
            await SubmissionService(session).submit(
                tenant.tenant_id,
                worker.employee_id,
                {"employee_id": admin.employee_id, "work_date": "2025-03-04", "hours_total": "1"},
            )

    async def test_project_of_other_tenant(self, session, tenant, worker, other_tenant):
        with pytest.raises(NotFound):
            await SubmissionService(session).submit(
                tenant.tenant_id,
                worker.employee_id,
                {
                    "project_id": other_tenant["project"].project_id,
                    "work_date": "2025-03-04",
                    "hours_total": "1",
                },
            )

    async def test_unknown_actor(self, session, tenant):
        with pytest.raises(Forbidden):
            await SubmissionService(session).submit(
                tenant.tenant_id, uuid4(), {"work_date": "2025-03-04", "hours_total": "1"}
            )

    @pytest.mark.parametrize("hours", ["0", "-1", "24.5", "abc"])
    async def test_hours_out_of_range(self, session, tenant, worker, hours):
        with pytest.raises(ValidationError):
            await SubmissionService(session).submit(
                tenant.tenant_id,
                worker.employee_id,
                {"work_date": "2025-03-04", "hours_total": hours},
            )

    async def test_hours_or_span_required(self, session, tenant, worker):
        with pytest.raises(ValidationError):
            await SubmissionService(session).submit(
                tenant.tenant_id, worker.employee_id, {"work_date": "2025-03-04"}
            )

    async def test_invalid_date(self, session, tenant, worker):
        with pytest.raises(ValidationError):
            await SubmissionService(session).submit(
                tenant.tenant_id,
                worker.employee_id,
                {"work_date": "2025-02-30", "hours_total": "1"},
            )
