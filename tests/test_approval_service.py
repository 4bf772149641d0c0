"""Tests for single and bulk approval."""

from datetime import date
from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from settlement_engine.calculators.types import DateRange
from settlement_engine.errors import Forbidden, NotFound, ValidationError
from settlement_engine.models import AuditEvent, TimeEntry
from settlement_engine.services.approval_service import ApprovalService


class TestApproveOne:
    """Test approving a single entry."""

    async def test_approve_sets_stamp(self, session, tenant, admin, make_entry, reload):
        entry = await make_entry()

        result = await ApprovalService(session).approve_one(
            tenant.tenant_id, entry.time_entry_id, admin.employee_id
        )

        assert result.count == 1
        approved = await reload(TimeEntry, entry.time_entry_id)
        assert approved.approval_status == "approved"
        assert approved.approved_by == admin.employee_id
        assert approved.approved_at is not None
        assert approved.billed is False

    async def test_reapproval_is_noop(self, session, tenant, admin, make_entry, reload):
        entry = await make_entry(approval_status="approved")

        result = await ApprovalService(session).approve_one(
            tenant.tenant_id, entry.time_entry_id, admin.employee_id
        )

        assert result.count == 0
        unchanged = await reload(TimeEntry, entry.time_entry_id)
        assert unchanged.approved_by is None

    async def test_non_admin_forbidden(self, session, tenant, worker, make_entry, reload):
        entry = await make_entry()

        with pytest.raises(Forbidden):
            await ApprovalService(session).approve_one(
                tenant.tenant_id, entry.time_entry_id, worker.employee_id
            )

        assert (await reload(TimeEntry, entry.time_entry_id)).approval_status == "pending"

    async def test_admin_of_other_tenant_forbidden(self, session, tenant, other_tenant, make_entry):
        entry = await make_entry()

        with pytest.raises(Forbidden):
            await ApprovalService(session).approve_one(
                tenant.tenant_id, entry.time_entry_id, other_tenant["admin"].employee_id
            )

    async def test_entry_of_other_tenant_not_found(self, session, admin, other_tenant, make_entry):
        entry = await make_entry(tenant_id=other_tenant["tenant"].tenant_id)

        with pytest.raises(NotFound):
            await ApprovalService(session).approve_one(
                admin.tenant_id, entry.time_entry_id, admin.employee_id
            )

    async def test_unknown_tenant_not_found(self, session, admin, make_entry):
        entry = await make_entry()

        with pytest.raises(NotFound):
            await ApprovalService(session).approve_one(uuid4(), entry.time_entry_id, admin.employee_id)

    async def test_records_audit_event(self, session, tenant, admin, make_entry):
        entry = await make_entry()

        await ApprovalService(session).approve_one(
            tenant.tenant_id, entry.time_entry_id, admin.employee_id
        )
        await session.flush()

        events = (await session.scalars(select(AuditEvent))).all()
        assert [(e.entity_id, e.action) for e in events] == [(entry.time_entry_id, "approved")]


class TestApproveAll:
    """Test bulk approval."""

    async def test_approves_every_pending_entry(self, session, tenant, admin, make_entry, reload):
        pending = [await make_entry() for _ in range(3)]
        already = await make_entry(approval_status="approved")

        result = await ApprovalService(session).approve_all(tenant.tenant_id, admin.employee_id)

        assert result.count == 3
        assert result.method == "conditional"
        assert set(result.transitioned_ids) == {e.time_entry_id for e in pending}
        assert already.time_entry_id not in result.transitioned_ids
        for entry in pending:
            assert (await reload(TimeEntry, entry.time_entry_id)).approval_status == "approved"

    async def test_second_call_transitions_nothing(self, session, tenant, admin, make_entry):
        for _ in range(2):
            await make_entry()
        service = ApprovalService(session)

        first = await service.approve_all(tenant.tenant_id, admin.employee_id)
        second = await service.approve_all(tenant.tenant_id, admin.employee_id)

        assert first.count == 2
        assert second.count == 0
        assert second.transitioned_ids == []

    async def test_date_range_restricts(self, session, tenant, admin, make_entry, reload):
        inside = await make_entry(work_date=date(2025, 3, 10))
        before = await make_entry(work_date=date(2025, 2, 28))
        after = await make_entry(work_date=date(2025, 4, 1))

        result = await ApprovalService(session).approve_all(
            tenant.tenant_id,
            admin.employee_id,
            DateRange(date(2025, 3, 1), date(2025, 3, 31)),
        )

        assert result.transitioned_ids == [inside.time_entry_id]
        assert (await reload(TimeEntry, before.time_entry_id)).approval_status == "pending"
        assert (await reload(TimeEntry, after.time_entry_id)).approval_status == "pending"

    async def test_inverted_range_rejected(self, session, tenant, admin, make_entry):
        await make_entry()

        with pytest.raises(ValidationError):
            await ApprovalService(session).approve_all(
                tenant.tenant_id,
                admin.employee_id,
                DateRange(date(2025, 3, 31), date(2025, 3, 1)),
            )

    async def test_non_admin_forbidden(self, session, tenant, worker, make_entry, reload):
        entry = await make_entry()

        with pytest.raises(Forbidden):
            await ApprovalService(session).approve_all(tenant.tenant_id, worker.employee_id)

        assert (await reload(TimeEntry, entry.time_entry_id)).approval_status == "pending"

    async def test_other_tenant_untouched(self, session, tenant, admin, other_tenant, make_entry, reload):
        foreign = await make_entry(tenant_id=other_tenant["tenant"].tenant_id)
        own = await make_entry()

        result = await ApprovalService(session).approve_all(tenant.tenant_id, admin.employee_id)

        assert result.transitioned_ids == [own.time_entry_id]
        assert (await reload(TimeEntry, foreign.time_entry_id)).approval_status == "pending"

    async def test_fallback_uses_same_predicate(
        self, session, tenant, admin, make_entry, reload, monkeypatch
    ):
        """A failing fast path falls back to a plain update over the same filter."""
        inside = [await make_entry(work_date=date(2025, 3, d)) for d in (3, 4)]
        outside = await make_entry(work_date=date(2025, 4, 2))
        await make_entry(work_date=date(2025, 3, 5), approval_status="approved")

        async def failing_fast_path(self, predicate, values):
            raise OperationalError("UPDATE time_entry", {}, Exception("connection reset"))

        monkeypatch.setattr(ApprovalService, "_approve_conditional", failing_fast_path)

        result = await ApprovalService(session).approve_all(
            tenant.tenant_id,
            admin.employee_id,
            DateRange(date(2025, 3, 1), date(2025, 3, 31)),
        )

        assert result.method == "fallback"
        assert set(result.transitioned_ids) == {e.time_entry_id for e in inside}
        assert (await reload(TimeEntry, outside.time_entry_id)).approval_status == "pending"
        for entry in inside:
            approved = await reload(TimeEntry, entry.time_entry_id)
            assert approved.approval_status == "approved"
            assert approved.approved_by == admin.employee_id
