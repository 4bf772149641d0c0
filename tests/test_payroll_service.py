"""Tests for payroll aggregation."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from settlement_engine.calculators.types import DateRange, EmploymentType, PayrollOptions
from settlement_engine.errors import Forbidden, NotFound, ValidationError
from settlement_engine.models import Employee
from settlement_engine.services.payroll_service import PayrollAggregator

MARCH = DateRange(date(2025, 3, 1), date(2025, 3, 31))


class TestAggregate:
    """Test aggregation of approved hours."""

    async def test_example_period(self, session, settings, tenant, worker, make_entry):
        """8 regular + 2 evening hours at 360: gross 3960, net 3247.20."""
        await make_entry("8", date(2025, 3, 4), approval_status="approved")
        await make_entry("2", date(2025, 3, 4), premium_category="evening", approval_status="approved")

        periods = await PayrollAggregator(session, settings).aggregate(
            tenant.tenant_id, [worker.employee_id], MARCH
        )

        period = periods[worker.employee_id]
        assert period.regular_hours == Decimal("8")
        assert period.evening_hours == Decimal("2")
        assert period.gross_pay == Decimal("3960.00")
        assert period.net_pay == Decimal("3247.20")
        assert period.entry_count == 2
        assert period.base_rate == Decimal("360")

    async def test_only_approved_entries_in_range(self, session, settings, tenant, worker, make_entry):
        await make_entry("4", date(2025, 3, 10), approval_status="approved")
        await make_entry("5", date(2025, 3, 11))
        await make_entry("6", date(2025, 4, 1), approval_status="approved")
        await make_entry("7", date(2025, 2, 28), approval_status="approved")

        periods = await PayrollAggregator(session, settings).aggregate(
            tenant.tenant_id, [worker.employee_id], MARCH
        )

        assert periods[worker.employee_id].total_hours == Decimal("4")

    async def test_billed_entries_still_count(self, session, settings, tenant, worker, make_entry):
        """Billing and payroll are independent consumers of approved hours."""
        await make_entry("3", date(2025, 3, 10), approval_status="approved", billed=True)

        periods = await PayrollAggregator(session, settings).aggregate(
            tenant.tenant_id, [worker.employee_id], MARCH
        )

        assert periods[worker.employee_id].total_hours == Decimal("3")

    async def test_employee_without_hours_gets_zero_period(self, session, settings, tenant, worker):
        periods = await PayrollAggregator(session, settings).aggregate(
            tenant.tenant_id, [worker.employee_id], MARCH
        )

        assert periods[worker.employee_id].gross_pay == Decimal("0.00")
        assert periods[worker.employee_id].entry_count == 0

    async def test_overtime_reported_without_multiplier(
        self, session, settings, tenant, worker, make_entry
    ):
        for day in range(3, 24):
            await make_entry("8", date(2025, 3, day), approval_status="approved")

        periods = await PayrollAggregator(session, settings).aggregate(
            tenant.tenant_id, [worker.employee_id], MARCH
        )

        period = periods[worker.employee_id]
        assert period.total_hours == Decimal("168")
        assert period.overtime_hours == Decimal("8")
        assert period.gross_pay == Decimal("60480.00")

    async def test_employment_type_filter_applied_before_aggregation(
        self, session, settings, tenant, worker, make_entry
    ):
        temp = Employee(
            employee_id=uuid4(),
            tenant_id=tenant.tenant_id,
            full_name="Tora Temp",
            employment_type="temporary",
            hourly_rate=Decimal("300"),
        )
        session.add(temp)
        await session.flush()
        await make_entry("8", date(2025, 3, 4), approval_status="approved")
        await make_entry("8", date(2025, 3, 4), approval_status="approved", employee=temp)

        periods = await PayrollAggregator(session, settings).aggregate(
            tenant.tenant_id,
            [worker.employee_id, temp.employee_id],
            MARCH,
            PayrollOptions(employment_types=frozenset({EmploymentType.TEMPORARY})),
        )

        assert list(periods) == [temp.employee_id]
        assert periods[temp.employee_id].gross_pay == Decimal("2400.00")

    async def test_results_ordered_by_name(self, session, settings, tenant, admin, worker):
        periods = await PayrollAggregator(session, settings).aggregate(
            tenant.tenant_id, [worker.employee_id, admin.employee_id], MARCH
        )

        assert [p.employee_name for p in periods.values()] == ["Anna Admin", "Bertil Bygg"]


class TestAggregateGuards:
    """Test scope and authorization checks."""

    async def test_employee_sees_own_payslip(self, session, settings, tenant, worker, make_entry):
        await make_entry("2", date(2025, 3, 4), approval_status="approved")

        periods = await PayrollAggregator(session, settings).aggregate(
            tenant.tenant_id, [worker.employee_id], MARCH, actor_id=worker.employee_id
        )

        assert periods[worker.employee_id].total_hours == Decimal("2")

    async def test_employee_cannot_see_others(self, session, settings, tenant, admin, worker):
        with pytest.raises(Forbidden):
            await PayrollAggregator(session, settings).aggregate(
                tenant.tenant_id, [admin.employee_id], MARCH, actor_id=worker.employee_id
            )

    async def test_admin_sees_everyone(self, session, settings, tenant, admin, worker):
        periods = await PayrollAggregator(session, settings).aggregate(
            tenant.tenant_id, [worker.employee_id], MARCH, actor_id=admin.employee_id
        )

        assert list(periods) == [worker.employee_id]

    async def test_employee_of_other_tenant_not_found(self, session, settings, tenant, other_tenant):
        with pytest.raises(NotFound):
            await PayrollAggregator(session, settings).aggregate(
                tenant.tenant_id, [other_tenant["admin"].employee_id], MARCH
            )

    @pytest.mark.parametrize(
        "date_range",
        [
            DateRange(date(2025, 3, 31), date(2025, 3, 1)),
            DateRange(date(2025, 3, 1), None),
        ],
    )
    async def test_invalid_range(self, session, settings, tenant, worker, date_range):
        with pytest.raises(ValidationError):
            await PayrollAggregator(session, settings).aggregate(
                tenant.tenant_id, [worker.employee_id], date_range
            )
