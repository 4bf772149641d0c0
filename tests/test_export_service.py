"""Tests for export input shapes."""

from datetime import date, time
from decimal import Decimal
from uuid import uuid4

import pytest

from settlement_engine.calculators.types import DateRange
from settlement_engine.errors import NotFound
from settlement_engine.services.export_service import ExportService
from settlement_engine.services.payroll_service import PayrollAggregator
from settlement_engine.services.settlement_service import SettlementEngine


class TestPayrollRows:
    """Test payroll export rows."""

    async def test_rows_from_periods(self, session, settings, tenant, worker, make_entry):
        await make_entry("8", date(2025, 3, 4), approval_status="approved")
        await make_entry("4", date(2025, 3, 8), premium_category="weekend", approval_status="approved")
        periods = await PayrollAggregator(session, settings).aggregate(
            tenant.tenant_id, [worker.employee_id], DateRange(date(2025, 3, 1), date(2025, 3, 31))
        )

        rows = ExportService(session, settings=settings).payroll_rows(periods.values())

        assert len(rows) == 1
        row = rows[0]
        assert row.employee_name == "Bertil Bygg"
        assert row.personal_number == "19900202-5678"
        assert row.total_hours == Decimal("12")
        assert row.regular_hours == Decimal("8")
        assert row.weekend_hours == Decimal("4")
        assert row.overtime_hours == Decimal("0")
        # 8 * 360 + 4 * 360 * 2
        assert row.gross_pay == Decimal("5760.00")
        assert row.base_rate == Decimal("360")
        assert row.currency == "SEK"
        assert row.to_dict()["employee_id"] == worker.employee_id


class TestInvoiceRows:
    """Test invoice export rows."""

    async def test_rows_in_line_order(
        self, session, settings, tenant, admin, project, invoice, make_entry
    ):
        await make_entry("3", date(2025, 3, 5), time(7, 0), time(10, 0), project=project,
                         approval_status="approved")
        await make_entry("2", date(2025, 3, 4), time(7, 0), time(9, 0), project=project,
                         approval_status="approved", description="Scaffolding")
        await SettlementEngine(session, settings=settings).settle(
            tenant.tenant_id, project.project_id, invoice.invoice_id, admin.employee_id
        )

        rows = await ExportService(session, settings=settings).invoice_rows(
            tenant.tenant_id, invoice.invoice_id
        )

        assert [row.description for row in rows] == [
            "Hours 2025-03-04 (07:00-09:00) - Scaffolding",
            "Hours 2025-03-05 (07:00-10:00)",
        ]
        assert [row.amount for row in rows] == [Decimal("840.00"), Decimal("1260.00")]
        assert all(row.unit == "h" for row in rows)
        assert all(row.unit_rate == Decimal("420") for row in rows)
        assert all(row.currency == "SEK" for row in rows)

    async def test_invoice_of_other_tenant_not_found(
        self, session, settings, tenant, invoice, other_tenant
    ):
        with pytest.raises(NotFound):
            await ExportService(session, settings=settings).invoice_rows(
                other_tenant["tenant"].tenant_id, invoice.invoice_id
            )

    async def test_unknown_invoice(self, session, settings, tenant):
        with pytest.raises(NotFound):
            await ExportService(session, settings=settings).invoice_rows(tenant.tenant_id, uuid4())
