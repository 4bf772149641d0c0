"""Input shapes handed to accounting and bank export adapters."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from settlement_engine.calculators.types import PayrollPeriod
from settlement_engine.config import Settings, get_settings
from settlement_engine.errors import NotFound
from settlement_engine.models import Invoice, InvoiceLine
from settlement_engine.services.authorization import AuthorizationService
from settlement_engine.services.schema_contract import FULL_SCHEMA, SchemaReport


@dataclass(frozen=True)
class PayrollExportRow:
    """One employee's period totals."""

    employee_id: UUID
    employee_name: str
    personal_number: str | None
    period_start: date
    period_end: date
    total_hours: Decimal
    regular_hours: Decimal
    overtime_hours: Decimal
    evening_hours: Decimal
    night_hours: Decimal
    weekend_hours: Decimal
    gross_pay: Decimal
    base_rate: Decimal
    currency: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class InvoiceExportRow:
    """One invoice line."""

    invoice_id: UUID
    sort_order: int
    description: str
    quantity: Decimal
    unit: str | None
    unit_rate: Decimal
    amount: Decimal
    currency: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class ExportService:
    """Builds export rows; the adapters own their wire formats."""

    def __init__(
        self,
        session: AsyncSession,
        schema: SchemaReport | None = None,
        settings: Settings | None = None,
    ):
        self.session = session
        self.schema = schema or FULL_SCHEMA
        self.currency = (settings or get_settings()).currency
        self.auth = AuthorizationService(session)

    def payroll_rows(self, periods: Iterable[PayrollPeriod]) -> list[PayrollExportRow]:
        return [
            PayrollExportRow(
                employee_id=period.employee_id,
                employee_name=period.employee_name,
                personal_number=period.personal_number,
                period_start=period.period_start,
                period_end=period.period_end,
                total_hours=period.total_hours,
                regular_hours=period.regular_hours,
                overtime_hours=period.overtime_hours,
                evening_hours=period.evening_hours,
                night_hours=period.night_hours,
                weekend_hours=period.weekend_hours,
                gross_pay=period.gross_pay,
                base_rate=period.base_rate,
                currency=self.currency,
            )
            for period in periods
        ]

    async def invoice_rows(self, tenant_id: UUID, invoice_id: UUID) -> list[InvoiceExportRow]:
        """Lines of one invoice in customer-facing order."""
        await self.auth.require_tenant(tenant_id)

        invoice_found = await self.session.scalar(
            select(Invoice.invoice_id).where(
                Invoice.invoice_id == invoice_id,
                Invoice.tenant_id == tenant_id,
            )
        )
        if invoice_found is None:
            raise NotFound("Invoice", invoice_id)

        result = await self.session.scalars(
            select(InvoiceLine)
            .options(*self.schema.deferred(InvoiceLine))
            .where(InvoiceLine.invoice_id == invoice_id)
            .order_by(InvoiceLine.sort_order, InvoiceLine.created_at)
        )
        has_unit = self.schema.has("invoice_line", "unit")
        return [
            InvoiceExportRow(
                invoice_id=line.invoice_id,
                sort_order=line.sort_order,
                description=line.description,
                quantity=line.quantity,
                unit=line.unit if has_unit else None,
                unit_rate=line.unit_rate,
                amount=line.amount,
                currency=self.currency,
            )
            for line in result.all()
        ]
