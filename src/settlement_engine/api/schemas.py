"""Pydantic schemas for API request/response models."""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from settlement_engine.calculators.types import (
    DateRange,
    EmploymentType,
    InvoiceLineCandidate,
    PayrollOptions,
    PayrollPeriod,
    PremiumCategory,
)
from settlement_engine.models import TimeEntry
from settlement_engine.services.approval_service import ApprovalResult
from settlement_engine.services.schema_contract import SchemaReport
from settlement_engine.services.settlement_service import SettlementPreview, SettlementResult


# ============================================================================
# Time entry schemas
# ============================================================================


class TimeEntryCreate(BaseModel):
    """Schema for submitting a time entry.

    Approval and settlement fields are accepted but ignored.
    """

    model_config = ConfigDict(extra="allow")

    employee_id: UUID | None = None
    project_id: UUID | None = None
    work_date: date
    start_time: time | None = None
    end_time: time | None = None
    break_minutes: int = Field(default=0, ge=0)
    hours_total: Decimal | None = None
    premium_category: PremiumCategory | None = None
    description: str | None = None


class TimeEntryResponse(BaseModel):
    """Schema for time entry response."""

    time_entry_id: UUID
    tenant_id: UUID
    employee_id: UUID
    project_id: UUID | None = None
    work_date: date
    start_time: time | None = None
    end_time: time | None = None
    break_minutes: int | None = None
    premium_category: str
    hours_total: Decimal
    amount: Decimal | None = None
    description: str | None = None
    approval_status: str
    approved_by: UUID | None = None
    approved_at: datetime | None = None
    billed: bool

    @classmethod
    def from_entry(cls, entry: TimeEntry, schema: SchemaReport) -> "TimeEntryResponse":
        """Build from an entry, leaving columns absent from the database unset."""
        optional = {
            column: getattr(entry, column)
            for column in ("break_minutes", "amount", "approved_by", "approved_at")
            if schema.has("time_entry", column)
        }
        return cls(
            time_entry_id=entry.time_entry_id,
            tenant_id=entry.tenant_id,
            employee_id=entry.employee_id,
            project_id=entry.project_id,
            work_date=entry.work_date,
            start_time=entry.start_time,
            end_time=entry.end_time,
            premium_category=entry.premium_category,
            hours_total=entry.hours_total,
            description=entry.description,
            approval_status=entry.approval_status,
            billed=entry.billed,
            **optional,
        )


# ============================================================================
# Approval schemas
# ============================================================================


class ApprovalResponse(BaseModel):
    """Schema for approval response; zero approved is a valid outcome."""

    approved_count: int
    time_entry_ids: list[UUID]
    method: str

    @classmethod
    def from_result(cls, result: ApprovalResult) -> "ApprovalResponse":
        return cls(
            approved_count=result.count,
            time_entry_ids=result.transitioned_ids,
            method=result.method,
        )


# ============================================================================
# Settlement schemas
# ============================================================================


class InvoiceLineResponse(BaseModel):
    """Schema for a settled invoice line."""

    model_config = ConfigDict(from_attributes=True)

    time_entry_id: UUID | None = None
    sort_order: int
    description: str
    quantity: Decimal
    unit: str | None = None
    unit_rate: Decimal
    amount: Decimal


class SettlementWarningResponse(BaseModel):
    """Schema for a settlement warning."""

    model_config = ConfigDict(from_attributes=True)

    code: str
    message: str
    time_entry_id: UUID | None = None


class SettlementResponse(BaseModel):
    """Schema for settlement response."""

    invoice_id: UUID
    settled_count: int
    rate: Decimal
    total_amount: Decimal
    invoice_total: Decimal
    lines: list[InvoiceLineResponse]
    warnings: list[SettlementWarningResponse] = []

    @classmethod
    def from_result(cls, result: SettlementResult) -> "SettlementResponse":
        return cls(
            invoice_id=result.invoice_id,
            settled_count=result.count,
            rate=result.rate,
            total_amount=result.total_amount,
            invoice_total=result.invoice_total,
            lines=[InvoiceLineResponse.model_validate(line) for line in result.lines],
            warnings=[SettlementWarningResponse.model_validate(w) for w in result.warnings],
        )


class UnbilledEntryResponse(BaseModel):
    """Schema for one entry awaiting settlement."""

    model_config = ConfigDict(from_attributes=True)

    time_entry_id: UUID
    employee_id: UUID
    work_date: date
    start_time: time | None = None
    end_time: time | None = None
    premium_category: str | None = None
    hours_total: Decimal
    description: str | None = None


class UnbilledHoursResponse(BaseModel):
    """Schema for the unbilled-hours preview of a project."""

    project_id: UUID
    project_name: str
    customer_name: str | None = None
    rate: Decimal
    total_hours: Decimal
    total_amount: Decimal
    entry_count: int
    entries: list[UnbilledEntryResponse]

    @classmethod
    def from_preview(cls, preview: SettlementPreview) -> "UnbilledHoursResponse":
        return cls(
            project_id=preview.project_id,
            project_name=preview.project_name,
            customer_name=preview.customer_name,
            rate=preview.rate,
            total_hours=preview.total_hours,
            total_amount=preview.total_amount,
            entry_count=preview.count,
            entries=[UnbilledEntryResponse.model_validate(e) for e in preview.entries],
        )


# ============================================================================
# Payroll schemas
# ============================================================================


class PayrollOptionsRequest(BaseModel):
    """Deduction toggles and rates; omitted fields keep their defaults."""

    include_vacation_pay: bool = True
    include_sick_pay: bool = False
    include_tax_deduction: bool = True
    include_union_fee: bool = False
    include_bonus: bool = False
    vacation_pay_rate: Decimal = Decimal("0.12")
    sick_pay_rate: Decimal = Decimal("0.02")
    tax_rate: Decimal = Decimal("0.30")
    union_fee_rate: Decimal = Decimal("0.015")
    bonus_amounts: dict[UUID, Decimal] = {}
    employment_types: list[EmploymentType] | None = None
    overtime_threshold_hours: Decimal | None = None

    def to_options(self) -> PayrollOptions:
        data: dict[str, Any] = self.model_dump()
        if self.employment_types is not None:
            data["employment_types"] = frozenset(self.employment_types)
        return PayrollOptions(**data)


class PayrollAggregateRequest(BaseModel):
    """Schema for a payroll aggregation request."""

    employee_ids: list[UUID]
    start: date
    end: date
    options: PayrollOptionsRequest = PayrollOptionsRequest()

    @property
    def date_range(self) -> DateRange:
        return DateRange(self.start, self.end)


class PayrollPeriodResponse(BaseModel):
    """Schema for one employee's payroll period."""

    employee_id: UUID
    employee_name: str
    personal_number: str | None = None
    period_start: date
    period_end: date
    base_rate: Decimal
    total_hours: Decimal
    regular_hours: Decimal
    evening_hours: Decimal
    night_hours: Decimal
    weekend_hours: Decimal
    overtime_hours: Decimal
    gross_pay: Decimal
    deductions: dict[str, Decimal]
    net_pay: Decimal
    entry_count: int

    @classmethod
    def from_period(cls, period: PayrollPeriod) -> "PayrollPeriodResponse":
        return cls(
            employee_id=period.employee_id,
            employee_name=period.employee_name,
            personal_number=period.personal_number,
            period_start=period.period_start,
            period_end=period.period_end,
            base_rate=period.base_rate,
            total_hours=period.total_hours,
            regular_hours=period.regular_hours,
            evening_hours=period.evening_hours,
            night_hours=period.night_hours,
            weekend_hours=period.weekend_hours,
            overtime_hours=period.overtime_hours,
            gross_pay=period.gross_pay,
            deductions=period.deductions.to_dict(),
            net_pay=period.net_pay,
            entry_count=period.entry_count,
        )


class PayrollAggregateResponse(BaseModel):
    """Schema for payroll aggregation response."""

    start: date
    end: date
    periods: list[PayrollPeriodResponse]


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None
