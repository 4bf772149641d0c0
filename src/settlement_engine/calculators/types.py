"""Type definitions for the settlement and payroll pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


class PremiumCategory(str, Enum):
    """Premium-pay (OB) category of a time entry."""

    WORK = "work"
    EVENING = "evening"
    NIGHT = "night"
    WEEKEND = "weekend"


class EmploymentType(str, Enum):
    """Employment classification used to filter payroll aggregation."""

    FULL_TIME = "full_time"
    PART_TIME = "part_time"
    TEMPORARY = "temporary"


@dataclass(frozen=True)
class DateRange:
    """Inclusive date range; either bound may be open."""

    start: date | None = None
    end: date | None = None

    @property
    def is_bounded(self) -> bool:
        return self.start is not None and self.end is not None

    def is_valid(self) -> bool:
        """An end date before the start date is invalid."""
        if self.start is None or self.end is None:
            return True
        return self.end >= self.start

    def contains(self, day: date) -> bool:
        if self.start is not None and day < self.start:
            return False
        if self.end is not None and day > self.end:
            return False
        return True


@dataclass
class InvoiceLineCandidate:
    """An invoice line before persistence."""

    description: str
    quantity: Decimal
    unit_rate: Decimal
    amount: Decimal
    sort_order: int
    time_entry_id: UUID | None = None
    unit: str | None = "h"

    def to_values(self, invoice_id: UUID, tenant_id: UUID) -> dict[str, Any]:
        """Column values for an INSERT into invoice_line."""
        return {
            "invoice_id": invoice_id,
            "tenant_id": tenant_id,
            "time_entry_id": self.time_entry_id,
            "sort_order": self.sort_order,
            "description": self.description,
            "quantity": self.quantity,
            "unit": self.unit,
            "unit_rate": self.unit_rate,
            "amount": self.amount,
        }


@dataclass
class PayrollOptions:
    """Toggles and rates for the display-only net pay estimate.

    Disabling a toggle removes the term from the estimate entirely.
    """

    include_vacation_pay: bool = True
    include_sick_pay: bool = False
    include_tax_deduction: bool = True
    include_union_fee: bool = False
    include_bonus: bool = False

    vacation_pay_rate: Decimal = Decimal("0.12")
    sick_pay_rate: Decimal = Decimal("0.02")
    tax_rate: Decimal = Decimal("0.30")
    union_fee_rate: Decimal = Decimal("0.015")

    # employee_id -> bonus amount, used only when include_bonus is set
    bonus_amounts: dict[UUID, Decimal] = field(default_factory=dict)

    # Restricts the employees considered before aggregation; None = all
    employment_types: frozenset[EmploymentType] | None = None

    # None = use the configured threshold
    overtime_threshold_hours: Decimal | None = None


@dataclass(frozen=True)
class EmployeeRateSnapshot:
    """Employee fields read once at the start of a pay computation."""

    employee_id: UUID
    full_name: str
    personal_number: str | None
    employment_type: str
    base_rate: Decimal


@dataclass
class DeductionBreakdown:
    """Additions and deductions applied to gross; None marks a disabled term."""

    vacation_pay: Decimal | None = None
    sick_pay: Decimal | None = None
    bonus: Decimal | None = None
    tax: Decimal | None = None
    union_fee: Decimal | None = None

    @property
    def additions(self) -> Decimal:
        return sum(
            (v for v in (self.vacation_pay, self.sick_pay, self.bonus) if v is not None),
            Decimal("0"),
        )

    @property
    def deductions(self) -> Decimal:
        return sum(
            (v for v in (self.tax, self.union_fee) if v is not None),
            Decimal("0"),
        )

    def to_dict(self) -> dict[str, Decimal]:
        """Enabled terms only."""
        return {
            name: value
            for name, value in (
                ("vacation_pay", self.vacation_pay),
                ("sick_pay", self.sick_pay),
                ("bonus", self.bonus),
                ("tax", self.tax),
                ("union_fee", self.union_fee),
            )
            if value is not None
        }


@dataclass
class PayrollPeriod:
    """One employee's approved hours and derived pay over a date range.

    A view over TimeEntry rows, never persisted as a source of truth.
    """

    employee_id: UUID
    employee_name: str
    personal_number: str | None
    period_start: date
    period_end: date
    base_rate: Decimal

    regular_hours: Decimal = Decimal("0")
    evening_hours: Decimal = Decimal("0")
    night_hours: Decimal = Decimal("0")
    weekend_hours: Decimal = Decimal("0")
    overtime_hours: Decimal = Decimal("0")

    gross_pay: Decimal = Decimal("0")
    deductions: DeductionBreakdown = field(default_factory=DeductionBreakdown)
    net_pay: Decimal = Decimal("0")
    entry_count: int = 0

    @property
    def total_hours(self) -> Decimal:
        return self.regular_hours + self.evening_hours + self.night_hours + self.weekend_hours

    @property
    def premium_hours(self) -> Decimal:
        return self.evening_hours + self.night_hours + self.weekend_hours

    def hours_by_category(self) -> dict[PremiumCategory, Decimal]:
        return {
            PremiumCategory.WORK: self.regular_hours,
            PremiumCategory.EVENING: self.evening_hours,
            PremiumCategory.NIGHT: self.night_hours,
            PremiumCategory.WEEKEND: self.weekend_hours,
        }
