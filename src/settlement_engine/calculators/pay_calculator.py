"""Gross and net pay estimate for a payroll period."""

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping

from settlement_engine.calculators.premium import PREMIUM_MULTIPLIERS
from settlement_engine.calculators.types import (
    DeductionBreakdown,
    EmployeeRateSnapshot,
    PayrollOptions,
    PayrollPeriod,
    PremiumCategory,
)

ZERO = Decimal("0")
CENTS = Decimal("0.01")


def round_to_cents(amount: Decimal) -> Decimal:
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


class PayCalculator:
    """Pure pay computation over category hour totals.

    Gross = sum(category hours * base rate * category multiplier).

    Overtime is hours beyond the threshold for the period. It is reported
    but carries no extra multiplier; only premium categories do.

    Net (display-only estimate) =
        gross + vacation pay + sick pay + bonus - tax - union fee
    with every term independently toggled by PayrollOptions.
    """

    @staticmethod
    def calculate_gross(
        hours_by_category: Mapping[PremiumCategory, Decimal],
        base_rate: Decimal,
    ) -> Decimal:
        gross = ZERO
        for category, hours in hours_by_category.items():
            gross += hours * base_rate * PREMIUM_MULTIPLIERS[PremiumCategory(category)]
        return round_to_cents(gross)

    @staticmethod
    def calculate_overtime(total_hours: Decimal, threshold: Decimal) -> Decimal:
        return max(total_hours - threshold, ZERO)

    @staticmethod
    def calculate_deductions(
        gross: Decimal,
        options: PayrollOptions,
        bonus: Decimal | None = None,
    ) -> DeductionBreakdown:
        breakdown = DeductionBreakdown()
        if options.include_vacation_pay:
            breakdown.vacation_pay = round_to_cents(gross * options.vacation_pay_rate)
        if options.include_sick_pay:
            breakdown.sick_pay = round_to_cents(gross * options.sick_pay_rate)
        if options.include_bonus:
            breakdown.bonus = round_to_cents(bonus or ZERO)
        if options.include_tax_deduction:
            breakdown.tax = round_to_cents(gross * options.tax_rate)
        if options.include_union_fee:
            breakdown.union_fee = round_to_cents(gross * options.union_fee_rate)
        return breakdown

    @staticmethod
    def calculate_net(gross: Decimal, breakdown: DeductionBreakdown) -> Decimal:
        return round_to_cents(gross + breakdown.additions - breakdown.deductions)

    @classmethod
    def build_period(
        cls,
        employee: EmployeeRateSnapshot,
        period_start: date,
        period_end: date,
        hours_by_category: Mapping[PremiumCategory, Decimal],
        options: PayrollOptions,
        overtime_threshold: Decimal,
        entry_count: int = 0,
    ) -> PayrollPeriod:
        """Assemble a PayrollPeriod for one employee."""
        period = PayrollPeriod(
            employee_id=employee.employee_id,
            employee_name=employee.full_name,
            personal_number=employee.personal_number,
            period_start=period_start,
            period_end=period_end,
            base_rate=employee.base_rate,
            regular_hours=hours_by_category.get(PremiumCategory.WORK, ZERO),
            evening_hours=hours_by_category.get(PremiumCategory.EVENING, ZERO),
            night_hours=hours_by_category.get(PremiumCategory.NIGHT, ZERO),
            weekend_hours=hours_by_category.get(PremiumCategory.WEEKEND, ZERO),
            entry_count=entry_count,
        )
        period.overtime_hours = cls.calculate_overtime(period.total_hours, overtime_threshold)
        period.gross_pay = cls.calculate_gross(period.hours_by_category(), employee.base_rate)
        period.deductions = cls.calculate_deductions(
            period.gross_pay,
            options,
            bonus=options.bonus_amounts.get(employee.employee_id),
        )
        period.net_pay = cls.calculate_net(period.gross_pay, period.deductions)
        return period
