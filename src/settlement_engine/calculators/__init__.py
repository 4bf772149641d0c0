"""Pure settlement and pay calculations."""

from settlement_engine.calculators.line_builder import InvoiceLineBuilder
from settlement_engine.calculators.pay_calculator import PayCalculator
from settlement_engine.calculators.premium import PREMIUM_MULTIPLIERS, PremiumPayClassifier
from settlement_engine.calculators.types import (
    DateRange,
    DeductionBreakdown,
    EmploymentType,
    PayrollOptions,
    PayrollPeriod,
    PremiumCategory,
)

__all__ = [
    "DateRange",
    "DeductionBreakdown",
    "EmploymentType",
    "InvoiceLineBuilder",
    "PREMIUM_MULTIPLIERS",
    "PayCalculator",
    "PayrollOptions",
    "PayrollPeriod",
    "PremiumCategory",
    "PremiumPayClassifier",
]
