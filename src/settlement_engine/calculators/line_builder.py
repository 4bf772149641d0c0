"""Invoice line builder for settled time entries."""

from __future__ import annotations

from datetime import time
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Iterable

from settlement_engine.calculators.types import InvoiceLineCandidate, PremiumCategory

if TYPE_CHECKING:
    from settlement_engine.models import TimeEntry


class InvoiceLineBuilder:
    """Builds invoice lines from approved, unbilled time entries.

    Line order is date then start time ascending; entries without a start
    time sort after timed entries on the same date. This is how the lines
    read to the customer.

    Rounding:
    - amounts to 2 decimals (currency minor unit)
    - quantity is the entry's stored hours, already at 2 decimals
    """

    OUTPUT_PRECISION = Decimal("0.01")
    LINE_PREFIX = "Hours"
    UNIT = "h"

    @staticmethod
    def round_to_cents(amount: Decimal) -> Decimal:
        """Round amount to 2 decimal places."""
        return amount.quantize(InvoiceLineBuilder.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def sort_key(entry: TimeEntry) -> tuple:
        """Ordering key: (date, untimed last, start time)."""
        return (
            entry.work_date,
            entry.start_time is None,
            entry.start_time or time.min,
        )

    @staticmethod
    def describe(entry: TimeEntry) -> str:
        """Human-readable line text.

        ``Hours 2025-03-04 (07:00-15:30) [evening] - Formwork, level 2``
        """
        parts = [f"{InvoiceLineBuilder.LINE_PREFIX} {entry.work_date.isoformat()}"]
        if entry.start_time is not None:
            span = entry.start_time.strftime("%H:%M")
            if entry.end_time is not None:
                span += f"-{entry.end_time.strftime('%H:%M')}"
            parts.append(f" ({span})")
        category = entry.premium_category
        if category and category != PremiumCategory.WORK.value:
            parts.append(f" [{category}]")
        if entry.description:
            parts.append(f" - {entry.description.strip()}")
        return "".join(parts)

    @classmethod
    def build_line(cls, entry: TimeEntry, rate: Decimal, sort_order: int) -> InvoiceLineCandidate:
        """One line per entry: quantity = hours, amount = hours * rate."""
        hours = Decimal(entry.hours_total or 0)
        return InvoiceLineCandidate(
            description=cls.describe(entry),
            quantity=hours,
            unit_rate=rate,
            amount=cls.round_to_cents(hours * rate),
            sort_order=sort_order,
            time_entry_id=entry.time_entry_id,
            unit=cls.UNIT,
        )

    @classmethod
    def build_lines(
        cls,
        entries: Iterable[TimeEntry],
        rate: Decimal,
        first_sort_order: int = 0,
    ) -> list[InvoiceLineCandidate]:
        """Build lines in customer-facing order, numbering from ``first_sort_order``."""
        ordered = sorted(entries, key=cls.sort_key)
        return [
            cls.build_line(entry, rate, first_sort_order + index)
            for index, entry in enumerate(ordered)
        ]

    @staticmethod
    def calculate_total(lines: Iterable[InvoiceLineCandidate]) -> Decimal:
        """Sum of line amounts."""
        return sum((line.amount for line in lines), Decimal("0.00"))
