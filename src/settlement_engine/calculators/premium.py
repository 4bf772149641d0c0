"""Premium-pay (OB) classification and hours derivation."""

from __future__ import annotations

from datetime import date, time
from decimal import ROUND_HALF_UP, Decimal

from settlement_engine.calculators.types import PremiumCategory

# Labor-agreement rate structure. Changing a rate is a one-line diff here.
WORK_MULTIPLIER = Decimal("1.00")
EVENING_MULTIPLIER = Decimal("1.50")
NIGHT_MULTIPLIER = Decimal("1.50")
WEEKEND_MULTIPLIER = Decimal("2.00")

PREMIUM_MULTIPLIERS: dict[PremiumCategory, Decimal] = {
    PremiumCategory.WORK: WORK_MULTIPLIER,
    PremiumCategory.EVENING: EVENING_MULTIPLIER,
    PremiumCategory.NIGHT: NIGHT_MULTIPLIER,
    PremiumCategory.WEEKEND: WEEKEND_MULTIPLIER,
}

EVENING_START = time(18, 0)
NIGHT_START = time(22, 0)
NIGHT_END = time(6, 0)

# First matching category wins
CLASSIFICATION_PRIORITY = (
    PremiumCategory.WEEKEND,
    PremiumCategory.NIGHT,
    PremiumCategory.EVENING,
    PremiumCategory.WORK,
)

MINUTES_PER_DAY = 24 * 60
HOURS_PRECISION = Decimal("0.01")


def _minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def _windows(start: time, end: time) -> list[tuple[int, int]]:
    """Window [start, end) repeated over a two-day minute axis."""
    s, e = _minutes(start), _minutes(end)
    if e <= s:
        # Wraps midnight: 22:00-06:00
        base = [(s, e + MINUTES_PER_DAY)]
        base.append((0, e))
    else:
        base = [(s, e)]
    return base + [(ws + MINUTES_PER_DAY, we + MINUTES_PER_DAY) for ws, we in base]


_NIGHT_WINDOWS = _windows(NIGHT_START, NIGHT_END)
_EVENING_WINDOWS = _windows(EVENING_START, NIGHT_START)


class PremiumPayClassifier:
    """Classifies a work span into a premium-pay category.

    Rules, in priority order:
    - weekend: work date is Saturday or Sunday, regardless of time of day
    - night: any portion of the span lies in 22:00-06:00
    - evening: any portion of the span lies in 18:00-22:00
    - work: otherwise

    A span straddling a boundary takes the highest-priority category it
    touches, so 21:59-22:01 is ``night``.
    """

    @staticmethod
    def is_weekend(work_date: date) -> bool:
        """Saturday or Sunday."""
        return work_date.weekday() >= 5

    @staticmethod
    def span_minutes(start_time: time, end_time: time | None) -> tuple[int, int]:
        """Map a span onto the two-day minute axis.

        An end before the start crosses midnight. A missing end is treated
        as the single minute at ``start_time``.
        """
        start = _minutes(start_time)
        if end_time is None:
            return start, start + 1
        end = _minutes(end_time)
        if end < start:
            end += MINUTES_PER_DAY
        return start, end

    @classmethod
    def _overlaps(cls, span: tuple[int, int], windows: list[tuple[int, int]]) -> bool:
        start, end = span
        return any(max(start, ws) < min(end, we) for ws, we in windows)

    @classmethod
    def classify(
        cls,
        work_date: date,
        start_time: time | None = None,
        end_time: time | None = None,
    ) -> PremiumCategory:
        """Return the premium category for a span on a work date."""
        if cls.is_weekend(work_date):
            return PremiumCategory.WEEKEND
        if start_time is None:
            return PremiumCategory.WORK

        span = cls.span_minutes(start_time, end_time)
        if cls._overlaps(span, _NIGHT_WINDOWS):
            return PremiumCategory.NIGHT
        if cls._overlaps(span, _EVENING_WINDOWS):
            return PremiumCategory.EVENING
        return PremiumCategory.WORK

    @staticmethod
    def multiplier(category: PremiumCategory | str) -> Decimal:
        """Pay multiplier for a category."""
        return PREMIUM_MULTIPLIERS[PremiumCategory(category)]

    @staticmethod
    def calculate_hours(
        start_time: time,
        end_time: time,
        break_minutes: int = 0,
    ) -> Decimal:
        """Worked hours for a span, minus breaks, rounded to 2 decimals.

        A span ending before it starts crosses midnight.
        """
        start, end = _minutes(start_time), _minutes(end_time)
        worked = end - start
        if worked < 0:
            worked += MINUTES_PER_DAY
        worked -= break_minutes or 0
        return (Decimal(worked) / Decimal(60)).quantize(HOURS_PRECISION, rounding=ROUND_HALF_UP)
