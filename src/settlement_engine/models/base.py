"""Declarative base and shared column types."""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import DateTime, Numeric, Uuid, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Amounts in the tenant currency, rounded to cents
MONEY = Numeric(14, 2)
# Hourly rates (billing and base pay)
RATE = Numeric(12, 2)
# Hours worked; a single entry never exceeds 24
HOURS = Numeric(6, 2)


def utcnow() -> datetime:
    """Timezone-aware current time used for audit and approval stamps."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all ORM models.

    UUIDs map to native ``uuid`` on PostgreSQL and ``CHAR(32)`` on SQLite.
    """

    type_annotation_map = {
        UUID: Uuid(as_uuid=True),
        datetime: DateTime(timezone=True),
    }


class TimestampMixin:
    """Mixin for models with created_at timestamp."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
