"""Time entry model."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from settlement_engine.models.base import HOURS, MONEY, Base, TimestampMixin

if TYPE_CHECKING:
    from settlement_engine.models.employee import Employee


class TimeEntry(Base, TimestampMixin):
    """Hours worked by one employee on one date.

    Status fields are written only by the approval state machine and the
    ``billed`` flag only by settlement; the submission path never updates
    an entry after creation.
    """

    __tablename__ = "time_entry"

    time_entry_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("tenant.tenant_id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    project_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("project.project_id"),
        nullable=True,
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    end_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    # Optional column on older schemas; the database supplies the default
    break_minutes: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    premium_category: Mapped[str] = mapped_column(String, nullable=False, default="work")
    hours_total: Mapped[Decimal] = mapped_column(HOURS, nullable=False)
    amount: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Approval
    approval_status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    approved_by: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("employee.employee_id"),
        nullable=True,
    )
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Settlement
    billed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint(
            "approval_status IN ('pending', 'approved')",
            name="time_entry_approval_status_check",
        ),
        CheckConstraint(
            "premium_category IN ('work', 'evening', 'night', 'weekend')",
            name="time_entry_premium_category_check",
        ),
        CheckConstraint("NOT billed OR approval_status = 'approved'", name="time_entry_billed_approved"),
        CheckConstraint("break_minutes >= 0", name="time_entry_break_check"),
        CheckConstraint("hours_total > 0 AND hours_total <= 24", name="time_entry_hours_check"),
        Index("ix_time_entry_settlement", "tenant_id", "project_id", "approval_status", "billed"),
        Index("ix_time_entry_employee_date", "tenant_id", "employee_id", "work_date"),
    )

    # Relationships
    employee: Mapped[Employee] = relationship(
        back_populates="time_entries",
        foreign_keys=[employee_id],
    )
