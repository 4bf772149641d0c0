"""Employee model."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from settlement_engine.models.base import RATE, Base, TimestampMixin

if TYPE_CHECKING:
    from settlement_engine.models.company import Tenant
    from settlement_engine.models.time_entry import TimeEntry


class Employee(Base, TimestampMixin):
    """Employee record.

    ``role`` carries the tenant-level capability: ``admin`` may approve and
    settle, ``employee`` may only submit and view their own pay.
    """

    __tablename__ = "employee"

    employee_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("tenant.tenant_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    full_name: Mapped[str] = mapped_column(String, nullable=False)
    personal_number: Mapped[str | None] = mapped_column(String, nullable=True)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    role: Mapped[str] = mapped_column(String, nullable=False, default="employee")
    employment_type: Mapped[str] = mapped_column(String, nullable=False, default="full_time")
    hourly_rate: Mapped[Decimal | None] = mapped_column(RATE, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")

    __table_args__ = (
        CheckConstraint("role IN ('admin', 'employee')", name="employee_role_check"),
        CheckConstraint(
            "employment_type IN ('full_time', 'part_time', 'temporary')",
            name="employee_employment_type_check",
        ),
        CheckConstraint(
            "status IN ('active', 'archived')",
            name="employee_status_check",
        ),
    )

    # Relationships
    tenant: Mapped[Tenant] = relationship(back_populates="employees")
    time_entries: Mapped[list[TimeEntry]] = relationship(
        back_populates="employee",
        foreign_keys="TimeEntry.employee_id",
    )

    @property
    def is_admin(self) -> bool:
        """Check administrator capability."""
        return self.role == "admin"
