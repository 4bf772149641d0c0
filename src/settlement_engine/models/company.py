"""Tenant and project models."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from settlement_engine.models.base import RATE, Base, TimestampMixin

if TYPE_CHECKING:
    from settlement_engine.models.employee import Employee


class Tenant(Base, TimestampMixin):
    """Multi-tenant container (one construction company)."""

    __tablename__ = "tenant"

    tenant_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")

    __table_args__ = (
        CheckConstraint("status IN ('active', 'suspended', 'closed')", name="tenant_status_check"),
    )

    # Relationships
    projects: Mapped[list[Project]] = relationship(back_populates="tenant")
    employees: Mapped[list[Employee]] = relationship(back_populates="tenant")


class Project(Base, TimestampMixin):
    """Billing target; time entries are settled per project."""

    __tablename__ = "project"

    project_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("tenant.tenant_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    customer_name: Mapped[str | None] = mapped_column(String, nullable=True)
    # Billing rate per hour; settlement falls back to the configured default when unset
    hourly_rate: Mapped[Decimal | None] = mapped_column(RATE, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")

    __table_args__ = (
        CheckConstraint(
            "status IN ('planned', 'active', 'completed', 'archived')",
            name="project_status_check",
        ),
        CheckConstraint("hourly_rate IS NULL OR hourly_rate >= 0", name="project_rate_check"),
    )

    # Relationships
    tenant: Mapped[Tenant] = relationship(back_populates="projects")
