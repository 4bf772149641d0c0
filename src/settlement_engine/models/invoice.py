"""Invoice and invoice line models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from settlement_engine.models.base import HOURS, MONEY, RATE, Base, TimestampMixin


class Invoice(Base, TimestampMixin):
    """Customer invoice; created by the caller before settlement runs."""

    __tablename__ = "invoice"

    invoice_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("tenant.tenant_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    project_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("project.project_id"),
        nullable=True,
    )
    customer_name: Mapped[str | None] = mapped_column(String, nullable=True)
    # Caller-supplied estimate until settlement recomputes it from lines
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    issue_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'sent', 'paid', 'cancelled')",
            name="invoice_status_check",
        ),
    )

    # Relationships
    lines: Mapped[list[InvoiceLine]] = relationship(
        back_populates="invoice",
        order_by="InvoiceLine.sort_order",
    )


class InvoiceLine(Base, TimestampMixin):
    """Append-only invoice line; references at most one time entry, ever."""

    __tablename__ = "invoice_line"

    invoice_line_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    invoice_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("invoice.invoice_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tenant_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("tenant.tenant_id", ondelete="CASCADE"),
        nullable=True,
    )
    time_entry_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("time_entry.time_entry_id"),
        nullable=True,
    )
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[Decimal] = mapped_column(HOURS, nullable=False)
    unit: Mapped[str | None] = mapped_column(String, nullable=True)
    unit_rate: Mapped[Decimal] = mapped_column(RATE, nullable=False)
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)

    __table_args__ = (
        UniqueConstraint("time_entry_id", name="invoice_line_time_entry_unique"),
    )

    # Relationships
    invoice: Mapped[Invoice] = relationship(back_populates="lines")
