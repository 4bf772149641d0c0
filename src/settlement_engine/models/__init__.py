"""ORM models."""

from settlement_engine.models.audit import AuditEvent
from settlement_engine.models.base import Base, TimestampMixin, utcnow
from settlement_engine.models.company import Project, Tenant
from settlement_engine.models.employee import Employee
from settlement_engine.models.invoice import Invoice, InvoiceLine
from settlement_engine.models.time_entry import TimeEntry

__all__ = [
    "AuditEvent",
    "Base",
    "Employee",
    "Invoice",
    "InvoiceLine",
    "Project",
    "Tenant",
    "TimeEntry",
    "TimestampMixin",
    "utcnow",
]
